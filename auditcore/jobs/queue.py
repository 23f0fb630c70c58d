"""
Job Queue — Durable Backend with In-Memory Fallback

Two interchangeable backends behind one interface:

  PgmqQueue:   Postgres message queue (pgmq) over an asyncpg pool.
               A read message stays invisible for LEASE_SECONDS; if the
               worker crashes the message reappears and is redelivered
               (at-least-once). Handled messages are deleted.
  MemoryQueue: asyncio tasks in this process, bounded by a semaphore.
               Jobs are lost on restart. This is the degraded mode used
               when Postgres is unreachable at startup.

The backend is chosen ONCE by select_queue() at startup. Nothing
downstream checks which one it got.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Optional

import asyncpg

from auditcore.config import Settings
from auditcore.errors import JobLeased
from auditcore.jobs.state import utc_now
from auditcore.logging import get_logger

logger = get_logger("queue")


# ============================================================
# PAYLOAD
# ============================================================

@dataclass
class JobPayload:
    """What travels through the queue. The record itself lives in the store."""
    analysis_id: str
    source_locator: str
    content_type: str = "application/pdf"
    requested_at: str = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "JobPayload":
        if not data.get("analysis_id") or not data.get("source_locator"):
            raise ValueError(f"Invalid job payload: {data!r}")
        return cls(
            analysis_id=str(data["analysis_id"]),
            source_locator=str(data["source_locator"]),
            content_type=str(data.get("content_type") or "application/pdf"),
            requested_at=str(data.get("requested_at") or utc_now()),
        )


Handler = Callable[[JobPayload], Awaitable[None]]


class JobQueue(ABC):
    """Common interface of every queue backend."""

    mode: str = ""

    def __init__(self):
        self._handler: Optional[Handler] = None
        self._concurrency = 1

    def set_handler(self, handler: Handler, concurrency: int = 5) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._handler = handler
        self._concurrency = concurrency

    @abstractmethod
    async def add(self, payload: JobPayload) -> None:
        ...

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


# ============================================================
# IN-MEMORY BACKEND
# ============================================================

class MemoryQueue(JobQueue):
    """
    Runs each job as an asyncio task as soon as it is added.

    At most `concurrency` handlers run at once; the rest wait on the
    semaphore. Jobs added before a handler is registered are buffered
    and dispatched when it arrives. Handler exceptions are logged,
    never raised to add().
    """

    mode = "memory"

    def __init__(self):
        super().__init__()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: set[asyncio.Task] = set()
        self._pending: list[JobPayload] = []
        self.active = 0
        self.peak_active = 0

    @property
    def buffered(self) -> int:
        return len(self._pending)

    def set_handler(self, handler: Handler, concurrency: int = 5) -> None:
        super().set_handler(handler, concurrency)
        self._semaphore = asyncio.Semaphore(concurrency)
        self._drain_pending()

    async def start(self) -> None:
        if self._handler is None:
            raise RuntimeError("MemoryQueue started without a handler")
        self._drain_pending()
        logger.info(
            "In-memory queue started",
            extra={"queue_mode": self.mode, "concurrency": self._concurrency},
        )

    async def add(self, payload: JobPayload) -> None:
        if self._handler is None:
            self._pending.append(payload)
            logger.info(
                "Job buffered until a handler is registered",
                extra={"analysis_id": payload.analysis_id, "queue_mode": self.mode},
            )
            return
        self._dispatch(payload)

    def _dispatch(self, payload: JobPayload) -> None:
        task = asyncio.create_task(self._run(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _drain_pending(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; start() drains.
            return
        pending, self._pending = self._pending, []
        for payload in pending:
            self._dispatch(payload)

    async def _run(self, payload: JobPayload) -> None:
        async with self._semaphore:
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
            try:
                await self._handler(payload)
            except Exception as e:
                logger.error(
                    "Job handler failed",
                    extra={
                        "analysis_id": payload.analysis_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
            finally:
                self.active -= 1

    async def join(self) -> None:
        """Wait until every job added so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.join()
        logger.info("In-memory queue closed", extra={"queue_mode": self.mode})


# ============================================================
# PGMQ BACKEND
# ============================================================

class PgmqQueue(JobQueue):
    """
    pgmq-backed queue. One poll loop per unit of concurrency.

    A message is deleted once the handler returns. The handler records
    job failures itself, so an exception here means the job is still
    leased elsewhere or the worker could not record the failure; the
    message is left to reappear after the lease.
    """

    mode = "pgmq"

    def __init__(
        self,
        pool: Any,
        queue_name: str = "analysis_scan",
        lease_seconds: int = 60,
        poll_interval: float = 1.0,
    ):
        super().__init__()
        self.pool = pool
        self.queue_name = queue_name
        self.lease_seconds = lease_seconds
        self.poll_interval = poll_interval
        self._stopping = asyncio.Event()
        self._loops: list[asyncio.Task] = []

    async def add(self, payload: JobPayload) -> Optional[int]:
        row = await self.pool.fetchrow(
            "SELECT pgmq.send($1::text, $2::jsonb, $3::int) AS msg_id",
            self.queue_name,
            json.dumps(payload.to_dict()),
            0,
        )
        msg_id = int(row["msg_id"]) if row is not None and row["msg_id"] is not None else None
        logger.info(
            "Job enqueued",
            extra={"analysis_id": payload.analysis_id, "job_id": msg_id, "queue_mode": self.mode},
        )
        return msg_id

    async def read(self, qty: int = 1) -> list[dict]:
        rows = await self.pool.fetch(
            "SELECT msg_id, read_ct, enqueued_at, vt, message "
            "FROM pgmq.read($1::text, $2::int, $3::int)",
            self.queue_name,
            self.lease_seconds,
            qty,
        )
        return [
            {
                "msg_id": r["msg_id"],
                "read_ct": r["read_ct"],
                "message": r["message"] if isinstance(r["message"], dict)
                else json.loads(r["message"]) if r["message"] else {},
            }
            for r in rows
        ]

    async def delete(self, msg_id: int) -> bool:
        return bool(await self.pool.fetchval(
            "SELECT pgmq.delete($1::text, $2::bigint)", self.queue_name, msg_id,
        ))

    async def archive(self, msg_id: int) -> bool:
        return bool(await self.pool.fetchval(
            "SELECT pgmq.archive($1::text, $2::bigint)", self.queue_name, msg_id,
        ))

    async def start(self) -> None:
        if self._handler is None:
            raise RuntimeError("PgmqQueue started without a handler")
        await self.pool.execute("SELECT pgmq.create($1::text)", self.queue_name)
        self._stopping.clear()
        self._loops = [
            asyncio.create_task(self._poll_loop(i)) for i in range(self._concurrency)
        ]
        logger.info(
            f"pgmq queue '{self.queue_name}' started",
            extra={"queue_mode": self.mode, "concurrency": self._concurrency},
        )

    async def poll_once(self) -> bool:
        """Read and handle at most one message. True if one was read."""
        messages = await self.read(qty=1)
        if not messages:
            return False
        msg = messages[0]

        try:
            payload = JobPayload.from_dict(msg["message"])
        except ValueError as e:
            logger.error("Archiving malformed message",
                         extra={"job_id": msg["msg_id"], "error": str(e)})
            await self.archive(msg["msg_id"])
            return True

        try:
            await self._handler(payload)
        except JobLeased:
            logger.info(
                "Job still leased; message left for redelivery",
                extra={"analysis_id": payload.analysis_id, "job_id": msg["msg_id"]},
            )
            return True
        except Exception as e:
            logger.error(
                "Job handler crashed; message left for redelivery",
                extra={
                    "analysis_id": payload.analysis_id,
                    "job_id": msg["msg_id"],
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return True

        await self.delete(msg["msg_id"])
        return True

    async def _poll_loop(self, index: int) -> None:
        while not self._stopping.is_set():
            try:
                handled = await self.poll_once()
            except (asyncpg.PostgresError, OSError) as e:
                logger.warning(f"pgmq poll loop {index} read failed",
                               extra={"error": str(e), "error_type": type(e).__name__})
                handled = False
            if not handled:
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass

    async def close(self) -> None:
        self._stopping.set()
        for task in self._loops:
            task.cancel()
        await asyncio.gather(*self._loops, return_exceptions=True)
        self._loops = []
        await self.pool.close()
        logger.info("pgmq queue closed", extra={"queue_mode": self.mode})


# ============================================================
# STARTUP SELECTION
# ============================================================

Probe = Callable[[str, float], Awaitable[Any]]


async def probe_pgmq(url: str, timeout: float) -> Any:
    """Connect and run SELECT 1. Returns the live pool or raises."""
    pool = await asyncio.wait_for(
        asyncpg.create_pool(url, min_size=1, max_size=10, command_timeout=60),
        timeout=timeout,
    )
    try:
        await asyncio.wait_for(pool.fetchval("SELECT 1"), timeout=timeout)
    except BaseException:
        await pool.close()
        raise
    return pool


async def select_queue(settings: Settings, probe: Optional[Probe] = None) -> JobQueue:
    """
    Choose the queue backend once, at startup.

    An unreachable Postgres is not an error: the service degrades to
    the in-memory queue and says so in the log.
    """
    if not settings.PGMQ_DATABASE_URL:
        logger.warning(
            "PGMQ_DATABASE_URL not set; using in-memory queue (jobs lost on restart)",
            extra={"queue_mode": MemoryQueue.mode},
        )
        return MemoryQueue()

    probe = probe or probe_pgmq
    try:
        pool = await probe(settings.PGMQ_DATABASE_URL, settings.QUEUE_PROBE_TIMEOUT)
    except Exception as e:
        logger.warning(
            "pgmq unreachable; using in-memory queue (jobs lost on restart)",
            extra={
                "queue_mode": MemoryQueue.mode,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        return MemoryQueue()

    return PgmqQueue(
        pool,
        queue_name=settings.QUEUE_NAME,
        lease_seconds=settings.LEASE_SECONDS,
        poll_interval=settings.QUEUE_POLL_INTERVAL,
    )
