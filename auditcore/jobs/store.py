"""
Analysis Store — Durable Job Records

Holds one row per analysis: its status, failure reason, forensic
result and the extracted full text. The full text of COMPLETED rows
doubles as the similarity corpus.

Every status write is validated against the job state machine, and
completion writes result, text and status in a single transaction so
a reader never sees COMPLETED without its result.

A claim takes a lease of LEASE_SECONDS. A PROCESSING job whose lease
has expired (its worker crashed) can be claimed again; the status stays
PROCESSING and only the lease changes hands.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

from auditcore.config import settings
from auditcore.errors import JobNotFound
from auditcore.jobs.state import AnalysisJob, JobStatus, utc_now, check_transition
from auditcore.logging import get_logger
from auditcore.similarity import CorpusProvider

logger = get_logger("store")


class AnalysisStore(ABC):
    """Persistence collaborator for the worker and API."""

    @abstractmethod
    def create(
        self,
        analysis_id: str,
        source_locator: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> AnalysisJob:
        ...

    @abstractmethod
    def get(self, analysis_id: str) -> Optional[AnalysisJob]:
        ...

    @abstractmethod
    def claim(self, analysis_id: str) -> bool:
        """
        Atomically move PENDING -> PROCESSING, or take over a PROCESSING
        job whose lease has expired. False otherwise.
        """
        ...

    @abstractmethod
    def is_leased(self, analysis_id: str) -> bool:
        """True while a PROCESSING job's lease has not expired."""
        ...

    @abstractmethod
    def complete(self, analysis_id: str, result: dict, full_text: str) -> None:
        ...

    @abstractmethod
    def fail(self, analysis_id: str, reason: str) -> None:
        ...

    @abstractmethod
    def recent_documents(
        self, limit: int, exclude_id: Optional[str] = None,
    ) -> list[tuple[str, str]]:
        """COMPLETED (id, full_text) pairs, newest first."""
        ...


class SQLiteAnalysisStore(AnalysisStore):
    """SQLite-backed store. One connection per call, writes under a lock."""

    def __init__(self, db_path: str = "auditcore.db", lease_seconds: int = settings.LEASE_SECONDS):
        self.db_path = db_path
        self.lease_seconds = lease_seconds
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS analyses (
                    id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    source_locator TEXT,
                    content_type TEXT,
                    error_reason TEXT,
                    result TEXT,
                    full_text TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    completed_at TEXT,
                    lease_expires_at REAL
                )
            """)
            columns = {row[1] for row in conn.execute("PRAGMA table_info(analyses)")}
            if "lease_expires_at" not in columns:
                conn.execute("ALTER TABLE analyses ADD COLUMN lease_expires_at REAL")
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_analyses_completed
                ON analyses(status, completed_at)
            """)
            conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _current_status(self, conn: sqlite3.Connection, analysis_id: str) -> JobStatus:
        row = conn.execute(
            "SELECT status FROM analyses WHERE id = ?", (analysis_id,)
        ).fetchone()
        if row is None:
            raise JobNotFound(f"Analysis not found: {analysis_id}")
        return JobStatus(row[0])

    # --- Writes ---

    def create(
        self,
        analysis_id: str,
        source_locator: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> AnalysisJob:
        job = AnalysisJob(
            id=analysis_id,
            source_locator=source_locator,
            content_type=content_type,
        )
        with self._lock:
            with self._get_conn() as conn:
                conn.execute(
                    """INSERT INTO analyses
                       (id, status, source_locator, content_type, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (job.id, job.status.value, source_locator, content_type,
                     job.created_at, job.updated_at),
                )
                conn.commit()
        return job

    def claim(self, analysis_id: str) -> bool:
        now = time.time()
        with self._lock:
            with self._get_conn() as conn:
                row = conn.execute(
                    "SELECT status FROM analyses WHERE id = ?", (analysis_id,)
                ).fetchone()
                cur = conn.execute(
                    """UPDATE analyses SET status = ?, lease_expires_at = ?, updated_at = ?
                       WHERE id = ? AND (
                           status = ?
                           OR (status = ? AND (lease_expires_at IS NULL OR lease_expires_at <= ?))
                       )""",
                    (JobStatus.PROCESSING.value, now + self.lease_seconds, utc_now(),
                     analysis_id, JobStatus.PENDING.value, JobStatus.PROCESSING.value, now),
                )
                conn.commit()
                claimed = cur.rowcount == 1
        if not claimed:
            logger.info("Claim refused", extra={"analysis_id": analysis_id})
        elif row is not None and row[0] == JobStatus.PROCESSING.value:
            logger.warning("Expired lease taken over", extra={"analysis_id": analysis_id})
        return claimed

    def is_leased(self, analysis_id: str) -> bool:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT status, lease_expires_at FROM analyses WHERE id = ?", (analysis_id,)
            ).fetchone()
        if row is None or row[0] != JobStatus.PROCESSING.value:
            return False
        return row[1] is not None and row[1] > time.time()

    def complete(self, analysis_id: str, result: dict, full_text: str) -> None:
        with self._lock:
            with self._get_conn() as conn:
                current = self._current_status(conn, analysis_id)
                check_transition(analysis_id, current, JobStatus.COMPLETED)
                now = utc_now()
                conn.execute(
                    """UPDATE analyses
                       SET status = ?, result = ?, full_text = ?, error_reason = NULL,
                           lease_expires_at = NULL, updated_at = ?, completed_at = ?
                       WHERE id = ?""",
                    (JobStatus.COMPLETED.value, json.dumps(result, default=str),
                     full_text, now, now, analysis_id),
                )
                conn.commit()

    def fail(self, analysis_id: str, reason: str) -> None:
        if not (reason or "").strip():
            raise ValueError("FAILED transition requires a non-empty error_reason")
        with self._lock:
            with self._get_conn() as conn:
                current = self._current_status(conn, analysis_id)
                check_transition(analysis_id, current, JobStatus.FAILED)
                conn.execute(
                    """UPDATE analyses
                       SET status = ?, error_reason = ?, lease_expires_at = NULL, updated_at = ?
                       WHERE id = ?""",
                    (JobStatus.FAILED.value, reason, utc_now(), analysis_id),
                )
                conn.commit()

    # --- Reads ---

    def get(self, analysis_id: str) -> Optional[AnalysisJob]:
        with self._get_conn() as conn:
            row = conn.execute(
                """SELECT id, status, created_at, updated_at, error_reason, result,
                          source_locator, content_type
                   FROM analyses WHERE id = ?""",
                (analysis_id,),
            ).fetchone()
        if row is None:
            return None
        return AnalysisJob(
            id=row[0],
            status=JobStatus(row[1]),
            created_at=row[2],
            updated_at=row[3],
            error_reason=row[4],
            result=json.loads(row[5]) if row[5] else None,
            source_locator=row[6],
            content_type=row[7],
        )

    def recent_documents(
        self, limit: int, exclude_id: Optional[str] = None,
    ) -> list[tuple[str, str]]:
        with self._get_conn() as conn:
            rows = conn.execute(
                """SELECT id, full_text FROM analyses
                   WHERE status = ? AND full_text IS NOT NULL AND full_text != ''
                     AND id != ?
                   ORDER BY completed_at DESC, rowid DESC LIMIT ?""",
                (JobStatus.COMPLETED.value, exclude_id or "", limit),
            ).fetchall()
        return [(r[0], r[1]) for r in rows]

    def get_count(self, status: Optional[JobStatus] = None) -> int:
        with self._get_conn() as conn:
            if status:
                row = conn.execute(
                    "SELECT COUNT(*) FROM analyses WHERE status = ?", (status.value,)
                ).fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM analyses").fetchone()
            return row[0] if row else 0


class StoreCorpus(CorpusProvider):
    """Exposes a store's completed documents to the similarity engine."""

    def __init__(self, store: AnalysisStore):
        self.store = store

    async def recent_documents(
        self, limit: int, exclude_id: Optional[str] = None,
    ) -> list[tuple[str, str]]:
        return await asyncio.to_thread(self.store.recent_documents, limit, exclude_id)
