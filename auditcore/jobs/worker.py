"""
Analysis Worker — One Job, End to End

  claim -> fetch -> extract -> (forensics || similarity) -> complete
                     any failure along the way -> FAILED(reason)

The claim is a compare-and-set on the store. A terminal job is skipped,
so a redelivered message never writes a second terminal status. A job
still leased by another worker raises JobLeased, which leaves a durable
message for redelivery; once that lease expires the job is claimed
again and run to a terminal status. There is no retry of a FAILED job;
it stays FAILED until an operator resubmits it.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

from auditcore.errors import ExtractionError, IllegalTransition, JobLeased, JobNotFound
from auditcore.extract import extract_text as default_extract_text
from auditcore.extract import fetch_source as default_fetch_source
from auditcore.forensics import ForensicEngine, forensic_engine
from auditcore.jobs.queue import JobPayload
from auditcore.jobs.store import AnalysisStore, StoreCorpus
from auditcore.logging import get_logger
from auditcore.normalizer import normalize_text
from auditcore.similarity import SimilarityEngine

logger = get_logger("worker")

EMPTY_TEXT_REASON = "Could not extract meaningful text from document."

FetchSource = Callable[[str], Awaitable[bytes]]
ExtractText = Callable[[bytes, str], str]


def failure_reason(error: BaseException) -> str:
    """The message recorded on a FAILED job."""
    return str(error).strip() or type(error).__name__


class AnalysisWorker:
    def __init__(
        self,
        store: AnalysisStore,
        fetch_source: FetchSource = default_fetch_source,
        extract_text: ExtractText = default_extract_text,
        engine: ForensicEngine = forensic_engine,
        similarity: Optional[SimilarityEngine] = None,
    ):
        self.store = store
        self.fetch_source = fetch_source
        self.extract_text = extract_text
        self.engine = engine
        self.similarity = similarity or SimilarityEngine(StoreCorpus(store))

    async def process(self, payload: JobPayload) -> Optional[dict]:
        """
        Run one analysis job. Returns the stored result, or None if the
        job was skipped or failed.

        Errors are recorded on the job, not raised. JobLeased and a
        failure to record an error escape, which leaves a durable message
        for redelivery.
        """
        analysis_id = payload.analysis_id

        claimed = await asyncio.to_thread(self.store.claim, analysis_id)
        if not claimed:
            if await asyncio.to_thread(self.store.is_leased, analysis_id):
                raise JobLeased(analysis_id)
            logger.info("Skipping job that is not claimable", extra={"analysis_id": analysis_id})
            return None

        started = time.perf_counter()
        logger.info("Analysis started", extra={"analysis_id": analysis_id, "status": "PROCESSING"})

        try:
            data = await self.fetch_source(payload.source_locator)
            text = await asyncio.to_thread(self.extract_text, data, payload.content_type)
            if not normalize_text(text):
                raise ExtractionError(EMPTY_TEXT_REASON)

            forensic, similarity = await asyncio.gather(
                asyncio.to_thread(self.engine.analyze, text),
                self.similarity.detect(text, exclude_id=analysis_id),
            )
            result = forensic.to_dict()
            result["similarity"] = similarity.to_dict()

            await asyncio.to_thread(self.store.complete, analysis_id, result, text)
        except Exception as e:
            reason = failure_reason(e)
            try:
                await asyncio.to_thread(self.store.fail, analysis_id, reason)
            except IllegalTransition:
                # Another worker took over the lease and finished first.
                logger.warning(
                    "Job already finalized; result discarded",
                    extra={"analysis_id": analysis_id, "error": reason},
                )
                return None
            logger.error(
                "Analysis failed",
                extra={
                    "analysis_id": analysis_id,
                    "status": "FAILED",
                    "error": reason,
                    "error_type": type(e).__name__,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                },
            )
            return None

        logger.info(
            "Analysis completed",
            extra={
                "analysis_id": analysis_id,
                "status": "COMPLETED",
                "ai_score": result["ai_probability_score"],
                "risk_tier": result["risk_tier"],
                "similarity": result["similarity"]["similarity"],
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return result

    async def handle(self, payload: JobPayload) -> None:
        """Queue handler adapter."""
        await self.process(payload)

    async def process_record(self, analysis_id: str) -> Optional[dict]:
        """Run a stored PENDING record directly, without going through a queue."""
        job = await asyncio.to_thread(self.store.get, analysis_id)
        if job is None:
            raise JobNotFound(f"Analysis not found: {analysis_id}")
        payload = JobPayload(
            analysis_id=job.id,
            source_locator=job.source_locator or "",
            content_type=job.content_type or "application/pdf",
        )
        return await self.process(payload)
