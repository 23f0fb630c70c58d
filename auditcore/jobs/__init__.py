"""Asynchronous analysis jobs: state machine, store, queue and worker."""

from auditcore.jobs.state import AnalysisJob, JobStatus, transition
from auditcore.jobs.store import AnalysisStore, SQLiteAnalysisStore, StoreCorpus
from auditcore.jobs.queue import (
    JobPayload,
    JobQueue,
    MemoryQueue,
    PgmqQueue,
    select_queue,
)
from auditcore.jobs.worker import AnalysisWorker

__all__ = [
    "AnalysisJob",
    "AnalysisStore",
    "AnalysisWorker",
    "JobPayload",
    "JobQueue",
    "JobStatus",
    "MemoryQueue",
    "PgmqQueue",
    "SQLiteAnalysisStore",
    "StoreCorpus",
    "select_queue",
    "transition",
]
