"""
Job State Machine

  PENDING ──> PROCESSING ──> COMPLETED
     │             │
     └─────────────┴──────> FAILED

COMPLETED and FAILED are terminal. PENDING -> FAILED covers jobs
rejected before any work started (e.g. an unusable payload).
Every status write goes through transition(); anything else raises
IllegalTransition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from auditcore.errors import IllegalTransition


class JobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AnalysisJob:
    """One analysis record as the worker and API see it."""
    id: str
    status: JobStatus = JobStatus.PENDING
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    error_reason: Optional[str] = None
    result: Optional[dict] = None
    source_locator: Optional[str] = None
    content_type: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "error_reason": self.error_reason,
            "result": self.result,
            "source_locator": self.source_locator,
            "content_type": self.content_type,
        }


def check_transition(job_id: str, current: JobStatus, target: JobStatus) -> None:
    """Raise IllegalTransition unless current -> target is allowed."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise IllegalTransition(job_id, current.value, target.value)


def transition(
    job: AnalysisJob,
    target: JobStatus,
    error_reason: Optional[str] = None,
) -> AnalysisJob:
    """
    Move a job to `target`, mutating and returning it.

    FAILED requires a non-empty error_reason. Other targets clear it.
    """
    check_transition(job.id, job.status, target)
    if target is JobStatus.FAILED and not (error_reason or "").strip():
        raise ValueError("FAILED transition requires a non-empty error_reason")

    job.status = target
    job.error_reason = error_reason if target is JobStatus.FAILED else None
    job.updated_at = utc_now()
    return job
