"""
Error taxonomy for the analysis pipeline.

Scoring itself never raises on short or empty input; these exceptions
cover configuration and infrastructure failures only.
"""

from __future__ import annotations


class AuditCoreError(Exception):
    """Base class for all auditcore errors."""


class CatalogError(AuditCoreError):
    """The pattern dictionary asset is missing or unparseable."""


class IllegalTransition(AuditCoreError):
    """A job status change that the state machine does not allow."""

    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(
            f"Illegal transition for job {job_id}: {current} -> {target}"
        )


class JobNotFound(AuditCoreError):
    """No analysis record exists for the given id."""


class ExtractionError(AuditCoreError):
    """Text could not be extracted from the source document."""


class UnsupportedContentType(ExtractionError):
    """The source document's content type has no extractor."""


class JobLeased(AuditCoreError):
    """Another worker holds an unexpired lease on the job."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Analysis {job_id} is leased by another worker")
