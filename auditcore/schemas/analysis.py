"""
API Schemas — Request and Response Models

Pydantic models for the auditcore API.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field


# ============================================================
# ANALYZE (synchronous)
# ============================================================

class AnalyzeRequest(BaseModel):
    """POST /analyze request body."""
    text: str = Field(..., max_length=2_000_000,
                      description="Extracted document text to score.")
    document_id: Optional[str] = Field(None, max_length=200,
                                       description="Excluded from the similarity comparison.")

    model_config = {"json_schema_extra": {"examples": [
        {"text": "This study aims to delve into the tapestry of factors affecting learners."},
    ]}}


class BreakdownResponse(BaseModel):
    typography: float
    patterns: float
    omissions: float
    style: float
    structure: float


class PatternHitResponse(BaseModel):
    pattern: str
    category: str
    weight: float
    count: int
    points: float


class OmissionResponse(BaseModel):
    id: str
    label: str
    trigger_found: str


class SimilarityResponse(BaseModel):
    similarity: float
    matched_document_id: Optional[str] = None
    compared_count: int
    overlap: int = 0
    reason: Optional[str] = None


class AnalyzeResponse(BaseModel):
    """POST /analyze response body. Also the stored result of a job."""
    ai_probability_score: int
    risk_tier: str
    risk_breakdown: BreakdownResponse
    risk_explanation: str
    pattern_hits: list[PatternHitResponse]
    omissions: list[OmissionResponse]
    detected_sections: list[str]
    details: dict
    reason: Optional[str] = None
    catalog_version: str
    similarity: Optional[SimilarityResponse] = None


# ============================================================
# ANALYSES (asynchronous jobs)
# ============================================================

class AnalysisCreateRequest(BaseModel):
    """POST /analyses request body."""
    source_locator: str = Field(..., min_length=1, max_length=2048,
                                description="URL or path of the uploaded document.")
    content_type: str = Field("application/pdf",
                              pattern="^(application/pdf|text/plain)$")
    analysis_id: Optional[str] = Field(None, min_length=1, max_length=200)


class AnalysisCreateResponse(BaseModel):
    """POST /analyses response body (202 Accepted)."""
    analysis_id: str
    status: str
    queue_mode: str


class AnalysisStatusResponse(BaseModel):
    """GET /analyses/{id} response body."""
    id: str
    status: str
    created_at: str
    updated_at: str
    error_reason: Optional[str] = None
    result: Optional[AnalyzeResponse] = None


# ============================================================
# CATALOG / HEALTH
# ============================================================

class PatternEntry(BaseModel):
    phrase: str
    weight: float
    category: str


class PatternsResponse(BaseModel):
    catalog_version: str
    total: int
    categories: list[str]
    patterns: list[PatternEntry]


class HealthResponse(BaseModel):
    status: str
    version: str
    catalog_version: str
    pattern_count: int
    queue_mode: str
