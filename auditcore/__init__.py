"""
auditcore — Document Forensic Analysis and Scoring

Deterministic, explainable scoring of extracted document text for
templated (likely AI-generated) writing and procedural omissions, plus
shingle-based near-duplicate detection against prior documents, run
through an asynchronous job pipeline.

Public API:
  - analyze:          Score one document's text (module-level engine)
  - ForensicEngine:   The scoring engine, for custom catalogs or weights
  - SimilarityEngine: Jaccard near-duplicate detection over a corpus
  - catalog:          The loaded, immutable pattern catalog
  - AnalysisWorker:   Runs queued jobs end to end
  - select_queue:     Picks the pgmq or in-memory queue at startup

Usage:
    from auditcore import analyze
    result = analyze(text)
    print(result.ai_probability_score, result.risk_tier.value)
"""

__version__ = "1.0.0"

from auditcore.patterns import catalog, load_catalog, Catalog
from auditcore.forensics import ForensicEngine, ForensicResult, analyze, forensic_engine
from auditcore.scorer import RiskTier, ScoreWeights, ForensicBreakdown
from auditcore.similarity import SimilarityEngine, SimilarityResult, CorpusProvider
from auditcore.jobs import (
    AnalysisWorker,
    JobPayload,
    JobStatus,
    SQLiteAnalysisStore,
    select_queue,
)

__all__ = [
    "catalog",
    "load_catalog",
    "Catalog",
    "ForensicEngine",
    "ForensicResult",
    "analyze",
    "forensic_engine",
    "RiskTier",
    "ScoreWeights",
    "ForensicBreakdown",
    "SimilarityEngine",
    "SimilarityResult",
    "CorpusProvider",
    "AnalysisWorker",
    "JobPayload",
    "JobStatus",
    "SQLiteAnalysisStore",
    "select_queue",
]
