"""
auditcore Configuration

Central settings loaded from environment variables.

Every tunable policy value of the scoring pipeline lives here:
aggregation weights, component multipliers, shingle size, corpus
bounds and queue concurrency. Nothing downstream inlines them.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

_DEFAULT_PATTERNS_PATH = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "patterns", "dictionary.json"
)


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    API_VERSION: str = "1"

    # --- Pattern Dictionary ---
    PATTERNS_PATH: str = os.getenv("AUDITCORE_PATTERNS_PATH", _DEFAULT_PATTERNS_PATH)
    PATTERN_WILDCARD_MAX_TOKENS: int = int(
        os.getenv("AUDITCORE_WILDCARD_MAX_TOKENS", "12")
    )

    # --- Aggregation weights (must sum to 1.0) ---
    WEIGHT_TYPOGRAPHY: float = float(os.getenv("AUDITCORE_WEIGHT_TYPOGRAPHY", "0.15"))
    WEIGHT_PATTERNS: float = float(os.getenv("AUDITCORE_WEIGHT_PATTERNS", "0.25"))
    WEIGHT_OMISSIONS: float = float(os.getenv("AUDITCORE_WEIGHT_OMISSIONS", "0.20"))
    WEIGHT_STYLE: float = float(os.getenv("AUDITCORE_WEIGHT_STYLE", "0.25"))
    WEIGHT_STRUCTURE: float = float(os.getenv("AUDITCORE_WEIGHT_STRUCTURE", "0.15"))

    # --- Component multipliers (empirical heuristics) ---
    PATTERN_SCALE: float = float(os.getenv("AUDITCORE_PATTERN_SCALE", "2"))
    OMISSION_SCALE: float = float(os.getenv("AUDITCORE_OMISSION_SCALE", "35"))

    # --- Risk tiers ---
    TIER_HIGH_ABOVE: int = int(os.getenv("AUDITCORE_TIER_HIGH_ABOVE", "75"))
    TIER_MEDIUM_ABOVE: int = int(os.getenv("AUDITCORE_TIER_MEDIUM_ABOVE", "40"))

    # --- Similarity ---
    SHINGLE_SIZE: int = int(os.getenv("AUDITCORE_SHINGLE_SIZE", "5"))
    MIN_WORDS: int = int(os.getenv("AUDITCORE_MIN_WORDS", "80"))
    CORPUS_LIMIT: int = int(os.getenv("AUDITCORE_CORPUS_LIMIT", "120"))

    # --- Job queue ---
    QUEUE_NAME: str = os.getenv("AUDITCORE_QUEUE_NAME", "analysis_scan")
    QUEUE_CONCURRENCY: int = int(os.getenv("AUDITCORE_QUEUE_CONCURRENCY", "5"))
    LEASE_SECONDS: int = int(os.getenv("AUDITCORE_LEASE_SECONDS", "60"))
    QUEUE_POLL_INTERVAL: float = float(os.getenv("AUDITCORE_QUEUE_POLL_INTERVAL", "1.0"))
    QUEUE_PROBE_TIMEOUT: float = float(os.getenv("AUDITCORE_QUEUE_PROBE_TIMEOUT", "3.0"))
    PGMQ_DATABASE_URL: str = os.getenv("PGMQ_DATABASE_URL", "")

    # --- Persistence ---
    DB_PATH: str = os.getenv("AUDITCORE_DB_PATH", "auditcore.db")

    # --- Server ---
    CORS_ORIGINS: str = os.getenv("AUDITCORE_CORS_ORIGINS", "*")
    HOST: str = os.getenv("AUDITCORE_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("AUDITCORE_PORT", "8000"))
    MAX_BODY_BYTES: int = int(os.getenv("AUDITCORE_MAX_BODY_BYTES", str(5 * 1_048_576)))


settings = Settings()
