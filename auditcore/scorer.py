"""
Risk Score Aggregator

Combines the five forensic components into one 0-100 score.
Separated from forensics.py for single-responsibility.

Score = weighted sum of components, each clamped to [0, 100]:
  typography  0.15   sentence-length uniformity
  patterns    0.25   templated phrasing per 1000 words
  omissions   0.20   missing procedural companions
  style       0.25   passive voice / hedging / jargon ladder
  structure   0.15   canonical section skeleton
Rounded half-up, clamped [0, 100].
Tier: > 75 High, > 40 Medium, else Low.

The weights are a contract: identical components always give the
identical score.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from enum import Enum

from auditcore.config import settings


class RiskTier(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class ScoreWeights:
    typography: float = settings.WEIGHT_TYPOGRAPHY
    patterns: float = settings.WEIGHT_PATTERNS
    omissions: float = settings.WEIGHT_OMISSIONS
    style: float = settings.WEIGHT_STYLE
    structure: float = settings.WEIGHT_STRUCTURE

    def __post_init__(self):
        total = sum(getattr(self, f.name) for f in fields(self))
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Score weights must sum to 1.0, got {total:.4f}")
        if any(getattr(self, f.name) < 0 for f in fields(self)):
            raise ValueError("Score weights must be non-negative")


DEFAULT_WEIGHTS = ScoreWeights()


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ForensicBreakdown:
    """Per-component risk, each independently clamped to [0, 100]."""
    typography: float = 0.0
    patterns: float = 0.0
    omissions: float = 0.0
    style: float = 0.0
    structure: float = 0.0

    def __post_init__(self):
        for f in fields(self):
            object.__setattr__(self, f.name, clamp(float(getattr(self, f.name))))

    def to_dict(self) -> dict:
        return {f.name: round(getattr(self, f.name), 2) for f in fields(self)}


def risk_tier(
    score: int,
    high_above: int = settings.TIER_HIGH_ABOVE,
    medium_above: int = settings.TIER_MEDIUM_ABOVE,
) -> RiskTier:
    if score > high_above:
        return RiskTier.HIGH
    if score > medium_above:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def aggregate(
    breakdown: ForensicBreakdown,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> tuple[int, RiskTier]:
    """
    Weighted sum of the breakdown, rounded half-up and clamped.

    The tier is read from the rounded score so it always agrees with the
    reported number: a raw 75.25 reports 75, Medium.

    Returns:
        (score, tier)
    """
    raw = (
        breakdown.typography * weights.typography
        + breakdown.patterns * weights.patterns
        + breakdown.omissions * weights.omissions
        + breakdown.style * weights.style
        + breakdown.structure * weights.structure
    )
    score = int(clamp(math.floor(raw + 0.5)))
    return score, risk_tier(score)


def explain(score: int, tier: RiskTier, breakdown: ForensicBreakdown) -> str:
    """One-sentence, human-readable summary of what drove the score."""
    if score == 0:
        return "No forensic signal detected in the document text."

    components = breakdown.to_dict()
    drivers = [name for name, value in sorted(
        components.items(), key=lambda kv: kv[1], reverse=True,
    ) if value > 0][:2]

    return (
        f"Forensic analysis detects a {tier.value.lower()} probability of "
        f"AI-generated content patterns or procedural omissions "
        f"(score {score}/100, driven mainly by {' and '.join(drivers)})."
    )
