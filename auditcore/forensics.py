"""
Forensic Engine — Deterministic Document Scoring

This is the scoring core. Everything else moves documents around it.

The engine runs five deterministic layers over normalized text:
  1. Typography:  sentence-length uniformity
  2. Patterns:    weighted templated phrasing (EN + PH catalog)
  3. Omissions:   trigger present, expected companion concept absent
  4. Style:       passive voice, linking particle, hedging, jargon
  5. Structure:   canonical section skeleton and its ordering

and aggregates them into a 0-100 advisory risk score with a tier.

No randomness, no clock, no I/O: the same text always yields the
same ForensicResult. The engine holds only the read-only catalog,
so one instance is shared by every concurrent job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from auditcore.matcher import PatternHit, match_patterns
from auditcore.normalizer import normalize_text
from auditcore.omissions import Omission, OmissionDetector, omission_risk
from auditcore.patterns.catalog import Catalog, catalog as default_catalog
from auditcore.scorer import (
    DEFAULT_WEIGHTS,
    ForensicBreakdown,
    RiskTier,
    ScoreWeights,
    aggregate,
    explain,
)
from auditcore.config import settings
from auditcore.structure import analyze_structure
from auditcore.stylistic import StylisticAnalyzer, analyze_typography


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class ForensicResult:
    """Result of a forensic analysis. A pure function of the input text."""
    ai_probability_score: int
    risk_tier: RiskTier
    breakdown: ForensicBreakdown
    pattern_hits: list[PatternHit]
    omissions: list[Omission]
    detected_sections: list[str]
    risk_explanation: str
    details: dict = field(default_factory=dict)
    reason: Optional[str] = None      # "empty_text" when there was nothing to score
    catalog_version: str = ""

    def to_dict(self) -> dict:
        return {
            "ai_probability_score": self.ai_probability_score,
            "risk_tier": self.risk_tier.value,
            "risk_breakdown": self.breakdown.to_dict(),
            "risk_explanation": self.risk_explanation,
            "pattern_hits": [h.to_dict() for h in self.pattern_hits],
            "omissions": [o.to_dict() for o in self.omissions],
            "detected_sections": list(self.detected_sections),
            "details": self.details,
            "reason": self.reason,
            "catalog_version": self.catalog_version,
        }


# ============================================================
# THE ENGINE
# ============================================================

class ForensicEngine:
    """
    Stateless scorer bound to one catalog and one set of weights.

    Instantiated once as a singleton; tests build their own with
    alternate catalogs or weights.
    """

    def __init__(
        self,
        catalog: Catalog = default_catalog,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
        pattern_scale: float = settings.PATTERN_SCALE,
        omission_scale: float = settings.OMISSION_SCALE,
    ):
        self.catalog = catalog
        self.weights = weights
        self.pattern_scale = pattern_scale
        self.omission_scale = omission_scale
        self._stylistic = StylisticAnalyzer(catalog.style)
        self._omissions = OmissionDetector(catalog.omission_rules)

    def analyze(self, text: Optional[str]) -> ForensicResult:
        """
        Score a document's extracted text.

        Empty input is not an error: it yields a zero-signal result
        with reason "empty_text".
        """
        clean = normalize_text(text)
        if not clean:
            breakdown = ForensicBreakdown()
            return ForensicResult(
                ai_probability_score=0,
                risk_tier=RiskTier.LOW,
                breakdown=breakdown,
                pattern_hits=[],
                omissions=[],
                detected_sections=[],
                risk_explanation=explain(0, RiskTier.LOW, breakdown),
                details={"norm_text_length": 0},
                reason="empty_text",
                catalog_version=self.catalog.version,
            )

        # --- Phase 1: Independent layers ---
        typography = analyze_typography(clean)
        patterns = match_patterns(clean, self.catalog)
        omissions = self._omissions.detect(clean)
        style = self._stylistic.analyze(clean)
        structure = analyze_structure(clean, self.catalog.sections)

        # --- Phase 2: Aggregation ---
        breakdown = ForensicBreakdown(
            typography=typography.risk_score,
            patterns=patterns.risk(self.pattern_scale),
            omissions=omission_risk(len(omissions), self.omission_scale),
            style=style.risk_score,
            structure=structure.predictability_score,
        )
        score, tier = aggregate(breakdown, self.weights)

        return ForensicResult(
            ai_probability_score=score,
            risk_tier=tier,
            breakdown=breakdown,
            pattern_hits=patterns.hits,
            omissions=omissions,
            detected_sections=structure.sections_detected,
            risk_explanation=explain(score, tier, breakdown),
            details={
                "norm_text_length": len(clean),
                "typography": typography.to_dict(),
                "patterns": {
                    "total_weighted_points": round(patterns.total_weighted_points, 2),
                    "normalized_score": round(patterns.normalized_score, 2),
                    "word_count": patterns.word_count,
                },
                "omission_count": len(omissions),
                "style": style.to_dict(),
                "structure": structure.to_dict(),
            },
            catalog_version=self.catalog.version,
        )


# ============================================================
# SINGLETON: instantiated once, never mutated
# ============================================================

forensic_engine = ForensicEngine()


def analyze(text: Optional[str]) -> ForensicResult:
    """Module-level entry point using the shared engine."""
    return forensic_engine.analyze(text)
