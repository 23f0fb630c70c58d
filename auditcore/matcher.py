"""
Pattern Matcher — Weighted Phrase Detection

Scans normalized text against the compiled pattern catalog.
One PatternHit per matched rule (not per occurrence); points are
occurrence_count x weight. The total is normalized to points per
1000 words so documents of different length are comparable.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from auditcore.config import settings
from auditcore.normalizer import count_words
from auditcore.patterns.catalog import Catalog, PatternRule


@dataclass
class PatternHit:
    """A catalog rule that matched at least once."""
    rule: PatternRule
    occurrence_count: int
    points: float

    @property
    def category(self) -> str:
        return self.rule.category

    def to_dict(self) -> dict:
        return {
            "pattern": self.rule.phrase,
            "category": self.rule.category,
            "weight": self.rule.weight,
            "count": self.occurrence_count,
            "points": round(self.points, 2),
        }


@dataclass
class PatternReport:
    hits: list[PatternHit] = field(default_factory=list)
    total_weighted_points: float = 0.0
    normalized_score: float = 0.0
    word_count: int = 0

    def risk(self, scale: float = settings.PATTERN_SCALE) -> float:
        """Breakdown component: min(normalized_score x scale, 100)."""
        return min(self.normalized_score * scale, 100.0)


def match_patterns(text: str, catalog: Catalog) -> PatternReport:
    """Match every compiled rule against `text`. Pure."""
    word_count = count_words(text)
    if word_count == 0:
        return PatternReport()

    hits: list[PatternHit] = []
    total = 0.0
    for compiled in catalog.patterns:
        count = len(compiled.regex.findall(text))
        if count:
            points = count * compiled.rule.weight
            total += points
            hits.append(PatternHit(
                rule=compiled.rule,
                occurrence_count=count,
                points=points,
            ))

    return PatternReport(
        hits=hits,
        total_weighted_points=total,
        normalized_score=(total / word_count) * 1000,
        word_count=word_count,
    )
