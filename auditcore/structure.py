"""
Structure Analyzer — Section Predictability

Templated papers march through the canonical sections in textbook
order. Each heading's first occurrence is located; a complete,
ordered skeleton scores highest.
"""

from __future__ import annotations

from dataclasses import dataclass, field

MIN_SECTIONS_FOR_SKELETON = 4


@dataclass
class StructureReport:
    sections_detected: list[str] = field(default_factory=list)
    properly_ordered: bool = True
    predictability_score: int = 0

    def to_dict(self) -> dict:
        return {
            "sections_detected": list(self.sections_detected),
            "properly_ordered": self.properly_ordered,
            "predictability_score": self.predictability_score,
        }


def analyze_structure(text: str, sections: tuple[str, ...]) -> StructureReport:
    """
    100: >= 4 sections in non-decreasing textual order
     60: >= 4 sections out of order
     30: 1-3 sections
      0: none
    """
    lower = text.lower()
    positions = [(name, lower.find(name)) for name in sections]
    found = [(name, idx) for name, idx in positions if idx >= 0]

    ordered = all(a[1] <= b[1] for a, b in zip(found, found[1:]))

    if len(found) >= MIN_SECTIONS_FOR_SKELETON:
        score = 100 if ordered else 60
    elif found:
        score = 30
    else:
        score = 0

    return StructureReport(
        sections_detected=[name for name, _ in found],
        properly_ordered=ordered,
        predictability_score=score,
    )
