"""
Contextual Omission Detector

Some topics carry a procedural expectation: research on minors
should mention consent, survey data should mention privacy, human
participants should mention ethics-board approval. Silence on the
expected companion concept is flagged.

Triggers and expectations match at a word start, so inflections count
("survey" covers "surveyed", "consent" covers "consented"). A rule
may pin single triggers to whole words ("tao" must not fire on "taon").
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from auditcore.config import settings
from auditcore.patterns.catalog import OmissionRule


@dataclass(frozen=True)
class Omission:
    id: str
    label: str
    trigger_found: str

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label, "trigger_found": self.trigger_found}


def _term_regex(term: str, whole_word: bool) -> re.Pattern:
    body = r"\s+".join(re.escape(tok) for tok in term.split())
    return re.compile(rf"\b{body}\b" if whole_word else rf"\b{body}", re.IGNORECASE)


class OmissionDetector:
    def __init__(self, rules: tuple[OmissionRule, ...]):
        self.rules = rules
        self._compiled = [
            (
                rule,
                [(t, _term_regex(t, whole_word=t in rule.whole_word)) for t in rule.triggers],
                [_term_regex(e, whole_word=False) for e in rule.expectations],
            )
            for rule in rules
        ]

    def detect(self, text: str) -> list[Omission]:
        lower = text.lower()
        flagged: list[Omission] = []
        for rule, triggers, expectations in self._compiled:
            trigger = _first_trigger(lower, triggers)
            if trigger is None:
                continue
            if any(rx.search(lower) for rx in expectations):
                continue
            flagged.append(Omission(id=rule.id, label=rule.label, trigger_found=trigger))
        return flagged


def _first_trigger(text: str, triggers: list[tuple[str, re.Pattern]]) -> Optional[str]:
    for term, rx in triggers:
        if rx.search(text):
            return term
    return None


def omission_risk(count: int, scale: float = settings.OMISSION_SCALE) -> float:
    """min(count x scale, 100)."""
    return min(count * scale, 100.0)
