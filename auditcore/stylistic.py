"""
Stylistic Analyzer — Sentence Rhythm and Register

Two components of the forensic breakdown come from here:

  typography: sentence-length uniformity. Human prose swings between
              short and long sentences; templated text does not.
  style:      an additive ladder over passive voice, the Filipino
              "ay" linking construction, hedging and jargon density.

Both ladders are explicit tables below so every point in the
score can be traced back to one threshold.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from auditcore.normalizer import count_words, split_sentences
from auditcore.patterns.catalog import StyleLexicon

# (std dev upper bound, risk); first bound the std dev falls under wins
VARIANCE_STEPS: tuple[tuple[float, int], ...] = (
    (4, 100),
    (6, 80),
    (8, 50),
    (10, 20),
)

# (metric name, threshold, points); every exceeded threshold adds its points
STYLE_LADDER: tuple[tuple[str, float, int], ...] = (
    ("passive_voice_pct", 40, 30),
    ("linking_particle_pct", 30, 30),
    ("hedging_density", 10, 20),
    ("jargon_density", 50, 20),
)


@dataclass
class TypographyReport:
    sentence_count: int = 0
    avg_length: float = 0.0
    std_dev: float = 0.0
    risk_score: int = 0

    def to_dict(self) -> dict:
        return {
            "sentence_count": self.sentence_count,
            "avg_length": round(self.avg_length, 2),
            "std_dev": round(self.std_dev, 2),
            "risk_score": self.risk_score,
        }


@dataclass
class StyleReport:
    passive_voice_count: int = 0
    passive_voice_pct: float = 0.0
    linking_particle_pct: float = 0.0
    focus_affix_pct: float = 0.0
    hedging_density: float = 0.0
    jargon_density: float = 0.0
    risk_score: int = 0

    def to_dict(self) -> dict:
        return {
            "passive_voice_count": self.passive_voice_count,
            "passive_voice_pct": round(self.passive_voice_pct, 2),
            "linking_particle_pct": round(self.linking_particle_pct, 2),
            "focus_affix_pct": round(self.focus_affix_pct, 2),
            "hedging_density": round(self.hedging_density, 2),
            "jargon_density": round(self.jargon_density, 2),
            "risk_score": self.risk_score,
        }


def variance_risk(std_dev: float) -> int:
    for bound, risk in VARIANCE_STEPS:
        if std_dev < bound:
            return risk
    return 0


def analyze_typography(text: str) -> TypographyReport:
    """Population standard deviation of words per sentence, mapped to risk."""
    sentences = split_sentences(text)
    if not sentences:
        return TypographyReport()

    lengths = [count_words(s) for s in sentences]
    mean = sum(lengths) / len(lengths)
    std_dev = math.sqrt(sum((n - mean) ** 2 for n in lengths) / len(lengths))

    return TypographyReport(
        sentence_count=len(sentences),
        avg_length=mean,
        std_dev=std_dev,
        risk_score=variance_risk(std_dev),
    )


def _word_list_regex(words: tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(w) for w in words) or r"(?!x)x"
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


def style_risk(report: StyleReport) -> int:
    risk = 0
    for metric, threshold, points in STYLE_LADDER:
        if getattr(report, metric) > threshold:
            risk += points
    return min(risk, 100)


class StylisticAnalyzer:
    """Compiles the lexicon's word lists once; analyze() is pure."""

    def __init__(self, lexicon: StyleLexicon):
        self.lexicon = lexicon
        auxiliaries = "|".join(re.escape(w) for w in lexicon.passive_auxiliaries) or r"(?!x)x"
        self._passive = re.compile(
            rf"\b(?:{auxiliaries})\b(?:\s+\w+)?\s+\w+ed\b", re.IGNORECASE,
        )
        self._focus = [
            re.compile(rf"\b{re.escape(prefix)}[a-z]+(?:in|an|on)\b", re.IGNORECASE)
            for prefix in lexicon.focus_prefixes
        ]
        self._hedging = _word_list_regex(lexicon.hedging_words)
        self._jargon = _word_list_regex(lexicon.jargon_words)
        self._particle = f" {lexicon.linking_particle} "

    def analyze(self, text: str) -> StyleReport:
        word_count = count_words(text)
        if word_count == 0:
            return StyleReport()

        sentences = split_sentences(text)
        passive = 0
        particle = 0
        focus = 0
        for sentence in sentences:
            lower = sentence.lower()
            if self._passive.search(lower):
                passive += 1
            if self._particle in lower:
                particle += 1
            focus += sum(1 for rx in self._focus if rx.search(lower))

        def pct(n: int) -> float:
            return (n / len(sentences)) * 100 if sentences else 0.0

        report = StyleReport(
            passive_voice_count=passive,
            passive_voice_pct=pct(passive),
            linking_particle_pct=pct(particle),
            focus_affix_pct=pct(focus),
            hedging_density=len(self._hedging.findall(text)) / word_count * 1000,
            jargon_density=len(self._jargon.findall(text)) / word_count * 1000,
        )
        report.risk_score = style_risk(report)
        return report
