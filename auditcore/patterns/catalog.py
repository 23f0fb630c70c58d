"""
Pattern Catalog — Immutable Rule Tables

Loads the versioned pattern dictionary (dictionary.json) once at
startup and compiles every rule up front. The tables it produces are
read-only and shared freely across concurrent analyses.

The catalog holds:
  1. Weighted phrase rules (templated academic phrasing, EN + PH)
  2. Contextual omission rules (trigger -> expected companion concept)
  3. Stylistic word lists (hedging, jargon, passive auxiliaries)
  4. Canonical section headings, in expected order

A single malformed rule is logged and skipped. A missing or
unparseable dictionary file is a CatalogError.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from auditcore.config import settings
from auditcore.errors import CatalogError
from auditcore.logging import get_logger

logger = get_logger("catalog")

# Wildcard spellings accepted inside a phrase
_WILDCARD = re.compile(r"\s*\.\*\??\s*")


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class PatternRule:
    """A weighted phrase associated with templated writing."""
    phrase: str        # Literal phrase, optionally with a .* wildcard
    weight: float      # Points per occurrence, always > 0
    category: str      # e.g. "intro", "gap", "hedging_ph"


@dataclass(frozen=True)
class CompiledPattern:
    """A PatternRule with its regex compiled once at load time."""
    rule: PatternRule
    regex: re.Pattern


@dataclass(frozen=True)
class OmissionRule:
    """
    If any trigger appears, at least one expectation should too.

    Triggers and expectations are non-empty, lowercase and disjoint.
    Terms match at a word start; triggers listed in `whole_word` must
    match a complete word ("tao" but not "taon").
    """
    id: str
    triggers: tuple[str, ...]
    expectations: tuple[str, ...]
    label: str
    whole_word: frozenset[str] = frozenset()


@dataclass(frozen=True)
class StyleLexicon:
    hedging_words: tuple[str, ...]
    jargon_words: tuple[str, ...]
    passive_auxiliaries: tuple[str, ...]
    linking_particle: str
    focus_prefixes: tuple[str, ...]


@dataclass(frozen=True)
class Catalog:
    """Everything the forensic analyzers read. Never mutated."""
    version: str
    patterns: tuple[CompiledPattern, ...]
    omission_rules: tuple[OmissionRule, ...]
    style: StyleLexicon
    sections: tuple[str, ...]
    skipped: tuple[str, ...] = field(default=())

    def get_patterns(self, category: Optional[str] = None) -> list[dict]:
        """
        Return the active phrase rules, optionally for one category.

        Used by the GET /patterns endpoint to expose the detection surface.
        """
        return [
            {
                "phrase": p.rule.phrase,
                "weight": p.rule.weight,
                "category": p.rule.category,
            }
            for p in self.patterns
            if category is None or p.rule.category == category
        ]

    @property
    def categories(self) -> list[str]:
        return sorted({p.rule.category for p in self.patterns})


# ============================================================
# COMPILATION
# ============================================================

def _literal(fragment: str) -> str:
    """Escape a literal fragment; any run of spaces matches any whitespace."""
    return r"\s+".join(re.escape(tok) for tok in fragment.split())


def compile_phrase(phrase: str, max_gap_tokens: int = 12) -> re.Pattern:
    """
    Build a case-insensitive matcher for a catalog phrase.

    Literal phrases are escaped. A ".*" or ".*?" inside the phrase
    becomes a lazy gap of at most `max_gap_tokens` whitespace-separated
    tokens, so a wildcard can never scan the whole document.
    Word boundaries are applied only where the phrase starts or ends
    with a word character ("ayon sa datos," ends on a comma).
    """
    phrase = phrase.strip().lower()
    if not phrase:
        raise ValueError("empty phrase")

    parts = _WILDCARD.split(phrase)
    if any(not p for p in parts):
        raise ValueError(f"wildcard at phrase edge: {phrase!r}")

    gap = r"\S*(?:\s+\S+){0,%d}?\s*" % max_gap_tokens
    body = gap.join(_literal(p) for p in parts)

    head = r"\b" if re.match(r"\w", parts[0]) else ""
    tail = r"\b" if re.search(r"\w$", parts[-1]) else ""
    return re.compile(f"{head}{body}{tail}", re.IGNORECASE)


def _build_patterns(
    entries: list[dict], max_gap_tokens: int, skipped: list[str],
) -> tuple[CompiledPattern, ...]:
    # A phrase may appear under several categories or weights; each row
    # scores on its own. Only an exact repeat of a row is dropped.
    compiled: list[CompiledPattern] = []
    seen: set[tuple[str, str, float]] = set()

    for entry in entries:
        phrase = str(entry.get("phrase", "")).strip()
        try:
            weight = float(entry.get("weight", 0))
        except (TypeError, ValueError):
            weight = 0.0
        category = str(entry.get("category", "uncategorized"))

        if weight <= 0:
            logger.warning("Skipping pattern with non-positive weight",
                           extra={"pattern": phrase})
            skipped.append(phrase)
            continue
        key = (phrase.lower(), category, weight)
        if key in seen:
            logger.warning("Skipping duplicate pattern", extra={"pattern": phrase})
            skipped.append(phrase)
            continue

        try:
            regex = compile_phrase(phrase, max_gap_tokens)
        except (re.error, ValueError) as e:
            logger.warning("Skipping uncompilable pattern",
                           extra={"pattern": phrase, "error": str(e)})
            skipped.append(phrase)
            continue

        seen.add(key)
        compiled.append(CompiledPattern(
            rule=PatternRule(phrase=phrase, weight=weight, category=category),
            regex=regex,
        ))

    return tuple(compiled)


def _build_omission_rules(
    entries: list[dict], skipped: list[str],
) -> tuple[OmissionRule, ...]:
    rules: list[OmissionRule] = []
    for entry in entries:
        rule_id = str(entry.get("id", ""))
        triggers = tuple(t.strip().lower() for t in entry.get("triggers", []) if t.strip())
        expectations = tuple(e.strip().lower() for e in entry.get("expectations", []) if e.strip())

        if not rule_id or not triggers or not expectations:
            logger.warning("Skipping incomplete omission rule", extra={"rule_id": rule_id})
            skipped.append(rule_id)
            continue
        if set(triggers) & set(expectations):
            logger.warning("Skipping omission rule with overlapping terms",
                           extra={"rule_id": rule_id})
            skipped.append(rule_id)
            continue

        whole_word = frozenset(
            w.strip().lower() for w in entry.get("whole_word", []) if w.strip()
        )
        unknown = whole_word - set(triggers)
        if unknown:
            logger.warning("Ignoring whole_word terms that are not triggers",
                           extra={"rule_id": rule_id, "pattern": ", ".join(sorted(unknown))})

        rules.append(OmissionRule(
            id=rule_id,
            triggers=triggers,
            expectations=expectations,
            label=str(entry.get("label", rule_id)),
            whole_word=whole_word & set(triggers),
        ))
    return tuple(rules)


# ============================================================
# LOADING
# ============================================================

def load_catalog(
    path: Optional[str | Path] = None,
    max_gap_tokens: Optional[int] = None,
) -> Catalog:
    """Load and compile a pattern dictionary file."""
    path = Path(path or settings.PATTERNS_PATH)
    gap = max_gap_tokens if max_gap_tokens is not None else settings.PATTERN_WILDCARD_MAX_TOKENS

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise CatalogError(f"Pattern dictionary not readable: {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Pattern dictionary is not valid JSON: {path}: {e}") from e

    skipped: list[str] = []
    style = raw.get("style", {})

    catalog = Catalog(
        version=str(raw.get("version", "0.0.0")),
        patterns=_build_patterns(raw.get("patterns", []), gap, skipped),
        omission_rules=_build_omission_rules(raw.get("omission_rules", []), skipped),
        style=StyleLexicon(
            hedging_words=tuple(w.lower() for w in style.get("hedging_words", [])),
            jargon_words=tuple(w.lower() for w in style.get("jargon_words", [])),
            passive_auxiliaries=tuple(w.lower() for w in style.get("passive_auxiliaries", [])),
            linking_particle=str(style.get("linking_particle", "ay")).lower(),
            focus_prefixes=tuple(w.lower() for w in style.get("focus_prefixes", [])),
        ),
        sections=tuple(s.lower() for s in raw.get("sections", [])),
        skipped=tuple(skipped),
    )

    logger.info(
        f"Pattern catalog {catalog.version} loaded: "
        f"{len(catalog.patterns)} patterns, {len(catalog.omission_rules)} omission rules, "
        f"{len(skipped)} skipped"
    )
    return catalog


# ============================================================
# SINGLETON: loaded once, never mutated
# ============================================================

catalog = load_catalog()
