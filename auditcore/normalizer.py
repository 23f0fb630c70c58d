"""
Text Normalizer

Every analyzer reads the same normalized text: page artifacts
stripped, line endings unified, whitespace collapsed.
normalize_text(normalize_text(t)) == normalize_text(t).
"""

from __future__ import annotations

import re
from typing import Optional

# A line holding nothing but a page number: "12", "Page 3", "page 3 of 40"
_PAGE_LINE = re.compile(
    r"^[ \t\f\v]*(?:page[ \t]+)?\d+(?:[ \t]+of[ \t]+\d+)?[ \t\f\v]*$",
    re.IGNORECASE | re.MULTILINE,
)
_WHITESPACE = re.compile(r"\s+")
_SENTENCE = re.compile(r"[^.!?]+[.!?]+")


def normalize_text(text: Optional[str]) -> str:
    """Strip page-number lines, unify line endings, collapse whitespace."""
    if not text:
        return ""
    clean = text.replace("\r\n", "\n").replace("\r", "\n")
    clean = _PAGE_LINE.sub("", clean)
    return _WHITESPACE.sub(" ", clean).strip()


def normalize_for_similarity(text: Optional[str]) -> str:
    """Lowercase + collapsed whitespace, the form shingles are cut from."""
    return _WHITESPACE.sub(" ", (text or "").lower()).strip()


def split_sentences(text: str) -> list[str]:
    """Runs of text terminated by . ! or ? (an unterminated tail is dropped)."""
    return [s.strip() for s in _SENTENCE.findall(text) if s.strip()]


def count_words(text: str) -> int:
    return len(text.split())
