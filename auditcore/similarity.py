"""
Similarity Engine — Shingle-Based Near-Duplicate Detection

Cuts a document into overlapping k-word shingles (k=5 balances noise
against recall) and compares the set against the shingle sets of the
most recent previously analyzed documents. The single best Jaccard
match is reported.

The engine never writes to the corpus. Results depend on the corpus
snapshot at query time and may change as new documents arrive.

Documents older than the corpus_limit most recent ones are never
compared; see DESIGN.md for why that bound is kept.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

from auditcore.config import settings
from auditcore.logging import get_logger
from auditcore.normalizer import normalize_for_similarity

logger = get_logger("similarity")


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class SimilarityResult:
    similarity: float = 0.0                 # 0..1, rounded to 3 places
    matched_document_id: Optional[str] = None
    compared_count: int = 0
    overlap: int = 0                        # min(|A|, |B|) of the best pair
    reason: Optional[str] = None            # "too_short" when not evaluated

    def to_dict(self) -> dict:
        return {
            "similarity": self.similarity,
            "matched_document_id": self.matched_document_id,
            "compared_count": self.compared_count,
            "overlap": self.overlap,
            "reason": self.reason,
        }


class CorpusProvider(ABC):
    """Read-only source of previously analyzed documents."""

    @abstractmethod
    async def recent_documents(
        self, limit: int, exclude_id: Optional[str] = None,
    ) -> list[tuple[str, str]]:
        """Return up to `limit` (document_id, text) pairs, most recent first."""
        ...


# ============================================================
# SET OPERATIONS
# ============================================================

def shingles(text: str, k: int = settings.SHINGLE_SIZE) -> set[str]:
    """All contiguous k-word sequences of already-normalized text."""
    words = text.split()
    return {" ".join(words[i:i + k]) for i in range(len(words) - k + 1)}


def jaccard(a: set[str], b: set[str]) -> float:
    """|A & B| / |A | B|, iterating the smaller set into the larger."""
    if not a or not b:
        return 0.0
    small, big = (a, b) if len(a) < len(b) else (b, a)
    intersect = sum(1 for item in small if item in big)
    union = len(a) + len(b) - intersect
    return intersect / union if union else 0.0


# ============================================================
# THE ENGINE
# ============================================================

class SimilarityEngine:
    def __init__(
        self,
        corpus: Optional[CorpusProvider] = None,
        shingle_size: int = settings.SHINGLE_SIZE,
        min_words: int = settings.MIN_WORDS,
        corpus_limit: int = settings.CORPUS_LIMIT,
    ):
        self.corpus = corpus
        self.shingle_size = shingle_size
        self.min_words = min_words
        self.corpus_limit = corpus_limit

    def is_too_short(self, normalized: str) -> bool:
        return len(normalized.split()) < self.min_words

    def compare(
        self,
        text: str,
        documents: Iterable[tuple[str, str]],
        exclude_id: Optional[str] = None,
    ) -> SimilarityResult:
        """
        Compare `text` against an in-hand snapshot of documents. Pure.

        Texts under min_words are not evaluated: similarity 0 with
        reason "too_short", so fragments never produce false matches.
        """
        normalized = normalize_for_similarity(text)
        if self.is_too_short(normalized):
            return SimilarityResult(reason="too_short")

        target = shingles(normalized, self.shingle_size)
        best = SimilarityResult()

        for doc_id, doc_text in documents:
            if not doc_text or (exclude_id is not None and doc_id == exclude_id):
                continue
            candidate = shingles(normalize_for_similarity(doc_text), self.shingle_size)
            sim = jaccard(target, candidate)
            best.compared_count += 1
            if sim > best.similarity:
                best.similarity = round(sim, 3)
                best.matched_document_id = doc_id
                best.overlap = min(len(target), len(candidate))

        return best

    async def detect(self, text: str, exclude_id: Optional[str] = None) -> SimilarityResult:
        """
        Compare `text` against the corpus snapshot.

        Corpus fetch failures propagate: they are infrastructure errors,
        not a zero-signal outcome.
        """
        if self.is_too_short(normalize_for_similarity(text)):
            return SimilarityResult(reason="too_short")
        if self.corpus is None:
            return SimilarityResult()

        documents = await self.corpus.recent_documents(self.corpus_limit, exclude_id)
        result = self.compare(text, documents, exclude_id=exclude_id)
        logger.debug(
            "Similarity computed",
            extra={"similarity": result.similarity, "compared": result.compared_count},
        )
        return result
