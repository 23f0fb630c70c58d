"""
Shared fixtures.

The environment is pinned before any auditcore import so the API's
settings singleton points at a throwaway database and never tries to
reach Postgres.
"""

from __future__ import annotations

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="auditcore-tests-")
os.environ["AUDITCORE_DB_PATH"] = os.path.join(_TMP, "api.db")
os.environ["PGMQ_DATABASE_URL"] = ""

import pytest  # noqa: E402


# Six canonical sections in order, strongly varied sentence lengths,
# no catalog phrases, no omission triggers, no passive or hedging.
ORDERED_CLEAN_PAPER = (
    "Introduction to the river basin. "
    "The literature review covers thirty two field reports written by walkers "
    "who walked the northern banks of the river over many long summers and "
    "counted every stone bridge they found along the way. "
    "Methodology came next. "
    "Our results show that the old stone bridges near the mouth of the river "
    "carry more traffic than the wooden bridges upstream, and the gap grows "
    "wider every single year without exception. "
    "A short discussion follows. "
    "In conclusion, the bridges stand firm."
)


def distinct_words(prefix: str, count: int) -> list[str]:
    return [f"{prefix}{i}" for i in range(count)]


@pytest.fixture
def clean_paper() -> str:
    return ORDERED_CLEAN_PAPER


@pytest.fixture
def store(tmp_path):
    from auditcore.jobs.store import SQLiteAnalysisStore
    return SQLiteAnalysisStore(db_path=str(tmp_path / "analyses.db"))
