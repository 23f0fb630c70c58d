#!/usr/bin/env python3
"""
run_analysis.py — Analyze documents from the command line.

Usage:
    python run_analysis.py paper.pdf                  # Score one file, print a summary
    python run_analysis.py a.txt b.pdf --json         # JSON output (for CI)
    python run_analysis.py paper.pdf --store          # Record + run as a job in the DB
    python run_analysis.py --trigger <analysis_id>    # Re-run a stored PENDING job
"""

from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
import uuid
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from auditcore.config import settings
from auditcore.errors import AuditCoreError
from auditcore.extract import extract_text
from auditcore.forensics import forensic_engine
from auditcore.jobs.store import SQLiteAnalysisStore, StoreCorpus
from auditcore.jobs.worker import AnalysisWorker
from auditcore.logging import setup_logging
from auditcore.similarity import SimilarityEngine


def _content_type(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(str(path))
    return guessed or "text/plain"


def format_report(name: str, result: dict) -> str:
    b = result["risk_breakdown"]
    lines = [
        f"=== {name} ===",
        f"Score:      {result['ai_probability_score']}/100 ({result['risk_tier']})",
        f"Breakdown:  typography={b['typography']} patterns={b['patterns']} "
        f"omissions={b['omissions']} style={b['style']} structure={b['structure']}",
        f"Sections:   {', '.join(result['detected_sections']) or '-'}",
        f"Summary:    {result['risk_explanation']}",
    ]
    for hit in result["pattern_hits"][:10]:
        lines.append(f"  pattern  {hit['pattern']!r} x{hit['count']} (+{hit['points']})")
    for om in result["omissions"]:
        lines.append(f"  omission {om['label']} (trigger: {om['trigger_found']})")
    sim = result.get("similarity")
    if sim:
        match = sim["matched_document_id"] or "-"
        lines.append(
            f"Similarity: {sim['similarity']} vs {match} "
            f"({sim['compared_count']} compared{', ' + sim['reason'] if sim['reason'] else ''})"
        )
    return "\n".join(lines)


async def analyze_files(paths: list[Path], store: SQLiteAnalysisStore, persist: bool) -> list[tuple[str, dict]]:
    similarity = SimilarityEngine(StoreCorpus(store))
    worker = AnalysisWorker(store, engine=forensic_engine, similarity=similarity)
    outputs = []

    for path in paths:
        content_type = _content_type(path)
        if persist:
            analysis_id = uuid.uuid4().hex
            store.create(analysis_id, str(path.resolve()), content_type)
            await worker.process_record(analysis_id)
            job = store.get(analysis_id)
            if job.result is None:
                print(f"Error: {path}: {job.error_reason}", file=sys.stderr)
                continue
            outputs.append((f"{path.name} [{analysis_id}]", job.result))
        else:
            text = extract_text(path.read_bytes(), content_type)
            result = forensic_engine.analyze(text).to_dict()
            result["similarity"] = (await similarity.detect(text)).to_dict()
            outputs.append((path.name, result))

    return outputs


async def trigger(analysis_id: str, store: SQLiteAnalysisStore) -> int:
    worker = AnalysisWorker(store)
    await worker.process_record(analysis_id)
    job = store.get(analysis_id)
    print(json.dumps(job.to_dict(), indent=2))
    return 0 if job.status.value == "COMPLETED" else 2


def main():
    parser = argparse.ArgumentParser(description="auditcore Analysis Runner")
    parser.add_argument("files", nargs="*", help="Documents to analyze (.pdf or .txt)")
    parser.add_argument(
        "--db",
        default=settings.DB_PATH,
        help=f"Analysis database, also the similarity corpus (default: {settings.DB_PATH})",
    )
    parser.add_argument(
        "--store",
        action="store_true",
        help="Record each file as an analysis job and keep its result",
    )
    parser.add_argument(
        "--trigger",
        metavar="ANALYSIS_ID",
        help="Run an existing PENDING (or lease-expired) analysis record",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON only (for CI/automation)",
    )
    args = parser.parse_args()
    setup_logging()

    store = SQLiteAnalysisStore(db_path=args.db)

    if args.trigger:
        try:
            sys.exit(asyncio.run(trigger(args.trigger, store)))
        except AuditCoreError as e:
            print(f"Error: {e}")
            sys.exit(1)

    if not args.files:
        parser.print_usage()
        sys.exit(1)

    paths = [Path(f) for f in args.files]
    missing = [p for p in paths if not p.is_file()]
    if missing:
        print(f"Error: File not found: {missing[0]}")
        sys.exit(1)

    try:
        outputs = asyncio.run(analyze_files(paths, store, persist=args.store))
    except AuditCoreError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps({name: result for name, result in outputs}, indent=2))
    else:
        print("\n\n".join(format_report(name, result) for name, result in outputs))

    sys.exit(0)


if __name__ == "__main__":
    main()
