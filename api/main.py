"""
auditcore API — Main Application

POST /analyze          — Score text synchronously (forensics + similarity)
POST /analyses         — Create an analysis job and enqueue it (202)
GET  /analyses/{id}    — Job status, failure reason and result
GET  /patterns         — List the active pattern catalog
GET  /health           — Health check (queue mode, catalog version)
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from auditcore import __version__
from auditcore.config import settings
from auditcore.errors import IllegalTransition, JobNotFound
from auditcore.forensics import forensic_engine
from auditcore.jobs.queue import JobPayload, select_queue
from auditcore.jobs.store import SQLiteAnalysisStore, StoreCorpus
from auditcore.jobs.worker import AnalysisWorker
from auditcore.logging import setup_logging, get_logger
from auditcore.patterns import catalog
from auditcore.similarity import SimilarityEngine
from auditcore.schemas.analysis import (
    AnalyzeRequest,
    AnalyzeResponse,
    AnalysisCreateRequest,
    AnalysisCreateResponse,
    AnalysisStatusResponse,
    PatternsResponse,
    HealthResponse,
)

logger = get_logger("api")


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire up the store, queue and worker on startup."""
    setup_logging()

    store = SQLiteAnalysisStore(db_path=settings.DB_PATH, lease_seconds=settings.LEASE_SECONDS)
    similarity = SimilarityEngine(StoreCorpus(store))
    worker = AnalysisWorker(store, engine=forensic_engine, similarity=similarity)

    # The queue backend is chosen exactly once, here.
    queue = await select_queue(settings)
    queue.set_handler(worker.handle, concurrency=settings.QUEUE_CONCURRENCY)
    await queue.start()

    app.state.store = store
    app.state.similarity = similarity
    app.state.worker = worker
    app.state.queue = queue

    logger.info("auditcore API starting",
                extra={"queue_mode": queue.mode, "concurrency": settings.QUEUE_CONCURRENCY})
    yield
    await queue.close()
    logger.info("auditcore API shutting down")


app = FastAPI(
    title="auditcore API",
    description="Deterministic document forensic analysis and near-duplicate detection",
    version=f"{__version__} (catalog {catalog.version})",
    lifespan=lifespan,
)

# CORS: set AUDITCORE_CORS_ORIGINS in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=False,
)


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(JobNotFound)
async def job_not_found_handler(request: Request, exc: JobNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(IllegalTransition)
async def illegal_transition_handler(request: Request, exc: IllegalTransition):
    logger.warning("Illegal transition rejected",
                   extra={"analysis_id": exc.job_id, "error": str(exc)})
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return a structured error without internals."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={"error": str(exc), "path": request.url.path, "method": request.method},
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error. The analysis could not be completed.",
        },
    )


# ============================================================
# ROUTES
# ============================================================

@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze_text(request: AnalyzeRequest):
    """Score text immediately. Nothing is stored."""
    start = time.time()

    forensic, similarity = await asyncio.gather(
        asyncio.to_thread(forensic_engine.analyze, request.text),
        app.state.similarity.detect(request.text, exclude_id=request.document_id),
    )
    result = forensic.to_dict()
    result["similarity"] = similarity.to_dict()

    duration = int((time.time() - start) * 1000)
    logger.info(
        f"Analyze complete: score={result['ai_probability_score']}",
        extra={
            "ai_score": result["ai_probability_score"],
            "risk_tier": result["risk_tier"],
            "similarity": similarity.similarity,
            "duration_ms": duration,
        },
    )
    return result


@app.post("/analyses", response_model=AnalysisCreateResponse, status_code=202)
async def create_analysis(request: AnalysisCreateRequest):
    """Create a PENDING analysis record and hand it to the queue."""
    analysis_id = request.analysis_id or uuid.uuid4().hex
    store = app.state.store
    queue = app.state.queue

    try:
        job = await asyncio.to_thread(
            store.create, analysis_id, request.source_locator, request.content_type,
        )
    except sqlite3.IntegrityError:
        raise HTTPException(409, f"Analysis already exists: {analysis_id}")

    payload = JobPayload(
        analysis_id=job.id,
        source_locator=request.source_locator,
        content_type=request.content_type,
        requested_at=job.created_at,
    )
    try:
        await queue.add(payload)
    except Exception as e:
        await asyncio.to_thread(store.fail, job.id, f"Could not enqueue job: {e}")
        logger.error("Enqueue failed",
                     extra={"analysis_id": job.id, "queue_mode": queue.mode, "error": str(e)})
        raise HTTPException(503, "Job queue unavailable. Please try again.")

    logger.info("Analysis queued", extra={"analysis_id": job.id, "queue_mode": queue.mode})
    return {"analysis_id": job.id, "status": job.status.value, "queue_mode": queue.mode}


@app.get("/analyses/{analysis_id}", response_model=AnalysisStatusResponse)
async def get_analysis(analysis_id: str):
    """Current status of one analysis. The result is present once COMPLETED."""
    job = await asyncio.to_thread(app.state.store.get, analysis_id)
    if job is None:
        raise JobNotFound(f"Analysis not found: {analysis_id}")
    return job.to_dict()


@app.get("/patterns", response_model=PatternsResponse)
async def get_patterns(
    category: Optional[str] = Query(None, max_length=64),
):
    """Return the active pattern rules, optionally for one category."""
    patterns = catalog.get_patterns(category=category)
    return {
        "catalog_version": catalog.version,
        "total": len(patterns),
        "categories": catalog.categories,
        "patterns": patterns,
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    queue = getattr(app.state, "queue", None)
    return {
        "status": "operational",
        "version": __version__,
        "catalog_version": catalog.version,
        "pattern_count": len(catalog.patterns),
        "queue_mode": queue.mode if queue else "none",
    }


# --- Version + Security Headers Middleware ---
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security and version headers to all responses."""
    response = await call_next(request)
    response.headers["X-Auditcore-Version"] = __version__
    response.headers["X-Catalog-Version"] = catalog.version
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# --- Body Size Limit Middleware ---
@app.middleware("http")
async def enforce_body_size_limit(request: Request, call_next):
    """Reject requests exceeding MAX_BODY_BYTES."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            if int(content_length) > settings.MAX_BODY_BYTES:
                return JSONResponse(
                    status_code=413,
                    content={"detail": "Request body too large."},
                )
        except ValueError:
            pass  # Malformed content-length; let the framework handle it

    return await call_next(request)


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} -> {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response
