"""
Source fetching and text extraction.

fetch_source() turns a locator (http(s) URL, file:// URL or local path)
into bytes. extract_text() turns bytes of a supported content type into
plain text. Both raise on failure; the worker records the message as
the job's failure reason.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

import fitz  # PyMuPDF
import httpx

from auditcore.errors import ExtractionError, UnsupportedContentType

PDF_TYPES = ("application/pdf",)
TEXT_TYPES = ("text/plain",)

SUPPORTED_CONTENT_TYPES = PDF_TYPES + TEXT_TYPES


def _base_type(content_type: str) -> str:
    """'text/plain; charset=utf-8' -> 'text/plain'"""
    return (content_type or "").split(";")[0].strip().lower()


def extract_pdf_text(data: bytes) -> str:
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            return "\n".join(page.get_text() for page in doc)
    except (fitz.FileDataError, RuntimeError, ValueError) as e:
        raise ExtractionError(f"Could not read PDF: {e}") from e


def extract_text(data: bytes, content_type: str) -> str:
    """Extract plain text from document bytes."""
    kind = _base_type(content_type)
    if kind in PDF_TYPES:
        return extract_pdf_text(data)
    if kind in TEXT_TYPES:
        return data.decode("utf-8", errors="replace")
    raise UnsupportedContentType(f"Unsupported content type: {content_type!r}")


async def fetch_source(locator: str, timeout_seconds: float = 30.0) -> bytes:
    """Download or read the document a job points at."""
    parsed = urlparse(locator)

    if parsed.scheme in ("http", "https"):
        async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
            response = await client.get(locator)
            response.raise_for_status()
            return response.content

    path = Path(parsed.path if parsed.scheme == "file" else locator)
    if not path.is_file():
        raise FileNotFoundError(f"Source document not found: {locator}")
    return path.read_bytes()
