"""
Tests for logging, configuration, and text extraction.
"""

import pytest

from auditcore.errors import ExtractionError, UnsupportedContentType
from auditcore.extract import extract_text, fetch_source


class TestLogging:
    """Structured logging tests."""

    def test_json_formatter(self):
        import json
        import logging
        from auditcore.logging import JSONFormatter

        formatter = JSONFormatter()
        record = logging.LogRecord(
            name="auditcore.test",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg="Test message",
            args=(),
            exc_info=None,
        )
        output = formatter.format(record)
        parsed = json.loads(output)
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Test message"
        assert "timestamp" in parsed

    def test_json_formatter_extra_fields(self):
        import json
        import logging
        from auditcore.logging import JSONFormatter

        formatter = JSONFormatter()
        record = logging.LogRecord(
            name="auditcore.test",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg="Analysis completed",
            args=(),
            exc_info=None,
        )
        record.analysis_id = "a1"
        record.ai_score = 42
        record.queue_mode = "memory"
        output = formatter.format(record)
        parsed = json.loads(output)
        assert parsed["analysis_id"] == "a1"
        assert parsed["ai_score"] == 42
        assert parsed["queue_mode"] == "memory"

    def test_get_logger(self):
        from auditcore.logging import get_logger
        log = get_logger("worker")
        assert log.name == "auditcore.worker"

    def test_setup_logging_idempotent(self):
        from auditcore.logging import setup_logging
        root = setup_logging()
        setup_logging()
        assert len(root.handlers) == 1


class TestSettings:
    def test_settings_frozen(self):
        from auditcore.config import settings
        with pytest.raises(Exception):
            settings.SHINGLE_SIZE = 3

    def test_defaults(self):
        from auditcore.config import settings
        assert settings.SHINGLE_SIZE == 5
        assert settings.MIN_WORDS == 80
        assert settings.CORPUS_LIMIT == 120
        assert settings.QUEUE_CONCURRENCY == 5
        assert settings.LEASE_SECONDS == 60


class TestExtraction:
    def test_plain_text(self):
        assert extract_text("héllo".encode("utf-8"), "text/plain; charset=utf-8") == "héllo"

    def test_invalid_utf8_replaced(self):
        assert "�" in extract_text(b"bad \xff byte", "text/plain")

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedContentType):
            extract_text(b"x", "image/png")

    def test_pdf_round_trip(self):
        import fitz

        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Introduction to the river basin.")
        data = doc.tobytes()
        doc.close()

        assert "Introduction to the river basin." in extract_text(data, "application/pdf")

    def test_corrupt_pdf(self):
        with pytest.raises(ExtractionError):
            extract_text(b"%PDF-not-really", "application/pdf")

    @pytest.mark.asyncio
    async def test_fetch_local_path(self, tmp_path):
        path = tmp_path / "doc.txt"
        path.write_bytes(b"content")
        assert await fetch_source(str(path)) == b"content"
        assert await fetch_source(path.as_uri()) == b"content"

    @pytest.mark.asyncio
    async def test_fetch_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await fetch_source(str(tmp_path / "absent.txt"))
