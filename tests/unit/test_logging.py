"""Unit tests for shelfmind.utils.logging."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from shelfmind.utils.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    third_party = {name: logging.getLogger(name).level for name in ("httpx", "openai")}
    yield
    structlog.reset_defaults()
    root.setLevel(level)
    for name, saved in third_party.items():
        logging.getLogger(name).setLevel(saved)


class TestConfigureLogging:
    def test_json_lines_go_to_given_stream(self) -> None:
        stream = io.StringIO()
        configure_logging(log_level="INFO", json_output=True, stream=stream)

        structlog.get_logger(logger_name="tests").info("batch_embedded", document_id="book-1")

        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["event"] == "batch_embedded"
        assert record["document_id"] == "book-1"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_level_filters_structlog_events(self) -> None:
        stream = io.StringIO()
        configure_logging(log_level="WARNING", json_output=True, stream=stream)

        structlog.get_logger(logger_name="tests").info("dropped")

        assert stream.getvalue() == ""

    def test_stdlib_records_share_the_stream(self) -> None:
        stream = io.StringIO()
        configure_logging(log_level="INFO", json_output=True, stream=stream)

        logging.getLogger("shelfmind.tests").warning("from stdlib")

        assert "from stdlib" in stream.getvalue()

    def test_third_party_loggers_held_at_warning(self) -> None:
        configure_logging(log_level="INFO", stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("openai").level == logging.WARNING

    def test_debug_releases_third_party_loggers(self) -> None:
        configure_logging(log_level="DEBUG", stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.DEBUG
