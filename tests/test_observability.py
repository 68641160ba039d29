"""Tests for structured logging helpers."""

import logging
import re
from unittest.mock import MagicMock

import pytest

from image_storage_engine.core.models import TransformInfo
from image_storage_engine.core.observability import (
    LogContext,
    StructuredLogger,
    logging_info_hook,
    new_correlation_id,
)
from image_storage_engine.testing.fakes import FakeLogger


class TestLogContext:
    """Tests for LogContext."""

    def test_with_metadata_returns_copy(self):
        context = LogContext(correlation_id="c1", operation="handle_file")

        extended = context.with_metadata(key="a/b")

        assert extended.metadata == {"key": "a/b"}
        assert context.metadata == {}
        assert extended.correlation_id == "c1"
        assert extended.operation == "handle_file"

    def test_later_metadata_wins(self):
        context = LogContext().with_metadata(key="a").with_metadata(key="b")

        assert context.metadata == {"key": "b"}

    def test_new_correlation_id(self):
        assert re.fullmatch(r"upload_[0-9a-f]{12}", new_correlation_id("upload"))


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_render_without_context(self):
        assert StructuredLogger.render("hello") == "hello"
        assert StructuredLogger.render("hello", None, {"a": 1}) == "hello (a=1)"

    def test_render_with_context(self):
        context = LogContext(
            correlation_id="c1", operation="remove_file"
        ).with_metadata(key="x")

        rendered = StructuredLogger.render("Removed file", context, {"ms": 3})

        assert rendered == "[remove_file] [c1] Removed file (key=x, ms=3)"

    @pytest.mark.parametrize(
        "method, level",
        [
            ("debug", logging.DEBUG),
            ("info", logging.INFO),
            ("warning", logging.WARNING),
            ("error", logging.ERROR),
        ],
    )
    def test_levels(self, method, level):
        stdlib_logger = MagicMock()
        stdlib_logger.isEnabledFor.return_value = True

        getattr(StructuredLogger(stdlib_logger), method)("msg", None, a=1)

        stdlib_logger.log.assert_called_once_with(level, "msg (a=1)", stacklevel=3)

    def test_disabled_level_skips_rendering(self):
        stdlib_logger = MagicMock()
        stdlib_logger.isEnabledFor.return_value = False

        StructuredLogger(stdlib_logger).debug("msg")

        stdlib_logger.log.assert_not_called()


class TestInfoHook:
    """Tests for the default transform-info hook."""

    def test_logs_format_and_dimensions(self):
        logger = FakeLogger()
        hook = logging_info_hook(logger)

        hook(
            TransformInfo(format="jpeg", width=100, height=50, channels=3, size=1234),
            LogContext(correlation_id="c1"),
        )

        entry = logger.get_logs("INFO")[0]
        assert entry["message"] == "Image format is jpeg, height is 50, width is 100"
        assert entry["channels"] == 3
        assert entry["size"] == 1234
        assert entry["correlation_id"] == "c1"
