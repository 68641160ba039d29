"""Structured log context for uploads and removals, and the transform-info hook."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional

from .models import TransformInfo


def new_correlation_id(prefix: str) -> str:
    """Short id tying together the log lines of one upload or removal."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class LogContext:
    """Identifies one operation across the log lines it produces."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        """Return a copy with ``kwargs`` merged into the metadata."""
        return replace(self, metadata={**self.metadata, **kwargs})


class StructuredLogger:
    """Adapts a stdlib logger to the ``(message, context, **fields)`` call style.

    Lines render as ``[operation] [correlation_id] message (key=value, ...)``,
    with the context metadata ahead of the per-call fields.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @staticmethod
    def render(
        message: str, context: Optional[LogContext] = None, fields: Optional[Dict[str, Any]] = None
    ) -> str:
        values = dict(fields or {})
        rendered = message
        if context is not None:
            rendered = f"[{context.correlation_id}] {rendered}"
            if context.operation:
                rendered = f"[{context.operation}] {rendered}"
            values = {**context.metadata, **values}
        if values:
            rendered += " (" + ", ".join(f"{k}={v}" for k, v in values.items()) + ")"
        return rendered

    def _emit(
        self, level: int, message: str, context: Optional[LogContext], fields: Dict[str, Any]
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        # stacklevel points filename/lineno at the service that logged.
        self._logger.log(level, self.render(message, context, fields), stacklevel=3)

    def debug(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        self._emit(logging.DEBUG, message, context, fields)

    def info(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        self._emit(logging.INFO, message, context, fields)

    def warning(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        self._emit(logging.WARNING, message, context, fields)

    def error(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        self._emit(logging.ERROR, message, context, fields)


InfoHook = Callable[[TransformInfo, LogContext], None]


def logging_info_hook(logger: Any) -> InfoHook:
    """Build the default hook that reports transform output through ``logger``."""

    def hook(info: TransformInfo, context: LogContext) -> None:
        logger.info(
            f"Image format is {info.format}, height is {info.height}, "
            f"width is {info.width}",
            context,
            channels=info.channels,
            size=info.size,
        )

    return hook
