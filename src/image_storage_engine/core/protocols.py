"""Protocol definitions for dependency injection and testability."""

from typing import Any, BinaryIO, ContextManager, Dict, Optional, Protocol

from .models import TransformInfo


class ObjectStoreProtocol(Protocol):
    """Protocol for the object storage backend."""

    bucket_name: str

    def open_write_stream(
        self, key: str, metadata: Dict[str, Any]
    ) -> ContextManager[BinaryIO]:
        """Open a writable stream for ``key``.

        The object is committed when the context exits cleanly and abandoned
        when it exits with an exception.
        """
        ...

    def delete(self, key: str) -> None:
        """Delete the object stored under ``key``."""
        ...


class TransformerProtocol(Protocol):
    """A finalized transform pipeline ready to process one byte stream."""

    def run(self, source: BinaryIO, sink: BinaryIO) -> Optional[TransformInfo]:
        """Read ``source`` once and write the transformed bytes to ``sink``."""
        ...


class TransformStageBuilder(Protocol):
    """Collects stages and finalizes them into a transformer."""

    def append(self, stage: Any) -> "TransformStageBuilder":
        """Append a stage; order of calls is the order of application."""
        ...

    def finalize(self) -> TransformerProtocol:
        """Return a transformer for the appended stages."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...
