"""Exception hierarchy and error conversion helpers for the storage engine."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional, Type, TypeVar

from .logging_config import get_logger


class ImageStorageError(Exception):
    """Base exception for all storage engine errors."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class ConfigurationError(ImageStorageError):
    """Required options are missing or an option has the wrong shape."""


class NamingError(ImageStorageError):
    """The destination or filename strategy failed."""


class TransformError(ImageStorageError):
    """The image library rejected the input or a stage's parameters."""


class StorageError(ImageStorageError):
    """Writing or deleting an object in the backing store failed."""


F = TypeVar("F", bound=Callable[..., Any])


def with_error_handling(error_cls: Type[ImageStorageError]) -> Callable[[F], F]:
    """Convert unexpected exceptions raised by the wrapped call into ``error_cls``.

    Errors that already belong to the hierarchy pass through untouched so the
    first classification of a failure is the one the caller sees.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except ImageStorageError:
                raise
            except Exception as exc:  # noqa: BLE001
                get_logger("errors").error(
                    f"Unhandled error in {func.__name__}: {exc}", exc_info=True
                )
                raise error_cls(f"{func.__name__} failed: {exc}") from exc

        return wrapper  # type: ignore[return-value]

    return decorator
