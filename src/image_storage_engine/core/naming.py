"""Destination and filename strategies, and the object key rule."""

import os
from typing import Any, Callable, Optional, Union
from urllib.parse import quote

from .exceptions import NamingError
from .models import IncomingFile

Strategy = Callable[[Any, IncomingFile], str]

PUBLIC_URL_BASE = "https://storage.googleapis.com"
# Left unescaped in public URLs, besides alphanumerics.
URI_SAFE_CHARS = ";,/?:@&=+$-_.!~*'()#"


def default_destination(request: Any, file: IncomingFile) -> str:
    return ""


def default_filename(request: Any, file: IncomingFile) -> str:
    """16 random bytes as 32 hex characters."""
    return os.urandom(16).hex()


def constant_destination(destination: str) -> Strategy:
    """Wrap a literal destination prefix as a strategy."""

    def strategy(request: Any, file: IncomingFile) -> str:
        return destination

    return strategy


def destination_strategy(destination: Union[str, Strategy, None]) -> Strategy:
    if destination is None:
        return default_destination
    if isinstance(destination, str):
        return constant_destination(destination)
    return destination


def filename_strategy(filename: Optional[Strategy]) -> Strategy:
    return filename or default_filename


def resolve(strategy: Strategy, request: Any, file: IncomingFile, what: str) -> str:
    """Run a naming strategy, reporting any failure as NamingError."""
    try:
        value = strategy(request, file)
    except Exception as exc:  # noqa: BLE001
        raise NamingError(f"Could not resolve {what}: {exc}") from exc
    if not isinstance(value, str):
        raise NamingError(
            f"Could not resolve {what}: strategy returned {type(value).__name__}"
        )
    return value


def object_key(destination: str, filename: str) -> str:
    """Full object key; an empty destination places the object at the bucket root."""
    if destination:
        return f"{destination}/{filename}"
    return filename


def public_url(bucket: str, key: str) -> str:
    return quote(f"{PUBLIC_URL_BASE}/{bucket}/{key}", safe=URI_SAFE_CHARS)
