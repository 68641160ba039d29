"""MIME types for stored objects."""

import mimetypes
from collections.abc import Mapping
from typing import Optional, Union

from .models import FormatSpec
from .stages import format_name

FORMAT_MIME_TYPES: Mapping[str, str] = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "tiff": "image/tiff",
    "tif": "image/tiff",
}


def lookup(name: str) -> Optional[str]:
    """MIME type for a format or extension name, or None when unknown."""
    key = name.lower().lstrip(".")
    if key in FORMAT_MIME_TYPES:
        return FORMAT_MIME_TYPES[key]
    mime_type, _ = mimetypes.guess_type(f"file.{key}")
    return mime_type


def output_mime_type(fmt: Union[str, FormatSpec, None], fallback: str) -> str:
    """MIME type of the stored object: the configured format's, else ``fallback``."""
    name = format_name(fmt)
    if name:
        return lookup(name) or fallback
    return fallback
