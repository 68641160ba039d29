"""Streaming image transform-and-upload storage engine for Google Cloud Storage."""

from .core import (
    ConfigurationError,
    ImageStorageError,
    IncomingFile,
    NamingError,
    StorageError,
    StorageOptions,
    StoredFile,
    TransformError,
    UploadResult,
)
from .engine import ImageStorageEngine, create_storage_engine

__version__ = "0.1.0"

__all__ = [
    "ImageStorageEngine",
    "create_storage_engine",
    "StorageOptions",
    "IncomingFile",
    "StoredFile",
    "UploadResult",
    "ImageStorageError",
    "ConfigurationError",
    "NamingError",
    "TransformError",
    "StorageError",
]
