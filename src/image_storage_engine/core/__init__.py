"""Core components of the image storage engine."""

from .logging_config import get_logger, setup_logger
from .exceptions import (
    ImageStorageError,
    ConfigurationError,
    NamingError,
    TransformError,
    StorageError,
    with_error_handling,
)
from .models import (
    ConvolveSpec,
    ExtendSpec,
    ExtractRegion,
    FormatSpec,
    IncomingFile,
    SizeSpec,
    StorageOptions,
    StoredFile,
    TransformInfo,
    UploadResult,
)
from .naming import object_key, public_url
from .stages import build_transformer, compile_pipeline

__all__ = [
    "setup_logger",
    "get_logger",
    "ImageStorageError",
    "ConfigurationError",
    "NamingError",
    "TransformError",
    "StorageError",
    "with_error_handling",
    "StorageOptions",
    "SizeSpec",
    "FormatSpec",
    "ExtractRegion",
    "ExtendSpec",
    "ConvolveSpec",
    "IncomingFile",
    "StoredFile",
    "UploadResult",
    "TransformInfo",
    "object_key",
    "public_url",
    "compile_pipeline",
    "build_transformer",
]
