"""Factory classes for creating configured service instances."""

from .gcs_store import GCSObjectStore
from .logging_config import get_logger
from .models import StorageOptions
from .observability import StructuredLogger
from .protocols import LoggerProtocol, ObjectStoreProtocol


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str) -> LoggerProtocol:
        """Create a structured logger on top of the package logging setup."""
        return StructuredLogger(get_logger(name))


class ObjectStoreFactory:
    """Factory for creating object store instances."""

    @staticmethod
    def create_object_store(options: StorageOptions) -> ObjectStoreProtocol:
        """Create a GCS store from validated options."""
        options.ensure_required()
        return GCSObjectStore(
            options.bucket,
            project_id=options.project_id,
            key_filename=options.key_filename,
        )
