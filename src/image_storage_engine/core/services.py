"""Upload and removal orchestration."""

import time
from typing import Any, BinaryIO, Callable, Dict, Optional

from .exceptions import ImageStorageError, StorageError, TransformError
from .mime import output_mime_type
from .models import IncomingFile, StorageOptions, StoredFile, TransformInfo, UploadResult
from .naming import (
    destination_strategy,
    filename_strategy,
    object_key,
    public_url,
    resolve,
)
from .observability import InfoHook, LogContext, new_correlation_id
from .protocols import (
    LoggerProtocol,
    ObjectStoreProtocol,
    TransformerProtocol,
    TransformStageBuilder,
)
from .stages import build_transformer

Callback = Callable[..., None]


class _GuardedReader:
    """Wraps the source stream and remembers the first error it raised."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self.error: Optional[BaseException] = None

    def read(self, size: int = -1) -> bytes:
        try:
            return self._stream.read(size)
        except Exception as exc:
            if self.error is None:
                self.error = exc
            raise

    # Seek failures only mean the source is unseekable, not that it broke.
    def seek(self, *args: Any) -> int:
        return self._stream.seek(*args)

    def tell(self) -> int:
        return self._stream.tell()


class _GuardedWriter:
    """Wraps the storage write stream and remembers the first error it raised."""

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self.error: Optional[BaseException] = None

    def write(self, data: bytes) -> int:
        try:
            return self._sink.write(data)
        except Exception as exc:
            if self.error is None:
                self.error = exc
            raise

    def flush(self) -> None:
        try:
            self._sink.flush()
        except Exception as exc:
            if self.error is None:
                self.error = exc
            raise


def run_to_callback(callback: Callback, operation: Callable[..., Any], *args: Any) -> None:
    """Run ``operation`` and report its outcome through ``callback`` exactly once.

    Failures are reported as ``callback(error, None)``; success as
    ``callback(None, result)``. An exception raised by the callback itself is
    not fed back into it.
    """
    try:
        result = operation(*args)
    except Exception as exc:  # noqa: BLE001
        callback(exc, None)
        return
    callback(None, result)


class UploadService:
    """Resolves names, transforms the incoming stream and stores it."""

    def __init__(
        self,
        options: StorageOptions,
        object_store: ObjectStoreProtocol,
        builder_factory: Callable[[], TransformStageBuilder],
        logger: LoggerProtocol,
        on_info: Optional[InfoHook] = None,
    ):
        self._options = options
        self._store = object_store
        self._builder_factory = builder_factory
        self._logger = logger
        self._on_info = on_info
        self._destination = destination_strategy(options.destination)
        self._filename = filename_strategy(options.filename)

    def handle_file(self, request: Any, file: IncomingFile) -> UploadResult:
        """Store one incoming file; raises on the first failure."""
        start_time = time.time()
        log_context = LogContext(
            correlation_id=new_correlation_id("upload"),
            operation="handle_file",
            component="upload_service",
        ).with_metadata(fieldname=file.fieldname, originalname=file.originalname)

        try:
            destination = resolve(self._destination, request, file, "destination")
            filename = resolve(self._filename, request, file, "filename")
            key = object_key(destination, filename)
            mimetype = output_mime_type(self._options.format, file.mimetype)
            log_context = log_context.with_metadata(key=key, mimetype=mimetype)

            transformer = build_transformer(self._options, self._builder_factory())
            metadata = {"acl": self._options.acl, "content_type": mimetype}
            info = self._pipe(file.stream, key, metadata, transformer, log_context)
        except Exception as exc:
            self._logger.error(
                "Upload failed",
                log_context,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

        if info is not None:
            self._report_info(info, log_context)

        result = UploadResult(
            mimetype=mimetype,
            path=public_url(self._store.bucket_name, key),
            filename=filename,
        )
        self._logger.info(
            "Upload completed",
            log_context,
            processing_time_ms=round((time.time() - start_time) * 1000, 2),
        )
        return result

    def handle_incoming_file(
        self, request: Any, file: IncomingFile, callback: Callback
    ) -> None:
        run_to_callback(callback, self.handle_file, request, file)

    def _pipe(
        self,
        stream: BinaryIO,
        key: str,
        metadata: Dict[str, Any],
        transformer: TransformerProtocol,
        log_context: LogContext,
    ) -> Optional[TransformInfo]:
        """Stream source -> transformer -> object store; the first failure wins."""
        source = _GuardedReader(stream)
        sink: Optional[_GuardedWriter] = None
        phase = "open"

        try:
            with self._store.open_write_stream(key, metadata) as writer:
                sink = _GuardedWriter(writer)
                phase = "transform"
                self._logger.debug("Streaming through transformer", log_context)
                info = transformer.run(source, sink)
                phase = "commit"
        except Exception as exc:
            if source.error is not None:
                raise source.error from None
            if sink is not None and sink.error is not None:
                raise StorageError(
                    f"Writing {key} failed: {sink.error}", key=key
                ) from sink.error
            if isinstance(exc, ImageStorageError):
                raise
            if phase == "transform":
                raise TransformError(f"Transforming {key} failed: {exc}", key=key) from exc
            raise StorageError(f"Storing {key} failed: {exc}", key=key) from exc

        return info

    def _report_info(self, info: TransformInfo, log_context: LogContext) -> None:
        if self._on_info is None:
            return
        try:
            self._on_info(info, log_context)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("Transform info hook failed", log_context, error=str(exc))


class RemovalService:
    """Deletes a previously stored file."""

    def __init__(
        self,
        options: StorageOptions,
        object_store: ObjectStoreProtocol,
        logger: LoggerProtocol,
    ):
        self._store = object_store
        self._logger = logger
        self._destination = destination_strategy(options.destination)

    def remove(self, request: Any, file: StoredFile) -> None:
        log_context = LogContext(
            correlation_id=new_correlation_id("remove"),
            operation="remove_file",
            component="removal_service",
        ).with_metadata(filename=file.filename)
        key = file.filename

        try:
            destination = resolve(self._destination, request, file, "destination")
            key = object_key(destination, file.filename)
            self._store.delete(key)
        except ImageStorageError as exc:
            self._logger.error("Removal failed", log_context, error=str(exc))
            raise
        except Exception as exc:
            self._logger.error("Removal failed", log_context, error=str(exc))
            raise StorageError(f"Deleting {key} failed: {exc}", key=key) from exc

        self._logger.info("Removed file", log_context.with_metadata(key=key))

    def remove_file(self, request: Any, file: StoredFile, callback: Callback) -> None:
        run_to_callback(callback, self.remove, request, file)
