"""Storage engine facade handed to the upload framework."""

from typing import Any, Callable, Mapping, Optional, Union

from .core.factories import LoggerFactory, ObjectStoreFactory
from .core.models import IncomingFile, StorageOptions, StoredFile, UploadResult
from .core.observability import InfoHook, logging_info_hook
from .core.protocols import LoggerProtocol, ObjectStoreProtocol, TransformStageBuilder
from .core.services import Callback, RemovalService, UploadService
from .core.transformer import PillowStageBuilder


class ImageStorageEngine:
    """Transforms uploaded images and streams them into object storage.

    The upload framework calls :meth:`handle_incoming_file` for each file and
    :meth:`remove_file` to roll back a stored file. Both report through a
    ``callback(error, result)`` invoked exactly once.

    Required options (``bucket``, ``project_id``, ``key_filename``) are checked
    before any storage client is created.
    """

    def __init__(
        self,
        options: Union[StorageOptions, Mapping[str, Any], None] = None,
        *,
        object_store: Optional[ObjectStoreProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        on_info: Optional[InfoHook] = None,
        builder_factory: Callable[[], TransformStageBuilder] = PillowStageBuilder,
        **option_values: Any,
    ):
        if isinstance(options, StorageOptions):
            merged = options.model_dump(by_alias=False)
        else:
            merged = dict(options or {})
        merged.update(option_values)

        self.options = StorageOptions.from_mapping(merged)
        self.options.ensure_required()

        self._logger = logger or LoggerFactory.create_logger("engine")
        if object_store is None:
            object_store = ObjectStoreFactory.create_object_store(self.options)
        self.object_store = object_store
        if on_info is None:
            on_info = logging_info_hook(self._logger)

        self._upload = UploadService(
            self.options, object_store, builder_factory, self._logger, on_info
        )
        self._removal = RemovalService(self.options, object_store, self._logger)

    def handle_file(self, request: Any, file: IncomingFile) -> UploadResult:
        """Store ``file`` and return its descriptor, raising on failure."""
        return self._upload.handle_file(request, file)

    def remove(self, request: Any, file: StoredFile) -> None:
        """Delete a stored file, raising on failure."""
        self._removal.remove(request, file)

    def handle_incoming_file(
        self, request: Any, file: IncomingFile, callback: Callback
    ) -> None:
        self._upload.handle_incoming_file(request, file, callback)

    def remove_file(self, request: Any, file: StoredFile, callback: Callback) -> None:
        self._removal.remove_file(request, file, callback)

    # Names used by frameworks that call storage engines through private hooks.
    _handle_file = handle_incoming_file
    _remove_file = remove_file


def create_storage_engine(
    options: Union[StorageOptions, Mapping[str, Any], None] = None, **kwargs: Any
) -> ImageStorageEngine:
    """Build an engine from an options mapping and/or keyword options."""
    return ImageStorageEngine(options, **kwargs)
