"""Google Cloud Storage implementation of the object store."""

from contextlib import contextmanager
from typing import Any, BinaryIO, Dict, Iterator, Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

from .exceptions import StorageError, with_error_handling
from .logging_config import get_logger

logger = get_logger("gcs")


class GCSObjectStore:
    """Streams objects into a single GCS bucket."""

    def __init__(
        self,
        bucket_name: str,
        client: Optional[storage.Client] = None,
        *,
        project_id: Optional[str] = None,
        key_filename: Optional[str] = None,
    ):
        self.bucket_name = bucket_name
        if client is None:
            client = storage.Client.from_service_account_json(
                key_filename, project=project_id
            )
        self._client = client
        self._bucket = client.bucket(bucket_name)

    @with_error_handling(StorageError)
    def _open_writer(self, key: str, metadata: Dict[str, Any]):
        blob = self._bucket.blob(key)
        return blob.open(
            "wb",
            content_type=metadata.get("content_type"),
            predefined_acl=metadata.get("acl"),
            ignore_flush=True,
        )

    @with_error_handling(StorageError)
    def _commit(self, writer: Any) -> None:
        writer.close()

    @contextmanager
    def open_write_stream(
        self, key: str, metadata: Dict[str, Any]
    ) -> Iterator[BinaryIO]:
        logger.debug(f"Opening write stream to gs://{self.bucket_name}/{key}")
        writer = self._open_writer(key, metadata)
        try:
            yield writer
        except BaseException:
            logger.warning(f"Abandoning upload of gs://{self.bucket_name}/{key}")
            try:
                writer.terminate()
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    f"Terminating upload of gs://{self.bucket_name}/{key} failed: {exc}"
                )
            raise
        self._commit(writer)
        logger.info(f"Stored gs://{self.bucket_name}/{key}")

    def delete(self, key: str) -> None:
        try:
            self._bucket.blob(key).delete()
        except NotFound as exc:
            raise StorageError(
                f"Object gs://{self.bucket_name}/{key} not found", key=key
            ) from exc
        except Exception as exc:  # noqa: BLE001
            raise StorageError(
                f"Deleting gs://{self.bucket_name}/{key} failed: {exc}", key=key
            ) from exc
        logger.info(f"Deleted gs://{self.bucket_name}/{key}")
