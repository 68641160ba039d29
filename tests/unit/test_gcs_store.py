"""Unit tests for the Google Cloud Storage object store."""

from unittest.mock import MagicMock, patch

import pytest
from google.api_core.exceptions import NotFound

from image_storage_engine.core.exceptions import StorageError
from image_storage_engine.core.gcs_store import GCSObjectStore

METADATA = {"acl": "publicRead", "content_type": "image/jpeg"}


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def blob(client):
    return client.bucket.return_value.blob.return_value


@pytest.fixture
def writer(blob):
    return blob.open.return_value


class TestGCSObjectStore:
    """Tests for GCSObjectStore."""

    def test_uses_bucket(self, client):
        store = GCSObjectStore("my-bucket", client)

        assert store.bucket_name == "my-bucket"
        client.bucket.assert_called_once_with("my-bucket")

    def test_default_client_from_key_file(self):
        with patch(
            "image_storage_engine.core.gcs_store.storage.Client.from_service_account_json"
        ) as mock_from_json:
            store = GCSObjectStore("b", project_id="p", key_filename="key.json")

        mock_from_json.assert_called_once_with("key.json", project="p")
        mock_from_json.return_value.bucket.assert_called_once_with("b")
        assert store.bucket_name == "b"

    def test_write_stream_commits(self, client, blob, writer):
        store = GCSObjectStore("b", client)

        with store.open_write_stream("public/img/abc", METADATA) as stream:
            stream.write(b"data")

        client.bucket.return_value.blob.assert_called_once_with("public/img/abc")
        blob.open.assert_called_once_with(
            "wb",
            content_type="image/jpeg",
            predefined_acl="publicRead",
            ignore_flush=True,
        )
        writer.write.assert_called_once_with(b"data")
        writer.close.assert_called_once_with()
        writer.terminate.assert_not_called()

    def test_write_stream_terminates_on_error(self, client, writer):
        store = GCSObjectStore("b", client)

        with pytest.raises(ConnectionResetError):
            with store.open_write_stream("abc", METADATA):
                raise ConnectionResetError("source went away")

        writer.terminate.assert_called_once_with()
        writer.close.assert_not_called()

    def test_terminate_failure_keeps_original_error(self, client, writer):
        writer.terminate.side_effect = RuntimeError("terminate failed")
        store = GCSObjectStore("b", client)

        with pytest.raises(ConnectionResetError, match="source went away"):
            with store.open_write_stream("abc", METADATA):
                raise ConnectionResetError("source went away")

        writer.terminate.assert_called_once_with()
        writer.close.assert_not_called()

    def test_open_failure_becomes_storage_error(self, client, blob):
        blob.open.side_effect = RuntimeError("bucket does not exist")
        store = GCSObjectStore("b", client)

        with pytest.raises(StorageError, match="bucket does not exist"):
            with store.open_write_stream("abc", METADATA):
                pytest.fail("stream should not open")

    def test_commit_failure_becomes_storage_error(self, client, writer):
        writer.close.side_effect = RuntimeError("upload session expired")
        store = GCSObjectStore("b", client)

        with pytest.raises(StorageError, match="upload session expired"):
            with store.open_write_stream("abc", METADATA) as stream:
                stream.write(b"data")

    def test_delete(self, client, blob):
        store = GCSObjectStore("b", client)

        store.delete("public/img/abc")

        client.bucket.return_value.blob.assert_called_once_with("public/img/abc")
        blob.delete.assert_called_once_with()

    def test_delete_missing_object(self, client, blob):
        blob.delete.side_effect = NotFound("No such object")
        store = GCSObjectStore("b", client)

        with pytest.raises(StorageError, match="not found") as exc_info:
            store.delete("abc")

        assert exc_info.value.key == "abc"

    def test_delete_other_failure(self, client, blob):
        blob.delete.side_effect = PermissionError("forbidden")
        store = GCSObjectStore("b", client)

        with pytest.raises(StorageError, match="forbidden"):
            store.delete("abc")
