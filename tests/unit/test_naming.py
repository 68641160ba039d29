"""Unit tests for naming strategies and the object key rule."""

import re
from unittest.mock import patch

import pytest

from image_storage_engine.core.exceptions import NamingError
from image_storage_engine.core.naming import (
    default_destination,
    default_filename,
    destination_strategy,
    filename_strategy,
    object_key,
    public_url,
    resolve,
)
from image_storage_engine.testing.fakes import make_incoming_file


@pytest.fixture
def incoming():
    return make_incoming_file(b"data")


class TestObjectKey:
    """Tests for object_key."""

    def test_empty_destination_uses_filename(self):
        assert object_key("", "abc") == "abc"

    def test_destination_is_joined_with_slash(self):
        assert object_key("public/img", "abc") == "public/img/abc"

    @pytest.mark.parametrize("destination", ["", "a", "a/b", "uploads/2024"])
    def test_upload_and_removal_agree(self, destination):
        """Test that the same inputs always give the same key."""
        assert object_key(destination, "f") == object_key(destination, "f")
        if destination:
            assert object_key(destination, "f").startswith(destination + "/")


class TestPublicUrl:
    """Tests for public_url."""

    def test_root_object(self):
        assert public_url("b", "abc") == "https://storage.googleapis.com/b/abc"

    def test_nested_object(self):
        assert (
            public_url("b", "public/img/abc")
            == "https://storage.googleapis.com/b/public/img/abc"
        )

    def test_uri_encoding(self):
        """Test that unsafe characters are percent-encoded and slashes kept."""
        assert (
            public_url("b", "my dir/ä%.png")
            == "https://storage.googleapis.com/b/my%20dir/%C3%A4%25.png"
        )


class TestStrategies:
    """Tests for the default and wrapped strategies."""

    def test_default_destination_is_empty(self, incoming):
        assert default_destination(None, incoming) == ""
        assert destination_strategy(None)(None, incoming) == ""

    def test_literal_destination_is_wrapped(self, incoming):
        assert destination_strategy("public/img")(None, incoming) == "public/img"

    def test_callable_destination_is_used_as_is(self, incoming):
        def strategy(request, file):
            return f"{request}/{file.fieldname}"

        assert destination_strategy(strategy) is strategy
        assert resolve(strategy, "user", incoming, "destination") == "user/pic"

    def test_default_filename_is_32_hex(self, incoming):
        name = default_filename(None, incoming)

        assert re.fullmatch(r"[0-9a-f]{32}", name)
        assert default_filename(None, incoming) != name

    def test_filename_strategy_default(self):
        assert filename_strategy(None) is default_filename


class TestResolve:
    """Tests for resolve error handling."""

    def test_strategy_exception_becomes_naming_error(self, incoming):
        def broken(request, file):
            raise RuntimeError("no destination")

        with pytest.raises(NamingError, match="destination") as exc_info:
            resolve(broken, None, incoming, "destination")

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_non_string_result_is_rejected(self, incoming):
        with pytest.raises(NamingError, match="int"):
            resolve(lambda request, file: 42, None, incoming, "filename")

    def test_randomness_failure_propagates(self, incoming):
        with patch(
            "image_storage_engine.core.naming.os.urandom",
            side_effect=OSError("no entropy"),
        ):
            with pytest.raises(NamingError, match="no entropy"):
                resolve(default_filename, None, incoming, "filename")
