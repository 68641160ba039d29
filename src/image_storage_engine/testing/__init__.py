"""Testing utilities and fakes for the image storage engine."""

from .fakes import (
    CallbackRecorder,
    FailingStream,
    FakeLogger,
    FakeObjectStore,
    StoredObject,
    create_test_image,
    make_incoming_file,
)

__all__ = [
    "CallbackRecorder",
    "FailingStream",
    "FakeLogger",
    "FakeObjectStore",
    "StoredObject",
    "create_test_image",
    "make_incoming_file",
]
