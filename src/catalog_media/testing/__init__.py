"""Testing utilities and fakes for catalog media."""

from .fakes import (
    FailingTranscoder,
    FakeBucket,
    FakeFilesApi,
    FakeLogger,
    FakeStorage,
    StoredObject,
    create_source_file,
    create_test_image,
    setup_test_upload_environment,
)

__all__ = [
    "FailingTranscoder",
    "FakeBucket",
    "FakeFilesApi",
    "FakeLogger",
    "FakeStorage",
    "StoredObject",
    "create_source_file",
    "create_test_image",
    "setup_test_upload_environment",
]
