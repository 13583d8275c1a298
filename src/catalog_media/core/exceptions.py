"""Custom exceptions for catalog media processing and uploads."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class CatalogMediaError(Exception):
    """Base exception for all catalog media errors."""


class ConfigurationError(CatalogMediaError):
    """Error raised for invalid configuration options."""


class TranscodeError(CatalogMediaError):
    """Error raised when an image cannot be transcoded."""


class DecodeError(TranscodeError):
    """The input bytes could not be decoded as an image."""


class EncodeError(TranscodeError):
    """The target encoder produced no output."""


class ValidationError(CatalogMediaError):
    """A file was rejected before any network call was made."""

    def __init__(
        self,
        message: str,
        file_name: Optional[str] = None,
        max_size_mb: Optional[int] = None,
        max_count: Optional[int] = None,
    ):
        super().__init__(message)
        self.file_name = file_name
        self.max_size_mb = max_size_mb
        self.max_count = max_count


class ApiError(CatalogMediaError):
    """The backend REST API answered with an error or could not be reached."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.error_code = error_code


class SessionExpiredError(ApiError):
    """The access token could not be refreshed; the session is gone."""


class UploadError(CatalogMediaError):
    """Base class for upload orchestration failures."""


class GrantRequestError(UploadError):
    """The backend refused to issue an upload grant."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TransferError(UploadError):
    """A direct-to-storage transfer did not succeed.

    ``failures`` holds one entry per failed file with its ``index``,
    ``file_name`` and ``error`` so a batch failure can still be traced
    back to the files that caused it.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        failures: Optional[Sequence[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.status = status
        self.failures: List[Dict[str, Any]] = list(failures or [])

    @property
    def failed_names(self) -> List[str]:
        return [failure["file_name"] for failure in self.failures]

    @property
    def failed_indexes(self) -> List[int]:
        return [failure["index"] for failure in self.failures]


class PromotionError(UploadError):
    """Moving uploaded objects to their permanent folder failed.

    The temporary objects stay in the staging folder; their keys are kept
    here for manual cleanup.
    """

    def __init__(
        self,
        message: str,
        temporary_keys: Sequence[str] = (),
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.temporary_keys: List[str] = list(temporary_keys)
        self.status = status

    @property
    def temporary_key(self) -> Optional[str]:
        return self.temporary_keys[0] if self.temporary_keys else None
