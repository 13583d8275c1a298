"""Protocol definitions for dependency injection and testability."""

from typing import Any, List, Optional, Protocol

from .models import (
    FileInfo,
    PermanentObjectRef,
    ProcessedFile,
    ProcessingOptions,
    SourceFile,
    UploadGrant,
)


class FilesApiProtocol(Protocol):
    """Protocol for the backend file endpoints."""

    async def get_upload_url(
        self, file: SourceFile, folder: Optional[str] = None
    ) -> UploadGrant:
        """Request one presigned upload target."""
        ...

    async def get_upload_urls(
        self, files: List[SourceFile], folder: Optional[str] = None
    ) -> List[UploadGrant]:
        """Request one presigned upload target per file in a single call."""
        ...

    async def move_to_permanent(
        self, file_key: str, folder: Optional[str] = None
    ) -> PermanentObjectRef:
        """Promote a temporary object."""
        ...

    async def move_multiple_to_permanent(
        self, file_keys: List[str], folder: Optional[str] = None
    ) -> List[PermanentObjectRef]:
        """Promote several temporary objects in a single call."""
        ...

    async def delete_file(self, file_key: str) -> str:
        """Delete a stored object, returning the backend message."""
        ...

    async def get_file_info(self, file_key: str) -> FileInfo:
        """Look up the public URL of a stored object."""
        ...

    async def close(self) -> None:
        """Release any HTTP resources held by the client."""
        ...


class StorageTransferProtocol(Protocol):
    """Protocol for direct-to-storage transfers."""

    async def put(self, upload_url: str, file: SourceFile) -> None:
        """PUT the file bytes to a presigned URL."""
        ...

    async def close(self) -> None:
        """Release any HTTP resources held by the transfer."""
        ...


class TranscoderProtocol(Protocol):
    """Protocol for image transcoding operations."""

    def transcode(self, file: SourceFile, options: ProcessingOptions) -> ProcessedFile:
        """Resize and re-encode an image."""
        ...


class TokenStoreProtocol(Protocol):
    """Protocol for persisting authentication tokens."""

    def get(self, key: str) -> Optional[str]:
        """Read a stored value."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value."""
        ...

    def clear(self) -> None:
        """Remove every stored value."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""
        ...
