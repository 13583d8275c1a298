"""Framework-agnostic state machines behind the upload form fields.

A UI layer subscribes to a widget and re-renders on every state change:

    IDLE -> PROCESSING (images only) -> UPLOADING -> DONE
                                               \\-> FAILED -> IDLE

A failed upload keeps the previously stored value. Removing a value never
calls the backend.
"""

from enum import Enum
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel

from ..core.exceptions import CatalogMediaError, ValidationError
from ..core.image_utils import is_image_file
from ..core.logging_config import get_logger
from ..core.models import CompressionInfo, SourceFile
from .orchestrator import UploadOrchestrator
from .validation import UploadConstraints

logger = get_logger("catalog-media.widgets")


class UploadState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"


StateListener = Callable[[UploadState], None]

_BUSY_STATES = (UploadState.PROCESSING, UploadState.UPLOADING)


class FileItem(BaseModel):
    """One uploaded file shown in a multi-file field."""

    url: str
    name: str
    is_new: bool = False

    @classmethod
    def from_url(cls, url: str) -> "FileItem":
        return cls(url=url, name=url.rstrip("/").split("/")[-1] or "Unknown")


class _UploadWidget:
    def __init__(
        self,
        orchestrator: UploadOrchestrator,
        constraints: Optional[UploadConstraints],
        enable_image_processing: bool,
    ):
        self._orchestrator = orchestrator
        self.constraints = constraints or UploadConstraints()
        self.enable_image_processing = enable_image_processing
        self.state = UploadState.IDLE
        self.error: Optional[CatalogMediaError] = None
        self._listeners: List[StateListener] = []

    @property
    def busy(self) -> bool:
        return self.state in _BUSY_STATES

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, state: UploadState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)

    def _fail(self, error: CatalogMediaError) -> None:
        logger.warning(f"Upload failed: {error}")
        self.error = error
        self._transition(UploadState.FAILED)
        self._transition(UploadState.IDLE)

    def _abandon(self) -> None:
        logger.warning("Upload abandoned before completion")
        self._transition(UploadState.IDLE)

    def _ensure_idle(self) -> None:
        if self.busy:
            raise ValidationError("An upload is already in progress")

    def _should_process(self, files: Sequence[SourceFile]) -> bool:
        return (
            self.enable_image_processing
            and self._orchestrator.processes_images
            and any(is_image_file(file.content_type) for file in files)
        )


class SingleFileUpload(_UploadWidget):
    """State behind a single image/file form field."""

    def __init__(
        self,
        orchestrator: UploadOrchestrator,
        constraints: Optional[UploadConstraints] = None,
        enable_image_processing: bool = True,
        value: Optional[str] = None,
    ):
        super().__init__(orchestrator, constraints, enable_image_processing)
        self.value = value
        self.compression_info: Optional[CompressionInfo] = None

    async def select(self, file: SourceFile) -> str:
        """Validate, optionally transcode, and upload ``file``.

        Returns the new public URL. On failure the error is recorded, the
        widget returns to IDLE with its previous value, and the error is
        re-raised.
        """
        self._ensure_idle()
        self.error = None

        try:
            self.constraints.validate_file(file)
        except ValidationError as e:
            self._fail(e)
            raise

        previous_info = self.compression_info
        self.compression_info = None
        try:
            upload = file
            if self._should_process([file]):
                self._transition(UploadState.PROCESSING)
                prepared = self._orchestrator.prepare_file(file)
                upload = prepared.file
                if prepared.processed is not None:
                    self.compression_info = CompressionInfo.from_processed(prepared.processed)

            self._transition(UploadState.UPLOADING)
            grant = await self._orchestrator.upload_file(upload, process=False)
        except CatalogMediaError as e:
            self.compression_info = previous_info
            self._fail(e)
            raise
        except BaseException:
            # Cancelled while awaiting the transfer
            self.compression_info = previous_info
            self._abandon()
            raise

        self.value = grant.public_url
        self._transition(UploadState.DONE)
        return self.value

    def remove(self) -> None:
        """Clear the stored value without deleting anything remotely."""
        self.value = None
        self.compression_info = None
        self.error = None
        self._transition(UploadState.IDLE)


class MultiFileUpload(_UploadWidget):
    """State behind a multi-file form field with a maximum count."""

    def __init__(
        self,
        orchestrator: UploadOrchestrator,
        constraints: Optional[UploadConstraints] = None,
        folder: str = "uploads",
        enable_image_processing: bool = True,
        value: Optional[Sequence[str]] = None,
    ):
        super().__init__(orchestrator, constraints, enable_image_processing)
        self.folder = folder
        self.items: List[FileItem] = []
        if value:
            self.set_value(value)

    @property
    def urls(self) -> List[str]:
        return [item.url for item in self.items]

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def can_add(self) -> bool:
        return self.count < self.constraints.max_count and not self.busy

    def set_value(self, urls: Sequence[str]) -> None:
        """Seed the field with already stored URLs."""
        if list(urls) != self.urls:
            self.items = [FileItem.from_url(url) for url in urls]

    async def select(self, files: Sequence[SourceFile]) -> List[str]:
        """Validate and upload ``files``, appending them to the field.

        Returns every URL of the field after the upload.
        """
        if not files:
            return self.urls

        self._ensure_idle()
        self.error = None

        try:
            self.constraints.validate_files(files, current_count=self.count)
        except ValidationError as e:
            self._fail(e)
            raise

        try:
            uploads = list(files)
            if self._should_process(files):
                self._transition(UploadState.PROCESSING)
                uploads = [self._orchestrator.prepare_file(file).file for file in files]

            self._transition(UploadState.UPLOADING)
            grants = await self._orchestrator.upload_multiple_files(
                uploads, self.folder, process=False
            )
        except CatalogMediaError as e:
            self._fail(e)
            raise
        except BaseException:
            self._abandon()
            raise

        self.items = self.items + [
            FileItem(url=grant.public_url, name=file.name, is_new=True)
            for file, grant in zip(files, grants)
        ]
        self._transition(UploadState.DONE)
        return self.urls

    def remove(self, index: int) -> None:
        """Drop one item without deleting anything remotely."""
        if not 0 <= index < len(self.items):
            raise IndexError(f"No file at position {index}")
        self.items = [item for i, item in enumerate(self.items) if i != index]
        self._transition(UploadState.IDLE)
