"""Shared data models for catalog media uploads."""

import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TargetFormat(str, Enum):
    """Encodings the transcoder can produce."""

    WEBP = "webp"
    JPEG = "jpeg"
    PNG = "png"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def pillow_format(self) -> str:
        return self.value.upper()

    @property
    def is_lossless(self) -> bool:
        return self is TargetFormat.PNG


class SourceFile(BaseModel):
    """A caller-owned file to be processed or uploaded."""

    model_config = ConfigDict(frozen=True)

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(
        cls, path: Union[str, Path], content_type: Optional[str] = None
    ) -> "SourceFile":
        """Read a local file, guessing its MIME type from the extension."""
        path = Path(path)
        if content_type is None:
            guessed, _ = mimetypes.guess_type(path.name)
            content_type = guessed or "application/octet-stream"
        return cls(name=path.name, content_type=content_type, data=path.read_bytes())


class ProcessingOptions(BaseModel):
    """Constraints applied when transcoding an image before upload."""

    model_config = ConfigDict(frozen=True)

    max_width: int = Field(default=1920, gt=0)
    max_height: int = Field(default=1080, gt=0)
    quality: float = Field(default=0.8, gt=0, le=1)
    target_format: TargetFormat = TargetFormat.WEBP
    maintain_aspect_ratio: bool = True


class ProcessedFile(BaseModel):
    """Result of a single transcode call."""

    model_config = ConfigDict(frozen=True)

    file: SourceFile
    original_size: int
    processed_size: int
    compression_ratio: int
    width: int
    height: int


class CompressionInfo(BaseModel):
    """Compression statistics shown next to an uploaded image."""

    original_size: int
    processed_size: int
    compression_ratio: int

    @classmethod
    def from_processed(cls, processed: ProcessedFile) -> "CompressionInfo":
        return cls(
            original_size=processed.original_size,
            processed_size=processed.processed_size,
            compression_ratio=processed.compression_ratio,
        )


class UploadGrant(BaseModel):
    """A one-time presigned upload target issued by the backend."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    upload_url: str = Field(alias="url")
    public_url: str = Field(alias="publicUrl")
    file_name: Optional[str] = Field(default=None, alias="fileName")
    file_type: Optional[str] = Field(default=None, alias="fileType")
    file_size: Optional[int] = Field(default=None, alias="fileSize")


class PermanentObjectRef(BaseModel):
    """An object promoted from the staging folder to a permanent folder."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    public_url: str = Field(alias="publicUrl")


class FileInfo(BaseModel):
    """Public address of a stored object."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file_key: str = Field(alias="fileKey")
    public_url: str = Field(alias="publicUrl")


class FileDescriptor(BaseModel):
    """File metadata sent to the backend when requesting upload grants."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    file_type: str = Field(alias="fileType")
    file_size: Optional[int] = Field(default=None, alias="fileSize")

    @classmethod
    def from_file(cls, file: SourceFile) -> "FileDescriptor":
        return cls(file_name=file.name, file_type=file.content_type, file_size=file.size)


class TransferOutcome(BaseModel):
    """Per-file result of a batched direct-to-storage transfer."""

    index: int
    file_name: str
    grant: UploadGrant
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
