"""Pre-upload checks run before any network call."""

from typing import List, Sequence

from pydantic import BaseModel, Field

from ..core.exceptions import ValidationError
from ..core.image_utils import round_half_up
from ..core.models import SourceFile
from ..core.settings import MEGABYTE


def parse_accept(accept: str) -> List[str]:
    """Split an HTML-style accept list into trimmed patterns."""
    return [pattern.strip() for pattern in accept.split(",") if pattern.strip()]


def matches_accept(content_type: str, accept: str) -> bool:
    """
    Check a MIME type against an accept list.

    Patterns match exactly or, for ``type/*``, by prefix. An empty list or
    ``*`` accepts everything.
    """
    if not accept or accept.strip() == "*":
        return True

    for pattern in parse_accept(accept):
        if pattern.endswith("/*"):
            if content_type.startswith(pattern[:-2]):
                return True
        elif content_type == pattern:
            return True
    return False


def validate_file_type(file: SourceFile, accept: str) -> None:
    if not matches_accept(file.content_type, accept):
        raise ValidationError(
            f"Invalid file type: {file.content_type or 'unknown'}", file_name=file.name
        )


def validate_file_size(file: SourceFile, max_size: int) -> None:
    if file.size > max_size:
        max_size_mb = round_half_up(max_size / MEGABYTE)
        raise ValidationError(
            f"File size exceeds the {max_size_mb} MB limit",
            file_name=file.name,
            max_size_mb=max_size_mb,
        )


def validate_file_count(current_count: int, new_count: int, max_count: int) -> None:
    if current_count + new_count > max_count:
        raise ValidationError(
            f"You can upload at most {max_count} files", max_count=max_count
        )


class UploadConstraints(BaseModel):
    """Caller-supplied limits for an upload form field."""

    accept: str = "image/*"
    max_size: int = Field(default=10 * MEGABYTE, gt=0)
    max_count: int = Field(default=10, gt=0)

    def validate_file(self, file: SourceFile) -> None:
        validate_file_type(file, self.accept)
        validate_file_size(file, self.max_size)

    def validate_files(self, files: Sequence[SourceFile], current_count: int = 0) -> None:
        """Count check first, then type and size for every file."""
        validate_file_count(current_count, len(files), self.max_count)
        for file in files:
            self.validate_file(file)
