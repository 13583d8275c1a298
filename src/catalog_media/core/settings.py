"""
Client configuration using Pydantic settings.

Every value can be overridden with a ``CATALOG_MEDIA_`` prefixed environment
variable (e.g. ``CATALOG_MEDIA_API_BASE_URL``) or a local ``.env`` file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ProcessingOptions, TargetFormat

MEGABYTE = 1024 * 1024


class ClientSettings(BaseSettings):
    """Settings for the catalog media upload client."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_MEDIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend API
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the admin REST API",
    )
    request_timeout: float = Field(default=30.0, gt=0)
    token_file: str = Field(
        default="~/.catalog-media/tokens.json",
        description="Where the CLI keeps access and refresh tokens",
    )

    # Storage folders
    staging_folder: str = "uploads"
    permanent_folder: str = "products"

    # Upload constraints
    accept: str = "image/*"
    max_upload_size: int = Field(default=10 * MEGABYTE, gt=0)
    max_count: int = Field(default=10, gt=0)

    # Image processing defaults
    max_width: int = Field(default=1920, gt=0)
    max_height: int = Field(default=1080, gt=0)
    quality: float = Field(default=0.8, gt=0, le=1)
    target_format: TargetFormat = TargetFormat.WEBP
    maintain_aspect_ratio: bool = True

    @property
    def token_path(self) -> Path:
        return Path(self.token_file).expanduser()

    def processing_options(self) -> ProcessingOptions:
        """Build transcoder options from the image processing settings."""
        return ProcessingOptions(
            max_width=self.max_width,
            max_height=self.max_height,
            quality=self.quality,
            target_format=self.target_format,
            maintain_aspect_ratio=self.maintain_aspect_ratio,
        )


@lru_cache
def get_settings() -> ClientSettings:
    """Return the process-wide settings, loaded once."""
    return ClientSettings()
