"""Core models, errors and image utilities for catalog media."""

from .image_utils import (
    calculate_dimensions,
    compression_ratio,
    create_thumbnail,
    format_file_size,
    get_image_dimensions,
    is_image_file,
    replace_extension,
)
from .logging_config import get_logger, setup_logger
from .exceptions import (
    CatalogMediaError,
    ConfigurationError,
    TranscodeError,
    DecodeError,
    EncodeError,
    ValidationError,
    ApiError,
    SessionExpiredError,
    UploadError,
    GrantRequestError,
    TransferError,
    PromotionError,
)
from .models import (
    CompressionInfo,
    FileInfo,
    PermanentObjectRef,
    ProcessedFile,
    ProcessingOptions,
    SourceFile,
    TargetFormat,
    UploadGrant,
)
from .transcoder import ImageTranscoder

__all__ = [
    "SourceFile",
    "ProcessingOptions",
    "ProcessedFile",
    "TargetFormat",
    "CompressionInfo",
    "UploadGrant",
    "PermanentObjectRef",
    "FileInfo",
    "ImageTranscoder",
    "calculate_dimensions",
    "compression_ratio",
    "create_thumbnail",
    "format_file_size",
    "get_image_dimensions",
    "is_image_file",
    "replace_extension",
    "setup_logger",
    "get_logger",
    "CatalogMediaError",
    "ConfigurationError",
    "TranscodeError",
    "DecodeError",
    "EncodeError",
    "ValidationError",
    "ApiError",
    "SessionExpiredError",
    "UploadError",
    "GrantRequestError",
    "TransferError",
    "PromotionError",
]
