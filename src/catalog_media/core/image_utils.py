"""Image helper functions for catalog media."""

import base64
import io
import math
import re
from typing import Tuple

from PIL import Image, ImageOps

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity."""
    return int(math.floor(value + 0.5))


def calculate_dimensions(
    original_width: int,
    original_height: int,
    max_width: int,
    max_height: int,
    maintain_aspect_ratio: bool = True,
) -> Tuple[int, int]:
    """
    Calculate target dimensions for a resized image.

    Without aspect ratio, each side is clamped on its own. With aspect ratio,
    the width is clamped first and the height second, each step rescaling the
    other side. The result is never upscaled.

    Note:
        The two clamps are applied in sequence, not as a single fit-inside-box
        scale. For very wide or very tall images one side can round down to 0.

    Args:
        original_width: Source width in pixels
        original_height: Source height in pixels
        max_width: Maximum allowed width
        max_height: Maximum allowed height
        maintain_aspect_ratio: Whether to keep width/height proportional

    Returns:
        Tuple of (width, height)
    """
    if not maintain_aspect_ratio:
        return min(original_width, max_width), min(original_height, max_height)

    aspect_ratio = original_width / original_height

    width: float = original_width
    height: float = original_height

    if width > max_width:
        width = max_width
        height = width / aspect_ratio

    if height > max_height:
        height = max_height
        width = height * aspect_ratio

    return round_half_up(width), round_half_up(height)


def compression_ratio(original_size: int, processed_size: int) -> int:
    """Percentage of bytes saved; negative when the output grew."""
    return round_half_up((original_size - processed_size) / original_size * 100)


def replace_extension(file_name: str, extension: str) -> str:
    """
    Replace the trailing extension of a file name.

    A name without an extension is returned unchanged.
    """
    return _EXTENSION_RE.sub(f".{extension}", file_name)


def is_image_file(content_type: str) -> bool:
    """Check whether a declared MIME type is an image type."""
    return content_type.startswith("image/")


def format_file_size(size: int) -> str:
    """Format a byte count for humans, e.g. ``1.5 KB``."""
    if size == 0:
        return "0 Bytes"

    k = 1024
    i = min(int(math.floor(math.log(size) / math.log(k))), len(_SIZE_UNITS) - 1)
    value = round(size / math.pow(k, i), 2)
    return f"{value:g} {_SIZE_UNITS[i]}"


def get_image_dimensions(data: bytes) -> Tuple[int, int]:
    """Read image dimensions without a full decode."""
    with Image.open(io.BytesIO(data)) as img:
        return img.width, img.height


def create_thumbnail(data: bytes, size: int = 150, quality: float = 0.7) -> str:
    """
    Create a WebP thumbnail and return it as a data URL.

    The longer side is scaled to ``size``; the shorter side keeps the ratio.

    Args:
        data: Encoded source image
        size: Length of the longer side in pixels
        quality: Encoder quality between 0 and 1

    Returns:
        ``data:image/webp;base64,...`` string
    """
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        aspect_ratio = img.width / img.height
        if aspect_ratio > 1:
            width, height = size, size / aspect_ratio
        else:
            width, height = size * aspect_ratio, size

        thumbnail = img.convert("RGBA").resize(
            (max(1, int(width)), max(1, int(height))), Image.Resampling.BILINEAR
        )

    buffer = io.BytesIO()
    thumbnail.save(buffer, format="WEBP", quality=round_half_up(quality * 100))
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/webp;base64,{encoded}"
