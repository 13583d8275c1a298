"""Image transcoding service: decode, resize and re-encode before upload."""

import io
from typing import Iterable, List, Optional

from PIL import Image, ImageOps

from .error_handling import PIL_DECODE_ERRORS, with_error_handling
from .exceptions import DecodeError, EncodeError, TranscodeError
from .image_utils import calculate_dimensions, compression_ratio, replace_extension
from .logging_config import get_logger
from .models import ProcessedFile, ProcessingOptions, SourceFile, TargetFormat
from .protocols import LoggerProtocol

_ALPHA_MODES = ("RGBA", "LA", "PA")


class ImageTranscoder:
    """Pure image transcoder with no I/O dependencies.

    Each call decodes its own buffer and holds no state, so independent
    calls may run concurrently.
    """

    def __init__(self, logger: Optional[LoggerProtocol] = None):
        self._logger = logger or get_logger("catalog-media.transcoder")

    @with_error_handling
    def transcode(self, file: SourceFile, options: ProcessingOptions) -> ProcessedFile:
        """Resize and re-encode ``file`` according to ``options``."""
        image = self._decode(file)
        try:
            width, height = calculate_dimensions(
                image.width,
                image.height,
                options.max_width,
                options.max_height,
                options.maintain_aspect_ratio,
            )
            self._logger.debug(
                f"[{file.name}] Resizing {image.width}x{image.height} -> {width}x{height}"
            )
            try:
                resized = image.resize((width, height), Image.Resampling.BILINEAR)
            except ValueError as e:
                raise EncodeError(
                    f"Cannot resample {file.name} to {width}x{height}: {e}"
                ) from e
        finally:
            image.close()

        data = self._encode(resized, options, file.name)

        target = options.target_format
        processed = SourceFile(
            name=replace_extension(file.name, target.extension),
            content_type=target.mime_type,
            data=data,
        )
        result = ProcessedFile(
            file=processed,
            original_size=file.size,
            processed_size=processed.size,
            compression_ratio=compression_ratio(file.size, processed.size),
            width=width,
            height=height,
        )
        self._logger.info(
            f"[{file.name}] Transcoded to {target.value}: "
            f"{result.original_size} -> {result.processed_size} bytes "
            f"({result.compression_ratio}%)"
        )
        return result

    def transcode_many(
        self, files: Iterable[SourceFile], options: ProcessingOptions
    ) -> List[ProcessedFile]:
        """Transcode each file independently, dropping the ones that fail."""
        results: List[ProcessedFile] = []
        for file in files:
            try:
                results.append(self.transcode(file, options))
            except TranscodeError as e:
                self._logger.warning(f"[{file.name}] Skipped: {e}")
        return results

    def _decode(self, file: SourceFile) -> Image.Image:
        try:
            with Image.open(io.BytesIO(file.data)) as source:
                source.load()
                # Orientation applied the way browsers display the image
                image = ImageOps.exif_transpose(source)
        except (OSError, *PIL_DECODE_ERRORS) as e:
            raise DecodeError(f"Failed to load image {file.name}: {e}") from e

        if image.width == 0 or image.height == 0:
            image.close()
            raise DecodeError(f"Image {file.name} has no pixels")
        return image

    def _encode(
        self, image: Image.Image, options: ProcessingOptions, file_name: str
    ) -> bytes:
        target = options.target_format
        image = _convert_for(image, target)

        save_kwargs = {}
        if not target.is_lossless:
            save_kwargs["quality"] = max(1, min(100, round(options.quality * 100)))

        output = io.BytesIO()
        try:
            image.save(output, format=target.pillow_format, **save_kwargs)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeError(
                f"Failed to encode {file_name} as {target.value}: {e}"
            ) from e

        data = output.getvalue()
        if not data:
            raise EncodeError(f"Encoder produced no output for {file_name}")
        return data


def _convert_for(image: Image.Image, target: TargetFormat) -> Image.Image:
    """Convert the raster to a mode the target encoder accepts."""
    if target is TargetFormat.JPEG:
        accepted = ("RGB", "L")
    elif target is TargetFormat.WEBP:
        accepted = ("RGB", "RGBA")
    else:
        accepted = ("1", "L", "LA", "P", "RGB", "RGBA")

    if image.mode in accepted:
        return image
    if target is TargetFormat.JPEG:
        # JPEG has no alpha channel
        return image.convert("RGB")

    has_alpha = image.mode in _ALPHA_MODES or "transparency" in image.info
    return image.convert("RGBA" if has_alpha else "RGB")
