# src/catalog_media/core/error_handling.py

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from PIL import Image, UnidentifiedImageError as PILUnidentifiedImageError

from .exceptions import CatalogMediaError, DecodeError, TranscodeError, TransferError

F = TypeVar("F", bound=Callable[..., Any])

PIL_DECODE_ERRORS = (PILUnidentifiedImageError, Image.DecompressionBombError, SyntaxError)


def with_error_handling(func: F) -> F:
    """
    A decorator to wrap transcoder functions with standardized error handling.

    Errors already in the catalog media hierarchy pass through untouched.
    Pillow decode failures become ``DecodeError``; anything else becomes a
    ``TranscodeError`` so callers only ever see one family of exceptions.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except CatalogMediaError:
            raise
        except Exception as e:
            logger.error(
                f"Error in '{func.__name__}': {e}",
                exc_info=True
            )
            if isinstance(e, PIL_DECODE_ERRORS):
                raise DecodeError(f"Failed to decode image in {func.__name__}: {e}") from e
            raise TranscodeError(f"Image transcoding error in {func.__name__}: {e}") from e
    return wrapper  # type: ignore[return-value]


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.

    When ``raise_as`` is given, leaving the block with recorded errors raises
    that exception type, passing the collected per-item records as ``failures``.
    """
    def __init__(
        self,
        operation_name: str = "Batch Operation",
        raise_as: Optional[Type[TransferError]] = None,
    ):
        self.operation_name = operation_name
        self.raise_as = raise_as
        self.errors: List[Dict[str, Any]] = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
            return False

        if not self.errors:
            self.logger.info(f"{self.operation_name} completed successfully.")
            return False

        self.logger.warning(
            f"{self.operation_name} completed with {len(self.errors)} error(s)."
        )
        for i, error_detail in enumerate(self.errors):
            self.logger.error(
                f"  Error {i+1}/{len(self.errors)} for item '{error_detail['file_name']}': "
                f"{error_detail['error']}"
            )

        if self.raise_as is not None:
            names = ", ".join(str(error["file_name"]) for error in self.errors)
            message = f"{self.operation_name} failed for {len(self.errors)} file(s): {names}"
            raise self.raise_as(message, failures=self.errors)
        return False

    def add_error(self, error_message: Any, item_identifier: str = "Unknown item", index: Optional[int] = None):
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message: The error message or exception.
            item_identifier: A string identifying the item that failed (e.g. file name).
            index: Position of the item in the batch, when known.
        """
        self.errors.append({"index": index, "file_name": item_identifier, "error": str(error_message)})
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

