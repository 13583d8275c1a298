"""Upload orchestration: local files in, public URLs out."""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import ValidationError as ModelValidationError

from ..core.error_handling import BatchOperationContextManager
from ..core.exceptions import (
    ApiError,
    GrantRequestError,
    PromotionError,
    TranscodeError,
    TransferError,
)
from ..core.image_utils import is_image_file
from ..core.models import (
    FileInfo,
    PermanentObjectRef,
    ProcessedFile,
    ProcessingOptions,
    SourceFile,
    TransferOutcome,
    UploadGrant,
)
from ..core.observability import LogContext, StructuredLogger
from ..core.protocols import (
    FilesApiProtocol,
    StorageTransferProtocol,
    TranscoderProtocol,
)

# Errors meaning the backend answer could not be used
_BACKEND_ERRORS = (ApiError, KeyError, TypeError, ModelValidationError)


@dataclass(frozen=True)
class PreparedUpload:
    """The file that will actually be uploaded, plus transcoding stats if any."""

    file: SourceFile
    processed: Optional[ProcessedFile] = None


class UploadOrchestrator:
    """Turns local files into publicly addressable URLs.

    Images are transcoded first when a transcoder is configured; a failed
    transcode falls back to the original file. Upload grants come from the
    backend, bytes go straight to storage, and objects can then be promoted
    from the staging folder to a permanent one.
    """

    def __init__(
        self,
        files_api: FilesApiProtocol,
        storage: StorageTransferProtocol,
        transcoder: Optional[TranscoderProtocol] = None,
        processing_options: Optional[ProcessingOptions] = None,
        logger: Optional[StructuredLogger] = None,
        staging_folder: str = "uploads",
    ):
        self._files_api = files_api
        self._storage = storage
        self._transcoder = transcoder
        self._processing_options = processing_options or ProcessingOptions()
        self._logger = logger or StructuredLogger("catalog-media.upload")
        self._staging_folder = staging_folder

    @property
    def processes_images(self) -> bool:
        return self._transcoder is not None

    async def close(self) -> None:
        """Close the backend client and the storage transfer."""
        try:
            await self._files_api.close()
        finally:
            await self._storage.close()

    async def __aenter__(self) -> "UploadOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def prepare_file(self, file: SourceFile) -> PreparedUpload:
        """Transcode an image if possible, otherwise keep the original."""
        if self._transcoder is None or not is_image_file(file.content_type):
            return PreparedUpload(file=file)

        try:
            processed = self._transcoder.transcode(file, self._processing_options)
        except TranscodeError as e:
            self._logger.warning(
                "Image processing failed, using original file",
                LogContext(operation="prepare_file", component="upload_orchestrator"),
                file_name=file.name,
                error=str(e),
            )
            return PreparedUpload(file=file)

        return PreparedUpload(file=processed.file, processed=processed)

    async def upload_file(
        self,
        file: SourceFile,
        *,
        folder: Optional[str] = None,
        process: bool = True,
    ) -> UploadGrant:
        """Request one grant for ``file`` and PUT its bytes to storage."""
        if process:
            file = self.prepare_file(file).file

        context = LogContext(
            operation="upload_file", component="upload_orchestrator"
        ).with_metadata(file_name=file.name, size=file.size)

        try:
            grant = await self._files_api.get_upload_url(file, folder)
        except _BACKEND_ERRORS as e:
            self._logger.error("Upload grant refused", context, error=str(e))
            raise GrantRequestError(
                f"Could not get an upload URL for {file.name}: {e}",
                status=getattr(e, "status", None),
            ) from e

        await self._storage.put(grant.upload_url, file)
        self._logger.info("File uploaded", context, key=grant.key)
        return grant

    async def upload_and_promote(
        self, file: SourceFile, permanent_folder: str = "products"
    ) -> PermanentObjectRef:
        """Upload ``file`` and move it into ``permanent_folder``."""
        grant = await self.upload_file(file)
        context = LogContext(
            operation="move_to_permanent", component="upload_orchestrator"
        ).with_metadata(key=grant.key, folder=permanent_folder)

        try:
            ref = await self._files_api.move_to_permanent(grant.key, permanent_folder)
        except _BACKEND_ERRORS as e:
            self._logger.error("Promotion failed, temporary object left behind", context)
            raise PromotionError(
                f"Could not move {grant.key} to {permanent_folder}: {e}",
                temporary_keys=[grant.key],
                status=getattr(e, "status", None),
            ) from e

        self._logger.info("File promoted", context, permanent_key=ref.key)
        return ref

    async def upload_multiple_files(
        self,
        files: Sequence[SourceFile],
        folder: str = "uploads",
        *,
        process: bool = True,
    ) -> List[UploadGrant]:
        """Upload several files with one batched grant request.

        All transfers run concurrently and are awaited to completion. If any
        of them failed, a single ``TransferError`` naming every failed file
        is raised and no grants are returned.
        """
        if not files:
            return []

        if process:
            files = [self.prepare_file(file).file for file in files]

        context = LogContext(
            operation="upload_multiple_files", component="upload_orchestrator"
        ).with_metadata(count=len(files), folder=folder)

        try:
            grants = await self._files_api.get_upload_urls(list(files), folder)
        except _BACKEND_ERRORS as e:
            self._logger.error("Upload grants refused", context, error=str(e))
            raise GrantRequestError(
                f"Could not get upload URLs for {len(files)} file(s): {e}",
                status=getattr(e, "status", None),
            ) from e

        if len(grants) != len(files):
            raise GrantRequestError(
                f"Expected {len(files)} upload URLs, backend returned {len(grants)}"
            )

        outcomes = await self._transfer_all(files, grants)

        with BatchOperationContextManager(
            f"Transfer of {len(files)} file(s)", raise_as=TransferError
        ) as batch:
            for outcome in outcomes:
                if not outcome.succeeded:
                    batch.add_error(outcome.error, outcome.file_name, outcome.index)

        self._logger.info("Files uploaded", context)
        return grants

    async def upload_multiple_and_move_to_permanent(
        self, files: Sequence[SourceFile], permanent_folder: str = "products"
    ) -> List[PermanentObjectRef]:
        """Upload into the staging folder, then promote everything at once."""
        grants = await self.upload_multiple_files(files, self._staging_folder)
        if not grants:
            return []

        keys = [grant.key for grant in grants]
        context = LogContext(
            operation="move_multiple_to_permanent", component="upload_orchestrator"
        ).with_metadata(count=len(keys), folder=permanent_folder)

        try:
            refs = await self._files_api.move_multiple_to_permanent(keys, permanent_folder)
        except _BACKEND_ERRORS as e:
            self._logger.error("Promotion failed, temporary objects left behind", context)
            raise PromotionError(
                f"Could not move {len(keys)} file(s) to {permanent_folder}: {e}",
                temporary_keys=keys,
                status=getattr(e, "status", None),
            ) from e

        self._logger.info("Files promoted", context)
        return refs

    async def delete_file(self, file_key: str) -> str:
        return await self._files_api.delete_file(file_key)

    async def get_file_info(self, file_key: str) -> FileInfo:
        return await self._files_api.get_file_info(file_key)

    async def _transfer_all(
        self, files: Sequence[SourceFile], grants: Sequence[UploadGrant]
    ) -> List[TransferOutcome]:
        tasks = [self._storage.put(grant.upload_url, file) for file, grant in zip(files, grants)]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: List[TransferOutcome] = []
        for i, (file, grant, result) in enumerate(zip(files, grants, results)):
            error = None
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                error = str(result) or type(result).__name__
            outcomes.append(
                TransferOutcome(index=i, file_name=file.name, grant=grant, error=error)
            )
        return outcomes
