"""Backend file endpoints and direct-to-storage transfers."""

import asyncio
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp
from aiohttp import ClientTimeout
from yarl import URL

from ..core.exceptions import TransferError
from ..core.logging_config import get_logger
from ..core.models import (
    FileDescriptor,
    FileInfo,
    PermanentObjectRef,
    SourceFile,
    UploadGrant,
)
from .client import ApiClient

logger = get_logger("catalog-media.files")


def _with_folder(body: Dict[str, Any], folder: Optional[str]) -> Dict[str, Any]:
    if folder:
        body["folder"] = folder
    return body


class FilesApi:
    """Typed wrappers around the ``/files`` endpoints."""

    def __init__(self, client: ApiClient):
        self._client = client

    async def close(self) -> None:
        await self._client.close()

    async def get_upload_url(
        self, file: SourceFile, folder: Optional[str] = None
    ) -> UploadGrant:
        body = FileDescriptor.from_file(file).model_dump(by_alias=True, exclude_none=True)
        data = await self._client.post("files/upload-url", json=_with_folder(body, folder))
        return UploadGrant.model_validate(data)

    async def get_upload_urls(
        self, files: List[SourceFile], folder: Optional[str] = None
    ) -> List[UploadGrant]:
        body = {
            "files": [
                FileDescriptor.from_file(file).model_dump(by_alias=True, exclude_none=True)
                for file in files
            ]
        }
        data = await self._client.post("files/upload-urls", json=_with_folder(body, folder))
        return [UploadGrant.model_validate(item) for item in data["uploadUrls"]]

    async def move_to_permanent(
        self, file_key: str, folder: Optional[str] = None
    ) -> PermanentObjectRef:
        data = await self._client.post(
            "files/move-permanent", json=_with_folder({"fileKey": file_key}, folder)
        )
        return PermanentObjectRef.model_validate(data)

    async def move_multiple_to_permanent(
        self, file_keys: List[str], folder: Optional[str] = None
    ) -> List[PermanentObjectRef]:
        data = await self._client.post(
            "files/move-multiple-permanent",
            json=_with_folder({"fileKeys": list(file_keys)}, folder),
        )
        return [PermanentObjectRef.model_validate(item) for item in data["results"]]

    async def delete_file(self, file_key: str) -> str:
        data = await self._client.delete("files/delete", json={"fileKey": file_key})
        if isinstance(data, dict):
            return str(data.get("message", ""))
        return str(data or "")

    async def get_file_info(self, file_key: str) -> FileInfo:
        data = await self._client.get(f"files/info/{quote(file_key, safe='/')}")
        return FileInfo.model_validate(data)


class StorageTransfer:
    """PUTs file bytes straight to object storage using presigned URLs.

    Presigned URLs carry their own authorization, so no bearer token is sent.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[float] = None,
    ):
        self._session = session
        self._owns_session = session is None
        self._timeout = ClientTimeout(total=timeout)

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def put(self, upload_url: str, file: SourceFile) -> None:
        logger.debug(f"[{file.name}] PUT {file.size} bytes to storage")
        try:
            # Presigned query strings are signed byte for byte
            async with self.session.put(
                URL(upload_url, encoded=True),
                data=file.data,
                headers={"Content-Type": file.content_type},
            ) as response:
                if not 200 <= response.status < 300:
                    raise TransferError(
                        f"Upload failed: {response.reason}", status=response.status
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransferError(f"Upload failed: {e!r}") from e
