"""Factory classes for creating configured service instances."""

from typing import Optional

import aiohttp

from ..api.auth import AuthContext, JsonFileTokenStore
from ..api.client import ApiClient
from ..api.files import FilesApi, StorageTransfer
from ..upload.orchestrator import UploadOrchestrator
from .exceptions import ConfigurationError
from .observability import StructuredLogger
from .settings import ClientSettings, get_settings
from .transcoder import ImageTranscoder


class UploadPipelineFactory:
    """Factory for creating the complete upload pipeline."""

    @staticmethod
    def create_auth(settings: Optional[ClientSettings] = None) -> AuthContext:
        """Create an auth context backed by the configured token file."""
        settings = settings or get_settings()
        return AuthContext(JsonFileTokenStore(settings.token_path))

    @staticmethod
    def create_api_client(
        settings: Optional[ClientSettings] = None,
        auth: Optional[AuthContext] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> ApiClient:
        settings = settings or get_settings()
        if not settings.api_base_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"api_base_url must be an http(s) URL, got {settings.api_base_url!r}"
            )
        return ApiClient(
            settings.api_base_url,
            auth or UploadPipelineFactory.create_auth(settings),
            session=session,
            timeout=settings.request_timeout,
        )

    @staticmethod
    def create_orchestrator(
        settings: Optional[ClientSettings] = None,
        api_client: Optional[ApiClient] = None,
        session: Optional[aiohttp.ClientSession] = None,
        logger: Optional[StructuredLogger] = None,
        enable_image_processing: bool = True,
    ) -> UploadOrchestrator:
        """Create a fully configured upload orchestrator.

        The storage transfer shares ``session`` when one is given; otherwise
        it opens its own session without a request timeout.
        """
        settings = settings or get_settings()
        api_client = api_client or UploadPipelineFactory.create_api_client(
            settings, session=session
        )

        transcoder = ImageTranscoder() if enable_image_processing else None

        return UploadOrchestrator(
            files_api=FilesApi(api_client),
            storage=StorageTransfer(session=session),
            transcoder=transcoder,
            processing_options=settings.processing_options(),
            logger=logger,
            staging_folder=settings.staging_folder,
        )
