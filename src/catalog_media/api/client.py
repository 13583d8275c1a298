"""
Async JSON client for the admin REST API.

Every request carries the bearer token from the injected ``AuthContext``.
A 401 answer triggers one token refresh followed by one retry of the
original request; when the refresh itself fails the session is invalidated.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Tuple

import aiohttp
from aiohttp import ClientTimeout

from ..core.exceptions import ApiError, SessionExpiredError
from ..core.logging_config import get_logger
from .auth import AuthContext, RefreshPolicy

logger = get_logger("catalog-media.api")


class ApiClient:
    """Thin aiohttp wrapper that unwraps the backend response envelope."""

    def __init__(
        self,
        base_url: str,
        auth: AuthContext,
        refresh_policy: Optional[RefreshPolicy] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._refresh_policy = refresh_policy or RefreshPolicy()
        self._session = session
        self._owns_session = session is None
        self._timeout = ClientTimeout(total=timeout)

    @property
    def auth(self) -> AuthContext:
        return self._auth

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("DELETE", path, json=json)

    async def request(
        self, method: str, path: str, json: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Send a request and return the ``data`` member of the response."""
        retries = 0
        while True:
            status, reason, payload = await self._send(method, path, json)

            if status == 401 and retries < self._refresh_policy.max_retries:
                retries += 1
                logger.info(f"{method} {path} returned 401, refreshing access token")
                await self._refresh_access_token()
                continue

            if 200 <= status < 300:
                return _unwrap(payload)

            message, error_code = _error_details(payload, reason)
            logger.error(f"{method} {path} failed with {status}: {message}")
            raise ApiError(message, status=status, error_code=error_code)

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]],
        authenticated: bool = True,
    ) -> Tuple[int, str, Any]:
        url = self.url_for(path)
        headers = {"Accept": "application/json"}
        if authenticated:
            headers.update(self._auth.authorization_header())

        logger.debug(f"{method} {url}")
        try:
            async with self.session.request(
                method, url, json=json, headers=headers, timeout=self._timeout
            ) as response:
                payload = await _read_payload(response)
                return response.status, response.reason or "", payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ApiError(f"{method} {url} failed: {e!r}") from e

    async def _refresh_access_token(self) -> None:
        refresh_token = self._auth.refresh_token
        if not refresh_token:
            self._auth.invalidate()
            raise SessionExpiredError("No refresh token available", status=401)

        try:
            status, reason, payload = await self._send(
                "POST",
                self._refresh_policy.refresh_path,
                {"refreshToken": refresh_token},
                authenticated=False,
            )
        except ApiError as e:
            self._auth.invalidate()
            raise SessionExpiredError(f"Token refresh failed: {e}", status=401) from e

        data = _unwrap(payload) if 200 <= status < 300 else None
        if not isinstance(data, dict) or not data.get("accessToken"):
            message, error_code = _error_details(payload, reason)
            self._auth.invalidate()
            raise SessionExpiredError(
                f"Token refresh failed: {message}", status=status, error_code=error_code
            )

        self._auth.set_tokens(data["accessToken"], data.get("refreshToken"))
        logger.info("Access token refreshed")


async def _read_payload(response: aiohttp.ClientResponse) -> Any:
    try:
        return await response.json(content_type=None)
    except ValueError:
        return await response.text()


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _error_details(payload: Any, reason: str) -> Tuple[str, Optional[str]]:
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error") or reason
        return str(message), payload.get("errorCode")
    if isinstance(payload, str) and payload.strip():
        return payload.strip(), None
    return reason or "Request failed", None
