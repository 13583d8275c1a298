"""Authentication state shared by every backend call."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from ..core.logging_config import get_logger
from ..core.protocols import TokenStoreProtocol

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"

logger = get_logger("catalog-media.auth")


class InMemoryTokenStore:
    """Token store kept in process memory."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def clear(self) -> None:
        self._values.clear()


class JsonFileTokenStore:
    """Token store persisted as a small JSON document on disk."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            values = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable token file {self._path}")
            return {}
        if not isinstance(values, dict):
            logger.warning(f"Ignoring token file {self._path}: expected a JSON object")
            return {}
        return values

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._read()
        values[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(values), encoding="utf-8")

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()


@dataclass(frozen=True)
class RefreshPolicy:
    """How the API client reacts to an expired access token."""

    max_retries: int = 1
    refresh_path: str = "auth/refresh-token"


class AuthContext:
    """Bearer-token state injected into the API client."""

    def __init__(
        self,
        store: Optional[TokenStoreProtocol] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
    ):
        self._store = store if store is not None else InMemoryTokenStore()
        self._on_session_expired = on_session_expired

    @property
    def access_token(self) -> Optional[str]:
        return self._store.get(ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> Optional[str]:
        return self._store.get(REFRESH_TOKEN_KEY)

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self._store.set(ACCESS_TOKEN_KEY, access_token)
        if refresh_token is not None:
            self._store.set(REFRESH_TOKEN_KEY, refresh_token)

    def authorization_header(self) -> Dict[str, str]:
        token = self.access_token
        return {"Authorization": f"Bearer {token}"} if token else {}

    def invalidate(self) -> None:
        """Forget every token and notify the owner that a new login is needed."""
        logger.warning("Session invalidated; a new login is required")
        self._store.clear()
        if self._on_session_expired is not None:
            self._on_session_expired()
