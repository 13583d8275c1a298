"""Backend REST client, authentication state and storage transfers."""

from .auth import AuthContext, InMemoryTokenStore, JsonFileTokenStore, RefreshPolicy
from .client import ApiClient
from .files import FilesApi, StorageTransfer

__all__ = [
    "AuthContext",
    "InMemoryTokenStore",
    "JsonFileTokenStore",
    "RefreshPolicy",
    "ApiClient",
    "FilesApi",
    "StorageTransfer",
]
