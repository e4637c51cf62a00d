"""Backend HTTP access."""

from qpdash.infrastructure.api.client import ApiResult, RemoteClient
from qpdash.infrastructure.api.session import SessionStore

__all__ = ["ApiResult", "RemoteClient", "SessionStore"]
