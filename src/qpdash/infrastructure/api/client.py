"""
Authenticated HTTP client for the dashboard backend.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Callable, Mapping, Optional

from twisted.internet import defer
from twisted.internet.defer import inlineCallbacks
from twisted.web.client import Agent, FileBodyProducer, readBody
from twisted.web.http_headers import Headers

from qpdash.infrastructure.base import BaseCallbacks, LoggingMixin, build_callbacks
from qpdash.infrastructure.errors import ErrorCode, code_for_status, error_message
from qpdash.infrastructure.messages import format_request_failure, format_session
from qpdash.infrastructure.api.session import SessionStore


UNAUTHORIZED = 401


@dataclass(frozen=True)
class ApiResult:
    ok: bool
    status: Optional[int] = None
    data: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    session_expired: bool = False
    code: Optional[ErrorCode] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def user_error(self, default: str) -> Optional[str]:
        """Message to surface for a failure, or None when the session handler already acted."""
        if self.ok or self.session_expired:
            return None
        return self.error or default

    @classmethod
    def expired(cls) -> "ApiResult":
        return cls(
            ok=False,
            status=UNAUTHORIZED,
            error="unauthorized",
            session_expired=True,
            code=ErrorCode.AUTH,
        )

    @classmethod
    def failure(cls, code: ErrorCode, error: str, status: Optional[int] = None) -> "ApiResult":
        return cls(ok=False, status=status, error=error, code=code)


@dataclass
class RemoteClientCallbacks(BaseCallbacks):
    on_session_expired: Optional[Callable[[], None]] = None


class RemoteClient(LoggingMixin[RemoteClientCallbacks]):
    """
    Bearer-authenticated JSON client.

    Every call resolves to an `ApiResult`; transport failures never propagate
    to the caller. A 401 clears the stored credential and fires
    `on_session_expired` once per call. No retries are performed here.
    """

    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        *,
        reactor=None,
        agent=None,
        timeout: float = 15.0,
    ):
        if reactor is None:
            from twisted.internet import reactor as default_reactor
            reactor = default_reactor
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._reactor = reactor
        self._agent = agent if agent is not None else Agent(reactor)
        self._timeout = timeout
        self._callbacks = RemoteClientCallbacks()

    def set_callbacks(
        self,
        on_session_expired: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._callbacks = build_callbacks(
            RemoteClientCallbacks,
            on_session_expired=on_session_expired,
            on_error=on_error,
            on_log=on_log,
        )

    def get(self, path: str) -> defer.Deferred:
        return self._request(b"GET", path)

    def post(self, path: str, body: Optional[Mapping[str, Any]] = None) -> defer.Deferred:
        return self._request(b"POST", path, dict(body or {}))

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    @inlineCallbacks
    def _request(self, method: bytes, path: str, body: Optional[dict] = None):
        token = self._session.token
        if not token:
            self._expire_session(path)
            return ApiResult.expired()

        headers = Headers({
            b"Authorization": [f"Bearer {token}".encode("utf-8")],
            b"Accept": [b"application/json"],
        })
        producer = None
        if body is not None:
            headers.addRawHeader(b"Content-Type", b"application/json")
            producer = FileBodyProducer(BytesIO(json.dumps(body).encode("utf-8")))

        url = self.url_for(path).encode("utf-8")
        try:
            d = self._agent.request(method, url, headers, producer)
            d.addTimeout(self._timeout, self._reactor)
            response = yield d
            raw = yield readBody(response)
        except defer.TimeoutError:
            return ApiResult.failure(
                ErrorCode.TIMEOUT,
                error_message(ErrorCode.TIMEOUT, "Request timed out", path),
            )
        except Exception as exc:
            self._log(format_request_failure(path, exc))
            return ApiResult.failure(
                ErrorCode.NETWORK,
                error_message(ErrorCode.NETWORK, "Request failed", str(exc)),
            )

        status = int(response.code)
        if status == UNAUTHORIZED:
            self._expire_session(path)
            return ApiResult.expired()
        return self._parse(path, status, raw)

    def _parse(self, path: str, status: int, raw: bytes) -> ApiResult:
        try:
            payload = json.loads(raw.decode("utf-8")) if raw else {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            return ApiResult.failure(
                ErrorCode.PROVIDER,
                error_message(ErrorCode.PROVIDER, "Invalid response", path),
                status=status,
            )
        if not isinstance(payload, dict):
            payload = {"data": payload}

        error = payload.get("error")
        if status >= 400:
            code = code_for_status(status)
            if code is ErrorCode.PROVIDER:
                self._log(format_request_failure(path, f"HTTP {status}"))
            return ApiResult(
                ok=False,
                status=status,
                data=payload,
                error=str(error) if error else f"HTTP {status}",
                code=code,
            )
        ok = bool(payload.get("ok", True))
        return ApiResult(
            ok=ok,
            status=status,
            data=payload,
            error=None if ok else (str(error) if error else None),
        )

    def _expire_session(self, path: str) -> None:
        self._session.clear()
        self._log(format_session(f"Session expired ({path}), redirecting to login"))
        if self._callbacks.on_session_expired:
            self._callbacks.on_session_expired()
