"""
Local callback endpoint for the Angel popup.

The popup either POSTs a JSON message ({provider, ok, message?, tokens?}) or is
redirected here with query parameters; both are normalized to the same
message payload and handed to `on_message`. Messages the optional `accepts`
filter turns down get a 403 and are never delivered.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional, Tuple
from urllib import parse

from twisted.web import resource, server

from qpdash.config.constants import ANGEL_PROVIDER

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict], Any]
MessageFilter = Callable[[dict], bool]

_CLOSE_PAGE = "Authorization complete, you can close this window.".encode("utf-8")
_REJECTED_PAGE = b"This authorization is not expected by the dashboard. Start linking again."

_QUERY_TOKEN_FIELDS = {
    "auth_token": "authToken",
    "request_token": "requestToken",
    "feed_token": "feedToken",
    "refresh_token": "refreshToken",
    "token_id": "tokenId",
}


def _pick(values: Optional[list]) -> Optional[str]:
    """Repeated query values: first non-empty one wins."""
    if not values:
        return None
    decoded = [v.decode("utf-8", "replace") if isinstance(v, bytes) else str(v) for v in values]
    for value in decoded:
        if value.strip():
            return value.strip()
    return None


def message_from_query(args: dict) -> dict:
    """Translate callback query parameters into a popup message payload."""
    query = {
        (k.decode("utf-8", "replace") if isinstance(k, bytes) else str(k)): v
        for k, v in args.items()
    }
    status = (_pick(query.get("angel")) or "").lower()
    state = _pick(query.get("state"))
    if status == "failed":
        reason = _pick(query.get("reason")) or "unknown"
        message = {"provider": ANGEL_PROVIDER, "ok": False, "message": f"Angel login failed ({reason})"}
    else:
        message = {"provider": ANGEL_PROVIDER, "ok": True}
        tokens = _tokens_from_query(query, status)
        if tokens:
            message["tokens"] = tokens
    if state:
        message["state"] = state
    return message


def _tokens_from_query(query: dict, status: str) -> dict:
    tokens = {}
    for field, key in _QUERY_TOKEN_FIELDS.items():
        value = _pick(query.get(field))
        if value:
            tokens[key] = value
    if status == "connected" and not tokens:
        tokens["completed"] = True
    return tokens


class LinkCallbackResource(resource.Resource):
    isLeaf = True

    def __init__(self, on_message: MessageHandler, accepts: Optional[MessageFilter] = None):
        super().__init__()
        self._on_message = on_message
        self._accepts = accepts

    def render_GET(self, request) -> bytes:
        payload = message_from_query(request.args or {})
        if not self._is_accepted(payload):
            request.setResponseCode(403)
            request.setHeader(b"Content-Type", b"text/plain; charset=utf-8")
            return _REJECTED_PAGE
        self._deliver(payload)
        return self._close_page(request)

    def render_POST(self, request) -> bytes:
        try:
            body = request.content.read() if request.content is not None else b""
            payload = json.loads(body.decode("utf-8")) if body else {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            request.setResponseCode(400)
            return b'{"ok": false, "error": "invalid message"}'
        if not isinstance(payload, dict):
            request.setResponseCode(400)
            return b'{"ok": false, "error": "invalid message"}'
        request.setHeader(b"Content-Type", b"application/json")
        if not self._is_accepted(payload):
            request.setResponseCode(403)
            return b'{"ok": false, "error": "unexpected message"}'
        self._deliver(payload)
        return b'{"ok": true}'

    def _is_accepted(self, payload: dict) -> bool:
        if self._accepts is None or self._accepts(payload):
            return True
        logger.warning("⚠️ Rejected callback message that matches no pending linking attempt")
        return False

    def _deliver(self, payload: dict) -> None:
        d = self._on_message(payload)
        if d is not None and hasattr(d, "addErrback"):
            d.addErrback(lambda failure: logger.error("Callback message handling failed: %s", failure.getErrorMessage()))

    @staticmethod
    def _close_page(request) -> bytes:
        request.setHeader(b"Content-Type", b"text/plain; charset=utf-8")
        return _CLOSE_PAGE


class CallbackServer:
    """
    Local server that receives the popup's completion message.

    Responsibilities:
    - listen on the host/port of the callback URI
    - route the callback path to `LinkCallbackResource`
    """

    def __init__(
        self,
        callback_uri: str,
        on_message: MessageHandler,
        *,
        accepts: Optional[MessageFilter] = None,
        reactor=None,
    ):
        if reactor is None:
            from twisted.internet import reactor as default_reactor
            reactor = default_reactor
        self._host, self._port, self._path = self._parse_uri(callback_uri)
        self._reactor = reactor
        self._on_message = on_message
        self._accepts = accepts
        self._listening = None

    @staticmethod
    def _parse_uri(callback_uri: str) -> Tuple[str, int, str]:
        """
        Split the callback URI.

        Raises:
            ValueError: the URI has no host or port
        """
        parsed = parse.urlparse(callback_uri)
        host = parsed.hostname
        port = parsed.port
        path = parsed.path or "/"

        if not host or not port:
            raise ValueError("Invalid callback URI, host and port are required")
        return host, port, path

    @property
    def path(self) -> str:
        return self._path

    def build_site(self) -> server.Site:
        root = resource.Resource()
        node = root
        segments = [s for s in self._path.split("/") if s]
        if not segments:
            return server.Site(LinkCallbackResource(self._on_message, self._accepts))
        for segment in segments[:-1]:
            child = resource.Resource()
            node.putChild(segment.encode("utf-8"), child)
            node = child
        node.putChild(segments[-1].encode("utf-8"), LinkCallbackResource(self._on_message, self._accepts))
        return server.Site(root)

    def start(self) -> None:
        if self._listening is not None:
            return
        self._listening = self._reactor.listenTCP(self._port, self.build_site(), interface=self._host)
        logger.info("🌐 Listening for Angel callback on http://%s:%s%s", self._host, self._port, self._path)

    def stop(self):
        listening, self._listening = self._listening, None
        if listening is None:
            return None
        return listening.stopListening()
