"""
Angel link service: starts linking attempts and routes popup messages.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlencode

from twisted.internet import defer
from twisted.internet.defer import inlineCallbacks

from qpdash.application.linking.carry_over import PendingTokenCarryOver
from qpdash.application.linking.context import LinkingContext
from qpdash.application.linking.poll_watcher import PollWatcher
from qpdash.application.linking.resolver import CompletionResolver
from qpdash.application.protocols import PopupLauncher, RemoteClientLike
from qpdash.config.constants import ANGEL_PROVIDER, LinkOutcome, LinkPhase
from qpdash.domain.linking import LinkMessage
from qpdash.infrastructure.base import BaseCallbacks, LoggingMixin, build_callbacks
from qpdash.infrastructure.errors import ErrorCode, error_message
from qpdash.infrastructure.messages import format_info, format_link, format_warning


@dataclass
class AngelLinkServiceCallbacks(BaseCallbacks):
    on_phase_changed: Optional[Callable[[LinkPhase, Optional[str]], None]] = None


class AngelLinkService(LoggingMixin[AngelLinkServiceCallbacks]):
    """
    Entry point for the linking protocol.

    Usage:
        service.set_callbacks(on_phase_changed=..., on_error=...)
        service.resume_pending()        # once, at startup
        service.start_linking()         # on user click
        service.handle_message(payload) # from the callback server
    """

    def __init__(
        self,
        client: RemoteClientLike,
        context: LinkingContext,
        watcher: PollWatcher,
        resolver: CompletionResolver,
        carry_over: PendingTokenCarryOver,
        popup: PopupLauncher,
        *,
        callback_uri: Optional[str] = None,
    ):
        self._client = client
        self._context = context
        self._watcher = watcher
        self._resolver = resolver
        self._carry_over = carry_over
        self._popup = popup
        self._callback_uri = callback_uri
        self._callbacks = AngelLinkServiceCallbacks()
        context.subscribe(self._on_phase_changed)

    def set_callbacks(
        self,
        on_phase_changed: Optional[Callable[[LinkPhase, Optional[str]], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._callbacks = build_callbacks(
            AngelLinkServiceCallbacks,
            on_phase_changed=on_phase_changed,
            on_error=on_error,
            on_log=on_log,
        )

    @property
    def phase(self) -> LinkPhase:
        return self._context.attempt.phase

    @inlineCallbacks
    def start_linking(self):
        """Resolves to True when the popup was opened and polling started."""
        self._watcher.stop()
        attempt = self._context.begin()
        self._log(format_link(f"Starting Angel linking attempt #{attempt.attempt_id}"))

        result = yield self._client.get(self._login_link_path(attempt.state))
        if not self._context.is_current(attempt.attempt_id):
            return False
        url = result.get("url") if result.ok else None
        if not url:
            error = None if result.session_expired else (result.error or "Unable to get Angel login link")
            if error:
                self._emit_error(error)
            self._context.set_phase(LinkPhase.FAILED, error)
            return False

        if not self._open_popup(str(url)):
            error = error_message(
                ErrorCode.POPUP_BLOCKED,
                "Popup blocked. Allow popups for this site and click again.",
            )
            self._emit_error(error)
            self._context.set_phase(LinkPhase.FAILED, error)
            return False

        self._watcher.start()
        return True

    def accepts_message(self, payload: Mapping[str, Any]) -> bool:
        """A popup message is only taken while an attempt waits and its state matches."""
        message = LinkMessage.from_payload(payload)
        if message.provider != ANGEL_PROVIDER:
            return True
        return self._context.accepts_state(message.state)

    def handle_message(self, payload: Mapping[str, Any]) -> defer.Deferred:
        """Entry point for messages from the callback endpoint."""
        if not self.accepts_message(payload):
            self._log(format_warning("Rejected Angel callback without a matching linking attempt"))
            return defer.succeed(LinkOutcome.IGNORED)
        return self._resolver.handle_message(payload)

    def resume_pending(self) -> defer.Deferred:
        """Consume the carry-over record left by an interrupted attempt, if any."""
        tokens = self._carry_over.consume()
        if tokens is None:
            return defer.succeed(None)
        self._log(format_info("Resuming interrupted Angel linking"))
        payload = {"provider": ANGEL_PROVIDER, "ok": True, "tokens": tokens.to_payload()}
        return self._resolver.handle_message(payload, persist=False)

    def _login_link_path(self, state: Optional[str]) -> str:
        params = {}
        if state:
            params["state"] = state
        if self._callback_uri:
            params["redirect_uri"] = self._callback_uri
        if not params:
            return "/user/angel/login-link"
        return f"/user/angel/login-link?{urlencode(params)}"

    def _open_popup(self, url: str) -> bool:
        try:
            return bool(self._popup.open(url))
        except Exception as exc:
            self._log(format_warning(f"Unable to open browser: {exc}"))
            return False

    def _on_phase_changed(self, phase: LinkPhase, message: Optional[str]) -> None:
        if self._callbacks.on_phase_changed:
            self._callbacks.on_phase_changed(phase, message)
