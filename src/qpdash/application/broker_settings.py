from __future__ import annotations

from typing import Callable, Optional

from twisted.internet.defer import inlineCallbacks

from qpdash.application.protocols import RemoteClientLike
from qpdash.application.state import AccountStateStore
from qpdash.infrastructure.base import BaseCallbacks, LoggingMixin, build_callbacks
from qpdash.infrastructure.errors import ErrorCode, error_message
from qpdash.infrastructure.messages import format_success


class BrokerSettingsService(LoggingMixin[BaseCallbacks]):
    """Angel margin and client-id updates; the profile refresh is the only local update."""

    def __init__(self, client: RemoteClientLike, store: AccountStateStore):
        self._client = client
        self._store = store
        self._callbacks = BaseCallbacks()

    def set_callbacks(
        self,
        on_error: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._callbacks = build_callbacks(BaseCallbacks, on_error=on_error, on_log=on_log)

    @inlineCallbacks
    def update_margin(self, percent):
        try:
            value = float(percent)
        except (TypeError, ValueError):
            value = float("nan")
        if not 0 <= value <= 100:
            self._emit_error(error_message(ErrorCode.VALIDATION, "Margin must be between 0 and 100"))
            return False
        result = yield self._client.post(
            "/user/angel/settings",
            {"allowedMarginPercent": int(round(value))},
        )
        return (yield self._finish(result, "Failed to update margin", f"Margin set to {int(round(value))}%"))

    @inlineCallbacks
    def update_client_id(self, client_id: str):
        client_id = str(client_id or "").strip()
        if not client_id:
            self._emit_error(error_message(ErrorCode.VALIDATION, "Valid Client ID required"))
            return False
        result = yield self._client.post("/user/broker/client-id", {"clientId": client_id})
        return (yield self._finish(result, "Failed to update Client ID", "Client ID saved"))

    @inlineCallbacks
    def _finish(self, result, failure: str, success: str):
        if not result.ok:
            error = result.user_error(failure)
            if error:
                self._emit_error(error)
            return False
        yield self._store.refresh_profile()
        self._log(format_success(success))
        return True
