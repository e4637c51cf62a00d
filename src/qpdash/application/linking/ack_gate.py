"""
Single-writer gate that admits exactly one "linked" acknowledgment per attempt.
"""
from __future__ import annotations

from typing import Callable, Optional

from twisted.internet import task
from twisted.internet.defer import inlineCallbacks

from qpdash.application.linking.context import LinkingContext
from qpdash.application.protocols import DashboardView
from qpdash.application.state import AccountStateStore
from qpdash.config.constants import ACCOUNT_VIEW, BROKER_SECTION, LinkPhase
from qpdash.infrastructure.base import BaseCallbacks, LoggingMixin, build_callbacks
from qpdash.infrastructure.messages import format_info, format_success


class LinkAcknowledgmentGate(LoggingMixin[BaseCallbacks]):
    def __init__(
        self,
        context: LinkingContext,
        store: AccountStateStore,
        view: DashboardView,
        *,
        clock,
        stop_polling: Callable[[], None],
        settle_delay: float = 0.3,
    ):
        self._context = context
        self._store = store
        self._view = view
        self._clock = clock
        self._stop_polling = stop_polling
        self._settle_delay = settle_delay
        self._listeners: list[Callable[[str], None]] = []
        self._callbacks = BaseCallbacks()

    def set_callbacks(
        self,
        on_error: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._callbacks = build_callbacks(BaseCallbacks, on_error=on_error, on_log=on_log)

    def subscribe(self, listener: Callable[[str], None]) -> None:
        """Called with the confirmation text once the winning acknowledgment has finished."""
        self._listeners.append(listener)

    @inlineCallbacks
    def acknowledge(self, message: str, attempt_id: Optional[int] = None):
        """
        Resolves to True for the winning call, False for every later call in
        the same attempt (and for calls tagged with a superseded attempt).
        """
        attempt = self._context.attempt
        if not self._context.is_current(attempt_id):
            self._log(format_info(f"Ignoring acknowledgment from superseded attempt {attempt_id}"))
            return False
        if attempt.acknowledged:
            self._log(format_info("Angel link already acknowledged"))
            return False
        attempt.acknowledged = True
        self._stop_polling()
        self._context.set_phase(LinkPhase.LINKED, message)

        yield self._store.refresh_profile()
        self._view.switch_view(ACCOUNT_VIEW)
        yield task.deferLater(self._clock, self._settle_delay, lambda: None)
        self._view.scroll_to(BROKER_SECTION)
        self._view.show_confirmation(message)
        self._log(format_success(message))
        for listener in list(self._listeners):
            listener(message)
        return True
