"""
Time-bounded polling fallback for when the popup never posts a message.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from twisted.internet import task
from twisted.internet.defer import inlineCallbacks

from qpdash.application.linking.context import LinkingContext
from qpdash.application.state import AccountStateStore
from qpdash.config.constants import LinkPhase
from qpdash.infrastructure.base import BaseCallbacks, LoggingMixin, build_callbacks
from qpdash.infrastructure.messages import format_info, format_warning


@dataclass
class PollWatcherCallbacks(BaseCallbacks):
    on_broker_linked: Optional[Callable[[int], Any]] = None


class PollWatcher(LoggingMixin[PollWatcherCallbacks]):
    """
    Re-fetches the profile every `interval` seconds until the broker shows as
    linked or the deadline passes.

    Usage:
        watcher = PollWatcher(context, store, clock=reactor)
        watcher.set_callbacks(on_broker_linked=...)
        watcher.start()
    """

    def __init__(
        self,
        context: LinkingContext,
        store: AccountStateStore,
        *,
        clock,
        interval: float = 4.0,
        deadline_seconds: float = 120.0,
    ):
        self._context = context
        self._store = store
        self._clock = clock
        self._interval = interval
        self._deadline_seconds = deadline_seconds
        self._loop: Optional[task.LoopingCall] = None
        self._attempt_id: Optional[int] = None
        self._callbacks = PollWatcherCallbacks()

    def set_callbacks(
        self,
        on_broker_linked: Optional[Callable[[int], Any]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._callbacks = build_callbacks(
            PollWatcherCallbacks,
            on_broker_linked=on_broker_linked,
            on_error=on_error,
            on_log=on_log,
        )

    @property
    def running(self) -> bool:
        return self._loop is not None and self._loop.running

    def start(self) -> None:
        self.stop()
        attempt = self._context.attempt
        attempt.deadline = self._clock.seconds() + self._deadline_seconds
        self._attempt_id = attempt.attempt_id
        loop = task.LoopingCall(self._tick)
        loop.clock = self._clock
        self._loop = loop
        finished = loop.start(self._interval, now=False)
        finished.addErrback(self._on_loop_failure, loop)
        self._log(format_info(f"Watching for Angel link (deadline {int(self._deadline_seconds)}s)"))

    def stop(self) -> None:
        loop, self._loop = self._loop, None
        if loop is not None and loop.running:
            loop.stop()

    def _deadline_passed(self) -> bool:
        deadline = self._context.attempt.deadline
        return deadline is not None and self._clock.seconds() >= deadline

    @inlineCallbacks
    def _tick(self):
        attempt = self._context.attempt
        if attempt.attempt_id != self._attempt_id or attempt.acknowledged:
            self.stop()
            return
        if self._deadline_passed():
            self._expire()
            return
        try:
            snapshot = yield self._store.fetch_profile()
        except Exception as exc:
            self._log(format_warning(f"Link poll failed, will retry: {exc}"))
            return
        if snapshot is None:
            self._log(format_warning("Link poll could not fetch profile, will retry"))
            return
        if attempt is not self._context.attempt or attempt.acknowledged:
            return
        if self._deadline_passed():
            self._expire()
            return
        if snapshot.broker.is_angel and self._callbacks.on_broker_linked:
            yield self._callbacks.on_broker_linked(attempt.attempt_id)

    def _expire(self) -> None:
        self.stop()
        self._log(format_info("Angel link not detected before deadline, polling stopped"))
        self._context.set_phase(LinkPhase.EXPIRED)

    def _on_loop_failure(self, failure, loop: task.LoopingCall) -> None:
        self._log(format_warning(f"Link poll loop stopped: {failure.getErrorMessage()}"))
        if self._loop is loop:
            self._loop = None
