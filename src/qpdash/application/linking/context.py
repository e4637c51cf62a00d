from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass
from typing import Callable, Optional

from qpdash.config.constants import LinkPhase

PhaseListener = Callable[[LinkPhase, Optional[str]], None]


def new_attempt_state() -> str:
    return secrets.token_urlsafe(16)


@dataclass
class LinkingAttempt:
    attempt_id: int = 0
    in_progress: bool = False
    deadline: Optional[float] = None
    acknowledged: bool = False
    phase: LinkPhase = LinkPhase.IDLE
    state: Optional[str] = None


class LinkingContext:
    """Owns the single live linking attempt shared by the gate, resolver and poller."""

    def __init__(self, state_factory: Callable[[], str] = new_attempt_state) -> None:
        self._attempt = LinkingAttempt()
        self._listeners: list[PhaseListener] = []
        self._state_factory = state_factory

    @property
    def attempt(self) -> LinkingAttempt:
        return self._attempt

    def subscribe(self, listener: PhaseListener) -> None:
        self._listeners.append(listener)

    def begin(self) -> LinkingAttempt:
        self._attempt = LinkingAttempt(
            attempt_id=self._attempt.attempt_id + 1,
            in_progress=True,
            phase=LinkPhase.WAITING,
            state=self._state_factory(),
        )
        self._notify(LinkPhase.WAITING, None)
        return self._attempt

    def is_current(self, attempt_id: Optional[int]) -> bool:
        return attempt_id is None or attempt_id == self._attempt.attempt_id

    def accepts_state(self, state: Optional[str]) -> bool:
        """True only for the state of an attempt that is still waiting for the popup."""
        attempt = self._attempt
        if not attempt.in_progress or not attempt.state or not state:
            return False
        return hmac.compare_digest(attempt.state.encode("utf-8"), state.encode("utf-8"))

    def set_phase(self, phase: LinkPhase, message: Optional[str] = None) -> None:
        attempt = self._attempt
        if phase.is_terminal:
            attempt.in_progress = False
        if attempt.phase == phase:
            return
        attempt.phase = phase
        self._notify(phase, message)

    def _notify(self, phase: LinkPhase, message: Optional[str]) -> None:
        for listener in list(self._listeners):
            listener(phase, message)
