"""
Trading engine gate: plan/role/broker state → engine state and user guidance.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from twisted.internet.defer import inlineCallbacks

from qpdash.application.protocols import DashboardView, RemoteClientLike
from qpdash.application.state import AccountStateStore
from qpdash.config.constants import GuidanceState, Plan, Role
from qpdash.domain.accounts import AccountSnapshot, has_access
from qpdash.infrastructure.base import BaseCallbacks, LoggingMixin, OperationStateMixin, build_callbacks
from qpdash.infrastructure.messages import format_info, format_success
from qpdash.ui.shared.utils.formatters import format_guidance


@dataclass(frozen=True)
class EngineDecision:
    has_access: bool
    connected: bool
    live_enabled: bool = False
    automation_enabled: bool = False

    @property
    def enabled(self) -> bool:
        return self.has_access and self.live_enabled and self.automation_enabled

    @property
    def clickable(self) -> bool:
        return self.connected or self.has_access

    @property
    def guidance(self) -> GuidanceState:
        if not self.has_access and not self.connected:
            return GuidanceState.NEED_ACCESS_AND_CONNECTION
        if not self.has_access:
            return GuidanceState.NEED_ACCESS
        if not self.connected:
            return GuidanceState.NEED_CONNECTION
        return GuidanceState.ELIGIBLE


def decide(
    plan: Plan,
    role: Role,
    connected: bool,
    live_enabled: bool = False,
    automation_enabled: bool = False,
) -> EngineDecision:
    return EngineDecision(
        has_access=has_access(plan, role),
        connected=bool(connected),
        live_enabled=bool(live_enabled),
        automation_enabled=bool(automation_enabled),
    )


def decide_snapshot(snapshot: Optional[AccountSnapshot]) -> EngineDecision:
    if snapshot is None:
        return decide(Plan.FREE, Role.USER, connected=False)
    return decide(
        snapshot.plan,
        snapshot.role,
        connected=snapshot.broker_connected,
        live_enabled=snapshot.angel.live_enabled,
        automation_enabled=snapshot.automation_enabled,
    )


class EngineGate(LoggingMixin[BaseCallbacks], OperationStateMixin):
    """Pushes engine state on every snapshot change and runs the user toggle."""

    def __init__(self, client: RemoteClientLike, store: AccountStateStore, view: DashboardView):
        self._client = client
        self._store = store
        self._view = view
        self._callbacks = BaseCallbacks()
        self._in_progress = False
        self._decision = decide_snapshot(None)

    def set_callbacks(
        self,
        on_error: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._callbacks = build_callbacks(BaseCallbacks, on_error=on_error, on_log=on_log)

    @property
    def decision(self) -> EngineDecision:
        return self._decision

    def on_snapshot(self, snapshot: AccountSnapshot) -> None:
        self._decision = decide_snapshot(snapshot)
        self._view.update_engine(self._decision)

    @inlineCallbacks
    def toggle(self):
        """
        Handle a user toggle request.

        Returns the guidance state that applied. Only ELIGIBLE performs network
        calls: live flag first, then automation flag; the profile refresh after
        both succeed is the only source of the new displayed state.
        """
        decision = decide_snapshot(self._store.current())
        state = decision.guidance
        if state is not GuidanceState.ELIGIBLE:
            self._emit_error(format_guidance(state))
            return state
        if not self._start_operation():
            self._log(format_info("Engine toggle already in progress"))
            return state
        try:
            target = not decision.enabled
            result = yield self._client.post("/user/angel/settings", {"liveEnabled": target})
            error = result.user_error("Failed to update live trading")
            if not result.ok:
                if error:
                    self._emit_error(error)
                return state
            result = yield self._client.post("/user/broker/automation", {"enable": target})
            error = result.user_error("Failed to update automation")
            if not result.ok:
                if error:
                    self._emit_error(error)
                return state
            yield self._store.refresh_profile()
            self._log(format_success(f"Trading engine {'enabled' if target else 'disabled'}"))
            return state
        finally:
            self._end_operation()
