"""
Account state store: the only owner of the account snapshot.
"""
from __future__ import annotations

from typing import Callable, Optional

from twisted.internet.defer import inlineCallbacks

from qpdash.application.protocols import DashboardView, RemoteClientLike
from qpdash.domain.accounts import AccountSnapshot, AngelSettings, FundsSnapshot, PlanInfo
from qpdash.infrastructure.base import BaseCallbacks, LoggingMixin, build_callbacks
from qpdash.infrastructure.messages import format_warning
from qpdash.ui.shared.utils.formatters import format_broker_text, format_funds, format_plan_text

SnapshotListener = Callable[[AccountSnapshot], None]


class AccountStateStore(LoggingMixin[BaseCallbacks]):
    """
    Holds the last-fetched profile and plan.

    Profile fetches are fail-soft: on failure the previous snapshot stays in
    place. Every successful update replaces the snapshot wholesale, pushes the
    header text to the view and notifies listeners.
    """

    def __init__(self, client: RemoteClientLike, view: DashboardView):
        self._client = client
        self._view = view
        self._snapshot: Optional[AccountSnapshot] = None
        self._plan: Optional[PlanInfo] = None
        self._funds: Optional[FundsSnapshot] = None
        self._listeners: list[SnapshotListener] = []
        self._callbacks = BaseCallbacks()

    def set_callbacks(
        self,
        on_error: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._callbacks = build_callbacks(BaseCallbacks, on_error=on_error, on_log=on_log)

    def subscribe(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def current(self) -> Optional[AccountSnapshot]:
        return self._snapshot

    @property
    def plan(self) -> Optional[PlanInfo]:
        return self._plan

    @property
    def funds(self) -> Optional[FundsSnapshot]:
        return self._funds

    @inlineCallbacks
    def fetch_profile(self):
        """Fetch and apply the profile; resolves to None when the fetch failed."""
        result = yield self._client.get("/user/profile")
        user = result.get("user") if result.ok else None
        if not isinstance(user, dict):
            if not result.session_expired:
                self._log(format_warning(f"Profile fetch failed: {result.error or 'missing user'}"))
            return None
        snapshot = AccountSnapshot.from_payload(user)
        self._replace(snapshot)
        if snapshot.broker_connected:
            yield self.refresh_funds()
        return snapshot

    @inlineCallbacks
    def refresh_profile(self):
        snapshot = yield self.fetch_profile()
        if snapshot is None:
            return self._snapshot
        return snapshot

    @inlineCallbacks
    def refresh_plan(self):
        result = yield self._client.get("/user/plan/status")
        if not result.ok:
            if not result.session_expired:
                self._log(format_warning(f"Plan status fetch failed: {result.error}"))
            return self._plan
        self._plan = PlanInfo.from_payload(result.data)
        self._push_header()
        return self._plan

    @inlineCallbacks
    def refresh_funds(self):
        result = yield self._client.get("/user/angel/funds")
        if not result.ok:
            self._funds = None
            self._view.update_funds(format_funds(None))
            return None
        self._funds = FundsSnapshot.from_payload(result.data)
        self._view.update_funds(format_funds(self._funds.available_margin))
        return self._funds

    def apply_provisional_angel(self, angel: AngelSettings) -> AccountSnapshot:
        """Apply broker state returned by a mutation before the next authoritative fetch."""
        base = self._snapshot or AccountSnapshot()
        snapshot = base.with_angel(angel)
        self._replace(snapshot)
        return snapshot

    def _replace(self, snapshot: AccountSnapshot) -> None:
        self._snapshot = snapshot
        self._plan = PlanInfo(plan=snapshot.plan, role=snapshot.role)
        self._push_header()
        for listener in list(self._listeners):
            listener(snapshot)

    def _push_header(self) -> None:
        self._view.update_header(
            format_broker_text(self._snapshot),
            format_plan_text(self._plan),
        )
