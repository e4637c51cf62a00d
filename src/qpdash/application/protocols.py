from __future__ import annotations

from typing import Any, Optional, Protocol

from twisted.internet.defer import Deferred

from qpdash.config.constants import LinkPhase


class DashboardView(Protocol):
    """Everything the dashboard core asks of the presentation layer."""

    def show_alert(self, message: str) -> None:
        ...

    def show_confirmation(self, message: str) -> None:
        ...

    def redirect_to_login(self) -> None:
        ...

    def switch_view(self, name: str) -> None:
        ...

    def scroll_to(self, section: str) -> None:
        ...

    def update_header(self, broker_text: str, plan_text: str) -> None:
        ...

    def update_funds(self, text: str) -> None:
        ...

    def update_engine(self, decision: Any) -> None:
        ...

    def update_link_phase(self, phase: LinkPhase, message: Optional[str] = None) -> None:
        ...


class RemoteClientLike(Protocol):
    def get(self, path: str) -> Deferred:
        ...

    def post(self, path: str, body: Optional[dict] = None) -> Deferred:
        ...


class PopupLauncher(Protocol):
    def open(self, url: str) -> bool:
        ...
