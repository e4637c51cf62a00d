from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QObject, Signal

from qpdash.config.constants import LinkPhase
from qpdash.ui.shared.utils.formatters import format_engine_status, format_link_phase


class QtDashboardView(QObject):
    """
    Dashboard view that re-emits every update as a Qt signal.

    Signals cross from the reactor thread to the GUI thread through Qt's
    queued connections; widgets connect to them and never call the core.
    """

    alertRequested = Signal(str)
    confirmationRequested = Signal(str)
    loginRequested = Signal()
    viewRequested = Signal(str)
    scrollRequested = Signal(str)
    headerUpdated = Signal(str, str)
    fundsUpdated = Signal(str)
    engineUpdated = Signal(object)
    engineStatusUpdated = Signal(str, bool)
    linkPhaseChanged = Signal(int, str)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)

    def show_alert(self, message: str) -> None:
        self.alertRequested.emit(message)

    def show_confirmation(self, message: str) -> None:
        self.confirmationRequested.emit(message)

    def redirect_to_login(self) -> None:
        self.loginRequested.emit()

    def switch_view(self, name: str) -> None:
        self.viewRequested.emit(name)

    def scroll_to(self, section: str) -> None:
        self.scrollRequested.emit(section)

    def update_header(self, broker_text: str, plan_text: str) -> None:
        self.headerUpdated.emit(broker_text, plan_text)

    def update_funds(self, text: str) -> None:
        self.fundsUpdated.emit(text)

    def update_engine(self, decision) -> None:
        self.engineUpdated.emit(decision)
        self.engineStatusUpdated.emit(format_engine_status(decision.enabled), decision.clickable)

    def update_link_phase(self, phase: LinkPhase, message: Optional[str] = None) -> None:
        text = format_link_phase(phase)
        if message:
            text = f"{text} ({message})"
        self.linkPhaseChanged.emit(int(phase), text)
