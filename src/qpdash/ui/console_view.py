from __future__ import annotations

import logging
from typing import Optional

from qpdash.config.constants import LinkPhase
from qpdash.ui.shared.utils.formatters import format_engine_status, format_link_phase

logger = logging.getLogger(__name__)


class ConsoleDashboardView:
    """Dashboard view for the CLI: every UI update becomes a log line."""

    def __init__(self) -> None:
        self.redirected = False
        self.current_view: Optional[str] = None
        self.phase: LinkPhase = LinkPhase.IDLE

    def show_alert(self, message: str) -> None:
        logger.warning("⚠️ %s", message)

    def show_confirmation(self, message: str) -> None:
        logger.info("✅ %s", message)

    def redirect_to_login(self) -> None:
        self.redirected = True
        logger.warning("🔒 Session expired. Run `qpdash login --token ...` to sign in again.")

    def switch_view(self, name: str) -> None:
        self.current_view = name
        logger.debug("view -> %s", name)

    def scroll_to(self, section: str) -> None:
        logger.debug("scroll -> %s", section)

    def update_header(self, broker_text: str, plan_text: str) -> None:
        logger.info("%s | %s", broker_text, plan_text)

    def update_funds(self, text: str) -> None:
        logger.info(text)

    def update_engine(self, decision) -> None:
        logger.info(
            "%s | clickable=%s | guidance=%s",
            format_engine_status(decision.enabled),
            decision.clickable,
            decision.guidance.value,
        )

    def update_link_phase(self, phase: LinkPhase, message: Optional[str] = None) -> None:
        self.phase = phase
        text = format_link_phase(phase)
        if message:
            text = f"{text} ({message})"
        logger.info(text)
