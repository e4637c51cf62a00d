from typing import Optional

from qpdash.config.constants import GuidanceState, LinkPhase, Plan, Role
from qpdash.domain.accounts import AccountSnapshot, PlanInfo


GUIDANCE_MESSAGES = {
    GuidanceState.NEED_ACCESS_AND_CONNECTION: (
        "Upgrade your plan and connect your Angel account to use the trading engine."
    ),
    GuidanceState.NEED_ACCESS: "Upgrade your plan to use the trading engine.",
    GuidanceState.NEED_CONNECTION: "Connect your Angel account to use the trading engine.",
    GuidanceState.ELIGIBLE: "",
}


def format_broker_text(snapshot: Optional[AccountSnapshot]) -> str:
    if snapshot is None or not snapshot.broker.connected:
        return "Broker: Not Connected"
    return f"Broker: {snapshot.broker.broker_name or 'Broker Connected'}"


def format_plan_text(plan: Optional[PlanInfo]) -> str:
    if plan is None:
        return "Plan: --"
    if plan.role is Role.ADMIN:
        return f"Plan: {plan.plan.value} (Admin)"
    if plan.plan is Plan.FREE:
        return "Plan: Free (Upgrade Available)"
    return f"Plan: {plan.plan.value}"


def format_funds(available_margin: Optional[float]) -> str:
    if available_margin is None:
        return "Available margin: --"
    return f"Available margin: ₹{available_margin:,.2f}"


def format_guidance(state: GuidanceState) -> str:
    return GUIDANCE_MESSAGES.get(state, "")


def format_engine_status(enabled: bool) -> str:
    return "Trading Engine: 🟢 ON" if enabled else "Trading Engine: ⛔ OFF"


def format_link_phase(phase: Optional[LinkPhase]) -> str:
    if phase is None:
        return "Angel Link: ⛔ Idle"

    phase_map = {
        LinkPhase.IDLE: "⛔ Idle",
        LinkPhase.WAITING: "⏳ Waiting for Angel login...",
        LinkPhase.LINKED: "✅ Linked",
        LinkPhase.FAILED: "❌ Failed, try again",
        LinkPhase.EXPIRED: "⌛ Not completed, start linking again",
    }
    text = phase_map.get(phase, "❓ Unknown")
    return f"Angel Link: {text}"
