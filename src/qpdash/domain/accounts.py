from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from qpdash.config.constants import ANGEL_BROKER_NAME, Plan, Role


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def has_access(plan: Plan, role: Role) -> bool:
    """Paid-feature eligibility: any paid plan, or the admin role."""
    return plan is not Plan.FREE or role is Role.ADMIN


def _clamp_percent(value: Any) -> int:
    try:
        percent = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, percent))


@dataclass(frozen=True)
class BrokerInfo:
    connected: bool = False
    broker_name: Optional[str] = None
    client_id: Optional[str] = None

    @property
    def is_angel(self) -> bool:
        return self.connected and (self.broker_name or "").upper() == ANGEL_BROKER_NAME

    @classmethod
    def from_payload(cls, payload: Any) -> "BrokerInfo":
        data = _as_mapping(payload)
        return cls(
            connected=bool(data.get("connected")),
            broker_name=_optional_str(data.get("brokerName")),
            client_id=_optional_str(data.get("clientId")),
        )


@dataclass(frozen=True)
class AngelSettings:
    broker_connected: bool = False
    live_enabled: bool = False
    allowed_margin_percent: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "AngelSettings":
        data = _as_mapping(payload)
        percent = data.get("allowedMarginPercent")
        if percent is None and data.get("allowedMarginPct") is not None:
            try:
                percent = float(data["allowedMarginPct"]) * 100
            except (TypeError, ValueError):
                percent = None
        return cls(
            broker_connected=bool(data.get("brokerConnected")),
            live_enabled=bool(data.get("liveEnabled")),
            allowed_margin_percent=_clamp_percent(percent),
        )

    def merged(self, payload: Any) -> "AngelSettings":
        """Overlay only the keys present in a partial server payload."""
        data = _as_mapping(payload)
        changes: dict[str, Any] = {}
        if "brokerConnected" in data:
            changes["broker_connected"] = bool(data["brokerConnected"])
        if "liveEnabled" in data:
            changes["live_enabled"] = bool(data["liveEnabled"])
        if "allowedMarginPercent" in data or "allowedMarginPct" in data:
            changes["allowed_margin_percent"] = AngelSettings.from_payload(data).allowed_margin_percent
        return replace(self, **changes)


@dataclass(frozen=True)
class AccountSnapshot:
    """Local copy of the server profile at last fetch."""
    name: Optional[str] = None
    email: Optional[str] = None
    plan: Plan = Plan.FREE
    role: Role = Role.USER
    broker: BrokerInfo = field(default_factory=BrokerInfo)
    angel: AngelSettings = field(default_factory=AngelSettings)
    automation_enabled: bool = False
    provisional: bool = False

    @property
    def broker_connected(self) -> bool:
        return self.angel.broker_connected or self.broker.is_angel

    @classmethod
    def from_payload(cls, payload: Any) -> "AccountSnapshot":
        data = _as_mapping(payload)
        return cls(
            name=_optional_str(data.get("name")),
            email=_optional_str(data.get("email")),
            plan=Plan.parse(data.get("plan")),
            role=Role.parse(data.get("role")),
            broker=BrokerInfo.from_payload(data.get("broker")),
            angel=AngelSettings.from_payload(data.get("angel")),
            automation_enabled=bool(data.get("autoTradingEnabled")),
        )

    def with_angel(self, angel: AngelSettings) -> "AccountSnapshot":
        """Provisional copy carrying broker state returned by a linking call."""
        broker = self.broker
        if angel.broker_connected:
            broker = replace(broker, connected=True, broker_name=ANGEL_BROKER_NAME)
        return replace(self, angel=angel, broker=broker, provisional=True)


@dataclass(frozen=True)
class PlanInfo:
    plan: Plan = Plan.FREE
    role: Role = Role.USER

    @property
    def has_access(self) -> bool:
        return has_access(self.plan, self.role)

    @classmethod
    def from_payload(cls, payload: Any) -> "PlanInfo":
        data = _as_mapping(payload)
        return cls(plan=Plan.parse(data.get("plan")), role=Role.parse(data.get("role")))


@dataclass(frozen=True)
class FundsSnapshot:
    available_margin: Optional[float] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "FundsSnapshot":
        data = _as_mapping(payload)
        try:
            margin = float(data["availableMargin"])
        except (KeyError, TypeError, ValueError):
            margin = None
        return cls(available_margin=margin)
