"""Domain models package."""

from qpdash.domain.accounts import (
    AccountSnapshot,
    AngelSettings,
    BrokerInfo,
    FundsSnapshot,
    PlanInfo,
)
from qpdash.domain.linking import BrokerTokens, LinkMessage

__all__ = [
    "AccountSnapshot",
    "AngelSettings",
    "BrokerInfo",
    "BrokerTokens",
    "FundsSnapshot",
    "LinkMessage",
    "PlanInfo",
]
