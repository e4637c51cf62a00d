from enum import Enum, IntEnum
from typing import Optional

ANGEL_PROVIDER = "angel"
ANGEL_BROKER_NAME = "ANGEL"

ACCOUNT_VIEW = "account"
BROKER_SECTION = "broker"

SESSION_TOKEN_KEY = "qp_token"
PENDING_TOKENS_KEY = "angel_pending_tokens"
PENDING_TOKEN_ID_KEY = "angel_pending_token_id"


class Plan(str, Enum):
    """Subscription plan"""
    FREE = "Free"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    YEARLY = "Yearly"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Plan":
        text = str(value or "").strip().lower()
        for plan in cls:
            if plan.value.lower() == text:
                return plan
        # Legacy plan names from the trial/paid era.
        if text == "paid":
            return cls.MONTHLY
        return cls.FREE


class Role(str, Enum):
    USER = "User"
    ADMIN = "Admin"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        if str(value or "").strip().lower() == "admin":
            return cls.ADMIN
        return cls.USER


class LinkPhase(IntEnum):
    """Linking attempt state machine"""
    IDLE = 0
    WAITING = 1
    LINKED = 2
    FAILED = 3
    EXPIRED = 4

    @property
    def is_terminal(self) -> bool:
        return self in (LinkPhase.LINKED, LinkPhase.FAILED, LinkPhase.EXPIRED)


class LinkOutcome(Enum):
    IGNORED = "ignored"
    LINKED = "linked"
    FAILED = "failed"


class GuidanceState(Enum):
    NEED_ACCESS_AND_CONNECTION = "need_access_and_connection"
    NEED_ACCESS = "need_access"
    NEED_CONNECTION = "need_connection"
    ELIGIBLE = "eligible"
