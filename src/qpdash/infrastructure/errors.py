from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    VALIDATION = "VALIDATION"
    TIMEOUT = "TIMEOUT"
    AUTH = "AUTH"
    NETWORK = "NETWORK"
    PROVIDER = "PROVIDER"
    POPUP_BLOCKED = "POPUP_BLOCKED"


@dataclass(frozen=True)
class DashboardError:
    """Failure raised locally or reported by the dashboard backend."""
    code: ErrorCode
    message: str
    detail: Optional[str] = None

    def __str__(self) -> str:
        suffix = f" ({self.detail})" if self.detail else ""
        return f"[{self.code.value}] {self.message}{suffix}"


def code_for_status(status: int) -> ErrorCode:
    """Classify a non-2xx backend status."""
    if status in (401, 403):
        return ErrorCode.AUTH
    if status in (408, 504):
        return ErrorCode.TIMEOUT
    if status >= 500:
        return ErrorCode.PROVIDER
    return ErrorCode.VALIDATION


def error_message(code: ErrorCode, message: str, detail: Optional[str] = None) -> str:
    return str(DashboardError(code=code, message=message, detail=detail))
