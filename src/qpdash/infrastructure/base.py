"""
Shared callback containers and mixins for dashboard services.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Generic, Optional, Protocol, TypeVar, runtime_checkable


TCb = TypeVar("TCb", bound="LoggingCallbacks")
TCallbacks = TypeVar("TCallbacks", bound="BaseCallbacks")

logger = logging.getLogger(__name__)


@runtime_checkable
class LoggingCallbacks(Protocol):
    on_error: Optional[Callable[[str], None]]
    on_log: Optional[Callable[[str], None]]


@dataclass
class BaseCallbacks:
    on_error: Optional[Callable[[str], None]] = None
    on_log: Optional[Callable[[str], None]] = None


def build_callbacks(callback_cls: type[TCallbacks], **kwargs) -> TCallbacks:
    return callback_cls(**kwargs)


class LoggingMixin(Generic[TCb]):
    """
    Log and error emission for services.
    Classes using this mixin must define a `_callbacks` attribute.
    """

    _callbacks: TCb

    def _log(self, message: str) -> None:
        cb = getattr(self, "_callbacks", None)
        if cb and cb.on_log:
            cb.on_log(message)
        else:
            logger.info(message)

    def _emit_error(self, error: str) -> None:
        self._log(f"❌ {error}")
        cb = getattr(self, "_callbacks", None)
        if cb and cb.on_error:
            cb.on_error(error)


class OperationStateMixin:
    """Tracks whether a long-running operation is in flight (prevents double triggers)."""

    _in_progress: bool = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def _start_operation(self) -> bool:
        if self._in_progress:
            return False
        self._in_progress = True
        return True

    def _end_operation(self) -> None:
        self._in_progress = False
