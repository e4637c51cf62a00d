import logging
import os
from typing import Optional

from twisted.python import log as twisted_log

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_twisted_observer: Optional[twisted_log.PythonLoggingObserver] = None


def _resolve_level(level: Optional[int], level_name: Optional[str]) -> int:
    if level is not None:
        return level
    name = (level_name or os.getenv("LOG_LEVEL") or "INFO").upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(
    level: Optional[int] = None,
    level_name: Optional[str] = None,
    log_file: Optional[str] = None,
    *,
    bridge_twisted: bool = True,
) -> None:
    """
    Configure root logging for the dashboard process.

    Twisted's own log events (unhandled Deferred errors, listener start/stop)
    are forwarded to the `twisted` stdlib logger when `bridge_twisted` is set.
    """
    global _twisted_observer

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    target = log_file or os.getenv("LOG_FILE")
    if target:
        handlers.append(logging.FileHandler(target, encoding="utf-8"))

    logging.basicConfig(
        level=_resolve_level(level, level_name),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    if bridge_twisted and _twisted_observer is None:
        _twisted_observer = twisted_log.PythonLoggingObserver(loggerName="twisted")
        _twisted_observer.start()
