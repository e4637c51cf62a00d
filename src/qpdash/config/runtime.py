import os
from dataclasses import dataclass
from typing import Optional

from qpdash.config.paths import STATE_FILE


@dataclass(frozen=True)
class AppConfig:
    api_base_url: str
    state_file: str
    log_level: Optional[str]
    log_file: Optional[str]
    request_timeout: float
    link_poll_interval: float
    link_deadline: float
    link_settle_delay: float
    callback_uri: str
    refresh_interval: float
    callback_server_enabled: bool


def _get_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def load_config() -> AppConfig:
    return AppConfig(
        api_base_url=os.getenv("QP_API_BASE_URL", "http://127.0.0.1:3000").rstrip("/"),
        state_file=os.getenv("QP_STATE_FILE", STATE_FILE),
        log_level=os.getenv("LOG_LEVEL"),
        log_file=os.getenv("LOG_FILE"),
        request_timeout=_get_float_env("QP_REQUEST_TIMEOUT", 15.0),
        link_poll_interval=_get_float_env("ANGEL_LINK_POLL_INTERVAL", 4.0),
        link_deadline=_get_float_env("ANGEL_LINK_DEADLINE", 120.0),
        link_settle_delay=_get_float_env("ANGEL_LINK_SETTLE_DELAY", 0.3),
        callback_uri=os.getenv("ANGEL_CALLBACK_URI", "http://127.0.0.1:8765/angel/callback"),
        refresh_interval=_get_float_env("QP_REFRESH_INTERVAL", 30.0),
        callback_server_enabled=_get_bool_env("ANGEL_CALLBACK_SERVER", True),
    )
