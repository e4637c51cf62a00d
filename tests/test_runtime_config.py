from __future__ import annotations

from qpdash.config.runtime import load_config

_ENV = (
    "QP_API_BASE_URL",
    "QP_STATE_FILE",
    "QP_REQUEST_TIMEOUT",
    "ANGEL_LINK_POLL_INTERVAL",
    "ANGEL_LINK_DEADLINE",
    "ANGEL_LINK_SETTLE_DELAY",
    "ANGEL_CALLBACK_URI",
    "ANGEL_CALLBACK_SERVER",
    "QP_REFRESH_INTERVAL",
)


def test_defaults(monkeypatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)

    config = load_config()

    assert config.request_timeout == 15.0
    assert config.link_poll_interval == 4.0
    assert config.link_deadline == 120.0
    assert config.link_settle_delay == 0.3
    assert config.callback_uri == "http://127.0.0.1:8765/angel/callback"
    assert config.callback_server_enabled is True


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("QP_API_BASE_URL", "https://api.example.com/")
    monkeypatch.setenv("ANGEL_LINK_DEADLINE", "60")
    monkeypatch.setenv("ANGEL_CALLBACK_SERVER", "off")
    monkeypatch.setenv("QP_STATE_FILE", "/tmp/qp-state.json")

    config = load_config()

    assert config.api_base_url == "https://api.example.com"
    assert config.link_deadline == 60.0
    assert config.callback_server_enabled is False
    assert config.state_file == "/tmp/qp-state.json"


def test_invalid_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("ANGEL_LINK_POLL_INTERVAL", "fast")

    assert load_config().link_poll_interval == 4.0
