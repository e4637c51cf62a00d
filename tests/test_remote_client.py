from __future__ import annotations

import json

import pytest
from twisted.internet import defer
from twisted.internet.task import Clock

from qpdash.infrastructure.api import client as client_module
from qpdash.infrastructure.api.client import RemoteClient
from qpdash.infrastructure.api.session import SessionStore
from qpdash.infrastructure.errors import ErrorCode
from qpdash.infrastructure.storage.kv_store import MemoryKeyValueStore

from dashboard_fakes import result_of


class _Response:
    def __init__(self, code: int, body: bytes) -> None:
        self.code = code
        self.body = body


class _Agent:
    def __init__(self, *responses) -> None:
        self._responses = list(responses)
        self.requests: list[tuple[bytes, bytes, object, object]] = []

    def request(self, method, uri, headers=None, bodyProducer=None):
        self.requests.append((method, uri, headers, bodyProducer))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            return defer.fail(response)
        if isinstance(response, defer.Deferred):
            return response
        return defer.succeed(response)


@pytest.fixture(autouse=True)
def _read_body(monkeypatch):
    monkeypatch.setattr(client_module, "readBody", lambda response: defer.succeed(response.body))


def _make_client(*responses, token="tok-1"):
    session = SessionStore(MemoryKeyValueStore({"qp_token": token} if token else {}))
    agent = _Agent(*responses)
    clock = Clock()
    client = RemoteClient("https://api.example.com/", session, reactor=clock, agent=agent, timeout=5.0)
    redirects: list[int] = []
    client.set_callbacks(on_session_expired=lambda: redirects.append(1))
    return client, agent, session, redirects, clock


def _json(payload) -> bytes:
    return json.dumps(payload).encode("utf-8")


def test_get_attaches_bearer_and_returns_payload() -> None:
    client, agent, _, _, _ = _make_client(_Response(200, _json({"ok": True, "url": "https://x"})))

    result = result_of(client.get("/user/angel/login-link"))

    assert result.ok is True
    assert result.get("url") == "https://x"
    method, uri, headers, producer = agent.requests[0]
    assert method == b"GET"
    assert uri == b"https://api.example.com/user/angel/login-link"
    assert headers.getRawHeaders(b"authorization") == [b"Bearer tok-1"]
    assert producer is None


def test_post_sends_json_body() -> None:
    client, agent, _, _, _ = _make_client(_Response(200, _json({"ok": True})))

    result = result_of(client.post("/user/broker/automation", {"enable": True}))

    assert result.ok is True
    _, _, headers, producer = agent.requests[0]
    assert headers.getRawHeaders(b"content-type") == [b"application/json"]
    assert producer is not None


def test_unauthorized_clears_credential_and_redirects_once() -> None:
    client, _, session, redirects, _ = _make_client(_Response(401, _json({"ok": False})))

    result = result_of(client.get("/user/profile"))

    assert result.ok is False
    assert result.session_expired is True
    assert result.user_error("ignored") is None
    assert session.token is None
    assert redirects == [1]


def test_call_without_credential_redirects_without_network() -> None:
    client, agent, _, redirects, _ = _make_client(token=None)

    first = result_of(client.get("/user/profile"))
    second = result_of(client.post("/user/angel/settings", {"liveEnabled": True}))

    assert first.session_expired and second.session_expired
    assert agent.requests == []
    assert redirects == [1, 1]


def test_http_error_is_returned_as_structured_result() -> None:
    client, _, session, redirects, _ = _make_client(
        _Response(400, _json({"ok": False, "error": "Connect Angel broker first"}))
    )

    result = result_of(client.post("/user/angel/settings", {"liveEnabled": True}))

    assert result.ok is False
    assert result.status == 400
    assert result.error == "Connect Angel broker first"
    assert result.code is ErrorCode.VALIDATION
    assert session.token == "tok-1"
    assert redirects == []


def test_ok_false_body_with_200_is_failure() -> None:
    client, _, _, _, _ = _make_client(_Response(200, _json({"ok": False, "availableMargin": 0})))

    result = result_of(client.get("/user/angel/funds"))

    assert result.ok is False
    assert result.user_error("Funds unavailable") == "Funds unavailable"


def test_network_error_and_invalid_json_do_not_raise() -> None:
    client, _, _, _, _ = _make_client(ConnectionRefusedError("refused"), _Response(200, b"<html>"))

    network = result_of(client.get("/user/profile"))
    invalid = result_of(client.get("/user/profile"))

    assert network.ok is False and "NETWORK" in network.error
    assert invalid.ok is False and "PROVIDER" in invalid.error
    assert network.code is ErrorCode.NETWORK
    assert invalid.code is ErrorCode.PROVIDER


def test_request_times_out_on_clock() -> None:
    client, _, _, _, clock = _make_client(defer.Deferred())

    d = client.get("/user/profile")
    clock.advance(5.0)

    result = result_of(d)
    assert result.ok is False
    assert "TIMEOUT" in result.error


def test_server_error_is_classified_as_provider_failure() -> None:
    client, _, _, _, _ = _make_client(_Response(502, b""))

    result = result_of(client.get("/user/angel/funds"))

    assert result.ok is False
    assert result.code is ErrorCode.PROVIDER
    assert result.error == "HTTP 502"
