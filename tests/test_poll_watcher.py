from __future__ import annotations

from twisted.internet import defer

from qpdash.application.linking.resolver import LINKED_MESSAGE
from qpdash.config.constants import LinkPhase

from dashboard_fakes import FakeClient, LinkingHarness, fail, profile


def _advance_ticks(h: LinkingHarness, ticks: int) -> None:
    for _ in range(ticks):
        h.clock.advance(4)


def test_polls_every_interval_without_immediate_fetch() -> None:
    h = LinkingHarness(FakeClient().on("/user/profile", profile()))
    h.context.begin()
    h.watcher.start()

    assert h.client.paths() == []
    h.clock.advance(3)
    assert h.client.paths() == []
    h.clock.advance(1)
    assert h.client.paths() == ["/user/profile"]
    h.clock.advance(4)
    assert h.client.paths() == ["/user/profile", "/user/profile"]


def test_detects_angel_broker_case_insensitively_and_acknowledges() -> None:
    client = FakeClient().on("/user/profile", profile(), profile(connected=True, broker_name="angel"))
    h = LinkingHarness(client)
    h.context.begin()
    h.watcher.start()

    _advance_ticks(h, 2)
    h.settle()

    assert not h.watcher.running
    assert h.context.attempt.phase is LinkPhase.LINKED
    assert h.view.confirmations == [LINKED_MESSAGE]


def test_other_broker_is_not_treated_as_linked() -> None:
    h = LinkingHarness(FakeClient().on("/user/profile", profile(connected=True, broker_name="ZERODHA")))
    h.context.begin()
    h.watcher.start()

    _advance_ticks(h, 3)

    assert h.watcher.running
    assert h.view.confirmations == []


def test_deadline_stops_polling_silently() -> None:
    h = LinkingHarness(FakeClient().on("/user/profile", profile()))
    h.context.begin()
    h.watcher.start()

    _advance_ticks(h, 30)

    assert not h.watcher.running
    assert h.context.attempt.phase is LinkPhase.EXPIRED
    assert h.view.alerts == []
    fetches = len(h.client.calls)

    h.client.routes["/user/profile"].clear()
    h.client.on("/user/profile", profile(connected=True, broker_name="ANGEL"))
    _advance_ticks(h, 5)
    assert len(h.client.calls) == fetches
    assert h.view.confirmations == []


def test_response_arriving_after_deadline_is_not_acknowledged() -> None:
    late = defer.Deferred()
    client = FakeClient().on("/user/profile", *([profile()] * 28), late)
    h = LinkingHarness(client)
    h.context.begin()
    h.watcher.start()

    _advance_ticks(h, 29)
    h.clock.advance(4)
    late.callback(profile(connected=True, broker_name="ANGEL"))
    h.settle()

    assert h.context.attempt.phase is LinkPhase.EXPIRED
    assert h.view.confirmations == []


def test_fetch_failures_do_not_stop_polling() -> None:
    client = FakeClient().on(
        "/user/profile",
        fail("server down", status=500),
        defer.fail(RuntimeError("connection reset")),
        profile(connected=True, broker_name="ANGEL"),
    )
    h = LinkingHarness(client)
    h.context.begin()
    h.watcher.start()

    _advance_ticks(h, 2)
    assert h.watcher.running

    _advance_ticks(h, 1)
    h.settle()
    assert h.view.confirmations == [LINKED_MESSAGE]


def test_restart_keeps_a_single_timer() -> None:
    h = LinkingHarness(FakeClient().on("/user/profile", profile()))
    h.context.begin()
    h.watcher.start()
    h.watcher.start()

    h.clock.advance(4)

    assert h.client.paths() == ["/user/profile"]


def test_superseded_attempt_stops_its_poller() -> None:
    h = LinkingHarness(FakeClient().on("/user/profile", profile()))
    h.context.begin()
    h.watcher.start()

    h.context.begin()
    h.clock.advance(4)

    assert not h.watcher.running
    assert h.client.paths() == []
