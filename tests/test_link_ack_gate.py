from __future__ import annotations

from qpdash.config.constants import ACCOUNT_VIEW, BROKER_SECTION, LinkPhase

from dashboard_fakes import FakeClient, LinkingHarness, profile, result_of


def _harness() -> LinkingHarness:
    client = FakeClient().on("/user/profile", profile(connected=True, broker_name="ANGEL"))
    return LinkingHarness(client)


def test_first_acknowledgment_wins_and_second_is_noop() -> None:
    h = _harness()
    attempt = h.context.begin()

    first = h.gate.acknowledge("linked", attempt.attempt_id)
    second = h.gate.acknowledge("linked again", attempt.attempt_id)

    assert result_of(second) is False
    h.settle()
    assert result_of(first) is True
    assert h.view.confirmations == ["linked"]
    assert h.view.views == [ACCOUNT_VIEW]
    assert h.view.scrolls == [BROKER_SECTION]
    assert h.context.attempt.phase is LinkPhase.LINKED


def test_scroll_and_confirmation_wait_for_settle_delay() -> None:
    h = _harness()
    h.context.begin()

    h.gate.acknowledge("linked")
    assert h.view.views == [ACCOUNT_VIEW]
    assert h.view.scrolls == []
    assert h.view.confirmations == []

    h.clock.advance(0.29)
    assert h.view.scrolls == []
    h.clock.advance(0.01)
    assert h.view.scrolls == [BROKER_SECTION]


def test_acknowledgment_stops_polling() -> None:
    h = _harness()
    h.context.begin()
    h.watcher.start()
    assert h.watcher.running

    h.gate.acknowledge("linked")
    h.settle()

    assert not h.watcher.running
    assert h.context.attempt.in_progress is False


def test_new_attempt_resets_the_gate() -> None:
    h = _harness()
    first = h.context.begin()
    h.gate.acknowledge("linked", first.attempt_id)
    h.settle()

    second = h.context.begin()
    d = h.gate.acknowledge("linked", second.attempt_id)
    h.settle()

    assert result_of(d) is True
    assert h.view.confirmations == ["linked", "linked"]


def test_acknowledgment_from_superseded_attempt_is_ignored() -> None:
    h = _harness()
    stale = h.context.begin()
    h.context.begin()

    assert result_of(h.gate.acknowledge("linked", stale.attempt_id)) is False
    assert h.view.confirmations == []
    assert h.context.attempt.acknowledged is False
    assert h.context.attempt.phase is LinkPhase.WAITING


def test_listeners_hear_only_the_finished_winning_acknowledgment() -> None:
    h = _harness()
    heard: list[str] = []
    h.gate.subscribe(heard.append)
    attempt = h.context.begin()

    h.gate.acknowledge("linked", attempt.attempt_id)
    h.gate.acknowledge("linked again", attempt.attempt_id)
    assert heard == []

    h.settle()
    assert heard == ["linked"]
    assert h.view.confirmations == ["linked"]
