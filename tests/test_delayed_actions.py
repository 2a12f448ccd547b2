"""
Tests for QtDelayedActions - named, replaceable single-shot timers.
"""

from PyQt6.QtTest import QTest

from shared.delayed_actions import QtDelayedActions


def test_action_runs_after_delay():
    actions = QtDelayedActions()
    calls = []

    actions.start_delayed_action("reload", lambda: calls.append("reload"), 10)
    assert actions.is_pending("reload")
    assert calls == []

    QTest.qWait(100)

    assert calls == ["reload"]
    assert not actions.is_pending("reload")


def test_same_name_replaces_pending_action():
    actions = QtDelayedActions()
    calls = []

    actions.start_delayed_action("reload", lambda: calls.append("first"), 10)
    actions.start_delayed_action("reload", lambda: calls.append("second"), 10)
    QTest.qWait(100)

    assert calls == ["second"]


def test_names_are_independent():
    actions = QtDelayedActions()
    calls = []

    actions.start_delayed_action("reload", lambda: calls.append("reload"), 10)
    actions.start_delayed_action("renamed", lambda: calls.append("renamed"), 1)
    QTest.qWait(100)

    assert sorted(calls) == ["reload", "renamed"]


def test_cancel():
    actions = QtDelayedActions()
    calls = []

    actions.start_delayed_action("reload", lambda: calls.append("reload"), 10)
    assert actions.cancel_delayed_action("reload") is True
    assert actions.cancel_delayed_action("reload") is False
    QTest.qWait(50)

    assert calls == []


def test_cancel_all():
    actions = QtDelayedActions()
    calls = []

    actions.start_delayed_action("a", lambda: calls.append("a"), 10)
    actions.start_delayed_action("b", lambda: calls.append("b"), 10)
    actions.cancel_all()
    QTest.qWait(50)

    assert calls == []


def test_failing_callback_is_isolated():
    actions = QtDelayedActions()
    fired = []
    actions.action_fired.connect(fired.append)

    def broken():
        raise RuntimeError("boom")

    actions.start_delayed_action("broken", broken, 1)
    actions.start_delayed_action("ok", lambda: None, 5)
    QTest.qWait(100)

    assert sorted(fired) == ["broken", "ok"]
