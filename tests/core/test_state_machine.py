import pytest
from telco.core.state_machine import (
    Event,
    Outcome,
    TerminalState,
    can_end,
    can_start,
    parse_state,
    transition,
)

OFF, IDLE, BUSY, SILENT = TerminalState.OFF, TerminalState.IDLE, TerminalState.BUSY, TerminalState.SILENT


@pytest.mark.parametrize("state,expected", [(OFF, False), (IDLE, True), (BUSY, False), (SILENT, False)])
def test_can_start_only_when_idle(state, expected):
    assert can_start(state) is expected


def test_can_end_requires_busy_and_originator():
    assert can_end(BUSY, is_originator=True) is True
    assert can_end(BUSY, is_originator=False) is False
    for state in (OFF, IDLE, SILENT):
        assert can_end(state, is_originator=True) is False


def test_can_end_permissive_mode_ignores_originator():
    assert can_end(BUSY, is_originator=False, require_originator=False) is True
    assert can_end(IDLE, is_originator=False, require_originator=False) is False


@pytest.mark.parametrize("event,target", [
    (Event.TURN_OFF, OFF),
    (Event.SET_IDLE, IDLE),
    (Event.SET_BUSY, BUSY),
    (Event.SET_SILENT, SILENT),
])
def test_commands_are_idempotent(event, target):
    t = transition(target, event)
    assert t.state is target
    assert t.outcome is Outcome.NOOP
    assert t.ok


def test_command_moves_to_target():
    t = transition(IDLE, Event.SET_SILENT)
    assert t.state is SILENT
    assert t.outcome is Outcome.ACCEPTED


@pytest.mark.parametrize("state,outcome", [
    (OFF, Outcome.REJECTED_OFF),
    (BUSY, Outcome.REJECTED_BUSY),
    (SILENT, Outcome.REJECTED_SILENT),
])
def test_receive_interactive_refusals_keep_state(state, outcome):
    t = transition(state, Event.RECEIVE_INTERACTIVE)
    assert t.state is state
    assert t.outcome is outcome
    assert not t.ok


def test_receive_interactive_from_idle_goes_busy():
    t = transition(IDLE, Event.RECEIVE_INTERACTIVE)
    assert t.state is BUSY
    assert t.ok


def test_receive_text_only_refused_when_off():
    assert transition(OFF, Event.RECEIVE_TEXT).outcome is Outcome.REJECTED_OFF
    for state in (IDLE, BUSY, SILENT):
        t = transition(state, Event.RECEIVE_TEXT)
        assert t.ok
        assert t.state is state


def test_start_interactive_forces_busy_from_idle_only():
    assert transition(IDLE, Event.START_INTERACTIVE).state is BUSY
    for state in (OFF, BUSY, SILENT):
        t = transition(state, Event.START_INTERACTIVE)
        assert t.outcome is Outcome.INVALID
        assert t.state is state


def test_end_current_returns_to_idle():
    t = transition(BUSY, Event.END_CURRENT, is_originator=True)
    assert t.state is IDLE
    assert t.ok
    assert transition(BUSY, Event.END_CURRENT, is_originator=False).outcome is Outcome.INVALID


def test_release_only_from_busy():
    assert transition(BUSY, Event.RELEASE).state is IDLE
    assert transition(IDLE, Event.RELEASE).outcome is Outcome.INVALID


def test_parse_state_aliases_and_case():
    assert parse_state("silence") is SILENT
    assert parse_state(" idle ") is IDLE
    with pytest.raises(ValueError):
        parse_state("ASLEEP")
