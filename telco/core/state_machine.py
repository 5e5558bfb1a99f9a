from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TerminalState(str, Enum):
    # Powered down: cannot start, refuses everything incoming
    OFF = "OFF"

    # Available: may start, accepts interactive (-> BUSY) and text
    IDLE = "IDLE"

    # In an interactive communication: refuses interactive, still takes text
    BUSY = "BUSY"

    # Do-not-disturb: refuses interactive, still takes text
    SILENT = "SILENT"


class Event(str, Enum):
    TURN_OFF = "TURN_OFF"
    SET_IDLE = "SET_IDLE"
    SET_BUSY = "SET_BUSY"
    SET_SILENT = "SET_SILENT"
    START_INTERACTIVE = "START_INTERACTIVE"
    RECEIVE_INTERACTIVE = "RECEIVE_INTERACTIVE"
    SEND_TEXT = "SEND_TEXT"
    RECEIVE_TEXT = "RECEIVE_TEXT"
    END_CURRENT = "END_CURRENT"
    # Destination side of an ended interactive communication
    RELEASE = "RELEASE"


class Outcome(str, Enum):
    ACCEPTED = "ACCEPTED"
    NOOP = "NOOP"
    REJECTED_OFF = "REJECTED_OFF"
    REJECTED_BUSY = "REJECTED_BUSY"
    REJECTED_SILENT = "REJECTED_SILENT"
    INVALID = "INVALID"


@dataclass(frozen=True)
class Transition:
    state: TerminalState
    outcome: Outcome

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.ACCEPTED, Outcome.NOOP)


COMMAND_TARGETS = {
    Event.TURN_OFF: TerminalState.OFF,
    Event.SET_IDLE: TerminalState.IDLE,
    Event.SET_BUSY: TerminalState.BUSY,
    Event.SET_SILENT: TerminalState.SILENT,
}

_INTERACTIVE_REFUSALS = {
    TerminalState.OFF: Outcome.REJECTED_OFF,
    TerminalState.BUSY: Outcome.REJECTED_BUSY,
    TerminalState.SILENT: Outcome.REJECTED_SILENT,
}


def can_start(state: TerminalState) -> bool:
    return state is TerminalState.IDLE


def can_end(state: TerminalState, is_originator: bool, require_originator: bool = True) -> bool:
    if state is not TerminalState.BUSY:
        return False
    return is_originator or not require_originator


def transition(
    state: TerminalState,
    event: Event,
    *,
    is_originator: bool = False,
    require_originator: bool = True,
) -> Transition:
    """
    Pure transition function: never mutates anything, only tells the caller
    which state comes next and whether the event was legal.
    A rejected or invalid event always returns the unchanged state.
    """
    if event in COMMAND_TARGETS:
        target = COMMAND_TARGETS[event]
        if target is state:
            return Transition(state, Outcome.NOOP)
        return Transition(target, Outcome.ACCEPTED)

    if event is Event.START_INTERACTIVE:
        if not can_start(state):
            return Transition(state, Outcome.INVALID)
        return Transition(TerminalState.BUSY, Outcome.ACCEPTED)

    if event is Event.RECEIVE_INTERACTIVE:
        refusal = _INTERACTIVE_REFUSALS.get(state)
        if refusal is not None:
            return Transition(state, refusal)
        return Transition(TerminalState.BUSY, Outcome.ACCEPTED)

    if event is Event.SEND_TEXT:
        return Transition(state, Outcome.ACCEPTED)

    if event is Event.RECEIVE_TEXT:
        if state is TerminalState.OFF:
            return Transition(state, Outcome.REJECTED_OFF)
        return Transition(state, Outcome.ACCEPTED)

    if event is Event.END_CURRENT:
        if not can_end(state, is_originator, require_originator):
            return Transition(state, Outcome.INVALID)
        return Transition(TerminalState.IDLE, Outcome.ACCEPTED)

    if event is Event.RELEASE:
        if state is not TerminalState.BUSY:
            return Transition(state, Outcome.INVALID)
        return Transition(TerminalState.IDLE, Outcome.ACCEPTED)

    return Transition(state, Outcome.INVALID)


def parse_state(name: str) -> TerminalState:
    """Accepts state names case-insensitively; "SILENCE" is an alias of SILENT."""
    normalized = (name or "").strip().upper()
    if normalized == "SILENCE":
        normalized = "SILENT"
    return TerminalState(normalized)
