"""
Terminals
---------
A Terminal stores only its state tag; every legality decision is delegated to
the pure `transition()` function in state_machine. Failed checks raise before
anything on the terminal is touched.

The owning client is held by key. Whenever a cost is needed the caller (the
Network) resolves the client and passes its price table in.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, FrozenSet, Optional, Set, Tuple, Type

from telco.core import state_machine as sm
from telco.core.communication import Communication, CommunicationKind, round_half_up
from telco.core.errors import (
    InvalidArgumentError,
    InvalidStateError,
    TargetBusyError,
    TargetOffError,
    TargetSilentError,
)
from telco.core.price_table import PriceTable
from telco.core.state_machine import Event, Outcome, TerminalState
from telco.settings import settings

KEY_LENGTH = 6

_REFUSAL_ERRORS = {
    Outcome.REJECTED_OFF: TargetOffError,
    Outcome.REJECTED_BUSY: TargetBusyError,
    Outcome.REJECTED_SILENT: TargetSilentError,
}


def check_key(key: str) -> str:
    """Exactly six ASCII digits."""
    if not isinstance(key, str) or len(key) != KEY_LENGTH:
        raise InvalidArgumentError(f"terminal key must have {KEY_LENGTH} digits: {key!r}")
    # str.isdigit() accepts non-ASCII digits like '٣'
    if not all("0" <= ch <= "9" for ch in key):
        raise InvalidArgumentError(f"terminal key must be numeric: {key!r}")
    return key


class Terminal:
    TYPE_NAME = "TERMINAL"
    SUPPORTED_KINDS: FrozenSet[CommunicationKind] = frozenset(CommunicationKind)

    def __init__(self, key: str, client_key: str):
        self._key = check_key(key)
        self._client_key = client_key
        self._state = TerminalState.IDLE
        self._friends: Set[str] = set()
        self._communications: Dict[int, Communication] = {}
        self._ongoing: Optional[Communication] = None
        self._active = False
        self._total_paid = 0.0
        self._debt = 0.0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self._key!r}, state={self._state.value})"

    # --- read-only accessors -------------------------------------------------

    @property
    def key(self) -> str:
        return self._key

    @property
    def client_key(self) -> str:
        return self._client_key

    @property
    def type_name(self) -> str:
        return self.TYPE_NAME

    @property
    def state(self) -> TerminalState:
        return self._state

    @property
    def state_name(self) -> str:
        return self._state.value

    @property
    def total_paid(self) -> float:
        return self._total_paid

    @property
    def debt(self) -> float:
        return self._debt

    @property
    def balance(self) -> float:
        return self._total_paid - self._debt

    @property
    def friend_keys(self) -> Tuple[str, ...]:
        return tuple(sorted(self._friends))

    @property
    def ongoing(self) -> Optional[Communication]:
        return self._ongoing

    @property
    def communications(self) -> Tuple[Communication, ...]:
        return tuple(self._communications[k] for k in sorted(self._communications))

    def get_communication(self, key: int) -> Communication:
        try:
            return self._communications[key]
        except KeyError:
            raise InvalidArgumentError(f"terminal {self._key} has no communication {key}") from None

    def has_activity(self) -> bool:
        return self._active

    def has_ongoing_communication(self) -> bool:
        return self._ongoing is not None

    def is_friend(self, key: str) -> bool:
        return key in self._friends

    def supports(self, kind: CommunicationKind) -> bool:
        return kind in self.SUPPORTED_KINDS

    def is_originator_of_ongoing(self) -> bool:
        return self._ongoing is not None and self._ongoing.origin == self._key

    def can_start_communication(self) -> bool:
        return sm.can_start(self._state)

    def can_end_current_communication(self) -> bool:
        if self._ongoing is None:
            return False
        return sm.can_end(
            self._state,
            self.is_originator_of_ongoing(),
            settings.END_REQUIRES_ORIGINATOR,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name,
            "key": self._key,
            "clientKey": self._client_key,
            "state": self.state_name,
            "totalPaid": round_half_up(self._total_paid),
            "debt": round_half_up(self._debt),
            "friends": list(self.friend_keys),
            "active": self._active,
            "ongoing": self._ongoing.key if self._ongoing is not None else None,
        }

    # --- state machine plumbing ----------------------------------------------

    def _check(self, event: Event, **kwargs) -> sm.Transition:
        t = sm.transition(self._state, event, **kwargs)
        if t.ok:
            return t
        error = _REFUSAL_ERRORS.get(t.outcome)
        if error is not None:
            raise error(self._key)
        raise InvalidStateError(f"{event.value} not allowed for terminal {self._key} in state {self.state_name}")

    def check_receive(self, kind: CommunicationKind) -> None:
        """Raises the refusal the destination would give, without touching anything."""
        event = Event.RECEIVE_INTERACTIVE if kind.interactive else Event.RECEIVE_TEXT
        self._check(event)

    def _command(self, event: Event) -> bool:
        t = self._check(event)
        if t.outcome is Outcome.NOOP:
            return False
        if self._ongoing is not None:
            raise InvalidStateError(f"terminal {self._key} has an ongoing communication ({self._ongoing.key})")
        self._state = t.state
        return True

    # --- transition commands (True if the state changed) ---------------------

    def turn_off(self) -> bool:
        return self._command(Event.TURN_OFF)

    def set_idle(self) -> bool:
        return self._command(Event.SET_IDLE)

    def set_busy(self) -> bool:
        return self._command(Event.SET_BUSY)

    def set_silence(self) -> bool:
        return self._command(Event.SET_SILENT)

    # --- communications ------------------------------------------------------

    def register_communication(self, communication: Communication) -> None:
        if communication.key in self._communications:
            raise InvalidStateError(f"communication {communication.key} already registered at {self._key}")
        self._communications[communication.key] = communication

    def start_interactive_communication(self, communication: Communication) -> None:
        t = self._check(Event.START_INTERACTIVE)
        self.register_communication(communication)
        self._ongoing = communication
        self._state = t.state
        self._active = True

    def receive_interactive_communication(self, communication: Communication) -> None:
        t = self._check(Event.RECEIVE_INTERACTIVE)
        self.register_communication(communication)
        self._ongoing = communication
        self._state = t.state
        self._active = True

    def send_text_communication(self, communication: Communication, price_table: PriceTable) -> float:
        """Originator side of a text: registers it and charges it right away."""
        self._check(Event.SEND_TEXT)
        cost = price_table.cost_of(communication)
        if cost < 0:
            raise InvalidArgumentError(f"negative cost for communication {communication.key}: {cost}")
        self.register_communication(communication)
        communication.finish(cost)
        self._debt += communication.cost
        self._active = True
        return communication.cost

    def receive_text_communication(self, communication: Communication) -> None:
        self._check(Event.RECEIVE_TEXT)
        self.register_communication(communication)
        self._active = True

    def end_ongoing_communication(self, units: int, price_table: PriceTable) -> float:
        t = self._check(
            Event.END_CURRENT,
            is_originator=self.is_originator_of_ongoing(),
            require_originator=settings.END_REQUIRES_ORIGINATOR,
        )
        if self._ongoing is None:
            raise InvalidStateError(f"terminal {self._key} has no ongoing communication")
        if units < 0:
            raise InvalidArgumentError(f"duration must be non-negative: {units}")

        communication = self._ongoing
        cost = price_table.cost_of(replace(communication, units=int(units)))
        if cost < 0:
            raise InvalidArgumentError(f"negative cost for communication {communication.key}: {cost}")

        communication.units = int(units)
        communication.finish(cost)
        self._debt += communication.cost
        self._ongoing = None
        self._state = t.state
        return communication.cost

    def release_ongoing_communication(self) -> None:
        """Other side of an ended interactive communication: free the slot, back to IDLE."""
        t = self._check(Event.RELEASE)
        self._ongoing = None
        self._state = t.state

    # --- friends & payments --------------------------------------------------

    def add_friend(self, friend_key: str) -> None:
        if friend_key == self._key:
            raise InvalidArgumentError(f"terminal {self._key} cannot befriend itself")
        if friend_key in self._friends:
            raise InvalidArgumentError(f"{friend_key} is already a friend of {self._key}")
        self._friends.add(friend_key)

    def remove_friend(self, friend_key: str) -> None:
        if friend_key not in self._friends:
            raise InvalidArgumentError(f"{friend_key} is not a friend of {self._key}")
        self._friends.discard(friend_key)

    def perform_payment(self, communication_key: int) -> float:
        communication = self.get_communication(communication_key)
        if communication.origin != self._key:
            raise InvalidArgumentError(f"communication {communication_key} was not made by {self._key}")
        if communication.ongoing:
            raise InvalidArgumentError(f"communication {communication_key} is still ongoing")
        if communication.paid:
            raise InvalidArgumentError(f"communication {communication_key} is already paid")

        communication.paid = True
        self._debt -= communication.cost
        self._total_paid += communication.cost
        return communication.cost


class BasicTerminal(Terminal):
    TYPE_NAME = "BASIC"
    SUPPORTED_KINDS = frozenset({CommunicationKind.TEXT, CommunicationKind.VOICE})


class FancyTerminal(Terminal):
    TYPE_NAME = "FANCY"
    SUPPORTED_KINDS = frozenset(CommunicationKind)


TERMINAL_TYPES: Dict[str, Type[Terminal]] = {
    BasicTerminal.TYPE_NAME: BasicTerminal,
    FancyTerminal.TYPE_NAME: FancyTerminal,
}
