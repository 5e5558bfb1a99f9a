"""
Network registry
----------------
Single source of truth for clients and terminals. Nothing else constructs or
inserts them, and every cross-terminal operation (friend links, starting,
ending and paying for communications) goes through here so key uniqueness and
existence are always checked first.

INVARIANT: validation happens before mutation. Every operation either raises
a NetworkError with the network untouched, or completes.

Concurrency: insertion is serialized by the registry lock; operations on
terminals hold the keyed lock of every terminal they touch, so a
check-then-act pair (can_start -> start) is atomic per terminal.
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

import telco.observability.metrics as metrics
from telco.core.client import Client
from telco.core.communication import Communication, CommunicationKind
from telco.core.errors import (
    DuplicateClientKeyError,
    DuplicateTerminalKeyError,
    InvalidArgumentError,
    InvalidStateError,
    TargetUnavailableError,
    UnknownClientKeyError,
    UnknownTerminalKeyError,
    UnsupportedCommunicationError,
)
from telco.core.state_machine import TerminalState, parse_state
from telco.core.terminal import TERMINAL_TYPES, Terminal, check_key
from telco.observability.logging import log
from telco.settings import settings
from telco.utils.lock import keyed_lock

T = TypeVar("T")
R = TypeVar("R")


def terminal_without_activity(terminal: Terminal) -> bool:
    return not terminal.has_activity()


def terminal_with_positive_balance(terminal: Terminal) -> bool:
    return terminal.balance > 0


def _parse_kind(kind) -> CommunicationKind:
    if isinstance(kind, CommunicationKind):
        return kind
    try:
        return CommunicationKind(str(kind).strip().upper())
    except ValueError:
        raise InvalidArgumentError(f"unknown communication kind: {kind!r}") from None


class Network:
    def __init__(self):
        self._clients: Dict[str, Client] = {}
        self._terminals: Dict[str, Terminal] = {}
        self._communications: Dict[int, Communication] = {}
        self._next_communication_key = 1
        self._registry_lock = threading.RLock()

    # --- registration --------------------------------------------------------

    def register_client(self, key: str, name: str, tax_id: int, level: Optional[str] = None) -> Client:
        level = (level or settings.DEFAULT_CLIENT_LEVEL).upper()
        with self._registry_lock:
            if key in self._clients:
                raise DuplicateClientKeyError(key)
            try:
                client = Client(key=key, name=name, tax_id=tax_id, level=level)
            except ValueError as e:
                raise InvalidArgumentError(str(e)) from None
            self._clients[key] = client

        log(event="client_registered", clientKey=key, name=name, taxId=tax_id, level=client.level)
        return client

    def register_terminal(self, terminal_type: str, key: str, client_key: str) -> Terminal:
        check_key(key)
        owner = self.get_client(client_key)
        terminal_cls = TERMINAL_TYPES.get((terminal_type or "").upper())
        if terminal_cls is None:
            raise InvalidArgumentError(f"unknown terminal type: {terminal_type!r}")

        with self._registry_lock:
            if key in self._terminals:
                raise DuplicateTerminalKeyError(key)
            terminal = terminal_cls(key, owner.key)
            self._terminals[key] = terminal
            owner.add_terminal(key)

        log(event="terminal_registered", terminalKey=key, type=terminal.type_name, clientKey=owner.key)
        return terminal

    # --- lookup --------------------------------------------------------------

    def get_client(self, key: str) -> Client:
        client = self._clients.get(key)
        if client is None:
            raise UnknownClientKeyError(key)
        return client

    def get_terminal(self, key: str) -> Terminal:
        terminal = self._terminals.get(key)
        if terminal is None:
            raise UnknownTerminalKeyError(key)
        return terminal

    def get_communication(self, key: int) -> Communication:
        communication = self._communications.get(key)
        if communication is None:
            raise InvalidArgumentError(f"unknown communication: {key}")
        return communication

    def all_clients(self) -> List[Client]:
        return [self._clients[k] for k in sorted(self._clients)]

    def all_terminals(self) -> List[Terminal]:
        return [self._terminals[k] for k in sorted(self._terminals)]

    def all_communications(self) -> List[Communication]:
        return [self._communications[k] for k in sorted(self._communications)]

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def terminal_count(self) -> int:
        return len(self._terminals)

    def visit_all(
        self,
        visitor: Callable[[T], R],
        collection: Iterable[T],
        predicate: Optional[Callable[[T], bool]] = None,
    ) -> List[R]:
        """Apply `visitor` to each element passing `predicate`, in iteration order."""
        return [visitor(element) for element in collection if predicate is None or predicate(element)]

    # --- client views --------------------------------------------------------

    def client_terminals(self, client_key: str) -> List[Terminal]:
        client = self.get_client(client_key)
        return [self._terminals[k] for k in client.sorted_terminal_keys]

    def client_payments(self, client_key: str) -> float:
        return sum(t.total_paid for t in self.client_terminals(client_key))

    def client_debts(self, client_key: str) -> float:
        return sum(t.debt for t in self.client_terminals(client_key))

    def client_summary(self, client: Client) -> Dict[str, Any]:
        return client.to_dict(
            payments=self.client_payments(client.key),
            debts=self.client_debts(client.key),
        )

    def clients_with_debts(self) -> List[Client]:
        # highest debt first, key as tie-breaker
        found = self.visit_all(lambda c: c, self.all_clients(), lambda c: self.client_debts(c.key) > 0)
        return sorted(found, key=lambda c: (-self.client_debts(c.key), c.key))

    def clients_without_debts(self) -> List[Client]:
        return self.visit_all(lambda c: c, self.all_clients(), lambda c: self.client_debts(c.key) <= 0)

    def communications_from_client(self, client_key: str) -> List[Communication]:
        owned = self.get_client(client_key).terminal_keys
        return [c for c in self.all_communications() if c.origin in owned]

    def communications_to_client(self, client_key: str) -> List[Communication]:
        owned = self.get_client(client_key).terminal_keys
        return [c for c in self.all_communications() if c.destination in owned]

    # --- friends -------------------------------------------------------------

    def add_friend(self, terminal_key: str, friend_key: str) -> None:
        if terminal_key == friend_key:
            raise InvalidArgumentError(f"terminal {terminal_key} cannot befriend itself")
        terminal = self.get_terminal(terminal_key)
        self.get_terminal(friend_key)
        with keyed_lock(terminal_key):
            terminal.add_friend(friend_key)
        log(event="friend_added", terminalKey=terminal_key, friendKey=friend_key)

    def remove_friend(self, terminal_key: str, friend_key: str) -> None:
        terminal = self.get_terminal(terminal_key)
        self.get_terminal(friend_key)
        with keyed_lock(terminal_key):
            terminal.remove_friend(friend_key)
        log(event="friend_removed", terminalKey=terminal_key, friendKey=friend_key)

    # --- state commands ------------------------------------------------------

    def change_terminal_state(self, key: str, state_name: str) -> Terminal:
        try:
            target = parse_state(state_name)
        except ValueError:
            raise InvalidArgumentError(f"unknown terminal state: {state_name!r}") from None

        terminal = self.get_terminal(key)
        commands = {
            TerminalState.OFF: terminal.turn_off,
            TerminalState.IDLE: terminal.set_idle,
            TerminalState.BUSY: terminal.set_busy,
            TerminalState.SILENT: terminal.set_silence,
        }
        with keyed_lock(key):
            previous = terminal.state_name
            changed = commands[target]()

        if changed:
            log(event="terminal_state_changed", terminalKey=key, previous=previous, state=terminal.state_name)
        return terminal

    # --- communications ------------------------------------------------------

    def _allocate_communication_key(self) -> int:
        with self._registry_lock:
            key = self._next_communication_key
            self._next_communication_key += 1
            return key

    def _check_destination(self, destination: Terminal, kind: CommunicationKind) -> None:
        try:
            destination.check_receive(kind)
        except TargetUnavailableError as e:
            metrics.record_rejection(e.code)
            log(event="communication_refused", terminalKey=destination.key, kind=kind.value, reason=e.code)
            raise

    def start_interactive_communication(
        self, origin_key: str, destination_key: str, kind="VOICE"
    ) -> Communication:
        kind = _parse_kind(kind)
        if not kind.interactive:
            raise InvalidArgumentError(f"{kind.value} is not an interactive communication")
        if origin_key == destination_key:
            raise InvalidArgumentError(f"terminal {origin_key} cannot call itself")

        origin = self.get_terminal(origin_key)
        destination = self.get_terminal(destination_key)

        with keyed_lock(origin_key, destination_key):
            if not origin.can_start_communication():
                metrics.record_rejection(InvalidStateError.code)
                raise InvalidStateError(f"terminal {origin_key} cannot start a communication while {origin.state_name}")
            if not origin.supports(kind):
                metrics.record_rejection(UnsupportedCommunicationError.code)
                raise UnsupportedCommunicationError(origin_key, kind.value, "origin")
            if not destination.supports(kind):
                metrics.record_rejection(UnsupportedCommunicationError.code)
                raise UnsupportedCommunicationError(destination_key, kind.value, "destination")
            self._check_destination(destination, kind)

            communication = Communication(
                key=self._allocate_communication_key(),
                origin=origin_key,
                destination=destination_key,
                kind=kind,
                to_friend=origin.is_friend(destination_key),
            )
            origin.start_interactive_communication(communication)
            destination.receive_interactive_communication(communication)
            self._communications[communication.key] = communication

        metrics.record_communication_started(kind.value)
        log(
            event="communication_started",
            communicationId=communication.key,
            kind=kind.value,
            origin=origin_key,
            destination=destination_key,
        )
        return communication

    def send_text_communication(self, origin_key: str, destination_key: str, message: str) -> Communication:
        if origin_key == destination_key:
            raise InvalidArgumentError(f"terminal {origin_key} cannot message itself")

        origin = self.get_terminal(origin_key)
        destination = self.get_terminal(destination_key)
        price_table = self.get_client(origin.client_key).price_table

        with keyed_lock(origin_key, destination_key):
            if origin.state is TerminalState.OFF:
                metrics.record_rejection(InvalidStateError.code)
                raise InvalidStateError(f"terminal {origin_key} is off")
            self._check_destination(destination, CommunicationKind.TEXT)

            communication = Communication.text(
                key=self._allocate_communication_key(),
                origin=origin_key,
                destination=destination_key,
                message=message or "",
                to_friend=origin.is_friend(destination_key),
            )
            origin.send_text_communication(communication, price_table)
            destination.receive_text_communication(communication)
            self._communications[communication.key] = communication

        metrics.record_communication_started(CommunicationKind.TEXT.value)
        metrics.record_communication_finished(CommunicationKind.TEXT.value, communication.units)
        log(
            event="text_sent",
            communicationId=communication.key,
            origin=origin_key,
            destination=destination_key,
            message=communication.message,
            cost=communication.cost,
        )
        return communication

    def end_interactive_communication(self, terminal_key: str, units: int) -> Communication:
        """
        Ends the ongoing communication of `terminal_key`, charging the originator
        and freeing both sides in one step.
        """
        terminal = self.get_terminal(terminal_key)
        ongoing = terminal.ongoing
        if ongoing is None:
            raise InvalidStateError(f"terminal {terminal_key} has no ongoing communication")
        if units is None or int(units) < 0:
            raise InvalidArgumentError(f"duration must be non-negative: {units}")

        origin = self.get_terminal(ongoing.origin)
        destination = self.get_terminal(ongoing.destination)
        price_table = self.get_client(origin.client_key).price_table

        with keyed_lock(origin.key, destination.key):
            if terminal.ongoing is not ongoing or not terminal.can_end_current_communication():
                raise InvalidStateError(f"terminal {terminal_key} cannot end the current communication")
            if destination.ongoing is not ongoing:
                raise InvalidStateError(f"terminal {destination.key} is not holding communication {ongoing.key}")

            origin.end_ongoing_communication(int(units), price_table)
            destination.release_ongoing_communication()

        metrics.record_communication_finished(ongoing.kind.value, ongoing.units)
        log(
            event="communication_ended",
            communicationId=ongoing.key,
            endedBy=terminal_key,
            units=ongoing.units,
            cost=ongoing.cost,
        )
        return ongoing

    def perform_payment(self, terminal_key: str, communication_key: int) -> Communication:
        terminal = self.get_terminal(terminal_key)
        with keyed_lock(terminal_key):
            amount = terminal.perform_payment(communication_key)

        metrics.record_payment(amount)
        log(event="payment_performed", terminalKey=terminal_key, communicationId=communication_key, amount=amount)
        return terminal.get_communication(communication_key)
