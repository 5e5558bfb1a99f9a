import pytest
from unittest.mock import patch

from telco.core.communication import Communication, CommunicationKind, CommunicationStatus
from telco.core.errors import (
    InvalidArgumentError,
    InvalidStateError,
    TargetBusyError,
    TargetOffError,
    TargetSilentError,
)
from telco.core.terminal import BasicTerminal, FancyTerminal, check_key
from telco.settings import settings


class PerUnitPrice:
    """Test price table: 7 per unit, texts cost 3."""

    def cost_of(self, communication):
        if communication.kind is CommunicationKind.TEXT:
            return 3.0
        return 7.0 * communication.units


def voice(key=1, origin="910000", destination="910001"):
    return Communication(key=key, origin=origin, destination=destination, kind=CommunicationKind.VOICE)


def text(key=1, origin="910000", destination="910001", message="hello"):
    return Communication.text(key=key, origin=origin, destination=destination, message=message)


@pytest.fixture
def caller():
    return BasicTerminal("910000", "C1")


@pytest.fixture
def callee():
    return BasicTerminal("910001", "C1")


@pytest.mark.parametrize("key", ["000000", "910000", "123456", "999999"])
def test_valid_keys(key):
    assert check_key(key) == key
    assert BasicTerminal(key, "C1").key == key


@pytest.mark.parametrize("key", ["", "12345", "1234567", "12a456", " 12345", "-12345", "+12345", "١٢٣٤٥٦", "12345\n"])
def test_invalid_keys(key):
    with pytest.raises(InvalidArgumentError):
        BasicTerminal(key, "C1")


def test_new_terminal_defaults(caller):
    assert caller.state_name == "IDLE"
    assert caller.type_name == "BASIC"
    assert caller.client_key == "C1"
    assert caller.has_activity() is False
    assert caller.has_ongoing_communication() is False
    assert caller.debt == 0
    assert caller.total_paid == 0
    assert caller.friend_keys == ()


def test_off_terminal_rejects_everything(caller, callee):
    callee.turn_off()
    with pytest.raises(TargetOffError):
        callee.receive_interactive_communication(voice())
    with pytest.raises(TargetOffError):
        callee.receive_text_communication(text())

    assert callee.can_start_communication() is False
    with pytest.raises(InvalidStateError):
        callee.start_interactive_communication(voice(origin="910001", destination="910000"))

    # Nothing was recorded
    assert callee.communications == ()
    assert callee.has_activity() is False


def test_busy_and_silent_refusals(callee):
    callee.set_busy()
    with pytest.raises(TargetBusyError):
        callee.receive_interactive_communication(voice())
    callee.set_silence()
    with pytest.raises(TargetSilentError):
        callee.receive_interactive_communication(voice())


def test_silent_terminal_accepts_text(callee):
    callee.set_silence()
    callee.receive_text_communication(text())
    assert callee.state_name == "SILENT"
    assert callee.has_activity() is True
    assert [c.key for c in callee.communications] == [1]


def test_busy_terminal_accepts_text(callee):
    callee.set_busy()
    callee.receive_text_communication(text())
    assert callee.state_name == "BUSY"


def test_start_then_end_interactive(caller, callee):
    comm = voice()
    caller.start_interactive_communication(comm)
    callee.receive_interactive_communication(comm)

    assert caller.state_name == "BUSY"
    assert callee.state_name == "BUSY"
    assert caller.can_end_current_communication() is True
    assert callee.can_end_current_communication() is False
    assert caller.has_ongoing_communication() and callee.has_ongoing_communication()

    debt_before = caller.debt
    cost = caller.end_ongoing_communication(4, PerUnitPrice())
    callee.release_ongoing_communication()

    assert cost == 28.0
    assert caller.debt == debt_before + 28.0
    assert caller.state_name == "IDLE"
    assert callee.state_name == "IDLE"
    assert comm.status is CommunicationStatus.FINISHED
    assert caller.ongoing is None and callee.ongoing is None
    # destination is never charged
    assert callee.debt == 0


def test_non_originator_cannot_end(caller, callee):
    comm = voice()
    caller.start_interactive_communication(comm)
    callee.receive_interactive_communication(comm)
    with pytest.raises(InvalidStateError):
        callee.end_ongoing_communication(1, PerUnitPrice())
    assert callee.state_name == "BUSY"


def test_non_originator_can_end_in_permissive_mode(caller, callee):
    comm = voice()
    caller.start_interactive_communication(comm)
    callee.receive_interactive_communication(comm)
    with patch.object(settings, "END_REQUIRES_ORIGINATOR", False):
        assert callee.can_end_current_communication() is True


def test_manual_busy_without_communication_cannot_end(caller):
    caller.set_busy()
    assert caller.can_end_current_communication() is False
    with patch.object(settings, "END_REQUIRES_ORIGINATOR", False):
        assert caller.can_end_current_communication() is False


def test_state_commands_refused_during_ongoing(caller):
    caller.start_interactive_communication(voice())
    with pytest.raises(InvalidStateError):
        caller.turn_off()
    with pytest.raises(InvalidStateError):
        caller.set_idle()
    # no-op to the current state is still fine
    assert caller.set_busy() is False
    assert caller.state_name == "BUSY"


def test_set_idle_is_idempotent(caller):
    caller.send_text_communication(text(), PerUnitPrice())
    before = (caller.state_name, caller.debt, caller.total_paid, caller.has_activity(), caller.communications)
    assert caller.set_idle() is False
    after = (caller.state_name, caller.debt, caller.total_paid, caller.has_activity(), caller.communications)
    assert before == after


def test_send_text_charges_originator(caller, callee):
    comm = text()
    cost = caller.send_text_communication(comm, PerUnitPrice())
    callee.receive_text_communication(comm)
    assert cost == 3.0
    assert caller.debt == 3.0
    assert callee.debt == 0
    assert comm.status is CommunicationStatus.FINISHED
    assert caller.state_name == "IDLE"


def test_register_communication_rejects_duplicate_id(caller):
    caller.register_communication(text(key=5))
    with pytest.raises(InvalidStateError):
        caller.register_communication(text(key=5))


def test_add_friend_is_irreflexive_and_unique(caller):
    with pytest.raises(InvalidArgumentError):
        caller.add_friend("910000")
    caller.add_friend("910002")
    with pytest.raises(InvalidArgumentError):
        caller.add_friend("910002")
    caller.add_friend("910001")
    assert caller.friend_keys == ("910001", "910002")


def test_remove_friend(caller):
    caller.add_friend("910001")
    caller.remove_friend("910001")
    assert caller.friend_keys == ()
    with pytest.raises(InvalidArgumentError):
        caller.remove_friend("910001")


def test_perform_payment(caller, callee):
    comm = text()
    caller.send_text_communication(comm, PerUnitPrice())
    callee.receive_text_communication(comm)

    with pytest.raises(InvalidArgumentError):
        callee.perform_payment(1)  # not the originator

    assert caller.perform_payment(1) == 3.0
    assert caller.debt == 0
    assert caller.total_paid == 3.0
    assert comm.paid is True
    with pytest.raises(InvalidArgumentError):
        caller.perform_payment(1)
    with pytest.raises(InvalidArgumentError):
        caller.perform_payment(99)


def test_cannot_pay_ongoing_communication(caller):
    caller.start_interactive_communication(voice())
    with pytest.raises(InvalidArgumentError):
        caller.perform_payment(1)


def test_terminal_kinds():
    basic = BasicTerminal("100000", "C1")
    fancy = FancyTerminal("100001", "C1")
    assert not basic.supports(CommunicationKind.VIDEO)
    assert basic.supports(CommunicationKind.VOICE)
    assert fancy.supports(CommunicationKind.VIDEO)
    assert fancy.type_name == "FANCY"


def test_to_dict_is_rounded(caller):
    caller.send_text_communication(text(), PerUnitPrice())
    d = caller.to_dict()
    assert d["key"] == "910000"
    assert d["state"] == "IDLE"
    assert d["debt"] == 3
    assert d["active"] is True
    assert d["ongoing"] is None
