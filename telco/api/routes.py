from typing import List, Literal, Optional

from fastapi import APIRouter, Depends

from telco.api.auth import require_api_key
from telco.api.schemas import (
    ClientIn,
    ClientOut,
    CommunicationOut,
    EndIn,
    InteractiveIn,
    StateChangeIn,
    TerminalIn,
    TerminalOut,
    TextIn,
)
from telco.core.network import Network, terminal_with_positive_balance, terminal_without_activity

router = APIRouter(dependencies=[Depends(require_api_key)])

# Process-wide network; tests swap it through app.dependency_overrides
network = Network()


def get_network() -> Network:
    return network


TERMINAL_FILTERS = {
    "without_activity": terminal_without_activity,
    "positive_balance": terminal_with_positive_balance,
}


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------
@router.post("/clients", response_model=ClientOut, status_code=201)
def register_client(body: ClientIn, net: Network = Depends(get_network)):
    client = net.register_client(body.key, body.name, body.taxId, body.level)
    return net.client_summary(client)


@router.get("/clients", response_model=List[ClientOut])
def list_clients(
    filter: Optional[Literal["with_debts", "without_debts"]] = None,
    net: Network = Depends(get_network),
):
    if filter == "with_debts":
        clients = net.clients_with_debts()
    elif filter == "without_debts":
        clients = net.clients_without_debts()
    else:
        clients = net.all_clients()
    return net.visit_all(net.client_summary, clients)


@router.get("/clients/{key}", response_model=ClientOut)
def show_client(key: str, net: Network = Depends(get_network)):
    return net.client_summary(net.get_client(key))


@router.get("/clients/{key}/communications", response_model=List[CommunicationOut])
def client_communications(
    key: str,
    direction: Literal["from", "to"] = "from",
    net: Network = Depends(get_network),
):
    if direction == "to":
        comms = net.communications_to_client(key)
    else:
        comms = net.communications_from_client(key)
    return [c.to_dict() for c in comms]


# ---------------------------------------------------------------------------
# Terminals
# ---------------------------------------------------------------------------
@router.post("/terminals", response_model=TerminalOut, status_code=201)
def register_terminal(body: TerminalIn, net: Network = Depends(get_network)):
    return net.register_terminal(body.type, body.key, body.clientKey).to_dict()


@router.get("/terminals", response_model=List[TerminalOut])
def list_terminals(
    filter: Optional[Literal["without_activity", "positive_balance"]] = None,
    net: Network = Depends(get_network),
):
    predicate = TERMINAL_FILTERS.get(filter) if filter else None
    return net.visit_all(lambda t: t.to_dict(), net.all_terminals(), predicate)


@router.get("/terminals/{key}", response_model=TerminalOut)
def show_terminal(key: str, net: Network = Depends(get_network)):
    return net.get_terminal(key).to_dict()


@router.post("/terminals/{key}/state", response_model=TerminalOut)
def change_state(key: str, body: StateChangeIn, net: Network = Depends(get_network)):
    return net.change_terminal_state(key, body.state).to_dict()


@router.post("/terminals/{key}/friends/{friend}", response_model=TerminalOut)
def add_friend(key: str, friend: str, net: Network = Depends(get_network)):
    net.add_friend(key, friend)
    return net.get_terminal(key).to_dict()


@router.delete("/terminals/{key}/friends/{friend}", response_model=TerminalOut)
def remove_friend(key: str, friend: str, net: Network = Depends(get_network)):
    net.remove_friend(key, friend)
    return net.get_terminal(key).to_dict()


@router.post("/terminals/{key}/end", response_model=CommunicationOut)
def end_communication(key: str, body: EndIn, net: Network = Depends(get_network)):
    return net.end_interactive_communication(key, body.duration).to_dict()


@router.post("/terminals/{key}/payments/{comm_id}", response_model=CommunicationOut)
def pay_communication(key: str, comm_id: int, net: Network = Depends(get_network)):
    return net.perform_payment(key, comm_id).to_dict()


# ---------------------------------------------------------------------------
# Communications
# ---------------------------------------------------------------------------
@router.post("/communications/interactive", response_model=CommunicationOut, status_code=201)
def start_interactive(body: InteractiveIn, net: Network = Depends(get_network)):
    return net.start_interactive_communication(body.origin, body.destination, body.kind).to_dict()


@router.post("/communications/text", response_model=CommunicationOut, status_code=201)
def send_text(body: TextIn, net: Network = Depends(get_network)):
    return net.send_text_communication(body.origin, body.destination, body.message).to_dict()


@router.get("/communications", response_model=List[CommunicationOut])
def list_communications(net: Network = Depends(get_network)):
    return [c.to_dict() for c in net.all_communications()]
