from typing import List, Literal, Optional
from pydantic import BaseModel, Field

TerminalType = Literal["BASIC", "FANCY"]
InteractiveKind = Literal["VOICE", "VIDEO"]

class ClientIn(BaseModel):
    key: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    taxId: int
    level: Optional[Literal["NORMAL", "GOLD", "PLATINUM"]] = None

class ClientOut(BaseModel):
    key: str
    name: str
    taxId: int
    level: str
    terminals: List[str] = Field(default_factory=list)
    payments: int = 0
    debts: int = 0

class TerminalIn(BaseModel):
    type: TerminalType = "BASIC"
    key: str
    clientKey: str

class TerminalOut(BaseModel):
    type: str
    key: str
    clientKey: str
    state: str
    totalPaid: int
    debt: int
    friends: List[str] = Field(default_factory=list)
    active: bool
    ongoing: Optional[int] = None

class StateChangeIn(BaseModel):
    # OFF / IDLE / BUSY / SILENT ("SILENCE" accepted as an alias)
    state: str

class InteractiveIn(BaseModel):
    origin: str
    destination: str
    kind: InteractiveKind = "VOICE"

class TextIn(BaseModel):
    origin: str
    destination: str
    message: str = ""

class EndIn(BaseModel):
    # Duration in minutes
    duration: int = Field(..., ge=0)

class CommunicationOut(BaseModel):
    id: int
    origin: str
    destination: str
    kind: str
    status: str
    units: int
    cost: int
    toFriend: bool
    paid: bool

class ErrorOut(BaseModel):
    status: Literal["error"] = "error"
    code: str
    detail: str
