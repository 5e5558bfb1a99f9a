from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


class CommunicationKind(str, Enum):
    TEXT = "TEXT"
    VOICE = "VOICE"
    VIDEO = "VIDEO"

    @property
    def interactive(self) -> bool:
        return self is not CommunicationKind.TEXT


class CommunicationStatus(str, Enum):
    ONGOING = "ONGOING"
    FINISHED = "FINISHED"


@dataclass
class Communication:
    key: int
    origin: str
    destination: str
    kind: CommunicationKind
    status: CommunicationStatus = CommunicationStatus.ONGOING
    # Message length for text, duration for interactive
    units: int = 0
    cost: float = 0.0
    # Origin had destination in its friend set when this was created
    to_friend: bool = False
    paid: bool = False
    message: str = ""

    @classmethod
    def text(cls, key: int, origin: str, destination: str, message: str, to_friend: bool = False) -> "Communication":
        return cls(
            key=key,
            origin=origin,
            destination=destination,
            kind=CommunicationKind.TEXT,
            units=len(message),
            to_friend=to_friend,
            message=message,
        )

    @property
    def interactive(self) -> bool:
        return self.kind.interactive

    @property
    def ongoing(self) -> bool:
        return self.status is CommunicationStatus.ONGOING

    def finish(self, cost: float) -> None:
        if cost < 0:
            raise ValueError(f"negative cost for communication {self.key}: {cost}")
        self.cost = float(cost)
        self.status = CommunicationStatus.FINISHED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.key,
            "origin": self.origin,
            "destination": self.destination,
            "kind": self.kind.value,
            "status": self.status.value,
            "units": self.units,
            "cost": round_half_up(self.cost),
            "toFriend": self.to_friend,
            "paid": self.paid,
        }
