"""
Price tables
------------
The network only ever calls `cost_of(communication)` at finalization time and
treats the answer as authoritative. TariffPlan is the default table, one per
client level; any object satisfying PriceTable can be plugged in instead.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, runtime_checkable

from telco.core.communication import Communication, CommunicationKind
from telco.settings import settings

SHORT_TEXT_LIMIT = 50
MEDIUM_TEXT_LIMIT = 100


@runtime_checkable
class PriceTable(Protocol):
    def cost_of(self, communication: Communication) -> float: ...


@dataclass(frozen=True)
class TariffPlan:
    level: str
    short_text: float
    medium_text: float
    long_text_flat: float
    long_text_per_char: float
    voice_per_unit: float
    video_per_unit: float
    # None -> settings.FRIEND_DISCOUNT at call time
    friend_discount: Optional[float] = None

    def text_cost(self, length: int) -> float:
        if length < SHORT_TEXT_LIMIT:
            return self.short_text
        if length < MEDIUM_TEXT_LIMIT:
            return self.medium_text
        return self.long_text_flat + self.long_text_per_char * length

    def cost_of(self, communication: Communication) -> float:
        if communication.kind is CommunicationKind.TEXT:
            return float(self.text_cost(communication.units))

        rate = self.voice_per_unit if communication.kind is CommunicationKind.VOICE else self.video_per_unit
        cost = rate * max(0, communication.units)
        if communication.to_friend:
            discount = settings.FRIEND_DISCOUNT if self.friend_discount is None else self.friend_discount
            cost *= discount
        return float(cost)


TARIFF_PLANS: Dict[str, TariffPlan] = {
    "NORMAL": TariffPlan("NORMAL", 10, 16, 0, 2, 20, 30),
    "GOLD": TariffPlan("GOLD", 10, 10, 0, 2, 10, 20),
    "PLATINUM": TariffPlan("PLATINUM", 0, 4, 4, 0, 10, 10),
}


def plan_for_level(level: str) -> TariffPlan:
    try:
        return TARIFF_PLANS[level.upper()]
    except KeyError:
        raise ValueError(f"unknown client level: {level}") from None
