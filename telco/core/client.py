from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set, Tuple

from telco.core.communication import round_half_up
from telco.core.price_table import PriceTable, plan_for_level


@dataclass
class Client:
    key: str
    name: str
    tax_id: int
    level: str = "NORMAL"
    # Owned terminals; only the Network appends here
    terminal_keys: Set[str] = field(default_factory=set)
    # Overrides the level's default tariff plan when set
    custom_price_table: Optional[PriceTable] = None

    def __post_init__(self):
        self.level = (self.level or "NORMAL").upper()
        # fail fast on unknown levels
        plan_for_level(self.level)

    @property
    def price_table(self) -> PriceTable:
        if self.custom_price_table is not None:
            return self.custom_price_table
        return plan_for_level(self.level)

    def owns(self, terminal_key: str) -> bool:
        return terminal_key in self.terminal_keys

    def add_terminal(self, terminal_key: str) -> None:
        self.terminal_keys.add(terminal_key)

    @property
    def sorted_terminal_keys(self) -> Tuple[str, ...]:
        return tuple(sorted(self.terminal_keys))

    def to_dict(self, payments: float = 0.0, debts: float = 0.0) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "taxId": self.tax_id,
            "level": self.level,
            "terminals": list(self.sorted_terminal_keys),
            "payments": round_half_up(payments),
            "debts": round_half_up(debts),
        }
