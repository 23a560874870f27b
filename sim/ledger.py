"""Authoritative store of settlement resource quantities.

The ledger owns every resource amount the settlement holds. All mutation
goes through :meth:`ResourceLedger.credit` and :meth:`ResourceLedger.debit`;
readers get copies. Quantities are never observed negative: debits are
all-or-nothing and every write clamps float drift back to zero. Credits
stop at each kind's storage capacity: a base table plus whatever the
standing buildings add.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RESOURCE_CATEGORIES: Dict[str, List[str]] = {
    "basic": ["food", "wood", "stone", "metal"],
    "advanced": ["leather", "fur", "cloth", "clay", "pitch", "salt", "honey", "herbs"],
    "wealth": ["silver", "gold", "amber", "ivory", "jewels"],
    "environmental": ["peat", "whale_oil", "ice", "exotic"],
}
"""Known resource kinds grouped for display."""

STARTING_RESOURCES: Dict[str, float] = {
    "food": 150.0,
    "wood": 130.0,
    "stone": 100.0,
    "metal": 50.0,
}

# Storage before any storehouse is built
STORAGE_CAPACITY: Dict[str, float] = {
    "food": 300.0, "wood": 200.0, "stone": 150.0, "metal": 100.0,
    "leather": 50.0, "fur": 50.0, "cloth": 50.0, "clay": 50.0,
    "pitch": 25.0, "salt": 25.0, "honey": 25.0, "herbs": 25.0,
    "silver": 25.0, "gold": 10.0, "amber": 10.0, "ivory": 10.0, "jewels": 10.0,
    "peat": 50.0, "whale_oil": 25.0, "ice": 25.0, "exotic": 25.0,
}
CUSTOM_STORAGE_CAPACITY = 25.0

# Amounts below this are treated as float noise
EPSILON = 1e-9


class ResourceLedger:
    """Resource quantities plus production-rate bookkeeping."""

    def __init__(self, initial: Optional[Mapping[str, float]] = None) -> None:
        self._amounts: Dict[str, float] = {}
        self._categories: Dict[str, List[str]] = {
            name: list(kinds) for name, kinds in RESOURCE_CATEGORIES.items()
        }
        for kinds in self._categories.values():
            for kind in kinds:
                self._amounts[kind] = 0.0
        self._rates: Dict[str, float] = {kind: 0.0 for kind in self._amounts}
        self._capacity: Dict[str, float] = {
            kind: STORAGE_CAPACITY.get(kind, CUSTOM_STORAGE_CAPACITY) for kind in self._amounts
        }
        self._bonus: Dict[str, float] = {}
        if initial:
            for kind, amount in initial.items():
                if kind not in self._amounts:
                    raise ValueError(f"unknown resource kind {kind!r}")
                if amount < 0 or not math.isfinite(amount):
                    raise ValueError(f"initial {kind} must be a finite amount >= 0")
                self._amounts[kind] = float(amount)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def knows(self, kind: str) -> bool:
        return kind in self._amounts

    def register(self, kind: str, initial: float = 0.0, category: str = "advanced",
                 capacity: float = CUSTOM_STORAGE_CAPACITY) -> bool:
        """Add a custom resource kind.

        Returns ``False`` (and logs) when the kind already exists. Unknown
        categories fall back to ``"advanced"``.
        """
        if kind in self._amounts:
            logger.warning("resource %s already exists", kind)
            return False
        if category not in self._categories:
            logger.warning("unknown category %s, adding %s to advanced", category, kind)
            category = "advanced"
        self._categories[category].append(kind)
        self._amounts[kind] = max(0.0, float(initial))
        self._rates[kind] = 0.0
        self._capacity[kind] = max(0.0, float(capacity))
        logger.info("registered resource type %s", kind)
        return True

    def categories(self) -> Dict[str, List[str]]:
        return {name: list(kinds) for name, kinds in self._categories.items()}

    def is_discovered(self, kind: str) -> bool:
        return self._amounts.get(kind, 0.0) > 0.0

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def credit(self, amounts: Mapping[str, float]) -> Dict[str, float]:
        """Add ``amounts`` to the held quantities.

        Negative amounts are allowed and reduce the entry, clamping at zero.
        Positive amounts stop at the storage capacity; an entry already above
        capacity is left where it is.
        Unknown kinds and non-finite amounts are logged and skipped. Returns
        the change actually applied per kind.
        """
        applied: Dict[str, float] = {}
        for kind, amount in amounts.items():
            if kind not in self._amounts:
                logger.warning("credit: unknown resource type %s", kind)
                continue
            if not isinstance(amount, (int, float)) or not math.isfinite(amount):
                logger.warning("credit: invalid amount for %s: %r", kind, amount)
                continue
            before = self._amounts[kind]
            after = before + float(amount)
            if after < EPSILON:
                after = 0.0
            cap = self.storage_capacity(kind)
            if amount > 0 and after > cap:
                after = max(before, cap)
                logger.info("storage for %s is full (%g)", kind, cap)
            self._amounts[kind] = after
            applied[kind] = after - before
            if before == 0.0 and after > 0.0:
                logger.info("discovered %s", kind)
        return applied

    def can_afford(self, amounts: Mapping[str, float]) -> bool:
        for kind, amount in amounts.items():
            if not isinstance(amount, (int, float)) or not math.isfinite(amount) or amount < 0:
                return False
            if self._amounts.get(kind, 0.0) < amount:
                return False
        return True

    def debit(self, amounts: Mapping[str, float]) -> bool:
        """Subtract every amount or nothing at all.

        Unknown kinds count as holding zero, so any positive request for
        them fails the whole debit.
        """
        if not self.can_afford(amounts):
            logger.debug("cannot afford %s with %s", dict(amounts), self._amounts)
            return False
        for kind, amount in amounts.items():
            if kind not in self._amounts:
                # only reachable with a zero request
                continue
            remaining = self._amounts[kind] - float(amount)
            self._amounts[kind] = remaining if remaining > EPSILON else 0.0
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def amount(self, kind: str) -> float:
        return self._amounts.get(kind, 0.0)

    def query(self) -> Dict[str, float]:
        return dict(self._amounts)

    def set_production_rate(self, kind: str, rate: float) -> None:
        if kind not in self._rates:
            logger.warning("production rate for unknown resource %s ignored", kind)
            return
        self._rates[kind] = float(rate)

    def get_production_rates(self) -> Dict[str, float]:
        return dict(self._rates)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def storage_capacity(self, kind: str) -> float:
        if kind not in self._capacity:
            return math.inf
        return self._capacity[kind] + self._bonus.get(kind, 0.0)

    def available_storage(self, kind: str) -> float:
        return max(0.0, self.storage_capacity(kind) - self.amount(kind))

    def add_storage_capacity(self, amounts: Mapping[str, float]) -> None:
        """Permanently raise the base capacity of known kinds."""
        for kind, amount in amounts.items():
            if kind not in self._capacity:
                logger.warning("storage for unknown resource %s ignored", kind)
                continue
            self._capacity[kind] += float(amount)

    def set_storage_bonus(self, bonus: Mapping[str, float]) -> None:
        """Replace the capacity granted by buildings."""
        self._bonus = {k: float(v) for k, v in bonus.items() if k in self._capacity}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, object]:
        return {
            "amounts": dict(self._amounts),
            "rates": dict(self._rates),
            "capacity": dict(self._capacity),
            "categories": self.categories(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ResourceLedger":
        from sim.safe_parse import to_amounts

        ledger = cls()
        categories = data.get("categories") or {}
        if isinstance(categories, Mapping):
            for category, kinds in categories.items():
                for kind in kinds or []:
                    if not ledger.knows(kind):
                        ledger.register(str(kind), category=str(category))
        for kind, amount in to_amounts(data.get("amounts")).items():
            if ledger.knows(kind):
                ledger._amounts[kind] = max(0.0, amount)
            else:
                logger.warning("load: dropping unknown resource %s", kind)
        for kind, rate in to_amounts(data.get("rates")).items():
            ledger.set_production_rate(kind, rate)
        for kind, cap in to_amounts(data.get("capacity")).items():
            if ledger.knows(kind):
                ledger._capacity[kind] = max(0.0, cap)
        return ledger


__all__ = ["ResourceLedger", "RESOURCE_CATEGORIES", "STARTING_RESOURCES", "STORAGE_CAPACITY"]
