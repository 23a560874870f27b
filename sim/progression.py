"""Fame, ranks and the milestones that award them.

Fame only ever grows. The rank index is always the highest tier whose
threshold the current fame meets; a large award climbs several tiers at
once, one unlock per tier. Milestone detectors (cumulative production per
resource, largest population) pay each reward exactly once.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from modifiers import GameModifiers, MODIFIERS
from sim.events import EventBus, Notification, NotificationKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankTier:
    title: str
    fame_required: float
    max_vassals: int
    max_villages: int
    notes: str = ""


@dataclass(frozen=True)
class RankUnlock:
    """One step up the rank table."""

    index: int
    tier: RankTier
    previous: RankTier

    @property
    def more_vassals(self) -> bool:
        return self.tier.max_vassals > self.previous.max_vassals

    @property
    def more_villages(self) -> bool:
        return self.tier.max_villages > self.previous.max_villages


DEFAULT_RANKS: Tuple[RankTier, ...] = (
    RankTier("Lowly Karl", 0, 0, 1,
             "Beginning rank; access to basic research and a default scout."),
    RankTier("Humble Bondi", 100, 0, 1, "Unlocks rudimentary farming techniques."),
    RankTier("Rising Skald", 250, 0, 1,
             "Gains local recognition; basic raiding options unlocked."),
    RankTier("Wary Hirdman", 500, 1, 1, "Gains access to basic defense and scouting units."),
    RankTier("Steadfast Berserker", 750, 1, 1,
             "Enhanced battle prowess; unlocks minor raiding capabilities."),
    RankTier("Valiant Raider", 1000, 1, 2, "Improved raiding options and trade route access."),
    RankTier("Respected Hirdman", 1500, 1, 2,
             "Increased local influence; expanded vassal limit."),
    RankTier("Notable Hersir", 2000, 2, 2, "Early noble privileges; can form small warbands."),
    RankTier("Renowned Skald", 3000, 2, 3,
             "Unlocks advanced cultural benefits and morale boosts."),
    RankTier("Acclaimed Viking", 4000, 2, 3,
             "Access to elite research and advanced warrior training."),
    RankTier("Distinguished Thane", 5500, 3, 4,
             "Greater leadership capacity and military tactics."),
    RankTier("Esteemed Jarlsman", 7000, 3, 4,
             "Unlocks fortified defenses and extended raiding options."),
    RankTier("Noble Hersir", 9000, 4, 5,
             "Early noble council access and enhanced resource production."),
    RankTier("Exalted Chieftain", 11000, 4, 5,
             "Manages multiple holdings and gains advanced diplomacy."),
    RankTier("Grand Hirdman", 13500, 5, 6,
             "Unlocks elite raiding strategies and broader regional influence."),
    RankTier("Mighty Jarl", 16000, 6, 7,
             "Major expansion opportunities; access to siege technologies."),
    RankTier("Venerable Earl", 19000, 7, 8, "Enhanced regional control and political clout."),
    RankTier("Imperial Skald", 22000, 8, 9,
             "Combines cultural and military leadership; elite units become available."),
    RankTier("Legendary Viking", 26000, 9, 10,
             "Renowned across lands; unlocks legendary raiding and diplomatic dominance."),
    RankTier("Fabled Allfather", 30000, 10, 10,
             "Pinnacle of Viking fame; maximum holdings, advanced research, "
             "and elite privileges unlocked."),
)


def validate_ranks(ranks: Sequence[RankTier]) -> None:
    if not ranks:
        raise ValueError("rank table is empty")
    if ranks[0].fame_required != 0:
        raise ValueError("first rank must require 0 fame")
    for lower, upper in zip(ranks, ranks[1:]):
        if upper.fame_required <= lower.fame_required:
            raise ValueError(f"rank {upper.title!r} threshold must exceed {lower.title!r}")


def _balance_path(path: Optional[str]) -> str:
    if path:
        return path
    base = os.path.dirname(os.path.dirname(__file__))
    return os.path.join(base, "balance", "ranks.json")


def load_rank_table(path: Optional[str] = None) -> Tuple[RankTier, ...]:
    """Load the rank table from ``balance/ranks.json`` if available.

    Each record needs ``title`` and ``fame_required``; the caps default to
    zero vassals and one village. A missing file yields
    :data:`DEFAULT_RANKS`.
    """
    fn = _balance_path(path)
    try:
        with open(fn, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return DEFAULT_RANKS
    try:
        ranks = tuple(
            RankTier(
                title=str(rec["title"]),
                fame_required=float(rec["fame_required"]),
                max_vassals=int(rec.get("max_vassals", 0)),
                max_villages=int(rec.get("max_villages", 1)),
                notes=str(rec.get("notes", "")),
            )
            for rec in data
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"{fn}: malformed rank record ({exc})") from exc
    validate_ranks(ranks)
    return ranks


class ProgressionTracker:
    def __init__(
        self,
        ranks: Sequence[RankTier] = DEFAULT_RANKS,
        modifiers: GameModifiers = MODIFIERS,
        bus: Optional[EventBus] = None,
    ) -> None:
        validate_ranks(ranks)
        self.ranks: Tuple[RankTier, ...] = tuple(ranks)
        self.mods = modifiers
        self.bus = bus
        self.fame = 0.0
        self.rank_index = 0
        self.resources_produced: Dict[str, float] = {}
        self.max_population = 0
        self.buildings_constructed: Dict[str, int] = {}
        self.seasons_survived = 0
        self.years_completed = 0

    # ------------------------------------------------------------------
    # Fame and rank
    # ------------------------------------------------------------------

    @property
    def current_rank(self) -> RankTier:
        return self.ranks[self.rank_index]

    @property
    def next_rank(self) -> Optional[RankTier]:
        if self.rank_index + 1 < len(self.ranks):
            return self.ranks[self.rank_index + 1]
        return None

    def fame_to_next_rank(self) -> Optional[float]:
        nxt = self.next_rank
        return None if nxt is None else max(0.0, nxt.fame_required - self.fame)

    def add_fame(self, amount: float, reason: str = "") -> List[RankUnlock]:
        if not math.isfinite(amount):
            logger.warning("ignoring non-finite fame amount %r (%s)", amount, reason)
            return []
        if amount <= 0:
            return []
        self.fame += amount
        logger.debug("+%s fame: %s", amount, reason)
        self._publish(NotificationKind.FAME_GAINED, f"+{amount:g} fame: {reason}",
                      {"amount": amount, "reason": reason, "fame": self.fame})
        unlocks: List[RankUnlock] = []
        while self.next_rank is not None and self.fame >= self.next_rank.fame_required:
            previous = self.current_rank
            self.rank_index += 1
            unlock = RankUnlock(self.rank_index, self.current_rank, previous)
            unlocks.append(unlock)
            logger.info("risen in fame, now known as %s", unlock.tier.title)
            self._publish(
                NotificationKind.RANK_UP,
                f"You have risen in fame and are now known as {unlock.tier.title}!",
                {
                    "index": unlock.index,
                    "title": unlock.tier.title,
                    "notes": unlock.tier.notes,
                    "max_vassals": unlock.tier.max_vassals if unlock.more_vassals else None,
                    "max_villages": unlock.tier.max_villages if unlock.more_villages else None,
                },
            )
        return unlocks

    def meets_rank_requirement(self, kind: str, value: int) -> bool:
        if kind == "vassals":
            return value <= self.current_rank.max_vassals
        if kind == "villages":
            return value <= self.current_rank.max_villages
        return False

    def get_max_allowed(self, kind: str) -> int:
        if kind == "vassals":
            return self.current_rank.max_vassals
        if kind == "villages":
            return self.current_rank.max_villages
        return 0

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    def record_production(self, deltas: Mapping[str, float]) -> List[RankUnlock]:
        """Accumulate positive production and pay crossed thresholds."""
        unlocks: List[RankUnlock] = []
        for kind, delta in deltas.items():
            if delta <= 0:
                continue
            before = self.resources_produced.get(kind, 0.0)
            after = before + delta
            self.resources_produced[kind] = after
            for threshold, reward in zip(self.mods.resource_thresholds,
                                         self.mods.resource_fame_rewards):
                if before < threshold <= after:
                    unlocks += self.add_fame(reward, f"Produced {threshold:g} total {kind}")
        return unlocks

    def record_population(self, total: int) -> List[RankUnlock]:
        if total <= self.max_population:
            return []
        unlocks: List[RankUnlock] = []
        for threshold, reward in zip(self.mods.population_thresholds,
                                     self.mods.population_fame_rewards):
            if self.max_population < threshold <= total:
                unlocks += self.add_fame(reward, f"Settlement grew to {threshold} people")
        self.max_population = total
        return unlocks

    def record_construction(self, archetype_id: str) -> List[RankUnlock]:
        self.buildings_constructed[archetype_id] = self.buildings_constructed.get(archetype_id, 0) + 1
        reward = self.mods.construction_fame.get(archetype_id, 0)
        return self.add_fame(reward, f"Constructed a {archetype_id}")

    def record_season_change(self, season_name: str) -> List[RankUnlock]:
        self.seasons_survived += 1
        return self.add_fame(self.mods.seasonal_fame_bonus, f"Survived until {season_name}")

    def record_new_year(self, year: int) -> List[RankUnlock]:
        self.years_completed += 1
        return self.add_fame(self.mods.yearly_fame_bonus, f"Completed year {year - 1}")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fame": self.fame,
            "rank_index": self.rank_index,
            "resources_produced": dict(self.resources_produced),
            "max_population": self.max_population,
            "buildings_constructed": dict(self.buildings_constructed),
            "seasons_survived": self.seasons_survived,
            "years_completed": self.years_completed,
        }

    def load_dict(self, data: Mapping[str, Any]) -> None:
        """Restore state; the rank is recomputed from fame, not trusted."""
        from sim.safe_parse import to_amounts, to_float, to_int

        self.fame = max(0.0, to_float(data.get("fame"), default=0.0))
        self.rank_index = 0
        for i, tier in enumerate(self.ranks):
            if self.fame >= tier.fame_required:
                self.rank_index = i
        self.resources_produced = to_amounts(data.get("resources_produced"))
        self.max_population = max(0, to_int(data.get("max_population"), default=0))
        self.buildings_constructed = {
            k: int(v) for k, v in to_amounts(data.get("buildings_constructed")).items()
        }
        self.seasons_survived = to_int(data.get("seasons_survived"), default=0)
        self.years_completed = to_int(data.get("years_completed"), default=0)

    def _publish(self, kind: NotificationKind, message: str, payload: Dict[str, Any]) -> None:
        if self.bus is not None:
            self.bus.publish(Notification(kind, message, payload))


def rank_rows(ranks: Iterable[RankTier]) -> List[Dict[str, Any]]:
    return [
        {
            "index": i,
            "title": r.title,
            "fame_required": r.fame_required,
            "max_vassals": r.max_vassals,
            "max_villages": r.max_villages,
            "notes": r.notes,
        }
        for i, r in enumerate(ranks)
    ]


__all__ = [
    "RankTier",
    "RankUnlock",
    "ProgressionTracker",
    "DEFAULT_RANKS",
    "load_rank_table",
    "rank_rows",
    "validate_ranks",
]
