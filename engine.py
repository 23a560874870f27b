from __future__ import annotations
from typing import Any, Dict, List, Optional
import json
import logging

import numpy as np

from modifiers import GameModifiers, MODIFIERS
from sim.buildings import SettlementBuildings
from sim.calendar import Calendar, Season
from sim.catalog import StructureCatalog, load_catalog
from sim.events import EventBus, Notification, NotificationKind
from sim.land import LandRegistry, starting_regions
from sim.ledger import ResourceLedger, STARTING_RESOURCES
from sim.loop import SPEEDS, Scheduler
from sim.outcome import Outcome
from sim.population import Person, Roster, WARRIOR, WORKER
from sim.progression import ProgressionTracker, RankTier, RankUnlock, load_rank_table

logger = logging.getLogger(__name__)

SAVE_VERSION = 1

# Founding household: (id, name, role); skills are rolled from the seed
FOUNDERS = (
    ("p1", "Bjorn", WORKER),
    ("p2", "Astrid", WORKER),
    ("p3", "Leif", WORKER),
    ("p4", "Sigrid", WORKER),
    ("p5", "Ragnar", WARRIOR),
)
SKILLS = ("farming", "hunting", "woodcutting", "mining")


class SettlementEngine:
    """Owns one instance of every subsystem and runs the tick pipeline.

    Every mutating command returns an :class:`~sim.outcome.Outcome` and, on
    success, publishes a notification on :attr:`bus`. Queries return copies.
    Notifications raised during a tick are held until the tick has finished
    updating state.
    """

    def __init__(self, seed: int = 12345, modifiers: GameModifiers = MODIFIERS,
                 catalog: Optional[StructureCatalog] = None,
                 ranks: Optional[List[RankTier]] = None, speed: str = "normal") -> None:
        self.seed = seed
        self.mods = modifiers
        self.rng = np.random.default_rng(seed)
        self.bus = EventBus()
        self.calendar = Calendar()
        self.ledger = ResourceLedger(STARTING_RESOURCES)
        self.land = LandRegistry(starting_regions(), unexplored=modifiers.starting_unexplored_acres)
        self.catalog = catalog if catalog is not None else load_catalog()
        self.roster = Roster()
        self.progression = ProgressionTracker(
            ranks if ranks is not None else load_rank_table(), modifiers, self.bus)
        self.buildings = SettlementBuildings(
            self.catalog, self.land, self.ledger, self.roster,
            rank_source=lambda: self.progression.rank_index, modifiers=modifiers)
        self.scheduler = Scheduler(self.tick, speed=speed)

    def found_settlement(self) -> None:
        """Populate a fresh settlement: founders and a first house."""
        for pid, name, role in FOUNDERS:
            skills = {s: float(self.rng.integers(1, 6)) for s in SKILLS} if role == WORKER else {}
            self.roster.add(Person(id=pid, name=name, role=role, skills=skills))
        if "house" in self.catalog:
            self.buildings.construct("house", "settlement", day=self.calendar.day)
        self._sync_storage()
        self.progression.record_population(self.roster.total())
        logger.info("founded settlement with %d people", self.roster.total())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _notify(self, kind: NotificationKind, message: str, **payload: Any) -> None:
        self.bus.publish(Notification(kind, message, payload))

    def _sync_storage(self) -> None:
        self.ledger.set_storage_bonus(self.buildings.storage_bonus())

    def construct(self, archetype_id: str, region_id: str) -> Outcome:
        out = self.buildings.construct(archetype_id, region_id, day=self.calendar.day)
        if out:
            self._sync_storage()
            self.progression.record_construction(archetype_id)
            self._notify(NotificationKind.BUILDING_CONSTRUCTED,
                         f"Constructed {archetype_id} in {region_id}",
                         building=out.value.to_dict())
        return out

    def upgrade(self, building_id: str) -> Outcome:
        out = self.buildings.upgrade(building_id, day=self.calendar.day)
        if out:
            self._sync_storage()
            self.progression.record_construction(out.value.archetype_id)
            self._notify(NotificationKind.BUILDING_UPGRADED,
                         f"Upgraded {building_id} to {out.value.archetype_id}",
                         replaced=building_id, building=out.value.to_dict())
        return out

    def repair(self, building_id: str) -> Outcome:
        out = self.buildings.repair(building_id)
        if out:
            self._notify(NotificationKind.BUILDING_REPAIRED, f"Repaired {building_id}",
                         building_id=building_id, cost=dict(out.value))
        return out

    def assign_worker(self, building_id: str, worker_id: str) -> Outcome:
        out = self.buildings.assign_worker(building_id, worker_id)
        if out:
            self._notify(NotificationKind.WORKER_ASSIGNED,
                         f"Assigned {worker_id} to {building_id}",
                         building_id=building_id, worker_id=worker_id)
        return out

    def remove_worker(self, building_id: str, worker_id: str) -> Outcome:
        out = self.buildings.remove_worker(building_id, worker_id)
        if out:
            self._notify(NotificationKind.WORKER_REMOVED,
                         f"Removed {worker_id} from {building_id}",
                         building_id=building_id, worker_id=worker_id)
        return out

    def add_fame(self, amount: float, reason: str = "") -> List[RankUnlock]:
        return self.progression.add_fame(amount, reason)

    def explore(self) -> Outcome:
        out = self.land.explore(
            self.roster.available_count(WARRIOR), self.rng,
            min_acres=self.mods.explore_min_acres, max_acres=self.mods.explore_max_acres)
        if out:
            region = out.value
            self.progression.add_fame(self.mods.exploration_fame, f"Explored {region.name}")
            self._notify(NotificationKind.REGION_EXPLORED,
                         f"Claimed {region.acreage} acres of {region.terrain.value}",
                         region=region.to_dict())
        return out

    # ------------------------------------------------------------------
    # Tick pipeline
    # ------------------------------------------------------------------

    def tick(self, days: Optional[int] = None) -> Dict[str, Any]:
        """Advance the settlement by ``days`` (default: the scheduler's tick size).

        Subscribers hear about the tick only after all four steps have run,
        so one that raises cannot leave the settlement half advanced.
        """
        if days is None:
            days = self.scheduler.settings.days_per_tick
        with self.bus.deferred():
            return self._run_tick(days)

    def _run_tick(self, days: int) -> Dict[str, Any]:
        # 1. calendar
        adv = self.calendar.advance(days)
        years = iter(adv.years)
        for change in adv.seasons:
            self.progression.record_season_change(change.current.value)
            self._notify(NotificationKind.SEASON_CHANGED,
                         f"{change.previous.value} gives way to {change.current.value}",
                         previous=change.previous.value, current=change.current.value)
            if change.current is Season.SPRING:
                year = next(years)
                logger.info("year %d begins", year)
                self.progression.record_new_year(year)
                self._notify(NotificationKind.NEW_YEAR, f"Year {year} begins", year=year)

        # 2. production, upkeep and wear
        daily = self.buildings.production_pass(self.calendar.season)
        for kind in self.ledger.query():
            self.ledger.set_production_rate(kind, daily.get(kind, 0.0))
        delta = {k: v * days for k, v in daily.items()}
        eaten = self.roster.total() * self.mods.food_per_person_per_day * days
        if eaten:
            delta["food"] = delta.get("food", 0.0) - eaten
        food_deficit = self.ledger.amount("food") + delta.get("food", 0.0) < 0
        if food_deficit:
            logger.warning("food ran out on day %d", self.calendar.day)
        applied = self.ledger.credit(delta)
        self.buildings.decay(days)
        logger.debug("day %d applied %s", self.calendar.day, applied)

        # 3. milestones
        self.progression.record_production({k: v for k, v in applied.items() if v > 0})
        self.progression.record_population(self.roster.total())

        # 4. observers
        snap = self.snapshot()
        snap["food_consumed"] = eaten
        snap["food_deficit"] = food_deficit
        self._notify(NotificationKind.TICK, self.calendar.describe(), **snap)
        return snap

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def resources(self) -> Dict[str, float]:
        return self.ledger.query()

    def production_rates(self) -> Dict[str, float]:
        return self.ledger.get_production_rates()

    def remaining_acreage(self) -> Dict[str, float]:
        return {
            r.id: self.land.remaining_acreage(r.id, self.buildings.acreage_used(r.id))
            for r in self.land.list()
        }

    def rank(self) -> Dict[str, Any]:
        p = self.progression
        return {
            "index": p.rank_index,
            "title": p.current_rank.title,
            "fame": p.fame,
            "next": p.next_rank.title if p.next_rank else None,
            "fame_to_next": p.fame_to_next_rank(),
        }

    def snapshot(self) -> Dict[str, Any]:
        return {
            "calendar": self.calendar.to_dict(),
            "resources": self.resources(),
            "rates": self.production_rates(),
            "buildings": self.buildings.snapshot(),
            "housing": self.buildings.housing_capacity(),
            "rank": self.rank(),
            "acreage": self.remaining_acreage(),
        }

    def summary(self) -> Dict:
        res = {k: round(v, 2) for k, v in self.ledger.query().items() if v > 0}
        return {
            "date": self.calendar.describe(),
            "fame": round(self.progression.fame, 1),
            "rank": self.progression.current_rank.title,
            "population": self.roster.total(),
            "housing": self.buildings.housing_capacity(),
            "buildings": len(self.buildings.list()),
            "regions": len(self.land.list()),
            "unexplored": self.land.unexplored,
            "resources": res,
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_json(self, path: str) -> None:
        data = {
            "version": SAVE_VERSION,
            "seed": self.seed,
            "speed": self.scheduler.speed,
            "calendar": self.calendar.to_dict(),
            "ledger": self.ledger.to_dict(),
            "land": self.land.to_dict(),
            "roster": self.roster.to_dict(),
            "buildings": self.buildings.to_dict(),
            "progression": self.progression.to_dict(),
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def load_json(self, path: str) -> None:
        from sim.safe_parse import to_int
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self.seed = to_int(data.get("seed"), default=self.seed)
        self.calendar = Calendar.from_dict(data.get("calendar", {}))
        # Reseed from the date so a reloaded world does not replay old draws
        self.rng = np.random.default_rng(self.seed ^ self.calendar.day)
        self.ledger = ResourceLedger.from_dict(data.get("ledger", {}))
        self.land = LandRegistry.from_dict(data.get("land", {}))
        self.roster = Roster.from_dict(data.get("roster", {}))
        self.buildings = SettlementBuildings(
            self.catalog, self.land, self.ledger, self.roster,
            rank_source=lambda: self.progression.rank_index, modifiers=self.mods)
        self.buildings.load_dict(data.get("buildings", {}))
        self._sync_storage()
        self.progression.load_dict(data.get("progression", {}))
        speed = data.get("speed", "normal")
        self.scheduler.set_speed(speed if speed in SPEEDS else "normal")
