"""Constructed buildings: placement, staffing, wear and output.

:class:`SettlementBuildings` owns every building instance. It reads the
catalog, the land registry and the population directory, and it is the only
place that debits construction and repair costs from the ledger. Every
command returns an :class:`~sim.outcome.Outcome`; validation never mutates
state. Buildings handed out by queries and commands are copies; only
the commands change what is stored.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional

import numpy as np

from modifiers import GameModifiers, MODIFIERS
from sim.calendar import Season
from sim.catalog import StructureArchetype, StructureCatalog
from sim.land import LandRegistry
from sim.ledger import ResourceLedger
from sim.outcome import ErrorKind, Outcome
from sim.population import PopulationDirectory, WORKER

logger = logging.getLogger(__name__)


@dataclass
class Building:
    id: str
    archetype_id: str
    region_id: str
    workers: List[str] = field(default_factory=list)
    condition: float = 100.0
    built_day: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "archetype_id": self.archetype_id,
            "region_id": self.region_id,
            "workers": list(self.workers),
            "condition": self.condition,
            "built_day": self.built_day,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Building":
        from sim.safe_parse import to_float, to_int

        return cls(
            id=str(data["id"]),
            archetype_id=str(data["archetype_id"]),
            region_id=str(data["region_id"]),
            workers=[str(w) for w in data.get("workers") or []],
            condition=min(100.0, max(0.0, to_float(data.get("condition"), default=100.0))),
            built_day=to_int(data.get("built_day"), default=0),
        )


class SettlementBuildings:
    """All buildings standing in the settlement.

    ``rank_source`` returns the current rank index; construction and
    upgrades compare it against each archetype's minimum rank.
    """

    def __init__(
        self,
        catalog: StructureCatalog,
        land: LandRegistry,
        ledger: ResourceLedger,
        population: PopulationDirectory,
        rank_source: Callable[[], int] = lambda: 0,
        modifiers: GameModifiers = MODIFIERS,
    ) -> None:
        self.catalog = catalog
        self.land = land
        self.ledger = ledger
        self.population = population
        self.rank_source = rank_source
        self.mods = modifiers
        self._buildings: List[Building] = []
        self._next_id = 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _find(self, building_id: str) -> Optional[Building]:
        for b in self._buildings:
            if b.id == building_id:
                return b
        return None

    def get(self, building_id: str) -> Optional[Building]:
        return copy.deepcopy(self._find(building_id))

    def list(self) -> List[Building]:
        return copy.deepcopy(self._buildings)

    def count(self, archetype_id: str) -> int:
        return sum(1 for b in self._buildings if b.archetype_id == archetype_id)

    def archetype_of(self, building: Building) -> StructureArchetype:
        a = self.catalog.get(building.archetype_id)
        if a is None:
            raise KeyError(f"building {building.id} has unknown archetype {building.archetype_id!r}")
        return a

    def acreage_used(self, region_id: str) -> int:
        return sum(
            self.archetype_of(b).acreage for b in self._buildings if b.region_id == region_id
        )

    def housing_capacity(self) -> int:
        return sum(self.archetype_of(b).housing_capacity for b in self._buildings)

    def production_multipliers(self) -> Dict[str, float]:
        """Combined passive multipliers of every standing building."""
        out: Dict[str, float] = {}
        for b in self._buildings:
            for kind, mult in self.archetype_of(b).production_multipliers.items():
                out[kind] = out.get(kind, 1.0) * mult
        return out

    def storage_bonus(self) -> Dict[str, float]:
        """Extra storage granted by standing buildings, per resource."""
        out: Dict[str, float] = {}
        for b in self._buildings:
            for kind, amount in self.archetype_of(b).storage_capacity.items():
                out[kind] = out.get(kind, 0.0) + amount
        return out

    def assignment_of(self, worker_id: str) -> Optional[str]:
        for b in self._buildings:
            if worker_id in b.workers:
                return b.id
        return None

    def snapshot(self) -> List[Dict[str, object]]:
        rows = []
        for b in self._buildings:
            a = self.archetype_of(b)
            rows.append({
                "id": b.id,
                "archetype": a.id,
                "name": a.name,
                "category": a.category.value,
                "region": b.region_id,
                "workers": list(b.workers),
                "worker_count": len(b.workers),
                "capacity": a.job_capacity,
                "condition": round(b.condition, 2),
                "built_day": b.built_day,
            })
        return rows

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _validate(self, archetype_id: str, region_id: str) -> Outcome:
        a = self.catalog.get(archetype_id)
        if a is None:
            return Outcome.failure(ErrorKind.UNKNOWN_ARCHETYPE, f"Unknown building type: {archetype_id}")
        if self.rank_source() < a.requirements.min_rank:
            return Outcome.failure(
                ErrorKind.RANK_TOO_LOW,
                f"{a.name} requires rank {a.requirements.min_rank}",
            )
        for prereq in a.requirements.buildings:
            if self.count(prereq) == 0:
                return Outcome.failure(
                    ErrorKind.MISSING_PREREQUISITE, f"{a.name} requires a {prereq}"
                )
        region = self.land.get(region_id)
        if region is None:
            return Outcome.failure(ErrorKind.UNKNOWN_REGION, f"Unknown region: {region_id}")
        if a.land is not None:
            if region.terrain not in a.land.terrain:
                allowed = " or ".join(t.value for t in a.land.terrain)
                return Outcome.failure(
                    ErrorKind.INCOMPATIBLE_TERRAIN,
                    f"Cannot build on {region.terrain.value} terrain. Requires {allowed}.",
                )
            remaining = self.land.remaining_acreage(region_id, self.acreage_used(region_id))
            if remaining < a.land.acreage:
                return Outcome.failure(
                    ErrorKind.INSUFFICIENT_LAND,
                    f"Not enough available land. Requires {a.land.acreage} acres.",
                )
        if not self.ledger.can_afford(a.build_cost):
            return Outcome.failure(
                ErrorKind.INSUFFICIENT_RESOURCES, f"Not enough resources to build {a.name}"
            )
        return Outcome.success(a)

    def _new_id(self) -> str:
        bid = f"building_{self._next_id}"
        self._next_id += 1
        return bid

    def construct(self, archetype_id: str, region_id: str, day: int = 0) -> Outcome:
        checked = self._validate(archetype_id, region_id)
        if not checked:
            return checked
        a: StructureArchetype = checked.value
        if not self.ledger.debit(a.build_cost):
            return Outcome.failure(
                ErrorKind.INSUFFICIENT_RESOURCES, f"Not enough resources to build {a.name}"
            )
        b = Building(id=self._new_id(), archetype_id=a.id, region_id=region_id,
                     condition=self.mods.max_condition, built_day=day)
        self._buildings.append(b)
        logger.info("constructed %s (%s) in %s", a.name, b.id, region_id)
        return Outcome.success(copy.deepcopy(b))

    def upgrade(self, building_id: str, day: int = 0) -> Outcome:
        old = self._find(building_id)
        if old is None:
            return Outcome.failure(ErrorKind.UNKNOWN_BUILDING, f"Unknown building: {building_id}")
        source = self.archetype_of(old)
        if not source.upgrades:
            return Outcome.failure(ErrorKind.NO_UPGRADE_PATH, f"{source.name} cannot be upgraded")
        checked = self._validate(source.upgrades[0], old.region_id)
        if not checked:
            return checked
        target: StructureArchetype = checked.value
        if not self.ledger.debit(target.build_cost):
            return Outcome.failure(
                ErrorKind.INSUFFICIENT_RESOURCES, f"Not enough resources to build {target.name}"
            )
        workers = list(old.workers)
        if len(workers) > target.job_capacity:
            logger.warning("upgrade of %s drops %d workers beyond capacity",
                           old.id, len(workers) - target.job_capacity)
            workers = workers[: target.job_capacity]
        new = Building(id=self._new_id(), archetype_id=target.id, region_id=old.region_id,
                       workers=workers, condition=self.mods.max_condition, built_day=day)
        self._buildings[self._buildings.index(old)] = new
        logger.info("upgraded %s to %s (%s)", source.name, target.name, new.id)
        return Outcome.success(copy.deepcopy(new))

    # ------------------------------------------------------------------
    # Repair and wear
    # ------------------------------------------------------------------

    def repair_cost(self, building: Building) -> Dict[str, float]:
        a = self.archetype_of(building)
        damage = (self.mods.max_condition - building.condition) / self.mods.max_condition
        cost: Dict[str, float] = {}
        for kind, amount in a.build_cost.items():
            if amount <= 0:
                continue
            # round() absorbs float drift so 3.0000000001 does not become 4
            raw = math.ceil(round(amount * self.mods.repair_cost_fraction * damage, 9))
            cost[kind] = max(self.mods.min_repair_cost, raw)
        return cost

    def repair(self, building_id: str) -> Outcome:
        b = self._find(building_id)
        if b is None:
            return Outcome.failure(ErrorKind.UNKNOWN_BUILDING, f"Unknown building: {building_id}")
        if b.condition >= self.mods.max_condition:
            return Outcome.success({})
        cost = self.repair_cost(b)
        if not self.ledger.debit(cost):
            return Outcome.failure(ErrorKind.INSUFFICIENT_RESOURCES, "Not enough resources to repair")
        b.condition = self.mods.max_condition
        logger.info("repaired %s for %s", b.id, cost)
        return Outcome.success(cost)

    def decay(self, days: float) -> None:
        loss = self.mods.condition_decay_per_day * days
        for b in self._buildings:
            b.condition = max(0.0, b.condition - loss)

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def assign_worker(self, building_id: str, worker_id: str) -> Outcome:
        b = self._find(building_id)
        if b is None:
            return Outcome.failure(ErrorKind.UNKNOWN_BUILDING, f"Unknown building: {building_id}")
        capacity = self.archetype_of(b).job_capacity
        if capacity == 0:
            return Outcome.failure(ErrorKind.NO_JOB_SLOTS, "This building has no jobs")
        person = self.population.get(worker_id)
        if person is None or person.role != WORKER:
            return Outcome.failure(ErrorKind.UNKNOWN_WORKER, f"No worker with id {worker_id}")
        if not person.available:
            return Outcome.failure(ErrorKind.WORKER_UNAVAILABLE, f"{person.name} is not available")
        if worker_id in b.workers:
            return Outcome.success(copy.deepcopy(b))
        if len(b.workers) >= capacity:
            return Outcome.failure(ErrorKind.AT_CAPACITY, "This building is at full capacity")
        previous = self.assignment_of(worker_id)
        if previous is not None:
            self.remove_worker(previous, worker_id)
        b.workers.append(worker_id)
        logger.debug("assigned %s to %s", worker_id, b.id)
        return Outcome.success(copy.deepcopy(b))

    def remove_worker(self, building_id: str, worker_id: str) -> Outcome:
        b = self._find(building_id)
        if b is None:
            return Outcome.failure(ErrorKind.UNKNOWN_BUILDING, f"Unknown building: {building_id}")
        if worker_id in b.workers:
            b.workers.remove(worker_id)
        return Outcome.success(copy.deepcopy(b))

    # ------------------------------------------------------------------
    # Production
    # ------------------------------------------------------------------

    def _skill_modifier(self, worker_ids: List[str], skill: Optional[str]) -> float:
        if not skill:
            return 1.0
        levels = []
        for wid in worker_ids:
            person = self.population.get(wid)
            if person is None:
                levels.append(self.mods.default_skill)
            else:
                levels.append(person.skills.get(skill, self.mods.default_skill))
        avg = float(np.mean(levels)) if levels else self.mods.default_skill
        return self.mods.skill_floor + (avg / 10.0) * self.mods.skill_span

    def production_pass(self, season: Season) -> Dict[str, float]:
        """Net output for one day, maintenance included.

        Each producing job contributes ``base * workers * skill * seasonal *
        potential * condition``; maintenance is then subtracted for every
        building. Entries may be negative.
        """
        kinds: List[str] = []
        rows: List[List[float]] = []
        for b in self._buildings:
            if not b.workers:
                continue
            a = self.archetype_of(b)
            region = self.land.get(b.region_id)
            for job in a.jobs:
                rule = job.produces
                if rule is None:
                    continue
                effective = min(len(b.workers), job.max_workers)
                potential = region.potential_factor(rule.resource) if region else None
                kinds.append(rule.resource)
                rows.append([
                    rule.base_amount * effective,
                    self._skill_modifier(b.workers, rule.skill),
                    a.seasonal.get(season, 1.0),
                    1.0 if potential is None else potential,
                    b.condition / self.mods.max_condition,
                ])

        out: Dict[str, float] = {}
        if rows:
            index = sorted(set(kinds))
            pos = np.array([index.index(k) for k in kinds])
            amounts = np.prod(np.array(rows, dtype=np.float64), axis=1)
            acc = np.zeros(len(index), dtype=np.float64)
            np.add.at(acc, pos, amounts)
            out = {k: float(v) for k, v in zip(index, acc)}

        for b in self._buildings:
            for kind, amount in self.archetype_of(b).maintenance.items():
                out[kind] = out.get(kind, 0.0) - amount
        return out

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, object]:
        return {
            "next_id": self._next_id,
            "buildings": [b.to_dict() for b in self._buildings],
        }

    def load_dict(self, data: Mapping[str, object]) -> None:
        """Replace all buildings with those in ``data``.

        Buildings whose archetype is not in the catalog are dropped, and a
        worker listed twice keeps only its first assignment.
        """
        from sim.safe_parse import to_int

        self._buildings = []
        seen = set()
        for bd in data.get("buildings", []):
            b = Building.from_dict(bd)
            if b.archetype_id not in self.catalog:
                logger.warning("load: dropping %s with unknown archetype %s", b.id, b.archetype_id)
                continue
            b.workers = [w for w in b.workers if w not in seen]
            seen.update(b.workers)
            self._buildings.append(b)
        self._next_id = max(1, to_int(data.get("next_id"), default=len(self._buildings) + 1))


__all__ = ["Building", "SettlementBuildings"]
