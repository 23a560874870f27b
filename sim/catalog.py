"""Static building archetypes and the catalog that validates them.

Archetypes are immutable records, one subclass per category. The catalog is
built once (from :data:`DEFAULT_ARCHETYPES` or a balance file) and checks
every cross reference up front, so the rest of the simulation can look
archetypes up without defensive checks.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sim.calendar import Season
from sim.land import Terrain

logger = logging.getLogger(__name__)


class Category(Enum):
    HOUSING = "housing"
    RESOURCE = "resource"
    MILITARY = "military"
    CRAFTING = "crafting"


def _frozen(mapping: Optional[Mapping[Any, float]]) -> Mapping[Any, float]:
    return MappingProxyType(dict(mapping or {}))


def _check_amounts(owner: str, label: str, amounts: Mapping[str, float]) -> None:
    for kind, amount in amounts.items():
        if amount < 0:
            raise ValueError(f"{owner}: {label} for {kind} must be >= 0")


# ---------------------------------------------------------------------------
# Archetype parts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProductionRule:
    resource: str
    base_amount: float
    skill: Optional[str] = None

    def __post_init__(self) -> None:
        if self.base_amount < 0:
            raise ValueError(f"production of {self.resource} must be >= 0")


@dataclass(frozen=True)
class JobSlot:
    title: str
    max_workers: int
    produces: Optional[ProductionRule] = None
    effects: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_workers < 0:
            raise ValueError(f"job {self.title!r}: max_workers must be >= 0")
        object.__setattr__(self, "effects", _frozen(self.effects))


@dataclass(frozen=True)
class LandRequirement:
    terrain: Tuple[Terrain, ...]
    acreage: int

    def __post_init__(self) -> None:
        if not self.terrain:
            raise ValueError("land requirement needs at least one terrain")
        if self.acreage < 0:
            raise ValueError("required acreage must be >= 0")


@dataclass(frozen=True)
class Requirements:
    min_rank: int = 0
    buildings: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Archetypes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StructureArchetype:
    """Shared shape of every building type."""

    id: str
    name: str
    description: str = ""
    build_cost: Mapping[str, float] = field(default_factory=dict)
    maintenance: Mapping[str, float] = field(default_factory=dict)
    jobs: Tuple[JobSlot, ...] = ()
    land: Optional[LandRequirement] = None
    requirements: Requirements = field(default_factory=Requirements)
    upgrades: Tuple[str, ...] = ()
    seasonal: Mapping[Season, float] = field(default_factory=dict)
    housing_capacity: int = 0
    production_multipliers: Mapping[str, float] = field(default_factory=dict)
    storage_capacity: Mapping[str, float] = field(default_factory=dict)

    category = Category.RESOURCE

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("archetype id must not be empty")
        for name in ("build_cost", "maintenance", "seasonal", "production_multipliers",
                     "storage_capacity"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))
        _check_amounts(self.id, "build cost", self.build_cost)
        _check_amounts(self.id, "maintenance", self.maintenance)
        _check_amounts(self.id, "storage", self.storage_capacity)
        if self.housing_capacity < 0:
            raise ValueError(f"{self.id}: housing capacity must be >= 0")
        for season, mult in self.seasonal.items():
            if not isinstance(season, Season) or mult < 0:
                raise ValueError(f"{self.id}: bad seasonal multiplier {season!r}={mult!r}")
        self.validate()

    def validate(self) -> None:
        """Category specific checks; subclasses override."""

    @property
    def job_capacity(self) -> int:
        return sum(j.max_workers for j in self.jobs)

    @property
    def acreage(self) -> int:
        return self.land.acreage if self.land else 0


@dataclass(frozen=True)
class HousingArchetype(StructureArchetype):
    category = Category.HOUSING

    def validate(self) -> None:
        if self.housing_capacity <= 0:
            raise ValueError(f"{self.id}: housing must provide capacity")


@dataclass(frozen=True)
class ResourceArchetype(StructureArchetype):
    category = Category.RESOURCE

    def validate(self) -> None:
        if not any(j.produces for j in self.jobs):
            raise ValueError(f"{self.id}: resource building needs a producing job")
        if self.land is None:
            raise ValueError(f"{self.id}: resource building needs a land requirement")


@dataclass(frozen=True)
class MilitaryArchetype(StructureArchetype):
    category = Category.MILITARY


@dataclass(frozen=True)
class CraftingArchetype(StructureArchetype):
    category = Category.CRAFTING

    def validate(self) -> None:
        if not self.jobs:
            raise ValueError(f"{self.id}: crafting building needs at least one job")


ARCHETYPE_CLASSES: Dict[Category, type] = {
    Category.HOUSING: HousingArchetype,
    Category.RESOURCE: ResourceArchetype,
    Category.MILITARY: MilitaryArchetype,
    Category.CRAFTING: CraftingArchetype,
}


# ---------------------------------------------------------------------------
# JSON conversion
# ---------------------------------------------------------------------------


def _job_from_dict(data: Mapping[str, Any]) -> JobSlot:
    produces = data.get("produces")
    rule = None
    if produces and produces.get("resource"):
        rule = ProductionRule(
            resource=str(produces["resource"]),
            base_amount=float(produces.get("base_amount", 0)),
            skill=produces.get("skill"),
        )
    return JobSlot(
        title=str(data["title"]),
        max_workers=int(data.get("max_workers", 0)),
        produces=rule,
        effects={str(k): float(v) for k, v in (data.get("effects") or {}).items()},
    )


def archetype_from_dict(data: Mapping[str, Any]) -> StructureArchetype:
    """Build an archetype from a balance-file record.

    Raises ``ValueError`` for an unknown category, terrain or season and
    ``KeyError`` when a required field is missing.
    """
    try:
        category = Category(data["category"])
    except ValueError:
        raise ValueError(f"unknown category {data['category']!r}") from None
    land = None
    if data.get("land"):
        land = LandRequirement(
            terrain=tuple(Terrain(t) for t in data["land"]["terrain"]),
            acreage=int(data["land"]["acreage"]),
        )
    req = data.get("requirements") or {}
    cls = ARCHETYPE_CLASSES[category]
    return cls(
        id=str(data["id"]),
        name=str(data.get("name", data["id"])),
        description=str(data.get("description", "")),
        build_cost={str(k): float(v) for k, v in (data.get("build_cost") or {}).items()},
        maintenance={str(k): float(v) for k, v in (data.get("maintenance") or {}).items()},
        jobs=tuple(_job_from_dict(j) for j in data.get("jobs") or []),
        land=land,
        requirements=Requirements(
            min_rank=int(req.get("rank", 0)),
            buildings=tuple(req.get("buildings") or ()),
        ),
        upgrades=tuple(data.get("upgrades") or ()),
        seasonal={Season(k): float(v) for k, v in (data.get("seasonal") or {}).items()},
        housing_capacity=int(data.get("housing_capacity", 0)),
        production_multipliers={
            str(k): float(v) for k, v in (data.get("production_multipliers") or {}).items()
        },
        storage_capacity={
            str(k): float(v) for k, v in (data.get("storage_capacity") or {}).items()
        },
    )


def archetype_to_dict(a: StructureArchetype) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": a.id,
        "name": a.name,
        "category": a.category.value,
        "description": a.description,
        "build_cost": dict(a.build_cost),
        "maintenance": dict(a.maintenance),
        "jobs": [
            {
                "title": j.title,
                "max_workers": j.max_workers,
                "produces": None if j.produces is None else {
                    "resource": j.produces.resource,
                    "base_amount": j.produces.base_amount,
                    "skill": j.produces.skill,
                },
                "effects": dict(j.effects),
            }
            for j in a.jobs
        ],
        "requirements": {
            "rank": a.requirements.min_rank,
            "buildings": list(a.requirements.buildings),
        },
        "upgrades": list(a.upgrades),
        "seasonal": {s.value: m for s, m in a.seasonal.items()},
        "housing_capacity": a.housing_capacity,
        "production_multipliers": dict(a.production_multipliers),
        "storage_capacity": dict(a.storage_capacity),
    }
    if a.land is not None:
        out["land"] = {"terrain": [t.value for t in a.land.terrain], "acreage": a.land.acreage}
    return out


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_ARCHETYPES: Tuple[StructureArchetype, ...] = (
    HousingArchetype(
        id="house",
        name="House",
        description="A simple wooden house that can shelter a family.",
        build_cost={"wood": 20, "stone": 10},
        land=LandRequirement((Terrain.PLAINS,), 1),
        upgrades=("longhouse",),
        housing_capacity=5,
    ),
    HousingArchetype(
        id="longhouse",
        name="Longhouse",
        description="A larger structure that can house multiple families.",
        build_cost={"wood": 40, "stone": 20},
        land=LandRequirement((Terrain.PLAINS,), 2),
        requirements=Requirements(min_rank=3, buildings=("house",)),
        housing_capacity=15,
    ),
    ResourceArchetype(
        id="huntersLodge",
        name="Hunter's Lodge",
        description="A place for hunters to prepare for hunts and process game.",
        build_cost={"wood": 15},
        jobs=(JobSlot("Hunter", 3, ProductionRule("food", 3, "hunting")),),
        land=LandRequirement((Terrain.FOREST, Terrain.PLAINS), 5),
    ),
    ResourceArchetype(
        id="lumberCamp",
        name="Lumber Camp",
        description="A camp for harvesting timber from the forest.",
        build_cost={"wood": 10},
        jobs=(JobSlot("Woodcutter", 3, ProductionRule("wood", 2, "woodcutting")),),
        land=LandRequirement((Terrain.FOREST,), 5),
    ),
    ResourceArchetype(
        id="quarry",
        name="Quarry",
        description="A site for extracting stone from the earth.",
        build_cost={"wood": 15, "metal": 5},
        jobs=(JobSlot("Quarryman", 3, ProductionRule("stone", 1.5, "mining")),),
        land=LandRequirement((Terrain.HILLS, Terrain.MOUNTAINS), 6),
    ),
    ResourceArchetype(
        id="mine",
        name="Mine",
        description="A deep shaft for extracting metal ores.",
        build_cost={"wood": 20, "stone": 10},
        maintenance={"wood": 0.5},
        jobs=(JobSlot("Miner", 3, ProductionRule("metal", 1, "mining")),),
        land=LandRequirement((Terrain.HILLS, Terrain.MOUNTAINS), 4),
        requirements=Requirements(min_rank=2),
    ),
    ResourceArchetype(
        id="farm",
        name="Farm",
        description="Fields for growing crops and raising livestock.",
        build_cost={"wood": 10},
        jobs=(JobSlot("Farmer", 4, ProductionRule("food", 2, "farming")),),
        land=LandRequirement((Terrain.PLAINS,), 10),
        seasonal={
            Season.SPRING: 0.8,
            Season.SUMMER: 1.2,
            Season.FALL: 1.5,
            Season.WINTER: 0.2,
        },
    ),
    MilitaryArchetype(
        id="trainingGround",
        name="Training Ground",
        description="An area for warriors to train and improve their combat skills.",
        build_cost={"wood": 15, "stone": 5},
        jobs=(JobSlot("Trainer", 1, effects={"trainingEfficiency": 1.2}),),
        land=LandRequirement((Terrain.PLAINS,), 8),
        requirements=Requirements(min_rank=3),
    ),
    CraftingArchetype(
        id="smithy",
        name="Smithy",
        description="A workshop for crafting tools and weapons from metal.",
        build_cost={"wood": 25, "stone": 15, "metal": 5},
        maintenance={"wood": 0.5},
        jobs=(JobSlot("Blacksmith", 2),),
        land=LandRequirement((Terrain.PLAINS, Terrain.HILLS), 3),
        requirements=Requirements(min_rank=2),
        production_multipliers={"metal": 1.5},
    ),
    CraftingArchetype(
        id="storehouse",
        name="Storehouse",
        description="A sturdy building for storing surplus goods.",
        build_cost={"wood": 30, "stone": 10},
        jobs=(JobSlot("Storekeeper", 1),),
        land=LandRequirement((Terrain.PLAINS, Terrain.HILLS), 1),
        storage_capacity={"food": 200, "wood": 150, "stone": 100, "metal": 50},
    ),
)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class StructureCatalog:
    """Read-only lookup of archetypes by id."""

    def __init__(self, archetypes: Iterable[StructureArchetype] = DEFAULT_ARCHETYPES) -> None:
        self._by_id: Dict[str, StructureArchetype] = {}
        for a in archetypes:
            if a.id in self._by_id:
                raise ValueError(f"duplicate archetype id {a.id!r}")
            self._by_id[a.id] = a
        self._check_references()

    def _check_references(self) -> None:
        for a in self._by_id.values():
            for ref in a.upgrades + a.requirements.buildings:
                if ref not in self._by_id:
                    raise ValueError(f"{a.id}: references unknown archetype {ref!r}")
            if a.id in a.upgrades:
                raise ValueError(f"{a.id}: cannot upgrade into itself")

    def get(self, archetype_id: str) -> Optional[StructureArchetype]:
        return self._by_id.get(archetype_id)

    def list(self) -> List[StructureArchetype]:
        return list(self._by_id.values())

    def __contains__(self, archetype_id: object) -> bool:
        return archetype_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


def _balance_path(path: Optional[str]) -> str:
    if path:
        return path
    base = os.path.dirname(os.path.dirname(__file__))
    return os.path.join(base, "balance", "buildings.json")


def load_catalog(path: Optional[str] = None) -> StructureCatalog:
    """Load archetypes from ``balance/buildings.json`` if available.

    The file holds a list of archetype records. A missing file yields the
    default catalog; malformed records raise ``ValueError``.
    """
    fn = _balance_path(path)
    try:
        with open(fn, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return StructureCatalog()
    if not isinstance(data, list):
        raise ValueError(f"{fn}: expected a list of archetypes")
    try:
        archetypes = [archetype_from_dict(rec) for rec in data]
    except KeyError as exc:
        raise ValueError(f"{fn}: archetype missing field {exc}") from exc
    logger.info("loaded %d archetypes from %s", len(archetypes), fn)
    return StructureCatalog(archetypes)


__all__ = [
    "Category",
    "ProductionRule",
    "JobSlot",
    "LandRequirement",
    "Requirements",
    "StructureArchetype",
    "HousingArchetype",
    "ResourceArchetype",
    "MilitaryArchetype",
    "CraftingArchetype",
    "StructureCatalog",
    "DEFAULT_ARCHETYPES",
    "archetype_from_dict",
    "archetype_to_dict",
    "load_catalog",
]
