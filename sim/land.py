"""Territory model: regions, acreage budgets and resource potential.

Regions are created once at territory generation (or later by
exploration) and never destroyed. The registry itself does not know about
buildings; callers pass in the acreage already consumed when they ask how
much land is left.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from sim.outcome import ErrorKind, Outcome

logger = logging.getLogger(__name__)


class Terrain(Enum):
    PLAINS = "plains"
    FOREST = "forest"
    HILLS = "hills"
    MOUNTAINS = "mountains"
    COASTLINE = "coastline"
    RIVER = "river"
    MARSH = "marsh"


@dataclass(frozen=True)
class ResourcePotential:
    """How much of a resource a region holds and how easy it is to reach."""

    abundance: float
    accessibility: float

    def __post_init__(self) -> None:
        for name in ("abundance", "accessibility"):
            v = getattr(self, name)
            if not 0.0 <= v <= 100.0:
                raise ValueError(f"{name} must be within [0, 100], got {v}")

    @property
    def factor(self) -> float:
        return (self.abundance / 100.0) * (self.accessibility / 100.0)


@dataclass(frozen=True)
class Region:
    id: str
    name: str
    terrain: Terrain
    acreage: int
    resources: Mapping[str, ResourcePotential] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.acreage <= 0:
            raise ValueError(f"region {self.id!r} acreage must be positive")
        object.__setattr__(self, "resources", MappingProxyType(dict(self.resources)))

    def potential_factor(self, kind: str) -> Optional[float]:
        """Return ``abundance * accessibility`` (as fractions) or ``None``."""
        p = self.resources.get(kind)
        return None if p is None else p.factor

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "terrain": self.terrain.value,
            "acreage": self.acreage,
            "resources": {
                k: {"abundance": p.abundance, "accessibility": p.accessibility}
                for k, p in self.resources.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Region":
        from sim.safe_parse import to_float, to_int

        resources = {}
        for kind, pot in (data.get("resources") or {}).items():
            resources[str(kind)] = ResourcePotential(
                abundance=to_float(pot.get("abundance")),
                accessibility=to_float(pot.get("accessibility")),
            )
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            terrain=Terrain(str(data["terrain"]).lower()),
            acreage=to_int(data.get("acreage"), default=1),
            resources=resources,
        )


# ---------------------------------------------------------------------------
# Exploration tables
# ---------------------------------------------------------------------------

# Relative odds of discovering each terrain
EXPLORE_TERRAIN_WEIGHTS: Dict[Terrain, float] = {
    Terrain.PLAINS: 0.25,
    Terrain.FOREST: 0.25,
    Terrain.HILLS: 0.2,
    Terrain.MOUNTAINS: 0.1,
    Terrain.COASTLINE: 0.1,
    Terrain.RIVER: 0.05,
    Terrain.MARSH: 0.05,
}

# terrain -> resource -> ((abundance lo, hi), (accessibility lo, hi))
EXPLORE_POTENTIAL: Dict[Terrain, Dict[str, Tuple[Tuple[int, int], Tuple[int, int]]]] = {
    Terrain.PLAINS: {
        "food": ((60, 90), (70, 90)),
        "wood": ((20, 40), (80, 95)),
    },
    Terrain.FOREST: {
        "wood": ((70, 95), (60, 80)),
        "food": ((50, 70), (50, 70)),
        "herbs": ((40, 70), (60, 80)),
    },
    Terrain.HILLS: {
        "stone": ((60, 90), (50, 70)),
        "metal": ((30, 60), (30, 50)),
        "wood": ((30, 50), (60, 80)),
    },
    Terrain.MOUNTAINS: {
        "stone": ((80, 95), (30, 50)),
        "metal": ((50, 80), (20, 40)),
    },
    Terrain.COASTLINE: {
        "food": ((70, 90), (60, 80)),
        "salt": ((60, 90), (70, 90)),
    },
    Terrain.RIVER: {
        "food": ((60, 85), (70, 90)),
        "clay": ((50, 80), (60, 85)),
    },
    Terrain.MARSH: {
        "peat": ((60, 90), (40, 60)),
        "herbs": ((50, 80), (40, 60)),
    },
}

NAME_PARTS: Dict[Terrain, Tuple[List[str], List[str]]] = {
    Terrain.PLAINS: (["Vast", "Open", "Grassy", "Fertile", "Wild"],
                     ["Plains", "Fields", "Grasslands", "Meadows", "Pastures"]),
    Terrain.FOREST: (["Dark", "Dense", "Ancient", "Misty", "Green"],
                     ["Forest", "Woods", "Timberland", "Grove", "Wilderness"]),
    Terrain.HILLS: (["Rolling", "Rocky", "Barren", "Windy", "Steep"],
                    ["Hills", "Highlands", "Ridges", "Knolls", "Bluffs"]),
    Terrain.MOUNTAINS: (["Jagged", "Towering", "Snowy", "Forbidding", "Craggy"],
                        ["Mountains", "Peaks", "Cliffs", "Crags", "Heights"]),
    Terrain.COASTLINE: (["Sandy", "Rocky", "Windy", "Foggy", "Stormy"],
                        ["Shore", "Coast", "Beach", "Cove", "Bay"]),
    Terrain.RIVER: (["Swift", "Winding", "Broad", "Cold", "Silver"],
                    ["River", "Ford", "Banks", "Rapids", "Delta"]),
    Terrain.MARSH: (["Sunken", "Reedy", "Murky", "Misty", "Still"],
                    ["Marsh", "Fen", "Bog", "Mire", "Wetlands"]),
}


def starting_regions() -> List[Region]:
    """Home territory every new settlement starts with."""
    return [
        Region(
            id="settlement",
            name="Settlement Area",
            terrain=Terrain.PLAINS,
            acreage=20,
            resources={
                "food": ResourcePotential(50, 80),
                "wood": ResourcePotential(30, 70),
            },
        ),
        Region(
            id="nearbyForest",
            name="Nearby Forest",
            terrain=Terrain.FOREST,
            acreage=20,
            resources={
                "wood": ResourcePotential(90, 60),
                "food": ResourcePotential(60, 50),
                "herbs": ResourcePotential(40, 70),
            },
        ),
        Region(
            id="rockyHills",
            name="Rocky Hills",
            terrain=Terrain.HILLS,
            acreage=10,
            resources={
                "stone": ResourcePotential(80, 50),
                "metal": ResourcePotential(40, 30),
            },
        ),
    ]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class LandRegistry:
    """Lookup surface over the settlement's regions."""

    def __init__(self, regions: Optional[List[Region]] = None, unexplored: int = 100) -> None:
        if unexplored < 0:
            raise ValueError("unexplored must be >= 0")
        self._regions: Dict[str, Region] = {}
        for r in regions or []:
            if r.id in self._regions:
                raise ValueError(f"duplicate region id {r.id!r}")
            self._regions[r.id] = r
        self.unexplored = int(unexplored)

    def get(self, region_id: str) -> Optional[Region]:
        return self._regions.get(region_id)

    def list(self) -> List[Region]:
        return list(self._regions.values())

    @property
    def total_acreage(self) -> int:
        return sum(r.acreage for r in self._regions.values())

    def remaining_acreage(self, region_id: str, consumed: float) -> Optional[float]:
        """Acreage left in ``region_id`` once ``consumed`` acres are in use.

        Returns ``None`` for an unknown region.
        """
        region = self._regions.get(region_id)
        if region is None:
            return None
        return region.acreage - consumed

    # ------------------------------------------------------------------
    # Exploration
    # ------------------------------------------------------------------

    def explore(
        self,
        available_explorers: int,
        rng: np.random.Generator,
        min_acres: int = 10,
        max_acres: int = 20,
    ) -> Outcome:
        """Claim a new region out of the unexplored pool.

        Parameters
        ----------
        available_explorers:
            Number of available non-worker units. At least one is needed.
        rng:
            Generator driving size, terrain, potential and name.
        min_acres, max_acres:
            Inclusive bounds for the new region's size, capped by the
            remaining unexplored pool.

        Returns
        -------
        Outcome
            Success carrying the new :class:`Region`, or ``NO_EXPLORERS`` /
            ``NO_UNEXPLORED_LAND``.
        """
        if available_explorers < 1:
            return Outcome.failure(
                ErrorKind.NO_EXPLORERS, "You need at least one warrior to explore new lands."
            )
        if self.unexplored <= 0:
            return Outcome.failure(
                ErrorKind.NO_UNEXPLORED_LAND, "There is no more land to explore in this area."
            )
        return Outcome.success(self._claim(rng, min_acres, max_acres))

    def _claim(self, rng: np.random.Generator, min_acres: int, max_acres: int) -> Region:
        acreage = int(rng.integers(min_acres, max_acres + 1))
        acreage = min(acreage, self.unexplored)

        terrains = list(EXPLORE_TERRAIN_WEIGHTS)
        weights = np.array([EXPLORE_TERRAIN_WEIGHTS[t] for t in terrains], dtype=np.float64)
        terrain = terrains[int(rng.choice(len(terrains), p=weights / weights.sum()))]

        resources: Dict[str, ResourcePotential] = {}
        for kind, ((a_lo, a_hi), (c_lo, c_hi)) in EXPLORE_POTENTIAL[terrain].items():
            resources[kind] = ResourcePotential(
                abundance=float(rng.integers(a_lo, a_hi + 1)),
                accessibility=float(rng.integers(c_lo, c_hi + 1)),
            )

        prefixes, suffixes = NAME_PARTS[terrain]
        name = f"{prefixes[int(rng.integers(len(prefixes)))]} {suffixes[int(rng.integers(len(suffixes)))]}"

        region_id = self._next_region_id()
        region = Region(id=region_id, name=name, terrain=terrain,
                        acreage=acreage, resources=resources)
        self._regions[region_id] = region
        self.unexplored -= acreage
        logger.info("explored and claimed %s acres of %s called %s",
                    acreage, terrain.value, name)
        return region

    def _next_region_id(self) -> str:
        i = len(self._regions)
        while f"region_{i}" in self._regions:
            i += 1
        return f"region_{i}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, object]:
        return {
            "unexplored": self.unexplored,
            "regions": [r.to_dict() for r in self._regions.values()],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "LandRegistry":
        from sim.safe_parse import to_int

        regions = [Region.from_dict(rd) for rd in data.get("regions", [])]
        return cls(regions, unexplored=max(0, to_int(data.get("unexplored"), default=0)))


__all__ = [
    "Terrain",
    "ResourcePotential",
    "Region",
    "LandRegistry",
    "starting_regions",
    "EXPLORE_TERRAIN_WEIGHTS",
    "EXPLORE_POTENTIAL",
]
