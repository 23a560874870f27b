import dataclasses

import numpy as np
import pytest

from sim.land import LandRegistry, Region, ResourcePotential, Terrain, starting_regions
from sim.outcome import ErrorKind


def test_starting_regions_lookup():
    land = LandRegistry(starting_regions())
    assert land.get("rockyHills").terrain is Terrain.HILLS
    assert land.get("nowhere") is None
    assert land.total_acreage == 50
    assert [r.id for r in land.list()] == ["settlement", "nearbyForest", "rockyHills"]


def test_remaining_acreage():
    land = LandRegistry(starting_regions())
    assert land.remaining_acreage("rockyHills", 6) == 4
    assert land.remaining_acreage("nowhere", 0) is None


def test_potential_factor():
    r = Region("r", "R", Terrain.FOREST, 5, {"wood": ResourcePotential(90, 60)})
    assert r.potential_factor("wood") == pytest.approx(0.54)
    assert r.potential_factor("stone") is None


def test_regions_are_read_only():
    land = LandRegistry(starting_regions())
    region = land.get("settlement")
    with pytest.raises(dataclasses.FrozenInstanceError):
        region.acreage = 1
    with pytest.raises(TypeError):
        land.get("nearbyForest").resources["wood"] = ResourcePotential(1, 1)
    assert land.get("settlement").acreage == 20
    assert land.remaining_acreage("settlement", 0) == 20


def test_invalid_regions_rejected():
    with pytest.raises(ValueError):
        Region("r", "R", Terrain.PLAINS, 0)
    with pytest.raises(ValueError):
        ResourcePotential(120, 10)
    with pytest.raises(ValueError):
        LandRegistry(starting_regions() + starting_regions())


def test_explore_needs_an_explorer():
    land = LandRegistry(starting_regions())
    out = land.explore(0, np.random.default_rng(1))
    assert not out
    assert out.error is ErrorKind.NO_EXPLORERS
    assert len(land.list()) == 3


def test_explore_claims_land_from_pool():
    land = LandRegistry(starting_regions(), unexplored=100)
    out = land.explore(1, np.random.default_rng(7))
    assert out.ok
    region = out.value
    assert 10 <= region.acreage <= 20
    assert land.unexplored == 100 - region.acreage
    assert land.get(region.id) is region
    assert region.resources


def test_explore_capped_by_pool_then_exhausted():
    land = LandRegistry(starting_regions(), unexplored=4)
    out = land.explore(1, np.random.default_rng(3))
    assert out.value.acreage == 4
    assert land.unexplored == 0
    again = land.explore(1, np.random.default_rng(3))
    assert again.error is ErrorKind.NO_UNEXPLORED_LAND


def test_explored_ids_are_unique():
    land = LandRegistry(starting_regions(), unexplored=100)
    rng = np.random.default_rng(11)
    ids = {land.explore(2, rng).value.id for _ in range(5)}
    assert len(ids) == 5


def test_round_trip():
    land = LandRegistry(starting_regions(), unexplored=40)
    land.explore(1, np.random.default_rng(5))
    copy = LandRegistry.from_dict(land.to_dict())
    assert copy.unexplored == land.unexplored
    assert [r.to_dict() for r in copy.list()] == [r.to_dict() for r in land.list()]
