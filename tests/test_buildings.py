import pytest

from sim.buildings import SettlementBuildings
from sim.catalog import (
    HousingArchetype,
    JobSlot,
    LandRequirement,
    ProductionRule,
    ResourceArchetype,
    StructureCatalog,
)
from sim.land import LandRegistry, Region, Terrain, starting_regions
from sim.ledger import ResourceLedger, STARTING_RESOURCES
from sim.outcome import ErrorKind
from sim.population import Person, Roster, WARRIOR


class Rank:
    def __init__(self, value=0):
        self.value = value

    def __call__(self):
        return self.value


def make(resources=None, catalog=None, regions=None, rank=0):
    roster = Roster([
        Person("w1", "Bjorn", skills={"farming": 5}),
        Person("w2", "Astrid", skills={"farming": 7}),
        Person("w3", "Leif"),
        Person("w4", "Sigrid"),
        Person("w5", "Ulf"),
        Person("x1", "Ragnar", role=WARRIOR),
    ])
    ledger = ResourceLedger(STARTING_RESOURCES if resources is None else resources)
    land = LandRegistry(starting_regions() if regions is None else regions)
    rank_source = Rank(rank)
    sb = SettlementBuildings(catalog or StructureCatalog(), land, ledger, roster,
                             rank_source=rank_source)
    return sb, ledger, rank_source


def test_construct_debits_and_appends():
    sb, ledger, _ = make()
    out = sb.construct("farm", "settlement", day=3)
    assert out.ok
    b = out.value
    assert b.condition == 100
    assert b.workers == []
    assert b.built_day == 3
    assert ledger.amount("wood") == 120
    assert sb.acreage_used("settlement") == 10


@pytest.mark.parametrize("args, kind", [
    (("temple", "settlement"), ErrorKind.UNKNOWN_ARCHETYPE),
    (("mine", "rockyHills"), ErrorKind.RANK_TOO_LOW),
    (("farm", "atlantis"), ErrorKind.UNKNOWN_REGION),
    (("farm", "nearbyForest"), ErrorKind.INCOMPATIBLE_TERRAIN),
])
def test_construction_errors(args, kind):
    sb, ledger, _ = make()
    before = ledger.query()
    out = sb.construct(*args)
    assert out.error is kind
    assert sb.list() == []
    assert ledger.query() == before


def test_missing_prerequisite_checked_before_region():
    sb, _, _ = make(rank=3)
    out = sb.construct("longhouse", "atlantis")
    assert out.error is ErrorKind.MISSING_PREREQUISITE


def test_rank_checked_before_prerequisite():
    sb, _, _ = make(rank=0)
    assert sb.construct("longhouse", "settlement").error is ErrorKind.RANK_TOO_LOW


def test_insufficient_resources_leaves_state():
    sb, ledger, _ = make(resources={"wood": 5})
    out = sb.construct("farm", "settlement")
    assert out.error is ErrorKind.INSUFFICIENT_RESOURCES
    assert ledger.amount("wood") == 5
    assert sb.list() == []


def _plot_catalog():
    def plot(aid, acres):
        return ResourceArchetype(
            id=aid, name=aid, build_cost={"wood": 1},
            jobs=(JobSlot("Farmer", 1, ProductionRule("food", 1)),),
            land=LandRequirement((Terrain.PLAINS,), acres),
        )
    return StructureCatalog([plot("six", 6), plot("five", 5), plot("four", 4)])


def test_acreage_budget():
    field = Region("field", "Field", Terrain.PLAINS, 10)
    sb, _, _ = make(catalog=_plot_catalog(), regions=[field])
    assert sb.construct("six", "field").ok
    assert sb.construct("five", "field").error is ErrorKind.INSUFFICIENT_LAND
    assert sb.construct("four", "field").ok
    assert sb.acreage_used("field") == 10


def test_housing_capacity_and_multipliers():
    sb, _, _ = make(rank=2)
    assert sb.construct("house", "settlement").ok
    assert sb.construct("house", "settlement").ok
    assert sb.construct("smithy", "settlement").ok
    assert sb.housing_capacity() == 10
    assert sb.production_multipliers() == {"metal": 1.5}


def test_assign_worker_errors():
    sb, _, _ = make()
    house = sb.construct("house", "settlement").value
    lodge = sb.construct("huntersLodge", "nearbyForest").value
    assert sb.assign_worker("building_99", "w1").error is ErrorKind.UNKNOWN_BUILDING
    assert sb.assign_worker(house.id, "w1").error is ErrorKind.NO_JOB_SLOTS
    assert sb.assign_worker(lodge.id, "ghost").error is ErrorKind.UNKNOWN_WORKER
    assert sb.assign_worker(lodge.id, "x1").error is ErrorKind.UNKNOWN_WORKER
    for wid in ("w1", "w2", "w3"):
        assert sb.assign_worker(lodge.id, wid).ok
    assert sb.assign_worker(lodge.id, "w4").error is ErrorKind.AT_CAPACITY


def test_worker_is_transferred_and_exclusive():
    sb, _, _ = make()
    a = sb.construct("huntersLodge", "nearbyForest").value
    b = sb.construct("lumberCamp", "nearbyForest").value
    assert sb.assign_worker(a.id, "w1").ok
    assert sb.assign_worker(b.id, "w1").ok
    assert sb.get(a.id).workers == []
    assert sb.get(b.id).workers == ["w1"]
    assert sb.assignment_of("w1") == b.id
    assert sb.assign_worker(b.id, "w1").ok
    assert sb.get(b.id).workers == ["w1"]


def test_remove_worker_absent_is_noop():
    sb, _, _ = make()
    a = sb.construct("huntersLodge", "nearbyForest").value
    sb.assign_worker(a.id, "w1")
    assert sb.remove_worker(a.id, "w2").ok
    assert sb.remove_worker(a.id, "w1").ok
    assert sb.get(a.id).workers == []


def test_upgrade_replaces_building():
    sb, ledger, rank = make(resources={"wood": 200, "stone": 100})
    house = sb.construct("house", "settlement").value
    assert sb.upgrade(house.id).error is ErrorKind.RANK_TOO_LOW
    assert sb.get(house.id) == house
    rank.value = 3
    sb.decay(600)
    out = sb.upgrade(house.id)
    assert out.ok
    new = out.value
    assert new.archetype_id == "longhouse"
    assert new.condition == 100
    assert sb.get(house.id) is None
    assert [b.id for b in sb.list()] == [new.id]
    assert sb.housing_capacity() == 15
    assert ledger.amount("wood") == 200 - 20 - 40


def test_upgrade_keeps_old_on_missing_resources():
    sb, ledger, _ = make(resources={"wood": 25, "stone": 15}, rank=3)
    house = sb.construct("house", "settlement").value
    out = sb.upgrade(house.id)
    assert out.error is ErrorKind.INSUFFICIENT_RESOURCES
    assert sb.get(house.id) == house
    assert ledger.amount("wood") == 5


def test_upgrade_errors():
    sb, _, _ = make()
    farm = sb.construct("farm", "settlement").value
    assert sb.upgrade(farm.id).error is ErrorKind.NO_UPGRADE_PATH
    assert sb.upgrade("building_42").error is ErrorKind.UNKNOWN_BUILDING


def test_upgrade_inherits_workers():
    cat = StructureCatalog([
        ResourceArchetype(id="camp", name="Camp",
                          jobs=(JobSlot("Cutter", 2, ProductionRule("wood", 1)),),
                          land=LandRequirement((Terrain.FOREST,), 2), upgrades=("mill",)),
        ResourceArchetype(id="mill", name="Mill",
                          jobs=(JobSlot("Sawyer", 4, ProductionRule("wood", 2)),),
                          land=LandRequirement((Terrain.FOREST,), 2)),
    ])
    sb, _, _ = make(catalog=cat)
    camp = sb.construct("camp", "nearbyForest").value
    sb.assign_worker(camp.id, "w1")
    sb.assign_worker(camp.id, "w2")
    mill = sb.upgrade(camp.id).value
    assert mill.workers == ["w1", "w2"]
    assert sb.assignment_of("w1") == mill.id


def test_repair_cost_and_reset():
    sb, ledger, _ = make(resources={"wood": 50, "stone": 50})
    house = sb.construct("house", "settlement").value
    assert sb.repair(house.id).value == {}
    sb.decay(600)
    assert sb.repair_cost(sb.get(house.id)) == {"wood": 3, "stone": 2}
    out = sb.repair(house.id)
    assert out.ok
    assert sb.get(house.id).condition == 100
    assert ledger.amount("wood") == 50 - 20 - 3


def test_repair_cost_floor_is_one():
    sb, _, _ = make()
    house = sb.construct("house", "settlement").value
    sb.decay(1)
    assert sb.repair_cost(sb.get(house.id)) == {"wood": 1, "stone": 1}


def test_repair_without_resources_fails():
    sb, ledger, _ = make(resources={"wood": 20, "stone": 10})
    house = sb.construct("house", "settlement").value
    sb.decay(1000)
    out = sb.repair(house.id)
    assert out.error is ErrorKind.INSUFFICIENT_RESOURCES
    assert sb.get(house.id).condition == 0


def test_decay_floors_at_zero():
    sb, _, _ = make()
    house = sb.construct("house", "settlement").value
    sb.decay(10)
    assert sb.get(house.id).condition == pytest.approx(99.0)
    assert house.condition == 100
    sb.decay(5000)
    assert sb.get(house.id).condition == 0


def test_returned_buildings_are_copies():
    sb, _, _ = make()
    lodge = sb.construct("huntersLodge", "nearbyForest").value
    lodge.workers.append("w9")
    lodge.condition = 5
    assigned = sb.assign_worker(lodge.id, "w2").value
    assigned.workers.append("w1")
    sb.get(lodge.id).workers.append("w3")
    sb.list()[0].workers.clear()
    stored = sb.get(lodge.id)
    assert stored.workers == ["w2"]
    assert stored.condition == 100
    assert sb.assignment_of("w1") is None
    other = sb.construct("lumberCamp", "nearbyForest").value
    assert sb.assign_worker(other.id, "w1").ok
    assert sb.get(lodge.id).workers == ["w2"]


def test_unavailable_worker_rejected():
    sb, _, _ = make()
    sb.population.add(Person("w6", "Hild", available=False))
    lodge = sb.construct("huntersLodge", "nearbyForest").value
    out = sb.assign_worker(lodge.id, "w6")
    assert out.error is ErrorKind.WORKER_UNAVAILABLE
    assert sb.get(lodge.id).workers == []
    assert sb.assignment_of("w6") is None
