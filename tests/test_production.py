import pytest

from sim.buildings import SettlementBuildings
from sim.calendar import Season
from sim.catalog import JobSlot, LandRequirement, ProductionRule, ResourceArchetype, StructureCatalog
from sim.land import LandRegistry, Region, ResourcePotential, Terrain, starting_regions
from sim.ledger import ResourceLedger
from sim.population import Person, Roster


def field_catalog(seasonal=None, maintenance=None):
    return StructureCatalog([
        ResourceArchetype(
            id="field", name="Field",
            maintenance=maintenance or {},
            jobs=(JobSlot("Farmer", 3, ProductionRule("food", 2, "farming")),),
            land=LandRequirement((Terrain.PLAINS,), 1),
            seasonal=seasonal or {},
        ),
    ])


def setup(catalog, region, people):
    roster = Roster(people)
    land = LandRegistry([region])
    sb = SettlementBuildings(catalog, land, ResourceLedger(), roster)
    b = sb.construct(catalog.list()[0].id, region.id).value
    for p in people:
        sb.assign_worker(b.id, p.id)
    return sb, b


def test_two_skilled_workers_produce_expected_food():
    plain = Region("plain", "Plain", Terrain.PLAINS, 10)
    sb, _ = setup(field_catalog(), plain, [
        Person("a", "A", skills={"farming": 5}),
        Person("b", "B", skills={"farming": 7}),
    ])
    assert sb.production_pass(Season.SPRING)["food"] == pytest.approx(6.08)


def test_missing_skill_uses_default_level():
    plain = Region("plain", "Plain", Terrain.PLAINS, 10)
    sb, _ = setup(field_catalog(), plain, [Person("a", "A")])
    # 2 * (0.8 + 0.1 * 1.2)
    assert sb.production_pass(Season.SPRING)["food"] == pytest.approx(1.84)


def test_unknown_worker_ids_count_at_default_skill():
    plain = Region("plain", "Plain", Terrain.PLAINS, 10)
    sb, _ = setup(field_catalog(), plain, [Person("a", "A", skills={"farming": 7})])
    sb.load_dict({"buildings": [
        {"id": "building_1", "archetype_id": "field", "region_id": "plain",
         "workers": ["a", "ghost"]},
    ]})
    # 2 workers * 2 * (0.8 + 0.4 * 1.2), skills (7 + 1) / 2
    assert sb.production_pass(Season.SPRING)["food"] == pytest.approx(5.12)


def test_all_factors_multiply():
    plain = Region("plain", "Plain", Terrain.PLAINS, 10,
                   {"food": ResourcePotential(50, 80)})
    sb, b = setup(field_catalog(seasonal={Season.FALL: 1.5}), plain, [
        Person("a", "A", skills={"farming": 10}),
    ])
    sb.decay(500)
    expected = 2 * 2.0 * 1.5 * 0.4 * 0.5
    assert sb.production_pass(Season.FALL)["food"] == pytest.approx(expected)
    assert sb.production_pass(Season.WINTER)["food"] == pytest.approx(expected / 1.5)


def test_no_workers_no_output_but_maintenance_charged():
    plain = Region("plain", "Plain", Terrain.PLAINS, 10)
    sb, _ = setup(field_catalog(maintenance={"wood": 0.5}), plain, [])
    assert sb.production_pass(Season.SUMMER) == {"wood": -0.5}


def test_effective_workers_capped_by_job():
    land = LandRegistry(starting_regions())
    roster = Roster([Person(f"w{i}", f"W{i}") for i in range(4)])
    cat = StructureCatalog([
        ResourceArchetype(
            id="yard", name="Yard",
            jobs=(JobSlot("Cutter", 4, ProductionRule("wood", 1)),
                  JobSlot("Helper", 1, ProductionRule("wood", 1))),
            land=LandRequirement((Terrain.PLAINS,), 1),
        ),
    ])
    sb = SettlementBuildings(cat, land, ResourceLedger(), roster)
    b = sb.construct("yard", "settlement").value
    for i in range(4):
        sb.assign_worker(b.id, f"w{i}")
    # settlement lists wood at 30% abundance, 70% accessibility
    assert sb.production_pass(Season.SPRING)["wood"] == pytest.approx((4 + 1) * 0.21)


def test_default_farm_seasons():
    land = LandRegistry(starting_regions())
    roster = Roster([Person("a", "A", skills={"farming": 5})])
    sb = SettlementBuildings(StructureCatalog(), land, ResourceLedger({"wood": 10}), roster)
    farm = sb.construct("farm", "settlement").value
    sb.assign_worker(farm.id, "a")
    summer = sb.production_pass(Season.SUMMER)["food"]
    winter = sb.production_pass(Season.WINTER)["food"]
    assert summer / winter == pytest.approx(6.0)
