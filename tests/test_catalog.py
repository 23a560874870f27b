import dataclasses
import json

import pytest

from sim.calendar import Season
from sim.catalog import (
    Category,
    DEFAULT_ARCHETYPES,
    HousingArchetype,
    JobSlot,
    LandRequirement,
    ProductionRule,
    ResourceArchetype,
    StructureCatalog,
    archetype_from_dict,
    archetype_to_dict,
    load_catalog,
)
from sim.land import Terrain


def test_default_catalog_contents():
    cat = StructureCatalog()
    assert len(cat) == 10
    assert "farm" in cat
    farm = cat.get("farm")
    assert farm.category is Category.RESOURCE
    assert farm.seasonal[Season.FALL] == 1.5
    assert farm.job_capacity == 4
    assert cat.get("house").upgrades == ("longhouse",)
    assert cat.get("smithy").production_multipliers["metal"] == 1.5
    assert cat.get("mine").maintenance["wood"] == 0.5
    assert cat.get("storehouse").storage_capacity["food"] == 200
    assert cat.get("farm").storage_capacity == {}
    assert cat.get("nope") is None


def test_archetypes_are_immutable():
    house = StructureCatalog().get("house")
    with pytest.raises(dataclasses.FrozenInstanceError):
        house.housing_capacity = 99
    with pytest.raises(TypeError):
        house.build_cost["wood"] = 0


def test_category_validation():
    with pytest.raises(ValueError):
        HousingArchetype(id="tent", name="Tent")
    with pytest.raises(ValueError):
        ResourceArchetype(id="pond", name="Pond", jobs=(JobSlot("Idler", 2),),
                          land=LandRequirement((Terrain.MARSH,), 1))
    with pytest.raises(ValueError):
        ResourceArchetype(id="camp", name="Camp", build_cost={"wood": -5},
                          jobs=(JobSlot("Cutter", 1, ProductionRule("wood", 1)),),
                          land=LandRequirement((Terrain.FOREST,), 1))


def test_catalog_checks_references():
    broken = HousingArchetype(id="hut", name="Hut", housing_capacity=2, upgrades=("palace",))
    with pytest.raises(ValueError):
        StructureCatalog([broken])
    with pytest.raises(ValueError):
        StructureCatalog(list(DEFAULT_ARCHETYPES) + [DEFAULT_ARCHETYPES[0]])


def test_dict_round_trip_preserves_archetypes():
    for a in DEFAULT_ARCHETYPES:
        again = archetype_from_dict(archetype_to_dict(a))
        assert type(again) is type(a)
        assert archetype_to_dict(again) == archetype_to_dict(a)


def test_load_catalog_missing_file_gives_defaults(tmp_path):
    cat = load_catalog(str(tmp_path / "absent.json"))
    assert len(cat) == len(DEFAULT_ARCHETYPES)


def test_load_catalog_from_balance_file(tmp_path):
    path = tmp_path / "buildings.json"
    records = [archetype_to_dict(a) for a in DEFAULT_ARCHETYPES[:2]]
    records[0]["housing_capacity"] = 8
    path.write_text(json.dumps(records), encoding="utf-8")
    cat = load_catalog(str(path))
    assert len(cat) == 2
    assert cat.get("house").housing_capacity == 8


def test_load_catalog_rejects_malformed(tmp_path):
    path = tmp_path / "buildings.json"
    path.write_text(json.dumps([{"id": "x", "category": "temple"}]), encoding="utf-8")
    with pytest.raises(ValueError):
        load_catalog(str(path))
    path.write_text(json.dumps([{"category": "housing"}]), encoding="utf-8")
    with pytest.raises(ValueError):
        load_catalog(str(path))


def test_negative_storage_rejected():
    with pytest.raises(ValueError):
        HousingArchetype(id="hut", name="Hut", housing_capacity=2,
                         storage_capacity={"food": -10})
