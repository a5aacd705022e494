import json

import pytest

from wrapme import Catalog, LayerCategory, Zone, load_catalog


def test_bundled_catalog_loads(catalog):
    assert len(catalog) == 29
    assert "t-shirt" in catalog
    assert "sombrero" not in catalog

    t_shirt = catalog.get("t-shirt")
    assert t_shirt.zone is Zone.CORE
    assert t_shirt.category is LayerCategory.BASE
    assert t_shirt.clo == pytest.approx(0.2)
    assert not t_shirt.is_accessory

    scarf = catalog.get("scarf")
    assert scarf.zone is Zone.NECK
    assert scarf.is_accessory


def test_garments_keep_catalog_order(catalog):
    head = [g.key for g in catalog.garments(Zone.HEAD)]
    assert head == ["hat", "warm-hat", "balaclava"]

    core = catalog.garments(Zone.CORE)
    assert core[0].key == "vest"
    assert core[-1].key == "winter-coat"


def test_unknown_key(catalog):
    assert catalog.find("sombrero") is None
    with pytest.raises(ValueError, match="sombrero"):
        catalog.get("sombrero")


def test_load_catalog_from_path(tmp_path, raw_catalog):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(raw_catalog), encoding="utf-8")
    assert len(load_catalog(path)) == 29
    assert len(load_catalog(str(path))) == 29


def test_missing_section_is_rejected(raw_catalog):
    del raw_catalog["practicality_weights"]
    with pytest.raises(ValueError, match="Invalid catalog data"):
        Catalog.from_dict(raw_catalog)


def test_negative_clo_is_rejected(raw_catalog):
    raw_catalog["garments"]["core"]["t-shirt"]["clo"] = -0.1
    with pytest.raises(ValueError):
        Catalog.from_dict(raw_catalog)


def test_unknown_risk_level_is_rejected(raw_catalog):
    raw_catalog["temperature_bands"][0]["risk_level"] = "apocalyptic"
    with pytest.raises(ValueError):
        Catalog.from_dict(raw_catalog)


def test_category_must_fit_zone(raw_catalog):
    raw_catalog["garments"]["head"]["hat"]["category"] = "mid"
    with pytest.raises(ValueError, match="not allowed in zone"):
        Catalog.from_dict(raw_catalog)

    raw_catalog["garments"]["head"]["hat"]["category"] = "accessory"
    raw_catalog["garments"]["core"]["t-shirt"]["category"] = "accessory"
    with pytest.raises(ValueError, match="not allowed in zone"):
        Catalog.from_dict(raw_catalog)


def test_duplicate_key_across_zones(raw_catalog):
    raw_catalog["garments"]["neck"]["hat"] = {"name": "Neck hat", "clo": 0.05, "category": "accessory"}
    with pytest.raises(ValueError, match="Duplicate"):
        Catalog.from_dict(raw_catalog)


def test_optional_tables_default_to_empty(raw_catalog):
    del raw_catalog["frequency"]
    del raw_catalog["adjustments"]
    catalog = Catalog.from_dict(raw_catalog)
    assert catalog.frequency == {}
    assert catalog.age_adjustments == {}
    assert catalog.gender_adjustments == {}


def test_temperature_validity_window(raw_catalog):
    raw_catalog["garments"]["core"]["t-shirt"]["temp_min"] = 8
    raw_catalog["garments"]["core"]["winter-coat"]["temp_max"] = 3
    catalog = Catalog.from_dict(raw_catalog)

    warm = [g.key for g in catalog.valid_at(10)]
    cold = [g.key for g in catalog.valid_at(0)]
    assert "t-shirt" in warm and "winter-coat" not in warm
    assert "t-shirt" not in cold and "winter-coat" in cold
    assert len(catalog.valid_at(5)) == 27

    core_at_10 = catalog.garments(Zone.CORE, temperature=10)
    assert all(g.zone is Zone.CORE for g in core_at_10)
    assert "winter-coat" not in [g.key for g in core_at_10]
