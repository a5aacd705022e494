import pytest

from wrapme.engine import count_common_items, practicality_score, rank_outfits, score_outfit


@pytest.fixture
def requirements_10c(engine):
    return engine.compute_requirements(10, "adult", "male")


def test_practicality_score(catalog, make_outfit, requirements_10c):
    outfit = make_outfit(["t-shirt", "turtleneck"], requirements=requirements_10c)
    # 116 items + 2.7 frequency + 3 layering + 5 redundancy + 90.909 optimal + 25 foundation
    score = practicality_score(outfit, catalog.frequency, catalog.practicality_weights)
    assert score == pytest.approx(242.609, abs=1e-3)


def test_thermal_over_foundation_bonus(catalog, make_outfit):
    weights = catalog.practicality_weights
    thermal = make_outfit(["t-shirt", "thermal-top"])
    leggings = make_outfit(["t-shirt", "thermal-leggings"])
    difference = practicality_score(thermal, {}, weights) - practicality_score(leggings, {}, weights)
    assert difference == pytest.approx(15.0)


def test_foundation_bonus(catalog, make_outfit):
    weights = catalog.practicality_weights
    with_tee = make_outfit(["t-shirt", "jumper"])
    without = make_outfit(["long-sleeve-shirt", "jumper"])
    assert practicality_score(with_tee, {}, weights) > practicality_score(without, {}, weights)


def test_extra_garment_costs_points(catalog, make_outfit):
    weights = catalog.practicality_weights
    plain = make_outfit(["t-shirt", "jumper", "coat"])
    with_hat = make_outfit(["t-shirt", "jumper", "coat"], head=["hat"])
    # -2 for the extra item, +0.75 for its default frequency
    difference = practicality_score(with_hat, {}, weights) - practicality_score(plain, {}, weights)
    assert difference == pytest.approx(-1.25)


def test_redundant_core_category_penalty(catalog, make_outfit):
    weights = catalog.practicality_weights
    one_mid = make_outfit(["t-shirt", "vest-top", "coat"])
    two_mids = make_outfit(["t-shirt", "vest-top", "light-cardigan", "coat"])
    single = practicality_score(one_mid, {}, weights)
    double = practicality_score(two_mids, {}, weights)
    assert single > double


def test_count_common_items(make_outfit):
    outfit = make_outfit(["t-shirt", "jumper", "coat"], head=["hat"], neck=["scarf"])
    assert count_common_items(outfit) == 3


def test_score_outfit_sets_fields(catalog, make_outfit):
    outfit = score_outfit(make_outfit(["t-shirt", "hoodie", "light-jacket"]), catalog)
    assert outfit.practicality_score is not None
    assert outfit.common_items_count == 3


def test_ranking_prefers_common_items_within_tie_window(make_outfit):
    a = make_outfit(["t-shirt"])
    a.practicality_score, a.common_items_count = 104.0, 1
    b = make_outfit(["t-shirt"])
    b.practicality_score, b.common_items_count = 100.0, 3
    c = make_outfit(["t-shirt"])
    c.practicality_score, c.common_items_count = 120.0, 0

    ranked = rank_outfits([a, b, c])
    assert ranked[0] is c
    assert ranked[1] is b
    assert ranked[2] is a


def test_ranking_by_score_outside_tie_window(make_outfit):
    low = make_outfit(["t-shirt"])
    low.practicality_score, low.common_items_count = 100.0, 5
    high = make_outfit(["t-shirt"])
    high.practicality_score, high.common_items_count = 110.0, 0
    assert rank_outfits([low, high])[0] is high
