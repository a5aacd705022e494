import pytest

from wrapme.engine import diversity, select_diverse


def test_identical_outfits_have_zero_diversity(make_outfit):
    a = make_outfit(["t-shirt", "jumper", "coat"], neck=["scarf"])
    b = make_outfit(["t-shirt", "jumper", "coat"], neck=["scarf"])
    assert diversity(a, b) == 0.0


def test_extra_hat(make_outfit):
    plain = make_outfit(["t-shirt", "jumper", "coat"])
    with_hat = make_outfit(["t-shirt", "jumper", "coat"], head=["hat"])
    # count 20 + one unshared garment 10 + head presence 5
    assert diversity(plain, with_hat) == pytest.approx(35.0)
    assert diversity(with_hat, plain) == pytest.approx(35.0)


def test_layer_structure_differences(make_outfit):
    a = make_outfit(["t-shirt", "jumper"])
    b = make_outfit(["t-shirt", "coat"])
    # unshared 2 * 10, mid/outer counts 2 * 15, clo |0.28| + |0.5| = 0.78 * 30
    assert diversity(a, b) == pytest.approx(20 + 30 + 23.4)


def test_select_diverse_edge_cases(make_outfit):
    assert select_diverse([]) == []
    only = make_outfit(["t-shirt", "jumper"])
    assert select_diverse([only]) == [only]


def test_select_diverse_keeps_best_and_skips_duplicates(make_outfit):
    best = make_outfit(["t-shirt", "jumper", "coat"])
    twin = make_outfit(["t-shirt", "jumper", "coat"])
    different = make_outfit(["t-shirt", "thermal-top", "fleece", "winter-coat"], head=["hat"])

    selected = select_diverse([best, twin, different], count=2)
    assert selected[0] is best
    assert selected[1] is different

    selected = select_diverse([best, twin, different], count=3)
    assert len(selected) == 3
    assert selected[2] is twin

    assert len(select_diverse([best, twin, different], count=5)) == 3
