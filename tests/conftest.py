import copy
import json

import pytest

from wrapme import LayeringEngine, Outfit, load_catalog
from wrapme.catalog import DEFAULT_CATALOG_PATH


@pytest.fixture(scope="session")
def catalog_data():
    with open(DEFAULT_CATALOG_PATH, 'r', encoding='utf-8') as f:
        return json.load(f)


@pytest.fixture
def raw_catalog(catalog_data):
    """A mutable copy of the bundled catalog data."""
    return copy.deepcopy(catalog_data)


@pytest.fixture(scope="session")
def catalog():
    return load_catalog()


@pytest.fixture
def engine(catalog):
    return LayeringEngine(catalog)


@pytest.fixture
def requirements_5c(engine):
    # core 0.8-1.0 (optimal 0.9), head/neck 0.05-0.08, hands 0.05-0.10, feet 0-0.04
    return engine.compute_requirements(5, "adult", "male")


@pytest.fixture
def make_outfit(catalog, requirements_5c):
    """Build an outfit from garment keys, by default against the 5°C targets."""
    def _make(core, head=(), hands=(), neck=(), feet=(), requirements=None):
        return Outfit(
            requirements=requirements or requirements_5c,
            core=[catalog.get(k) for k in core],
            head=[catalog.get(k) for k in head],
            hands=[catalog.get(k) for k in hands],
            neck=[catalog.get(k) for k in neck],
            feet=[catalog.get(k) for k in feet],
        )
    return _make
