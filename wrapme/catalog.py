"""
Garment catalog.

The catalog is static data: garments grouped by body zone and key, the
commonality frequency table, the temperature bands and the demographic
adjustments. The caller may supply it from any source as Python objects;
``load_catalog`` reads the bundled JSON file.
"""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import voluptuous as vol

from .const import (
    ACCESSORY_CATEGORY,
    AGE_CATEGORIES,
    ALERT_TIERS,
    CORE_CATEGORIES,
    GENDERS,
    RISK_LEVELS,
)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "catalog.json"


class Zone(Enum):
    """Body zone a garment covers."""
    CORE = "core"
    HEAD = "head"
    HANDS = "hands"
    NECK = "neck"
    FEET = "feet"


class LayerCategory(Enum):
    """Layer category: base/mid/outer on the core, accessory elsewhere."""
    BASE = "base"
    MID = "mid"
    OUTER = "outer"
    ACCESSORY = "accessory"


CORE_LAYERS = [LayerCategory.BASE, LayerCategory.MID, LayerCategory.OUTER]
ACCESSORY_ZONES = [Zone.HEAD, Zone.HANDS, Zone.NECK, Zone.FEET]
ZONES = [zone.value for zone in Zone]


# =============================================================================
# Schemas
# =============================================================================

_CLO = vol.All(vol.Coerce(float), vol.Range(min=0.0))

GARMENT_SCHEMA = vol.Schema(
    {
        vol.Required("name"): str,
        vol.Required("clo"): _CLO,
        vol.Required("category"): vol.In(CORE_CATEGORIES + [ACCESSORY_CATEGORY]),
        vol.Optional("temp_min"): vol.Coerce(float),
        vol.Optional("temp_max"): vol.Coerce(float),
    },
    extra=vol.ALLOW_EXTRA,
)

ZONE_REQUIREMENT_SCHEMA = vol.Schema(
    {
        vol.Required("min"): _CLO,
        vol.Required("max"): _CLO,
        vol.Required("optimal"): _CLO,
    }
)

BAND_SCHEMA = vol.Schema(
    {
        vol.Required("temperature"): vol.Coerce(float),
        **{vol.Required(zone): ZONE_REQUIREMENT_SCHEMA for zone in ZONES},
        vol.Required("risk_level"): vol.In(RISK_LEVELS),
        vol.Required("alert"): vol.In(ALERT_TIERS),
        vol.Optional("max_exposure", default=None): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=0))
        ),
        vol.Optional("warning", default=None): vol.Any(None, str),
    }
)

CATALOG_SCHEMA = vol.Schema(
    {
        vol.Required("garments"): {vol.In(ZONES): {str: GARMENT_SCHEMA}},
        vol.Optional("frequency", default=dict): {str: vol.Coerce(float)},
        vol.Required("temperature_bands"): vol.All([BAND_SCHEMA], vol.Length(min=1)),
        vol.Optional("adjustments", default=dict): {
            vol.Optional("age", default=dict): {vol.In(AGE_CATEGORIES): vol.Coerce(float)},
            vol.Optional("gender", default=dict): {vol.In(GENDERS): vol.Coerce(float)},
        },
        vol.Required("practicality_weights"): {
            vol.Required("fewer_items"): vol.Coerce(float),
            vol.Required("common_items"): vol.Coerce(float),
            vol.Required("proper_layering"): vol.Coerce(float),
            vol.Required("avoid_redundancy"): vol.Coerce(float),
        },
    }
)


@dataclass(frozen=True)
class Garment:
    """A catalog entry. Garments are never created or modified at runtime."""
    key: str
    name: str
    clo: float
    zone: Zone
    category: LayerCategory
    temp_min: float | None = None
    temp_max: float | None = None

    @property
    def is_accessory(self) -> bool:
        return self.zone is not Zone.CORE

    def is_valid_at(self, temperature: float) -> bool:
        """Check the garment's optional temperature-validity window."""
        if self.temp_max is not None and temperature > self.temp_max:
            return False
        if self.temp_min is not None and temperature < self.temp_min:
            return False
        return True

    def as_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "clo": self.clo,
            "zone": self.zone.value,
            "category": self.category.value,
        }


class Catalog:
    """
    Read-only garment lookup plus the tables the engine is parameterised with.

    Example:
        catalog = load_catalog()
        scarf = catalog.get("scarf")
        warm_enough = catalog.valid_at(-3)
    """

    def __init__(self, garments: dict[Zone, dict[str, Garment]],
                 temperature_bands: list[dict[str, Any]],
                 practicality_weights: dict[str, float],
                 frequency: dict[str, float] | None = None,
                 age_adjustments: dict[str, float] | None = None,
                 gender_adjustments: dict[str, float] | None = None):
        self.garments_by_zone = {zone: dict(garments.get(zone, {})) for zone in Zone}
        self.temperature_bands = temperature_bands
        self.practicality_weights = practicality_weights
        self.frequency = frequency or {}
        self.age_adjustments = age_adjustments or {}
        self.gender_adjustments = gender_adjustments or {}
        self._by_key = {
            key: garment
            for zone_items in self.garments_by_zone.values()
            for key, garment in zone_items.items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Catalog":
        """
        Build a catalog from raw configuration data.

        Args:
            data: Mapping with ``garments`` (zone -> key -> record),
                  ``temperature_bands``, ``practicality_weights`` and the
                  optional ``frequency`` and ``adjustments`` tables.

        Returns:
            Validated Catalog

        Raises:
            ValueError: If the data does not match the catalog schema, a
                        garment's category does not fit its zone, or a key
                        is used in more than one zone.
        """
        try:
            data = CATALOG_SCHEMA(data)
        except vol.Invalid as err:
            raise ValueError(f"Invalid catalog data: {err}") from err

        garments: dict[Zone, dict[str, Garment]] = {}
        seen: set[str] = set()
        for zone_name, entries in data["garments"].items():
            zone = Zone(zone_name)
            for key, entry in entries.items():
                category = LayerCategory(entry["category"])
                if (zone is Zone.CORE) == (category is LayerCategory.ACCESSORY):
                    raise ValueError(
                        f"Garment '{key}' has category '{category.value}', "
                        f"which is not allowed in zone '{zone.value}'"
                    )
                if key in seen:
                    raise ValueError(f"Duplicate garment key '{key}'")
                seen.add(key)
                garments.setdefault(zone, {})[key] = Garment(
                    key=key,
                    name=entry["name"],
                    clo=entry["clo"],
                    zone=zone,
                    category=category,
                    temp_min=entry.get("temp_min"),
                    temp_max=entry.get("temp_max"),
                )

        return cls(
            garments=garments,
            temperature_bands=data["temperature_bands"],
            practicality_weights=data["practicality_weights"],
            frequency=data["frequency"],
            age_adjustments=data["adjustments"].get("age", {}),
            gender_adjustments=data["adjustments"].get("gender", {}),
        )

    def __len__(self) -> int:
        return len(self._by_key)

    def __iter__(self):
        return iter(self._by_key.values())

    def __contains__(self, key: str) -> bool:
        return key in self._by_key

    def find(self, key: str) -> Garment | None:
        """Find a garment by key."""
        return self._by_key.get(key)

    def get(self, key: str) -> Garment:
        """Get a garment by key, raising ValueError for unknown keys."""
        garment = self._by_key.get(key)
        if garment is None:
            raise ValueError(f"Garment '{key}' not found in catalog")
        return garment

    def garments(self, zone: Zone | None = None,
                 temperature: float | None = None) -> list[Garment]:
        """
        List garments in catalog order.

        Args:
            zone: Restrict to one body zone (default: all zones)
            temperature: If given, drop garments whose validity window
                         excludes this temperature
        """
        zones = [zone] if zone is not None else list(Zone)
        items = [g for z in zones for g in self.garments_by_zone[z].values()]
        if temperature is not None:
            items = [g for g in items if g.is_valid_at(temperature)]
        return items

    def valid_at(self, temperature: float) -> list[Garment]:
        """All garments that may be worn at the given temperature."""
        return self.garments(temperature=temperature)


def load_catalog(path: str | Path | None = None) -> Catalog:
    """Load a catalog from a JSON file (default: the bundled catalog.json)."""
    catalog_path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    with open(catalog_path, 'r', encoding='utf-8') as f:
        return Catalog.from_dict(json.load(f))
