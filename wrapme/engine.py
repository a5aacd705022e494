"""
Layering Recommendation Engine

Recommends clothing layer combinations for an ambient temperature and a
wearer profile (age category, gender and a "feels warmer/cooler" calibration).

Pipeline:
    RequirementModel -> per-zone combination search -> outfit composition
    -> wearability filter -> practicality ranking -> diverse top 3

Substitution works afterwards on a single outfit: it proposes replacement
garments and applies a replacement with a one-step rebalance toward the
insulation target.

Insulation targets and CLO values are guided by ASHRAE 55 / ISO 9920
(simplified for practical use) and UKHSA cold weather guidance. They are
heuristic tables, not a thermophysiological model.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cmp_to_key
from itertools import islice, product
from types import MappingProxyType
from typing import Any, Mapping

import numpy as np
from scipy.spatial.distance import cityblock

from . import const
from .catalog import (
    ACCESSORY_ZONES,
    CORE_LAYERS,
    Catalog,
    Garment,
    LayerCategory,
    Zone,
    load_catalog,
)

_LOGGER = logging.getLogger(__name__)


class AgeCategory(Enum):
    """Age category of the wearer."""
    INFANT = "infant"
    CHILD = "child"
    TEEN = "teen"
    ADULT = "adult"
    ELDERLY = "elderly"
    VERY_ELDERLY = "very-elderly"

    @property
    def is_vulnerable(self) -> bool:
        """Vulnerable wearers may stack a third base layer in the cold."""
        return self.value in const.VULNERABLE_AGE_CATEGORIES


class Gender(Enum):
    MALE = "male"
    FEMALE = "female"
    UNSPECIFIED = "unspecified"


class RiskLevel(Enum):
    """Cold exposure risk of a temperature band."""
    LOW = "low"
    LOW_MODERATE = "low-moderate"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"


class AlertTier(Enum):
    GREEN = "green"
    YELLOW = "yellow"
    AMBER = "amber"
    RED = "red"


def coerce_age_category(value: AgeCategory | str | None) -> AgeCategory:
    """Convert a raw age category; unknown values fall back to adult."""
    if isinstance(value, AgeCategory):
        return value
    try:
        return AgeCategory(value)
    except ValueError:
        _LOGGER.debug("Unknown age category %r, using adult", value)
        return AgeCategory.ADULT


def coerce_gender(value: Gender | str | None) -> Gender:
    """Convert a raw gender; unknown values fall back to unspecified."""
    if isinstance(value, Gender):
        return value
    try:
        return Gender(value)
    except ValueError:
        _LOGGER.debug("Unknown gender %r, using unspecified", value)
        return Gender.UNSPECIFIED


def clamp_calibration(offset: int | float | None) -> int:
    """Clamp a calibration offset to the supported integer steps."""
    low, high = const.CALIBRATION_RANGE
    if offset is None:
        return 0
    return max(low, min(high, int(round(offset))))


# =============================================================================
# Data model
# =============================================================================

@dataclass(frozen=True)
class ZoneRequirement:
    """Insulation target range for one body zone."""
    min: float
    max: float
    optimal: float

    def shifted(self, delta: float, floor_min: bool = False) -> "ZoneRequirement":
        """Return a copy with ``delta`` added to min, max and optimal."""
        low = self.min + delta
        if floor_min:
            low = max(0.0, low)
        return ZoneRequirement(low, self.max + delta, self.optimal + delta)

    def as_dict(self) -> dict[str, float]:
        return {"min": self.min, "max": self.max, "optimal": self.optimal}


@dataclass(frozen=True)
class RequirementSet:
    """
    Per-zone targets plus risk metadata for one recommendation request.

    Built once per request and attached to every outfit generated from it,
    so an outfit can always be re-evaluated against its originating targets.
    """
    zones: Mapping[Zone, ZoneRequirement]
    risk_level: RiskLevel
    alert: AlertTier
    max_exposure: int | None = None
    warning: str | None = None

    def __post_init__(self):
        # Read-only view over a private copy of the caller's mapping
        object.__setattr__(self, "zones", MappingProxyType(dict(self.zones)))

    def __getitem__(self, zone: Zone) -> ZoneRequirement:
        return self.zones[zone]

    @property
    def core(self) -> ZoneRequirement:
        return self.zones[Zone.CORE]

    def as_dict(self) -> dict[str, Any]:
        return {
            **{zone.value: req.as_dict() for zone, req in self.zones.items()},
            "risk_level": self.risk_level.value,
            "alert": self.alert.value,
            "max_exposure": self.max_exposure,
            "warning": self.warning,
        }


@dataclass
class CandidateSet:
    """Garments for a single zone with their summed insulation."""
    garments: tuple[Garment, ...]
    clo: float
    distance: float


@dataclass
class Outfit:
    """
    A complete set of garments, one list per zone.

    ``total_clo`` and ``core_clo`` are derived from the zone lists on every
    access. Substitution never mutates an outfit in place; it works on
    ``copy()``.
    """
    requirements: RequirementSet
    core: list[Garment] = field(default_factory=list)
    head: list[Garment] = field(default_factory=list)
    hands: list[Garment] = field(default_factory=list)
    neck: list[Garment] = field(default_factory=list)
    feet: list[Garment] = field(default_factory=list)
    practicality_score: float | None = None
    common_items_count: int = 0

    def zone_items(self, zone: Zone) -> list[Garment]:
        """The (mutable) garment list for a zone."""
        return getattr(self, zone.value)

    @property
    def all_garments(self) -> list[Garment]:
        return [g for zone in Zone for g in self.zone_items(zone)]

    @property
    def total_clo(self) -> float:
        return sum(g.clo for g in self.all_garments)

    @property
    def core_clo(self) -> float:
        return sum(g.clo for g in self.core)

    def layer(self, category: LayerCategory) -> list[Garment]:
        """Core garments of one layer category."""
        return [g for g in self.core if g.category is category]

    def layer_clo(self, category: LayerCategory) -> float:
        return sum(g.clo for g in self.layer(category))

    def contains(self, garment: Garment) -> bool:
        return any(g.key == garment.key for g in self.zone_items(garment.zone))

    def copy(self) -> "Outfit":
        return replace(
            self,
            core=list(self.core),
            head=list(self.head),
            hands=list(self.hands),
            neck=list(self.neck),
            feet=list(self.feet),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            **{zone.value: [g.key for g in self.zone_items(zone)] for zone in Zone},
            "total_clo": round(self.total_clo, 3),
            "core_clo": round(self.core_clo, 3),
            "practicality_score": self.practicality_score,
        }


# =============================================================================
# Requirement model
# =============================================================================

class RequirementModel:
    """
    Derives per-zone insulation targets from temperature and wearer profile.

    Temperatures between two reference bands are linearly interpolated for
    every numeric target, so any two distinct temperatures inside the table
    yield distinct targets. Risk metadata steps at the colder band. Values
    outside the table clamp to the nearest band.
    """

    def __init__(self, catalog: Catalog):
        self._bands = sorted(catalog.temperature_bands, key=lambda b: b["temperature"])
        self._temperatures = np.array([b["temperature"] for b in self._bands], dtype=float)
        # One row per band, columns are (min, max, optimal) for each zone in Zone order
        self._targets = np.array(
            [[band[zone.value][name] for zone in Zone for name in ("min", "max", "optimal")]
             for band in self._bands],
            dtype=float,
        )
        self._age_adjustments = catalog.age_adjustments
        self._gender_adjustments = catalog.gender_adjustments

    def band_requirements(self, temperature: float) -> RequirementSet:
        """Interpolated targets for a temperature, before any wearer adjustment."""
        interpolated = np.array(
            [np.interp(temperature, self._temperatures, column) for column in self._targets.T]
        ).reshape(len(Zone), 3)
        zones = {
            zone: ZoneRequirement(float(low), float(high), float(optimal))
            for zone, (low, high, optimal) in zip(Zone, interpolated)
        }

        # Risk metadata is not interpolated: take the band at or below temperature
        index = int(np.searchsorted(self._temperatures, temperature, side="right")) - 1
        colder = self._bands[max(index, 0)]
        return RequirementSet(
            zones=zones,
            risk_level=RiskLevel(colder["risk_level"]),
            alert=AlertTier(colder["alert"]),
            max_exposure=colder.get("max_exposure"),
            warning=colder.get("warning"),
        )

    def compute(self, temperature: float,
                age_category: AgeCategory | str = AgeCategory.ADULT,
                gender: Gender | str = Gender.UNSPECIFIED,
                calibration: int = 0) -> RequirementSet:
        """
        Compute the requirement set for a recommendation request.

        Args:
            temperature: Ambient temperature [°C]
            age_category: Wearer age category (unknown values -> adult)
            gender: Wearer gender (unknown values -> unspecified)
            calibration: User calibration in steps from -2 (fewer layers)
                         to +2 (more layers); each step is 0.25 clo on the core

        Returns:
            RequirementSet with all zones and risk metadata
        """
        age_category = coerce_age_category(age_category)
        gender = coerce_gender(gender)
        requirements = self.band_requirements(temperature)

        offset = (self._age_adjustments.get(age_category.value, 0.0)
                  + self._gender_adjustments.get(gender.value, 0.0))
        core = requirements.core.shifted(offset)

        max_exposure = requirements.max_exposure
        if age_category is AgeCategory.ELDERLY and max_exposure:
            max_exposure = math.floor(max_exposure * const.ELDERLY_EXPOSURE_FACTOR)

        steps = clamp_calibration(calibration)
        if steps:
            core = core.shifted(steps * const.CALIBRATION_STEP_CLO, floor_min=True)

        return replace(
            requirements,
            zones={**requirements.zones, Zone.CORE: core},
            max_exposure=max_exposure,
        )


# =============================================================================
# Zone combination search
# =============================================================================

def max_base_layers(vulnerable: bool, cold: bool) -> int:
    """Base layer limit: vulnerable wearers may add a third base in the cold."""
    if vulnerable and cold:
        return const.MAX_BASE_LAYERS_VULNERABLE_COLD
    return const.MAX_BASE_LAYERS


def _distance(clo: float, optimal: float) -> float:
    return abs(optimal - clo)


def _can_add_layer(chosen: tuple[Garment, ...], garment: Garment, base_limit: int) -> bool:
    """Check core layer-count and foundation rules before extending a branch."""
    counts = Counter(g.category for g in chosen)
    if garment.category is LayerCategory.BASE:
        if counts[LayerCategory.BASE] >= base_limit:
            return False
        # A second base layer is only allowed on top of (or as) the foundation
        if (counts[LayerCategory.BASE] >= 1
                and garment.key != const.FOUNDATION_KEY
                and not any(g.key == const.FOUNDATION_KEY for g in chosen)):
            return False
    elif garment.category is LayerCategory.MID:
        if counts[LayerCategory.MID] >= const.MAX_MID_LAYERS:
            return False
    elif garment.category is LayerCategory.OUTER:
        if counts[LayerCategory.OUTER] >= const.MAX_OUTER_LAYERS:
            return False
    return True


def generate_zone_combinations(garments: list[Garment], requirement: ZoneRequirement,
                               vulnerable: bool = False, cold: bool = False,
                               cap: int = const.ZONE_CANDIDATE_CAP) -> list[CandidateSet]:
    """
    Enumerate garment subsets for one zone that meet its insulation range.

    Depth-first search over the garment list in catalog order. A node is
    recorded when ``min <= clo <= max * 1.3`` and the branch is still extended
    afterwards, so a combination and its super-combinations can both appear.
    Branches are abandoned beyond ``max * 1.5`` and, on the core, when the
    layer-count or foundation rules would be broken.

    Args:
        garments: Garments of a single zone (already filtered by temperature)
        requirement: Target range for the zone
        vulnerable: Wearer belongs to a vulnerable age category
        cold: Temperature is at or below the cold threshold
        cap: Maximum number of candidates returned

    Returns:
        Candidates sorted by distance from the optimum (ties keep search order)
    """
    if requirement.max == 0:
        return [CandidateSet((), 0.0, _distance(0.0, requirement.optimal))]

    is_core = any(g.zone is Zone.CORE for g in garments)
    base_limit = max_base_layers(vulnerable, cold)
    accept_max = requirement.max * const.ACCEPT_OVERSHOOT
    prune_max = requirement.max * const.PRUNE_OVERSHOOT
    candidates: list[CandidateSet] = []

    def visit(start: int, chosen: tuple[Garment, ...], clo: float) -> None:
        if requirement.min <= clo <= accept_max:
            candidates.append(CandidateSet(chosen, clo, _distance(clo, requirement.optimal)))
        if clo > prune_max:
            return
        for index in range(start, len(garments)):
            garment = garments[index]
            if is_core and not _can_add_layer(chosen, garment, base_limit):
                continue
            visit(index + 1, chosen + (garment,), clo + garment.clo)

    visit(0, (), 0.0)

    if is_core and not candidates:
        _LOGGER.debug(
            "Core zone generated 0 combinations (min=%.2f, max=%.2f, optimal=%.2f); "
            "max achievable: %s",
            requirement.min, requirement.max, requirement.optimal,
            _max_achievable(garments, base_limit),
        )

    candidates.sort(key=lambda c: c.distance)
    return candidates[:cap]


def _max_achievable(garments: list[Garment], base_limit: int) -> dict[str, float]:
    """Rough per-category insulation ceiling, for diagnostics only."""
    limits = {
        LayerCategory.BASE: base_limit,
        LayerCategory.MID: const.MAX_MID_LAYERS,
        LayerCategory.OUTER: const.MAX_OUTER_LAYERS,
    }
    result = {}
    for category, limit in limits.items():
        clos = sorted((g.clo for g in garments if g.category is category), reverse=True)
        result[category.value] = round(sum(clos[:limit]), 2)
    return result


# =============================================================================
# Outfit composition
# =============================================================================

def compose_outfits(candidates: Mapping[Zone, list[CandidateSet]],
                    requirements: RequirementSet,
                    max_outfits: int = const.MAX_OUTFITS,
                    core_limit: int = const.CORE_CANDIDATE_LIMIT,
                    accessory_limit: int = const.ACCESSORY_CANDIDATE_LIMIT) -> list[Outfit]:
    """
    Combine per-zone candidates into full outfits.

    Only the top ``core_limit`` core candidates and top ``accessory_limit``
    candidates of each accessory zone are combined, core-major, stopping as
    soon as ``max_outfits`` outfits exist.
    """
    pools = [candidates[Zone.CORE][:core_limit]]
    pools += [candidates[zone][:accessory_limit] for zone in ACCESSORY_ZONES]

    outfits = []
    for core, head, hands, neck, feet in islice(product(*pools), max_outfits):
        outfits.append(Outfit(
            requirements=requirements,
            core=list(core.garments),
            head=list(head.garments),
            hands=list(hands.garments),
            neck=list(neck.garments),
            feet=list(feet.garments),
        ))
    return outfits


# =============================================================================
# Wearability validation
# =============================================================================

class RejectionReason(Enum):
    """Stable identifiers for why an outfit is not wearable."""
    MULTIPLE_OUTER_LAYERS = "multiple_outer_layers"
    TOO_MANY_MID_LAYERS = "too_many_mid_layers"
    TOO_MANY_BASE_LAYERS = "too_many_base_layers"
    MISSING_FOUNDATION = "missing_foundation"
    MINIMAL_BASE_ALONE = "minimal_base_alone"
    REDUNDANT_MID_LAYERS = "redundant_mid_layers"
    TOO_MANY_HEAVY_MID_LAYERS = "too_many_heavy_mid_layers"
    EXCESSIVE_MID_UNDER_OUTER = "excessive_mid_under_outer"
    HEAVY_MID_WITHOUT_OUTER = "heavy_mid_without_outer"
    BULKY_MID_STACK_WITH_OUTER = "bulky_mid_stack_with_outer"


@dataclass
class WearabilityResult:
    """Result of an outfit wearability check."""
    valid: bool
    reason: RejectionReason | None = None


def mid_clo_ceiling(outer_clo: float, temperature: float) -> float:
    """
    Maximum mid-layer insulation allowed under an outer layer.

    Heavy outer layers (>= 0.49 clo) allow 1.00 clo at -15°C, falling linearly
    to 0.50 at 15°C. Regular ones (0.37-0.48 clo) allow 0.95 down to 0.55.
    Lighter or absent outer layers impose no ceiling.
    """
    if outer_clo >= const.HEAVY_OUTER_MIN_CLO:
        cold_limit, warm_limit = const.HEAVY_OUTER_CEILING
    elif outer_clo >= const.REGULAR_OUTER_MIN_CLO:
        cold_limit, warm_limit = const.REGULAR_OUTER_CEILING
    else:
        return math.inf

    low, high = const.CEILING_TEMP_RANGE
    progress = (temperature - low) / (high - low)
    return float(np.clip(cold_limit - progress * (cold_limit - warm_limit), warm_limit, cold_limit))


def has_redundant_mid_layers(mid_items: list[Garment]) -> bool:
    keys = {g.key for g in mid_items}
    return any(a in keys and b in keys for a, b in const.REDUNDANT_MID_PAIRS)


def has_too_many_heavy_mid_layers(mid_items: list[Garment]) -> bool:
    heavy = [g for g in mid_items if g.key in const.HEAVY_MID_KEYS]
    return len(heavy) > const.MAX_HEAVY_MID_LAYERS


def base_layer_problem(base_items: list[Garment], base_limit: int) -> RejectionReason | None:
    """Check base layer count, the foundation rule and the minimal base rule."""
    if len(base_items) > base_limit:
        return RejectionReason.TOO_MANY_BASE_LAYERS
    keys = [g.key for g in base_items]
    if len(base_items) >= 2 and const.FOUNDATION_KEY not in keys:
        return RejectionReason.MISSING_FOUNDATION
    if keys == [const.MINIMAL_BASE_KEY]:
        return RejectionReason.MINIMAL_BASE_ALONE
    return None


def check_wearability(outfit: Outfit, temperature: float,
                      age_category: AgeCategory | str = AgeCategory.ADULT) -> WearabilityResult:
    """
    Check an outfit for real-world wearability.

    All rules look at the core zone; the first failing rule is reported.

    Args:
        outfit: Outfit to check
        temperature: Ambient temperature [°C]
        age_category: Wearer age category (controls the base layer limit)

    Returns:
        WearabilityResult with valid=True, or valid=False and the reason
    """
    age_category = coerce_age_category(age_category)
    base = outfit.layer(LayerCategory.BASE)
    mid = outfit.layer(LayerCategory.MID)
    outer = outfit.layer(LayerCategory.OUTER)
    mid_clo = sum(g.clo for g in mid)
    outer_clo = sum(g.clo for g in outer)
    base_limit = max_base_layers(age_category.is_vulnerable,
                                 temperature <= const.COLD_TEMPERATURE)

    def reject(reason: RejectionReason) -> WearabilityResult:
        return WearabilityResult(valid=False, reason=reason)

    if len(outer) > const.MAX_OUTER_LAYERS:
        return reject(RejectionReason.MULTIPLE_OUTER_LAYERS)
    if len(mid) > const.MAX_MID_LAYERS:
        return reject(RejectionReason.TOO_MANY_MID_LAYERS)

    problem = base_layer_problem(base, base_limit)
    if problem is not None:
        return reject(problem)

    if has_redundant_mid_layers(mid):
        return reject(RejectionReason.REDUNDANT_MID_LAYERS)
    if has_too_many_heavy_mid_layers(mid):
        return reject(RejectionReason.TOO_MANY_HEAVY_MID_LAYERS)

    if mid_clo > mid_clo_ceiling(outer_clo, temperature):
        return reject(RejectionReason.EXCESSIVE_MID_UNDER_OUTER)

    if temperature < const.NO_OUTER_COLD_TEMPERATURE and not outer:
        threshold = (const.NO_OUTER_MID_BASE_CLO
                     + (const.NO_OUTER_COLD_TEMPERATURE - temperature) * const.NO_OUTER_MID_STEP_CLO)
        if mid_clo > threshold:
            return reject(RejectionReason.HEAVY_MID_WITHOUT_OUTER)

    if len(mid) >= 3 and outer and not all(g.clo <= const.LIGHT_MID_MAX_CLO for g in mid):
        return reject(RejectionReason.BULKY_MID_STACK_WITH_OUTER)

    return WearabilityResult(valid=True)


def is_wearable(outfit: Outfit, temperature: float,
                age_category: AgeCategory | str = AgeCategory.ADULT) -> bool:
    """Boolean form of check_wearability."""
    return check_wearability(outfit, temperature, age_category).valid


# =============================================================================
# Practicality scoring and ranking
# =============================================================================

def practicality_score(outfit: Outfit, frequency: Mapping[str, float],
                       weights: Mapping[str, float]) -> float:
    """
    Heuristic desirability of an outfit (higher is better, unbounded).

    Starts at 100 and rewards fewer garments, common garments, full
    base/mid/outer layering, unique core categories, core insulation close to
    the optimum and the t-shirt foundation (with an extra bonus when a thermal
    top is layered over it).

    Args:
        outfit: A wearable outfit with its requirements attached
        frequency: Garment key -> commonality (unlisted keys default to 0.5)
        weights: fewer_items, common_items, proper_layering, avoid_redundancy
    """
    garments = outfit.all_garments
    score = const.SCORE_BASE
    score += (const.SCORE_ITEM_BASELINE - len(garments)) * weights["fewer_items"]

    for garment in garments:
        score += frequency.get(garment.key, const.DEFAULT_FREQUENCY) * weights["common_items"]

    present = {g.category for g in outfit.core}
    layered = sum(category in present for category in CORE_LAYERS)
    if layered == 3:
        score += weights["proper_layering"] * 2
    elif layered == 2:
        score += weights["proper_layering"]

    for count in Counter((g.zone, g.category) for g in outfit.core).values():
        if count <= 1:
            score += weights["avoid_redundancy"]
        else:
            score -= weights["avoid_redundancy"] * (count - 1)

    optimal = outfit.requirements.core.optimal
    score += const.OPTIMAL_SCORE_SCALE / (
        1 + abs(outfit.core_clo - optimal) * const.OPTIMAL_DISTANCE_WEIGHT)

    core_keys = {g.key for g in outfit.core}
    if const.FOUNDATION_KEY in core_keys:
        score += const.FOUNDATION_BONUS
        if const.THERMAL_KEY in core_keys:
            score += const.FOUNDATION_THERMAL_BONUS

    return score


def count_common_items(outfit: Outfit) -> int:
    """Number of very common household garments in the outfit."""
    return sum(g.key in const.COMMON_ITEM_KEYS for g in outfit.all_garments)


def score_outfit(outfit: Outfit, catalog: Catalog) -> Outfit:
    """Attach practicality score and common-item count to an outfit."""
    outfit.practicality_score = practicality_score(
        outfit, catalog.frequency, catalog.practicality_weights)
    outfit.common_items_count = count_common_items(outfit)
    return outfit


def _compare_ranked(a: Outfit, b: Outfit) -> float:
    diff = b.practicality_score - a.practicality_score
    # Close scores: prefer the outfit made of more common garments
    if abs(diff) <= const.SCORE_TIE_WINDOW:
        return b.common_items_count - a.common_items_count
    return diff


def rank_outfits(outfits: list[Outfit]) -> list[Outfit]:
    """Sort scored outfits best first."""
    return sorted(outfits, key=cmp_to_key(_compare_ranked))


# =============================================================================
# Diversity selection
# =============================================================================

def _layer_profile(outfit: Outfit) -> tuple[np.ndarray, np.ndarray]:
    counts = np.array([len(outfit.layer(c)) for c in CORE_LAYERS], dtype=float)
    clos = np.array([outfit.layer_clo(c) for c in CORE_LAYERS], dtype=float)
    return counts, clos


def diversity(a: Outfit, b: Outfit) -> float:
    """
    Pairwise dissimilarity of two outfits (higher = more different).

    Weighted sum of garment count difference, garments not shared, per-layer
    count and insulation differences, and head/hands presence mismatches.
    """
    garments_a, garments_b = a.all_garments, b.all_garments
    score = abs(len(garments_a) - len(garments_b)) * const.DIVERSITY_COUNT_WEIGHT

    keys_a = {g.key for g in garments_a}
    keys_b = {g.key for g in garments_b}
    score += len(keys_a ^ keys_b) * const.DIVERSITY_ITEM_WEIGHT

    counts_a, clos_a = _layer_profile(a)
    counts_b, clos_b = _layer_profile(b)
    score += cityblock(counts_a, counts_b) * const.DIVERSITY_LAYER_WEIGHT
    score += cityblock(clos_a, clos_b) * const.DIVERSITY_CLO_WEIGHT

    if bool(a.head) != bool(b.head):
        score += const.DIVERSITY_ACCESSORY_BONUS
    if bool(a.hands) != bool(b.hands):
        score += const.DIVERSITY_ACCESSORY_BONUS

    return float(score)


def select_diverse(ranked: list[Outfit], count: int = const.MAX_RESULTS) -> list[Outfit]:
    """
    Greedily pick up to ``count`` mutually distinct outfits.

    The best ranked outfit is always kept; every further pick maximises the
    summed diversity against the outfits already selected.
    """
    if not ranked:
        return []

    selected = [ranked[0]]
    while len(selected) < count:
        best, best_diversity = None, -1.0
        for outfit in ranked[1:]:
            if any(outfit is s for s in selected):
                continue
            total = sum(diversity(s, outfit) for s in selected)
            if total > best_diversity:
                best, best_diversity = outfit, total
        if best is None:
            break
        selected.append(best)
    return selected


# =============================================================================
# Substitution
# =============================================================================

def accessory_alternatives(key: str) -> tuple[str, ...]:
    """Keys an accessory may be swapped for (its equivalence group)."""
    for group in const.ACCESSORY_GROUPS:
        if key in group:
            return tuple(k for k in group if k != key)
    return ()


def _require_present(outfit: Outfit, garment: Garment) -> None:
    if not outfit.contains(garment):
        raise ValueError(f"Garment '{garment.key}' is not part of the outfit")


def _remove(items: list[Garment], key: str) -> bool:
    for index, garment in enumerate(items):
        if garment.key == key:
            del items[index]
            return True
    return False


def find_substitutes(outfit: Outfit, garment: Garment, temperature: float,
                     catalog: Catalog) -> list[Garment]:
    """
    Propose replacements for one garment of an outfit.

    Core garments are replaced within their layer category, keeping core
    insulation within ``[min * 0.9, max * 1.3]``; the closest to optimal come
    first (at most 5). Accessories may only be swapped within their fixed
    equivalence group, regardless of insulation.

    Raises:
        ValueError: If the garment is not part of the outfit
    """
    _require_present(outfit, garment)
    available = catalog.valid_at(temperature)

    if garment.zone is Zone.CORE:
        requirement = outfit.requirements.core
        without = outfit.core_clo - garment.clo
        low = requirement.min * const.SUBSTITUTE_MIN_FACTOR
        high = requirement.max * const.SUBSTITUTE_MAX_FACTOR
        options = [
            g for g in available
            if g.zone is Zone.CORE
            and g.category is garment.category
            and g.key != garment.key
            and low <= without + g.clo <= high
        ]
        options.sort(key=lambda g: abs(without + g.clo - requirement.optimal))
        return options[:const.MAX_SUBSTITUTES]

    allowed = accessory_alternatives(garment.key)
    return [g for g in available if g.key in allowed]


def _strip_accessories(outfit: Outfit, core_clo: float, target: float) -> None:
    """Remove accessories after an outer upgrade until the core estimate fits."""
    removable = []
    for zone in (Zone(name) for name in const.STRIP_ZONE_ORDER):
        items = outfit.zone_items(zone)
        over_min = sum(g.clo for g in items) - outfit.requirements[zone].min
        removable.extend((over_min, zone, g) for g in items)
    removable.sort(key=lambda entry: -entry[0])

    estimate = core_clo
    for _, zone, garment in removable:
        if estimate <= target:
            break
        if _remove(outfit.zone_items(zone), garment.key):
            estimate -= garment.clo * const.ACCESSORY_CORE_SHARE


def _compensate_lighter_outer(outfit: Outfit, core_clo: float, catalog: Catalog) -> None:
    """Add missing accessories after an outer downgrade left the core short."""
    core_min = outfit.requirements.core.min
    for zone_name, key, margin in const.COMPENSATION_ACCESSORIES:
        zone = Zone(zone_name)
        if outfit.zone_items(zone) or outfit.requirements[zone].max <= 0:
            continue
        if core_clo + margin >= core_min:
            continue
        garment = catalog.find(key)
        if garment is not None:
            outfit.zone_items(zone).append(garment)


def _adjust_for_outer_swap(outfit: Outfit, old: Garment, new: Garment,
                           catalog: Catalog) -> None:
    change = new.clo - old.clo
    requirement = outfit.requirements.core
    core_clo = outfit.core_clo

    if change >= const.OUTER_UPGRADE_DELTA or new.clo >= const.HEAVY_OUTER_SWAP_CLO:
        if core_clo > requirement.max * const.OUTER_STRIP_TRIGGER:
            _strip_accessories(outfit, core_clo, requirement.max * const.OUTER_STRIP_TARGET)

    if change <= -const.OUTER_UPGRADE_DELTA and core_clo < requirement.min:
        _compensate_lighter_outer(outfit, core_clo, catalog)


def _rebalance(outfit: Outfit, catalog: Catalog) -> None:
    """
    Single greedy step toward the core optimum.

    Too warm: drop the lightest non-base garment whose removal gets closer to
    optimal without undershooting by more than the threshold. Too cold: add
    the one default accessory (scarf, hat or gloves, into an empty zone) that
    gets closest without overshooting past the threshold.
    """
    optimal = outfit.requirements.core.optimal
    threshold = const.REBALANCE_THRESHOLD
    core_clo = outfit.core_clo
    distance = core_clo - optimal

    if distance > threshold:
        removable = [(Zone.CORE, g) for g in outfit.layer(LayerCategory.MID)]
        removable += [(zone, g) for zone in ACCESSORY_ZONES for g in outfit.zone_items(zone)]
        removable.sort(key=lambda entry: entry[1].clo)
        for zone, garment in removable:
            new_distance = core_clo - garment.clo - optimal
            if abs(new_distance) < abs(distance) and new_distance >= -threshold:
                _remove(outfit.zone_items(zone), garment.key)
                break

    elif distance < -threshold:
        best, best_distance = None, abs(distance)
        for zone_name, key in const.REBALANCE_ADD_ORDER:
            zone = Zone(zone_name)
            if outfit.zone_items(zone) or outfit.requirements[zone].max <= 0:
                continue
            garment = catalog.find(key)
            if garment is None:
                continue
            new_distance = core_clo + garment.clo - optimal
            if abs(new_distance) < best_distance and new_distance <= threshold:
                best, best_distance = (zone, garment), abs(new_distance)
        if best is not None:
            zone, garment = best
            outfit.zone_items(zone).append(garment)


def apply_substitution(outfit: Outfit, old: Garment, new: Garment,
                       catalog: Catalog) -> Outfit:
    """
    Replace one garment and rebalance, returning a new outfit.

    The new garment goes into its own zone, which may differ from the old
    garment's zone (e.g. scarf -> balaclava). Swapping one outer layer for
    another strips or adds accessories to compensate; afterwards a single
    rebalancing step nudges the core toward its optimum.

    Args:
        outfit: Outfit to start from (left untouched)
        old: Garment currently in the outfit
        new: Replacement garment
        catalog: Catalog providing compensation accessories and scoring tables

    Returns:
        New, re-scored Outfit

    Raises:
        ValueError: If ``old`` is not part of the outfit
    """
    _require_present(outfit, old)
    updated = outfit.copy()
    _remove(updated.zone_items(old.zone), old.key)
    updated.zone_items(new.zone).append(new)

    if old.category is LayerCategory.OUTER and new.category is LayerCategory.OUTER:
        _adjust_for_outer_swap(updated, old, new, catalog)

    _rebalance(updated, catalog)
    return score_outfit(updated, catalog)


# =============================================================================
# Engine
# =============================================================================

@dataclass
class Recommendation:
    """Recommendation result with diagnostics."""
    requirements: RequirementSet
    outfits: list[Outfit]
    considered: int = 0
    rejections: Counter = field(default_factory=Counter)


class LayeringEngine:
    """
    Recommends layered outfits for a temperature and wearer profile.

    Stateless between calls: every operation is a deterministic function of
    its inputs and the read-only catalog.

    Example:
        engine = LayeringEngine()
        outfits = engine.recommend(4, "elderly", "female", calibration=1)
        options = engine.find_substitutes(outfits[0], outfits[0].core[-1], 4)
        updated = engine.apply_substitution(outfits[0], outfits[0].core[-1], options[0])
    """

    def __init__(self, catalog: Catalog | None = None,
                 max_outfits: int = const.MAX_OUTFITS,
                 core_limit: int = const.CORE_CANDIDATE_LIMIT,
                 accessory_limit: int = const.ACCESSORY_CANDIDATE_LIMIT,
                 zone_cap: int = const.ZONE_CANDIDATE_CAP,
                 max_results: int = const.MAX_RESULTS):
        """
        Initialize the engine.

        Args:
            catalog: Garment catalog (default: bundled catalog.json)
            max_outfits: Outfits composed before validation (default: 50)
            core_limit: Core candidates combined (default: 20)
            accessory_limit: Candidates combined per accessory zone (default: 3)
            zone_cap: Candidates kept per zone search (default: 30)
            max_results: Diverse outfits returned (default: 3)
        """
        self.catalog = catalog if catalog is not None else load_catalog()
        self.requirement_model = RequirementModel(self.catalog)
        self.max_outfits = max_outfits
        self.core_limit = core_limit
        self.accessory_limit = accessory_limit
        self.zone_cap = zone_cap
        self.max_results = max_results

    def compute_requirements(self, temperature: float,
                             age_category: AgeCategory | str = AgeCategory.ADULT,
                             gender: Gender | str = Gender.UNSPECIFIED,
                             calibration: int = 0) -> RequirementSet:
        return self.requirement_model.compute(temperature, age_category, gender, calibration)

    def available_garments(self, temperature: float) -> list[Garment]:
        """All catalog garments valid at a temperature (for substitute lists)."""
        return self.catalog.valid_at(temperature)

    def candidate_sets(self, requirements: RequirementSet, temperature: float,
                       age_category: AgeCategory | str = AgeCategory.ADULT
                       ) -> dict[Zone, list[CandidateSet]]:
        """Run the combination search for every zone."""
        age_category = coerce_age_category(age_category)
        cold = temperature <= const.COLD_TEMPERATURE
        candidates = {}
        for zone in Zone:
            candidates[zone] = generate_zone_combinations(
                self.catalog.garments(zone, temperature),
                requirements[zone],
                vulnerable=age_category.is_vulnerable,
                cold=cold,
                cap=self.zone_cap,
            )
        _LOGGER.debug("Candidates per zone: %s",
                      {zone.value: len(items) for zone, items in candidates.items()})
        return candidates

    def recommend_with_diagnostics(self, temperature: float,
                                   age_category: AgeCategory | str = AgeCategory.ADULT,
                                   gender: Gender | str = Gender.UNSPECIFIED,
                                   calibration: int = 0) -> Recommendation:
        """
        Run the full pipeline and keep the rejection summary.

        An empty ``outfits`` list means the constraints were unsatisfiable for
        these inputs; ``rejections`` counts why composed outfits were dropped.
        """
        age_category = coerce_age_category(age_category)
        requirements = self.compute_requirements(temperature, age_category, gender, calibration)
        candidates = self.candidate_sets(requirements, temperature, age_category)
        composed = compose_outfits(candidates, requirements,
                                   max_outfits=self.max_outfits,
                                   core_limit=self.core_limit,
                                   accessory_limit=self.accessory_limit)

        wearable = []
        rejections: Counter = Counter()
        for outfit in composed:
            result = check_wearability(outfit, temperature, age_category)
            if result.valid:
                wearable.append(outfit)
            else:
                rejections[result.reason] += 1

        if not wearable:
            _LOGGER.warning(
                "No wearable outfits for %.1f°C (%s): %d composed, rejections %s",
                temperature, age_category.value, len(composed),
                {reason.value: n for reason, n in rejections.items()},
            )
            return Recommendation(requirements, [], len(composed), rejections)

        for outfit in wearable:
            score_outfit(outfit, self.catalog)
        ranked = rank_outfits(wearable)
        return Recommendation(
            requirements=requirements,
            outfits=select_diverse(ranked, self.max_results),
            considered=len(composed),
            rejections=rejections,
        )

    def recommend(self, temperature: float,
                  age_category: AgeCategory | str = AgeCategory.ADULT,
                  gender: Gender | str = Gender.UNSPECIFIED,
                  calibration: int = 0) -> list[Outfit]:
        """
        Recommend up to three diverse, wearable outfits.

        Args:
            temperature: Ambient temperature [°C]
            age_category: Wearer age category
            gender: Wearer gender
            calibration: -2 (fewer layers) to +2 (more layers)

        Returns:
            Outfits best first; empty if no wearable outfit exists
        """
        return self.recommend_with_diagnostics(
            temperature, age_category, gender, calibration).outfits

    def find_substitutes(self, outfit: Outfit, garment: Garment,
                         temperature: float) -> list[Garment]:
        return find_substitutes(outfit, garment, temperature, self.catalog)

    def apply_substitution(self, outfit: Outfit, old: Garment, new: Garment) -> Outfit:
        return apply_substitution(outfit, old, new, self.catalog)
