"""Layered clothing recommendations for cold weather."""

from .catalog import Catalog, Garment, LayerCategory, Zone, load_catalog
from .engine import (
    AgeCategory,
    AlertTier,
    Gender,
    LayeringEngine,
    Outfit,
    Recommendation,
    RejectionReason,
    RequirementSet,
    RiskLevel,
    WearabilityResult,
    ZoneRequirement,
)

__all__ = [
    "AgeCategory",
    "AlertTier",
    "Catalog",
    "Garment",
    "Gender",
    "LayerCategory",
    "LayeringEngine",
    "Outfit",
    "Recommendation",
    "RejectionReason",
    "RequirementSet",
    "RiskLevel",
    "WearabilityResult",
    "Zone",
    "ZoneRequirement",
    "load_catalog",
]
