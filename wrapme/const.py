"""Hand-tuned rule constants for the layering engine.

Catalog data (garments, temperature bands, adjustments) lives in catalog.json.
The values here are the layering rules that reference specific garments or
thresholds; recalibration should only ever touch this module.
"""

# =============================================================================
# Zones and layer categories
# =============================================================================

CORE_CATEGORIES = ["base", "mid", "outer"]
ACCESSORY_CATEGORY = "accessory"

AGE_CATEGORIES = ["infant", "child", "teen", "adult", "elderly", "very-elderly"]
GENDERS = ["male", "female", "unspecified"]
RISK_LEVELS = ["low", "low-moderate", "moderate", "high", "severe"]
ALERT_TIERS = ["green", "yellow", "amber", "red"]

# =============================================================================
# Requirement model
# =============================================================================

CALIBRATION_STEP_CLO = 0.25
CALIBRATION_RANGE = (-2, 2)
ELDERLY_EXPOSURE_FACTOR = 0.7
COLD_TEMPERATURE = 5.0
VULNERABLE_AGE_CATEGORIES = {"infant", "child", "elderly", "very-elderly"}

# =============================================================================
# Layering rules
# =============================================================================

FOUNDATION_KEY = "t-shirt"
THERMAL_KEY = "thermal-top"
MINIMAL_BASE_KEY = "vest"

MAX_OUTER_LAYERS = 1
MAX_MID_LAYERS = 2
MAX_BASE_LAYERS = 2
MAX_BASE_LAYERS_VULNERABLE_COLD = 3

REDUNDANT_MID_PAIRS = [("jumper", "thick-jumper")]
HEAVY_MID_KEYS = {"thick-jumper", "fleece", "hoodie"}
MAX_HEAVY_MID_LAYERS = 2
LIGHT_MID_MAX_CLO = 0.20

# Mid-layer ceiling under an outer layer, scaled linearly over this range
CEILING_TEMP_RANGE = (-15.0, 15.0)
HEAVY_OUTER_MIN_CLO = 0.49
HEAVY_OUTER_CEILING = (1.00, 0.50)
REGULAR_OUTER_MIN_CLO = 0.37
REGULAR_OUTER_CEILING = (0.95, 0.55)

NO_OUTER_COLD_TEMPERATURE = 2.0
NO_OUTER_MID_BASE_CLO = 0.50
NO_OUTER_MID_STEP_CLO = 0.05

# =============================================================================
# Search bounds
# =============================================================================

ACCEPT_OVERSHOOT = 1.3
PRUNE_OVERSHOOT = 1.5
ZONE_CANDIDATE_CAP = 30
CORE_CANDIDATE_LIMIT = 20
ACCESSORY_CANDIDATE_LIMIT = 3
MAX_OUTFITS = 50
MAX_RESULTS = 3

# =============================================================================
# Scoring and diversity
# =============================================================================

SCORE_BASE = 100.0
SCORE_ITEM_BASELINE = 10
DEFAULT_FREQUENCY = 0.5
OPTIMAL_SCORE_SCALE = 100.0
OPTIMAL_DISTANCE_WEIGHT = 10.0
FOUNDATION_BONUS = 25.0
FOUNDATION_THERMAL_BONUS = 15.0
SCORE_TIE_WINDOW = 5.0

COMMON_ITEM_KEYS = {
    "t-shirt", "jumper", "hoodie", "fleece", "coat", "long-sleeve-top", "light-jacket",
}

DIVERSITY_COUNT_WEIGHT = 20.0
DIVERSITY_ITEM_WEIGHT = 10.0
DIVERSITY_LAYER_WEIGHT = 15.0
DIVERSITY_CLO_WEIGHT = 30.0
DIVERSITY_ACCESSORY_BONUS = 5.0

# =============================================================================
# Substitution
# =============================================================================

MAX_SUBSTITUTES = 5
SUBSTITUTE_MIN_FACTOR = 0.9
SUBSTITUTE_MAX_FACTOR = 1.3

ACCESSORY_GROUPS = [
    ("scarf", "thick-scarf", "balaclava", "neck-warmer"),
    ("hat", "warm-hat"),
    ("gloves", "insulated-gloves", "mittens"),
    ("thermal-socks", "thick-socks", "double-socks"),
]

OUTER_UPGRADE_DELTA = 0.15
HEAVY_OUTER_SWAP_CLO = 0.45
OUTER_STRIP_TRIGGER = 1.1
OUTER_STRIP_TARGET = 1.05
# Share of an accessory's insulation counted against core when stripping
ACCESSORY_CORE_SHARE = 0.3
STRIP_ZONE_ORDER = ["head", "neck", "hands", "feet"]

# (zone, garment key, extra margin below core min required before adding)
COMPENSATION_ACCESSORIES = [
    ("neck", "scarf", 0.0),
    ("hands", "gloves", 0.05),
    ("head", "hat", 0.10),
]
REBALANCE_THRESHOLD = 0.20
REBALANCE_ADD_ORDER = [("neck", "scarf"), ("head", "hat"), ("hands", "gloves")]
