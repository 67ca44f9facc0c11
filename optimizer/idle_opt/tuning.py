"""
Idle Upgrade Optimizer - Tuning Constants
==========================================
Central registry of the numeric constants the valuation and scoring
pipeline depends on. Tests pin these values.
"""

# ---------------------------------------------------------------------------
# Bottleneck weight smoothing
# ---------------------------------------------------------------------------
# weight_t = 0.4 * raw_t + 0.6 * weight_{t-1}

SMOOTHING_NEW_WEIGHT = 0.4
SMOOTHING_PREVIOUS_WEIGHT = 0.6
DEFAULT_WEIGHT = 1.0

# Fewer pending upgrades than this uses the shortage-based early regime
EARLY_GAME_UPGRADE_COUNT = 3

# ---------------------------------------------------------------------------
# Numeric sentinels
# ---------------------------------------------------------------------------

# Infinite resource values are replaced by this before multiplying
INFINITE_VALUE_CLAMP = 1e10

# availableAt never lands further out than 100 years
MAX_HORIZON_SECONDS = 100 * 365.25 * 24 * 3600

# ---------------------------------------------------------------------------
# Cascade scoring
# ---------------------------------------------------------------------------

BASE_SHIFT_WEIGHT = 0.5
MIN_SHIFT_WEIGHT = 0.1
CASCADE_BASELINE_FALLBACK = 1.0

# ---------------------------------------------------------------------------
# Legacy data
# ---------------------------------------------------------------------------

# Resource name reported for generators with only a scalar production rate
LEGACY_RESOURCE = "Default"
