"""
Idle Upgrade Optimizer - Output Formatting
===========================================
Durations, countdowns, number abbreviations (K, M, B, ... Ddc) and the
console ranking report.
"""

import math
from datetime import datetime
from typing import List, Optional, Tuple

# Abbreviation -> multiplier, smallest first
ABBREVIATIONS = [
    ("K", 1e3),
    ("M", 1e6),
    ("B", 1e9),
    ("T", 1e12),
    ("Qa", 1e15),
    ("Qi", 1e18),
    ("Sx", 1e21),
    ("Sp", 1e24),
    ("Oc", 1e27),
    ("No", 1e30),
    ("Dc", 1e33),
    ("Udc", 1e36),
    ("Ddc", 1e39),
]
_ABBR_VALUES = dict(ABBREVIATIONS)

_YEAR = 365 * 24 * 3600
_WEEK = 7 * 24 * 3600
_DAY = 24 * 3600


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

def fmt_duration(seconds: float) -> str:
    """1y 2w 3d 4h 5m 6s style. Zero parts are omitted."""
    if seconds is None or math.isnan(seconds):
        return "never"
    if math.isinf(seconds):
        return "never" if seconds > 0 else "0s"
    remaining = int(seconds)
    if remaining <= 0:
        return "0s"

    parts = []
    for unit, size in (("y", _YEAR), ("w", _WEEK), ("d", _DAY), ("h", 3600), ("m", 60)):
        n, remaining = divmod(remaining, size)
        if n:
            parts.append(f"{n}{unit}")
    if remaining or not parts:
        parts.append(f"{remaining}s")
    return " ".join(parts)


def seconds_until(available_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Countdown to `available_at`, never negative. None stays None."""
    if available_at is None:
        return None
    return max(0, int((available_at - now).total_seconds()))


# ---------------------------------------------------------------------------
# Number abbreviations
# ---------------------------------------------------------------------------

def apply_abbreviation(value: float, abbr: Optional[str]) -> float:
    """3, "K" -> 3000. Unknown or empty abbreviations leave the value unchanged."""
    if not abbr:
        return value
    return value * _ABBR_VALUES.get(abbr, 1.0)


def parse_abbreviation(value: float) -> Tuple[float, Optional[str]]:
    """Split a value into (mantissa, abbreviation), e.g. 2500 -> (2.5, "K").

    Values beyond the largest abbreviation keep it, 5e42 -> (5000.0, "Ddc").
    """
    if value == 0:
        return 0.0, None
    abs_value = abs(value)
    for abbr, threshold in reversed(ABBREVIATIONS):
        if abs_value >= threshold:
            return value / threshold, abbr
    return value, None


def format_number(value: float, decimals: int = 2) -> str:
    if value is None or math.isnan(value) or math.isinf(value):
        return "0"
    mantissa, abbr = parse_abbreviation(value)
    return f"{mantissa:.{decimals}f}{abbr or ''}"


def parse_amount(text) -> float:
    """Read "2.5K" style amounts. Raises ValueError for anything else."""
    text = str(text).strip()
    for abbr, _ in sorted(ABBREVIATIONS, key=lambda a: -len(a[0])):
        if text.endswith(abbr):
            return apply_abbreviation(float(text[:-len(abbr)]), abbr)
    return float(text)


# ---------------------------------------------------------------------------
# Ranking report
# ---------------------------------------------------------------------------

def print_ranking(results, top: Optional[int] = None, now: Optional[datetime] = None):
    now = now or datetime.now()
    shown = results if top is None else results[:top]

    print()
    print("=" * 78)
    print("  UPGRADE RANKING")
    print("=" * 78)
    if not shown:
        print(" Nothing to buy.")
        return

    print(f" {'#':>3}  {'Upgrade':<22} {'Type':<9} {'Cost':>9} {'Gain':>9} "
          f"{'Afford in':>14} {'Score':>9}")
    print(f" {'-':>3}  {'-------':<22} {'----':<9} {'----':>9} {'----':>9} "
          f"{'---------':>14} {'-----':>9}")
    for i, r in enumerate(shown):
        wait = seconds_until(r.available_at, now)
        afford = fmt_duration(wait) if wait is not None else "never"
        print(f" {i + 1:>3}  {r.item_name[:22]:<22} {r.kind.value:<9} "
              f"{format_number(r.cost):>9} {format_number(r.gain):>9} "
              f"{afford:>14} {format_number(r.cascade_score):>9}")
        if r.target_generators:
            print(f"{'':>6}targets: {', '.join(r.target_generators)}")


def print_production(production: dict, values: dict):
    print()
    print("--- RESOURCES ---")
    print(f" {'Resource':<16} {'Prod/s':>10} {'Value':>10}")
    names = list(production) + [r for r in values if r not in production]
    for name in names:
        value = values.get(name, 0.0)
        value_str = "unproduced" if math.isinf(value) else format_number(value)
        print(f" {name:<16} {format_number(production.get(name, 0.0)):>10} {value_str:>10}")
