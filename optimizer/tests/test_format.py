"""Tests for duration and number formatting and the console report."""

import math
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from idle_opt.format import (
    apply_abbreviation, fmt_duration, format_number, parse_abbreviation,
    parse_amount, print_production, print_ranking, seconds_until,
)
from idle_opt.ranking import RankingEngine


def test_fmt_duration():
    assert fmt_duration(0) == "0s"
    assert fmt_duration(-5) == "0s"
    assert fmt_duration(59) == "59s"
    assert fmt_duration(3600) == "1h"
    assert fmt_duration(3661) == "1h 1m 1s"
    assert fmt_duration(8 * 24 * 3600) == "1w 1d"
    assert fmt_duration(365 * 24 * 3600 + 2) == "1y 2s"
    assert fmt_duration(math.inf) == "never"
    assert fmt_duration(float("nan")) == "never"


def test_seconds_until():
    now = datetime(2024, 1, 1)
    assert seconds_until(now + timedelta(seconds=90), now) == 90
    assert seconds_until(now - timedelta(seconds=90), now) == 0
    assert seconds_until(None, now) is None


def test_abbreviations():
    assert apply_abbreviation(3, "K") == 3000
    assert apply_abbreviation(2, "Ddc") == 2e39
    assert apply_abbreviation(5, None) == 5
    assert apply_abbreviation(5, "??") == 5
    assert parse_abbreviation(2500) == (2.5, "K")
    assert parse_abbreviation(999) == (999, None)
    assert parse_abbreviation(0) == (0.0, None)


def test_parse_amount():
    assert parse_amount("3K") == 3000.0
    assert parse_amount(" 2.5M ") == 2.5e6
    assert parse_amount("4Udc") == 4e36
    assert parse_amount("1Dc") == 1e33
    assert parse_amount("12") == 12.0
    assert parse_amount(7) == 7.0
    with pytest.raises(ValueError):
        parse_amount("lots")


def test_format_number_beyond_largest_abbreviation():
    assert parse_abbreviation(5e42) == (pytest.approx(5000.0), "Ddc")
    assert format_number(5e42) == "5000.00Ddc"


def test_format_number():
    assert format_number(12.5) == "12.50"
    assert format_number(1500) == "1.50K"
    assert format_number(-2.5e6) == "-2.50M"
    assert format_number(3e39) == "3.00Ddc"
    assert format_number(math.inf) == "0"


def test_print_ranking(wood_state, fixed_clock, capsys):
    engine = RankingEngine(wood_state, clock=fixed_clock)
    print_ranking(engine.ranked_upgrades(), top=2, now=fixed_clock())
    out = capsys.readouterr().out
    assert "UPGRADE RANKING" in out
    assert "Sharper Axes" in out
    assert "Quarry" not in out


def test_print_ranking_empty(capsys):
    print_ranking([])
    assert "Nothing to buy" in capsys.readouterr().out


def test_print_production(wood_state, capsys):
    engine = RankingEngine(wood_state)
    print_production(engine.production_by_resource(), engine.resource_values())
    out = capsys.readouterr().out
    assert "Wood" in out
    assert "unproduced" in out
