"""Shared test fixtures for the idle upgrade optimizer test suite."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure optimizer/ is on the path so `idle_opt` imports work
OPT_ROOT = Path(__file__).parent.parent
if str(OPT_ROOT) not in sys.path:
    sys.path.insert(0, str(OPT_ROOT))

from idle_opt.models import GameState, Generator, Research, Resource

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def wood_generators():
    """Woodcutter 1/s x5 and Sawmill 2/s x3: 11 Wood/s in total."""
    return [
        Generator(name="Woodcutter", resources={"Wood": 1.0}, count=5,
                  resource_costs={"Wood": 20.0}),
        Generator(name="Sawmill", resources={"Wood": 2.0}, count=3,
                  resource_costs={"Wood": 80.0}),
    ]


@pytest.fixture
def wood_state(wood_generators):
    """Wood economy plus a Stone generator nobody can pay for yet."""
    quarry = Generator(name="Quarry", resources={"Stone": 1.0}, count=0,
                       resource_costs={"Stone": 10.0})
    axes = Research(name="Sharper Axes", target_multipliers={"Woodcutter": 2.0},
                    resource_costs={"Wood": 50.0})
    return GameState(
        generators=wood_generators + [quarry],
        research=[axes],
        resources=[Resource(name="Wood")],
    )


@pytest.fixture
def legacy_generator():
    """Scalar-rate, scalar-cost generator."""
    return Generator(name="Clicker", base_production=2.0, count=1,
                     cost=10.0, cost_ratio=1.15)
