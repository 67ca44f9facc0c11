"""
Idle Upgrade Optimizer - Upgrade Evaluation
============================================
Simulates the world after buying one candidate upgrade and derives its
effective gain, effective cost, time-to-afford and time-to-payback.

The simulation works on production snapshots only; entity state is never
touched here.
"""

import dataclasses
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from idle_opt.models import Candidate, Generator, Research, UpgradeKind
from idle_opt.production import single_resource_total, sum_production
from idle_opt.tuning import DEFAULT_WEIGHT, INFINITE_VALUE_CLAMP, MAX_HORIZON_SECONDS
from idle_opt.valuation import candidate_costs

CostFn = Callable[[Dict[str, float], Dict[str, float]], float]


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------

def clamp_value(value: float) -> float:
    """Replace an infinite resource value with a large finite one. NaN counts as 0."""
    if math.isnan(value):
        return 0.0
    if math.isinf(value):
        return INFINITE_VALUE_CLAMP if value > 0 else -INFINITE_VALUE_CLAMP
    return value


def normalize_time(seconds: float) -> float:
    """NaN and negative infinity are not meaningful durations; map them to math.inf."""
    if math.isnan(seconds) or seconds == -math.inf:
        return math.inf
    return seconds


# ---------------------------------------------------------------------------
# Cost valuation (pluggable)
# ---------------------------------------------------------------------------

def valued_cost(costs: Dict[str, float], valuations: Dict[str, float]) -> float:
    """Cost in scarcity-value terms: sum of amount x resource value."""
    return sum(amount * clamp_value(valuations.get(r, 0.0)) for r, amount in costs.items())


def raw_cost(costs: Dict[str, float], valuations: Dict[str, float]) -> float:
    """Plain sum of cost amounts, ignoring valuations."""
    return sum(costs.values())


COST_FUNCTIONS: Dict[str, CostFn] = {
    "valued": valued_cost,
    "raw": raw_cost,
}


def make_cost_fn(name: str) -> CostFn:
    if name not in COST_FUNCTIONS:
        raise ValueError(f"Unknown cost valuation: {name}. Choose from: {list(COST_FUNCTIONS.keys())}")
    return COST_FUNCTIONS[name]


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def simulated_production(candidate: Candidate,
                         generators: List[Generator]) -> Dict[str, float]:
    """Production snapshot as it would be right after buying `candidate`."""
    maps = []
    for g in generators:
        if candidate.kind is UpgradeKind.GENERATOR:
            if g is candidate.source:
                maps.append(dataclasses.replace(g, count=g.count + 1).production_by_resource())
            else:
                maps.append(g.production_by_resource())
        elif candidate.kind is UpgradeKind.RESEARCH:
            research = candidate.source
            prod = g.production_by_resource()
            if not research.is_applied and g.name in research.targets():
                mult = research.get_multiplier(g.name)
                prod = {r: amount * mult for r, amount in prod.items()}
            maps.append(prod)
    return sum_production(maps)


def effective_gain(current: Dict[str, float], new: Dict[str, float],
                   valuations: Dict[str, float],
                   weights: Dict[str, float]) -> Tuple[float, Dict[str, float]]:
    """Value-weighted production increase.

    Returns (gain, per-resource production increase). Resources that vanish
    from the new snapshot contribute a negative increase.
    """
    gain = 0.0
    increase: Dict[str, float] = {}
    for r in list(current) + [r for r in new if r not in current]:
        delta = new.get(r, 0.0) - current.get(r, 0.0)
        if delta == 0:
            continue
        increase[r] = delta
        gain += delta * clamp_value(valuations.get(r, 0.0)) * weights.get(r, DEFAULT_WEIGHT)
    return gain, increase


def time_to_afford(costs: Dict[str, float], production: Dict[str, float],
                   total_cost: float = 0.0) -> float:
    """Longest per-resource wait. math.inf if any required resource is unproduced.

    An empty cost map is free unless `total_cost` says otherwise (a legacy
    scalar cost that could not be prorated because nothing is produced).
    """
    if not costs:
        return 0.0 if total_cost <= 0 else math.inf
    longest = 0.0
    for r, amount in costs.items():
        if amount <= 0:
            continue
        p = production.get(r, 0.0)
        if p <= 0:
            return math.inf
        longest = max(longest, amount / p)
    return normalize_time(longest)


def time_to_payback(effective_cost: float, gain: float, cost: float,
                    current: Dict[str, float], new: Dict[str, float]) -> float:
    if gain > 0:
        return normalize_time(effective_cost / gain)
    delta = single_resource_total(new) - single_resource_total(current)
    if delta > 0:
        return normalize_time(cost / delta)
    return math.inf


def available_at(seconds: float, now: datetime) -> Optional[datetime]:
    """Wall-clock time the item becomes affordable, None if it never does."""
    if math.isinf(seconds) or math.isnan(seconds):
        return None
    return now + timedelta(seconds=min(max(seconds, 0.0), MAX_HORIZON_SECONDS))


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

@dataclass
class Evaluation:
    """Intermediate result for one candidate, consumed by cascade scoring."""
    candidate: Candidate
    costs: Dict[str, float]
    cost: float
    new_production: Dict[str, float]
    gain: float
    gain_by_resource: Dict[str, float]
    effective_cost: float
    time_to_afford: float
    time_to_payback: float
    available_at: Optional[datetime] = None
    target_generators: List[str] = field(default_factory=list)

    @property
    def efficiency(self) -> float:
        if self.effective_cost <= 0:
            return 0.0
        return self.gain / self.effective_cost


class UpgradeEvaluator:
    """Evaluates candidates against one production/valuation snapshot."""

    def __init__(self, generators: List[Generator], research: List[Research],
                 production: Dict[str, float], valuations: Dict[str, float],
                 weights: Dict[str, float],
                 cost_fn: CostFn = valued_cost,
                 clock: Callable[[], datetime] = datetime.now):
        self.generators = generators
        self.research = research
        self.production = production
        self.valuations = valuations
        self.weights = weights
        self.cost_fn = cost_fn
        self.clock = clock

    def _check_member(self, candidate: Candidate):
        pool = self.generators if candidate.kind is UpgradeKind.GENERATOR else self.research
        if not any(item is candidate.source for item in pool):
            raise ValueError(f"{candidate.kind.value} '{candidate.name}' is not part of the game state")

    def evaluate(self, candidate: Candidate) -> Evaluation:
        self._check_member(candidate)

        if candidate.kind is UpgradeKind.GENERATOR:
            cost = candidate.source.purchase_cost()
            targets = []
        elif candidate.kind is UpgradeKind.RESEARCH:
            cost = candidate.source.total_cost()
            targets = candidate.source.targets()
        else:
            raise ValueError(f"Unknown upgrade kind: {candidate.kind}")

        costs = candidate_costs(candidate, self.production)
        new_production = simulated_production(candidate, self.generators)
        gain, by_resource = effective_gain(self.production, new_production,
                                           self.valuations, self.weights)
        eff_cost = self.cost_fn(costs, self.valuations)
        afford = time_to_afford(costs, self.production, cost)
        payback = time_to_payback(eff_cost, gain, cost, self.production, new_production)

        return Evaluation(
            candidate=candidate,
            costs=costs,
            cost=cost,
            new_production=new_production,
            gain=gain,
            gain_by_resource=by_resource,
            effective_cost=eff_cost,
            time_to_afford=afford,
            time_to_payback=payback,
            available_at=available_at(afford, self.clock()),
            target_generators=targets,
        )
