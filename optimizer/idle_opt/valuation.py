"""
Idle Upgrade Optimizer - Resource Valuation
============================================
Scarcity value per resource (outstanding demand / current production) and
bottleneck weights that mark which resource currently limits progress
across the pending upgrade frontier.

Bottleneck weights are low-pass filtered between ranking passes:

    weight_t = 0.4 * raw_t + 0.6 * weight_{t-1}

The caller owns the previous weights (see RankingSession) and passes them in.
"""

import math
from typing import Dict, List, Optional, Tuple

from idle_opt.models import Candidate, Generator, Research, UpgradeKind
from idle_opt.tuning import (
    DEFAULT_WEIGHT, EARLY_GAME_UPGRADE_COUNT,
    SMOOTHING_NEW_WEIGHT, SMOOTHING_PREVIOUS_WEIGHT,
)


# ---------------------------------------------------------------------------
# Cost maps
# ---------------------------------------------------------------------------

def prorated_costs(resource_costs: Dict[str, float], scalar_cost: float,
                   production: Dict[str, float]) -> Dict[str, float]:
    """Per-resource cost of an item.

    Items carrying only a legacy scalar cost have it split over the currently
    produced resources by production share. With nothing produced the result
    is empty, which downstream code treats as unaffordable.
    """
    if resource_costs:
        return dict(resource_costs)
    if scalar_cost <= 0:
        return {}
    produced = {r: p for r, p in production.items() if p > 0}
    total = sum(produced.values())
    if total <= 0:
        return {}
    return {r: scalar_cost * p / total for r, p in produced.items()}


def generator_costs(generator: Generator, production: Dict[str, float]) -> Dict[str, float]:
    return prorated_costs(generator.resource_costs, generator.cost, production)


def research_costs(research: Research, production: Dict[str, float]) -> Dict[str, float]:
    return prorated_costs(research.resource_costs, research.cost, production)


def candidate_costs(candidate: Candidate, production: Dict[str, float]) -> Dict[str, float]:
    if candidate.kind is UpgradeKind.GENERATOR:
        return generator_costs(candidate.source, production)
    return research_costs(candidate.source, production)


def pending_upgrades(generators: List[Generator], research: List[Research],
                     production: Dict[str, float]) -> List[Tuple[Candidate, Dict[str, float]]]:
    """Unlocked generators and unlocked, unapplied research that have a cost.

    Returns (candidate, cost map) pairs in list order, generators first.
    """
    pending = []
    for g in generators:
        if not g.is_unlocked:
            continue
        costs = generator_costs(g, production)
        if costs:
            pending.append((Candidate.of_generator(g), costs))
    for r in research:
        if not r.is_unlocked or r.is_applied:
            continue
        costs = research_costs(r, production)
        if costs:
            pending.append((Candidate.of_research(r), costs))
    return pending


def outstanding_demand(generators: List[Generator], research: List[Research],
                       production: Dict[str, float]) -> Dict[str, float]:
    """Total next-purchase cost per resource over every generator and unapplied research."""
    demand: Dict[str, float] = {}
    cost_maps = [generator_costs(g, production) for g in generators]
    cost_maps += [research_costs(r, production) for r in research if not r.is_applied]
    for costs in cost_maps:
        for resource, amount in costs.items():
            demand[resource] = demand.get(resource, 0.0) + amount
    return demand


# ---------------------------------------------------------------------------
# Valuations
# ---------------------------------------------------------------------------

def resource_valuations(generators: List[Generator], research: List[Research],
                        production: Dict[str, float]) -> Dict[str, float]:
    """Value per resource = outstanding demand / current production.

    A demanded resource that nothing produces is worth math.inf. Resources
    with neither demand nor production are left out.
    """
    demand = outstanding_demand(generators, research, production)
    values: Dict[str, float] = {}
    for resource in list(production) + [r for r in demand if r not in production]:
        d = demand.get(resource, 0.0)
        p = production.get(resource, 0.0)
        if p > 0:
            values[resource] = d / p
        elif d > 0:
            values[resource] = math.inf
    return values


def identify_bottleneck_resource(costs: Dict[str, float],
                                 production: Dict[str, float]) -> Optional[str]:
    """Cost component with the longest wait at current production.

    Unproduced resources are skipped here; callers detect unaffordable
    items separately. Returns None when no cost resource is produced.
    """
    bottleneck = None
    longest = 0.0
    for resource, amount in costs.items():
        p = production.get(resource, 0.0)
        if p <= 0:
            continue
        wait = amount / p
        if bottleneck is None or wait > longest:
            bottleneck = resource
            longest = wait
    return bottleneck


# ---------------------------------------------------------------------------
# Bottleneck weights
# ---------------------------------------------------------------------------

def raw_bottleneck_weights(generators: List[Generator], research: List[Research],
                           production: Dict[str, float]) -> Dict[str, float]:
    """Unsmoothed weights, each >= 1."""
    pending = pending_upgrades(generators, research, production)
    resources = list(production)
    for _, costs in pending:
        for r in costs:
            if r not in resources:
                resources.append(r)

    if len(pending) < EARLY_GAME_UPGRADE_COUNT:
        # Early game: weight by how far demand outruns one second of output
        demand: Dict[str, float] = {}
        for _, costs in pending:
            for r, amount in costs.items():
                demand[r] = demand.get(r, 0.0) + amount
        total_need = sum(demand.values())
        return {
            r: 1.0 + max(0.0, demand.get(r, 0.0) - production.get(r, 0.0)) / max(1.0, total_need)
            for r in resources
        }

    delay: Dict[str, float] = {}
    total_path_time = 0.0
    for _, costs in pending:
        bottleneck = identify_bottleneck_resource(costs, production)
        if bottleneck is None:
            continue
        wait = costs[bottleneck] / production[bottleneck]
        if wait <= 0:
            continue
        delay[bottleneck] = delay.get(bottleneck, 0.0) + wait
        total_path_time += wait

    if total_path_time <= 0:
        return {r: DEFAULT_WEIGHT for r in resources}
    return {r: 1.0 + delay.get(r, 0.0) / total_path_time for r in resources}


def smooth_weights(raw: Dict[str, float],
                   previous: Optional[Dict[str, float]]) -> Dict[str, float]:
    """Blend raw weights with the previous pass. No history returns raw as-is."""
    if not previous:
        return dict(raw)
    return {
        r: SMOOTHING_NEW_WEIGHT * w + SMOOTHING_PREVIOUS_WEIGHT * previous.get(r, DEFAULT_WEIGHT)
        for r, w in raw.items()
    }


def bottleneck_weights(generators: List[Generator], research: List[Research],
                       production: Dict[str, float],
                       previous_weights: Optional[Dict[str, float]] = None) -> Dict[str, float]:
    raw = raw_bottleneck_weights(generators, research, production)
    return smooth_weights(raw, previous_weights)
