"""
Idle Upgrade Optimizer - Production Aggregation
================================================
Per-resource production totals. Always computed fresh from generator
counts and rates, never cached across a ranking pass.
"""

from typing import Dict, Iterable, List

from idle_opt.models import Generator


def total_production_by_resource(generators: Iterable[Generator]) -> Dict[str, float]:
    """Sum count x per-unit rate over all generators, grouped by resource."""
    totals: Dict[str, float] = {}
    for g in generators:
        for resource, amount in g.production_by_resource().items():
            totals[resource] = totals.get(resource, 0.0) + amount
    return totals


def sum_production(maps: Iterable[Dict[str, float]]) -> Dict[str, float]:
    """Merge several per-resource maps by adding matching entries."""
    totals: Dict[str, float] = {}
    for m in maps:
        for resource, amount in m.items():
            totals[resource] = totals.get(resource, 0.0) + amount
    return totals


def single_resource_total(production: Dict[str, float]) -> float:
    """Total of a one-resource snapshot. Returns 0 when more than one resource is produced."""
    if len(production) == 1:
        return next(iter(production.values()))
    return 0.0


def total_production(generators: List[Generator]) -> float:
    return single_resource_total(total_production_by_resource(generators))


def production_of(generators: List[Generator], resource: str) -> float:
    return total_production_by_resource(generators).get(resource, 0.0)
