"""
Idle Upgrade Optimizer - Ranking Engine
========================================
Runs the full pipeline for every candidate and returns upgrades ordered by
score. Also owns the two state mutations: applying a purchase and prestige.

A ranking pass and a purchase on the same engine never interleave; both
take the engine lock.
"""

import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from idle_opt.cascade import ScoringPolicy, cascade_multiplier, make_policy
from idle_opt.evaluation import CostFn, Evaluation, UpgradeEvaluator, valued_cost
from idle_opt.models import (
    Candidate, GameState, Generator, RankingSession, Research, Resource,
    UpgradeKind, UpgradeResult,
)
from idle_opt.production import (
    single_resource_total, total_production_by_resource,
)
from idle_opt.valuation import bottleneck_weights, resource_valuations


def _scaled(values: Dict[str, float], factor: float) -> Dict[str, float]:
    return {k: v * factor for k, v in values.items()}


def _to_result(ev: Evaluation, cascade: float, score: float) -> UpgradeResult:
    source = ev.candidate.source
    return UpgradeResult(
        item_name=source.name,
        kind=ev.candidate.kind,
        cost=ev.cost,
        resource_costs=dict(ev.costs),
        gain=ev.gain,
        gain_by_resource=dict(ev.gain_by_resource),
        effective_cost=ev.effective_cost,
        time_to_afford=ev.time_to_afford,
        time_to_payback=ev.time_to_payback,
        cascade_multiplier=cascade,
        cascade_score=score,
        source=source,
        available_at=ev.available_at,
        target_generators=list(ev.target_generators),
    )


class RankingEngine:
    def __init__(self, state: GameState, session: Optional[RankingSession] = None,
                 policy: Optional[ScoringPolicy] = None,
                 cost_fn: CostFn = valued_cost,
                 clock: Callable[[], datetime] = datetime.now):
        self.state = state
        self.session = session if session is not None else RankingSession()
        self.policy = policy or make_policy("balanced")
        self.cost_fn = cost_fn
        self.clock = clock
        self._lock = threading.RLock()

    # -----------------------------------------------------------------------
    # Unlocks and resources
    # -----------------------------------------------------------------------

    def evaluate_unlock_status(self):
        """Recompute is_unlocked from prerequisites for every generator and research."""
        owned = {g.name for g in self.state.generators if g.count > 0}
        applied = {r.name for r in self.state.research if r.is_applied}
        for item in list(self.state.generators) + list(self.state.research):
            item.is_unlocked = (all(name in owned for name in item.required_generators)
                                and all(name in applied for name in item.required_research))

    def production_by_resource(self) -> Dict[str, float]:
        return total_production_by_resource(self.state.generators)

    def total_production(self) -> float:
        return single_resource_total(self.production_by_resource())

    def production_of(self, resource: str) -> float:
        return self.production_by_resource().get(resource, 0.0)

    def resource_values(self) -> Dict[str, float]:
        return resource_valuations(self.state.generators, self.state.research,
                                   self.production_by_resource())

    def update_resource_totals(self):
        """Refresh Resource.total_production; add resources that appear in production."""
        production = self.production_by_resource()
        for resource in self.state.resources:
            resource.total_production = production.get(resource.name, 0.0)
        known = {r.name for r in self.state.resources}
        for name, amount in production.items():
            if name not in known:
                self.state.resources.append(Resource(name=name, total_production=amount))

    def add_resource(self, name: str) -> Resource:
        name = name.strip()
        if not name:
            raise ValueError("Resource name must not be empty")
        existing = self.state.get_resource(name)
        if existing:
            return existing
        resource = Resource(name=name, total_production=self.production_of(name))
        self.state.resources.append(resource)
        return resource

    def get_resource(self, name: str) -> Optional[Resource]:
        return self.state.get_resource(name)

    def remove_resource(self, name: str) -> bool:
        resource = self.state.get_resource(name)
        if resource is None:
            return False
        self.state.resources.remove(resource)
        return True

    # -----------------------------------------------------------------------
    # Ranking
    # -----------------------------------------------------------------------

    def candidates(self) -> List[Candidate]:
        """Unlocked generators, then unlocked unapplied research, in list order."""
        cands = [Candidate.of_generator(g) for g in self.state.generators if g.is_unlocked]
        cands += [Candidate.of_research(r) for r in self.state.research
                  if r.is_unlocked and not r.is_applied]
        return cands

    def ranked_upgrades(self) -> List[UpgradeResult]:
        with self._lock:
            self.evaluate_unlock_status()
            generators = self.state.generators
            research = self.state.research

            production = total_production_by_resource(generators)
            valuations = resource_valuations(generators, research, production)
            weights = bottleneck_weights(generators, research, production,
                                         self.session.previous_weights)
            self.session.previous_weights = dict(weights)

            evaluator = UpgradeEvaluator(generators, research, production,
                                         valuations, weights,
                                         cost_fn=self.cost_fn, clock=self.clock)
            results = []
            for candidate in self.candidates():
                ev = evaluator.evaluate(candidate)
                cascade = cascade_multiplier(candidate, generators, research,
                                             production, ev.new_production,
                                             ev.time_to_afford)
                results.append(_to_result(ev, cascade, self.policy.score(ev, cascade)))

            # list.sort is stable, equal scores keep candidate order
            results.sort(key=lambda r: r.cascade_score, reverse=True)
            return results

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def apply_purchase(self, item: Union[UpgradeResult, Candidate]):
        """Buy one generator unit or apply one research.

        Raises ValueError if the item's source is not part of this engine's state.
        """
        with self._lock:
            candidate = item.candidate if isinstance(item, UpgradeResult) else item
            if candidate.kind is UpgradeKind.GENERATOR:
                self._buy_generator(self._owned(candidate, self.state.generators))
            elif candidate.kind is UpgradeKind.RESEARCH:
                self._apply_research(self._owned(candidate, self.state.research))
            else:
                raise ValueError(f"Unknown upgrade kind: {candidate.kind}")
            self.evaluate_unlock_status()
            self.update_resource_totals()

    def _owned(self, candidate: Candidate, pool: list):
        for item in pool:
            if item is candidate.source:
                return item
        raise ValueError(f"{candidate.kind.value} '{candidate.name}' is not part of the game state")

    def _buy_generator(self, g: Generator):
        g.count += 1
        g.resource_costs = _scaled(g.resource_costs, g.cost_ratio)
        g.cost *= g.cost_ratio

    def _apply_research(self, research: Research):
        if research.is_applied:
            return
        targets = research.targets()
        for g in self.state.generators:
            if g.name not in targets:
                continue
            mult = research.get_multiplier(g.name)
            if g.resources:
                g.resources = _scaled(g.resources, mult)
            else:
                g.base_production *= mult
        research.is_applied = True

    def perform_prestige(self, production_multiplier: float, cost_multiplier: float):
        """Reset counts and research, rescaling baseline rates and costs.

        Current rates and costs are replaced by copies of the rescaled
        baselines, discarding any research multipliers applied since.
        """
        with self._lock:
            for r in self.state.research:
                r.is_applied = False
                r.resource_costs = _scaled(r.resource_costs, cost_multiplier)
                r.cost *= cost_multiplier

            for g in self.state.generators:
                g.ensure_baselines()
                g.count = 0
                if g.base_resources:
                    g.base_resources = _scaled(g.base_resources, production_multiplier)
                    g.resources = dict(g.base_resources)
                    g.base_production = sum(g.base_resources.values())
                else:
                    g.base_production *= production_multiplier
                if g.base_resource_costs:
                    g.base_resource_costs = _scaled(g.base_resource_costs, cost_multiplier)
                    g.resource_costs = dict(g.base_resource_costs)
                    g.cost = sum(g.base_resource_costs.values())
                else:
                    g.cost *= cost_multiplier

            self.session.reset()
            self.evaluate_unlock_status()
            self.update_resource_totals()


def rank_state(state: GameState, session: Optional[RankingSession] = None,
               policy_name: str = "balanced", cost_fn: CostFn = valued_cost) -> List[UpgradeResult]:
    """One-shot ranking of a game state."""
    engine = RankingEngine(state, session=session, policy=make_policy(policy_name),
                           cost_fn=cost_fn)
    return engine.ranked_upgrades()
