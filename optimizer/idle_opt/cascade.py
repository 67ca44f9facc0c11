"""
Idle Upgrade Optimizer - Cascade Scoring
=========================================
Rewards upgrades that also shorten the wait for the rest of the pending
frontier, then folds that into a single priority score.

    cascade = 1 + time_saved / baseline + shift_weight * bottleneck_shifts

baseline is the candidate's own time-to-afford (1.0 when zero or infinite).
shift_weight decays with the number of other pending upgrades n:
0.5 for n <= 1, else max(0.1, 0.5 / (1 + log10(n))).
"""

import math
from typing import Callable, Dict, List, Optional

from idle_opt.evaluation import Evaluation
from idle_opt.models import Candidate, Generator, Research, UpgradeKind
from idle_opt.tuning import BASE_SHIFT_WEIGHT, CASCADE_BASELINE_FALLBACK, MIN_SHIFT_WEIGHT
from idle_opt.valuation import identify_bottleneck_resource, pending_upgrades


# ---------------------------------------------------------------------------
# Cascade multiplier
# ---------------------------------------------------------------------------

def bottleneck_shift_weight(n: int) -> float:
    if n <= 1:
        return BASE_SHIFT_WEIGHT
    return max(MIN_SHIFT_WEIGHT, BASE_SHIFT_WEIGHT / (1 + math.log10(n)))


def afford_baseline(seconds: float) -> float:
    if math.isinf(seconds) or math.isnan(seconds) or seconds <= 0:
        return CASCADE_BASELINE_FALLBACK
    return seconds


def bottleneck_wait(costs: Dict[str, float], production: Dict[str, float],
                    bottleneck: Optional[str]) -> float:
    """Wait on the produced bottleneck resource only. 0 when nothing is produced."""
    if bottleneck is None:
        return 0.0
    return costs[bottleneck] / production[bottleneck]


def cascade_multiplier(candidate: Candidate, generators: List[Generator],
                       research: List[Research], current: Dict[str, float],
                       new: Dict[str, float], baseline: float) -> float:
    """How much buying `candidate` accelerates every other pending upgrade.

    Raises ValueError if `candidate` is not one of the given generators/research.
    """
    pool = generators if candidate.kind is UpgradeKind.GENERATOR else research
    if not any(item is candidate.source for item in pool):
        raise ValueError(f"{candidate.kind.value} '{candidate.name}' is not part of the game state")

    others = [(c, costs) for c, costs in pending_upgrades(generators, research, current)
              if c.source is not candidate.source]

    time_saved = 0.0
    shifts = 0
    for _, costs in others:
        before = identify_bottleneck_resource(costs, current)
        after = identify_bottleneck_resource(costs, new)
        wait_before = bottleneck_wait(costs, current, before)
        wait_after = bottleneck_wait(costs, new, after)
        if 0 < wait_after < wait_before < math.inf:
            time_saved += wait_before - wait_after
        if before != after:
            shifts += 1

    return (1.0 + time_saved / afford_baseline(baseline)
            + bottleneck_shift_weight(len(others)) * shifts)


# ---------------------------------------------------------------------------
# Scoring policies
# ---------------------------------------------------------------------------

class ScoringPolicy:
    """Combines an evaluation and its cascade multiplier into a final score."""

    def __init__(self, name: str, description: str,
                 score_fn: Callable[[Evaluation, float], float]):
        self.name = name
        self.description = description
        self.score_fn = score_fn

    def score(self, evaluation: Evaluation, cascade: float) -> float:
        candidate = evaluation.candidate
        if candidate.kind is UpgradeKind.RESEARCH and candidate.source.is_applied:
            return 0.0
        if math.isinf(evaluation.time_to_afford):
            return 0.0
        score = self.score_fn(evaluation, cascade)
        if math.isnan(score) or math.isinf(score):
            return 0.0
        return score


def _balanced_score(ev: Evaluation, cascade: float) -> float:
    return ev.efficiency * cascade / afford_baseline(ev.time_to_afford)


def _payback_score(ev: Evaluation, cascade: float) -> float:
    if math.isinf(ev.time_to_payback):
        return 0.0
    return cascade / (afford_baseline(ev.time_to_afford) + ev.time_to_payback)


def make_policy(policy_name: str = "balanced") -> ScoringPolicy:
    """Create a scoring policy by name."""
    policies = {
        "balanced": ScoringPolicy(
            name="balanced",
            description="Gain/cost efficiency x cascade, per second of waiting",
            score_fn=_balanced_score,
        ),
        "payback": ScoringPolicy(
            name="payback",
            description="Cascade over total wait plus payback time",
            score_fn=_payback_score,
        ),
    }
    if policy_name not in policies:
        raise ValueError(f"Unknown scoring policy: {policy_name}. Choose from: {list(policies.keys())}")
    return policies[policy_name]
