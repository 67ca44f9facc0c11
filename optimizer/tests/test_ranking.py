"""Tests for the ranking engine: ordering, purchases, prestige, resources."""

import math
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from idle_opt.models import (
    Candidate, GameState, Generator, RankingSession, Research, Resource, UpgradeKind,
)
from idle_opt.ranking import RankingEngine, rank_state


def _names(results):
    return [r.item_name for r in results]


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def test_end_to_end_research_beats_unaffordable(wood_state, fixed_clock):
    engine = RankingEngine(wood_state, clock=fixed_clock)
    results = engine.ranked_upgrades()
    by_name = {r.item_name: r for r in results}

    axes = by_name["Sharper Axes"]
    assert axes.kind is UpgradeKind.RESEARCH
    assert axes.gain > 0
    assert axes.time_to_afford == pytest.approx(50.0 / 11.0, rel=1e-3)

    quarry = by_name["Quarry"]
    assert math.isinf(quarry.time_to_afford)
    assert quarry.available_at is None
    assert _names(results).index("Sharper Axes") < _names(results).index("Quarry")


def test_results_sorted_descending(wood_state, fixed_clock):
    results = RankingEngine(wood_state, clock=fixed_clock).ranked_upgrades()
    scores = [r.cascade_score for r in results]
    assert scores == sorted(scores, reverse=True)


def test_ties_keep_insertion_order(fixed_clock):
    state = GameState(generators=[
        Generator(name="Woodcutter", resources={"Wood": 1.0}, count=1),
        Generator(name="Gold A", resources={"Gold": 1.0}, resource_costs={"Gold": 5.0}),
        Generator(name="Gold B", resources={"Gold": 1.0}, resource_costs={"Gold": 5.0}),
        Generator(name="Gold C", resources={"Gold": 1.0}, resource_costs={"Gold": 5.0}),
    ])
    results = RankingEngine(state, clock=fixed_clock).ranked_upgrades()
    gold = [n for n in _names(results) if n.startswith("Gold")]
    assert gold == ["Gold A", "Gold B", "Gold C"]


def test_ranking_is_deterministic(wood_state, fixed_clock):
    first = RankingEngine(wood_state, session=RankingSession({"Wood": 1.3}),
                          clock=fixed_clock).ranked_upgrades()
    second = RankingEngine(wood_state, session=RankingSession({"Wood": 1.3}),
                           clock=fixed_clock).ranked_upgrades()
    assert _names(first) == _names(second)
    assert [r.cascade_score for r in first] == [r.cascade_score for r in second]


def test_weights_remembered_between_passes(wood_state, fixed_clock):
    session = RankingSession()
    engine = RankingEngine(wood_state, session=session, clock=fixed_clock)
    engine.ranked_upgrades()
    assert session.previous_weights["Wood"] == pytest.approx(2.0)

    session.previous_weights = {"Wood": 1.0, "Stone": 1.0}
    engine.ranked_upgrades()
    assert session.previous_weights["Wood"] == pytest.approx(0.4 * 2.0 + 0.6 * 1.0)


def test_empty_state_ranks_nothing():
    assert RankingEngine(GameState()).ranked_upgrades() == []


def test_zero_production_and_applied_research():
    state = GameState(
        generators=[Generator(name="g", resources={"Wood": 1.0}, count=0,
                              resource_costs={"Wood": 10.0})],
        research=[Research(name="done", target_multipliers={"g": 2.0},
                           resource_costs={"Wood": 5.0}, is_applied=True)],
    )
    results = RankingEngine(state).ranked_upgrades()
    assert _names(results) == ["g"]
    assert results[0].cascade_score == 0.0


def test_applied_research_excluded(wood_state):
    wood_state.research[0].is_applied = True
    assert "Sharper Axes" not in _names(RankingEngine(wood_state).ranked_upgrades())


def test_rank_state_helper(wood_state):
    results = rank_state(wood_state, policy_name="payback")
    assert len(results) == 4


# ---------------------------------------------------------------------------
# Unlocks
# ---------------------------------------------------------------------------

def test_unlock_requires_generators_and_research():
    quarry = Generator(name="Quarry", resources={"Stone": 1.0}, count=0,
                       resource_costs={"Wood": 10.0})
    masonry = Research(name="Masonry", resource_costs={"Wood": 5.0})
    mason = Generator(name="Mason", resources={"Stone": 3.0},
                      resource_costs={"Stone": 30.0},
                      required_generators=["Quarry"], required_research=["Masonry"])
    state = GameState(
        generators=[Generator(name="Woodcutter", resources={"Wood": 1.0}, count=1),
                    quarry, mason],
        research=[masonry],
    )
    engine = RankingEngine(state)

    engine.evaluate_unlock_status()
    assert not mason.is_unlocked
    assert "Mason" not in _names(engine.ranked_upgrades())

    quarry.count = 1
    engine.evaluate_unlock_status()
    assert not mason.is_unlocked

    masonry.is_applied = True
    engine.evaluate_unlock_status()
    assert mason.is_unlocked
    assert "Mason" in _names(engine.ranked_upgrades())


def test_unknown_prerequisite_stays_locked():
    g = Generator(name="g", required_generators=["missing"])
    engine = RankingEngine(GameState(generators=[g]))
    engine.evaluate_unlock_status()
    assert not g.is_unlocked


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------

def test_purchase_scales_scalar_cost():
    g = Generator(name="g", base_production=1.0, count=0, cost=10.0, cost_ratio=1.15)
    engine = RankingEngine(GameState(generators=[g]))
    engine.apply_purchase(Candidate.of_generator(g))
    assert g.count == 1
    assert g.cost == pytest.approx(11.5)


def test_purchase_scales_resource_costs(wood_state):
    engine = RankingEngine(wood_state)
    result = next(r for r in engine.ranked_upgrades() if r.item_name == "Woodcutter")
    engine.apply_purchase(result)
    woodcutter = wood_state.get_generator("Woodcutter")
    assert woodcutter.count == 6
    assert woodcutter.resource_costs == {"Wood": pytest.approx(23.0)}
    assert wood_state.get_resource("Wood").total_production == pytest.approx(12.0)


def test_research_purchase_multiplies_current_rate(wood_state):
    engine = RankingEngine(wood_state)
    axes = wood_state.research[0]
    engine.apply_purchase(Candidate.of_research(axes))
    assert axes.is_applied
    assert wood_state.get_generator("Woodcutter").resources == {"Wood": 2.0}
    assert wood_state.get_generator("Sawmill").resources == {"Wood": 2.0}

    # Applying again is a no-op
    engine.apply_purchase(Candidate.of_research(axes))
    assert wood_state.get_generator("Woodcutter").resources == {"Wood": 2.0}


def test_research_order_compounds():
    g = Generator(name="g", resources={"Wood": 1.0}, count=1)
    a = Research(name="a", target_multipliers={"g": 2.0})
    b = Research(name="b", target_multipliers={"g": 3.0})
    engine = RankingEngine(GameState(generators=[g], research=[a, b]))
    engine.apply_purchase(Candidate.of_research(a))
    engine.apply_purchase(Candidate.of_research(b))
    assert g.resources == {"Wood": 6.0}


def test_legacy_research_scales_scalar_rate(legacy_generator):
    boost = Research(name="boost", target_generators=["Clicker"], multiplier=2.5)
    engine = RankingEngine(GameState(generators=[legacy_generator], research=[boost]))
    engine.apply_purchase(Candidate.of_research(boost))
    assert legacy_generator.base_production == pytest.approx(5.0)


def test_purchase_of_foreign_item_raises(wood_state):
    engine = RankingEngine(wood_state)
    with pytest.raises(ValueError):
        engine.apply_purchase(Candidate.of_generator(Generator(name="Woodcutter")))


# ---------------------------------------------------------------------------
# Prestige
# ---------------------------------------------------------------------------

def test_prestige_resets_and_rescales():
    g = Generator(name="g", resources={"Wood": 2.0}, count=4,
                  resource_costs={"Wood": 10.0}, cost_ratio=1.5)
    r = Research(name="r", target_multipliers={"g": 3.0}, resource_costs={"Wood": 40.0})
    session = RankingSession({"Wood": 1.7})
    state = GameState(generators=[g], research=[r])
    engine = RankingEngine(state, session=session)
    g.ensure_baselines()

    engine.apply_purchase(Candidate.of_research(r))
    engine.apply_purchase(Candidate.of_generator(g))
    assert g.resources == {"Wood": 6.0}

    engine.perform_prestige(1.5, 2.0)
    assert g.count == 0
    assert g.base_resources == {"Wood": pytest.approx(3.0)}
    assert g.resources == {"Wood": pytest.approx(3.0)}
    assert g.base_production == pytest.approx(3.0)
    assert g.base_resource_costs == {"Wood": pytest.approx(20.0)}
    assert g.resource_costs == {"Wood": pytest.approx(20.0)}
    assert g.cost == pytest.approx(20.0)
    assert not r.is_applied
    assert r.resource_costs == {"Wood": pytest.approx(80.0)}
    assert session.previous_weights == {}


def test_prestige_legacy_scalars(legacy_generator):
    engine = RankingEngine(GameState(generators=[legacy_generator]))
    engine.perform_prestige(2.0, 3.0)
    assert legacy_generator.count == 0
    assert legacy_generator.base_production == pytest.approx(4.0)
    assert legacy_generator.cost == pytest.approx(30.0)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

def test_update_resource_totals_adds_missing(wood_state):
    engine = RankingEngine(wood_state)
    engine.update_resource_totals()
    assert wood_state.get_resource("Wood").total_production == pytest.approx(11.0)
    assert wood_state.get_resource("Stone").total_production == 0.0


def test_add_and_remove_resource(wood_state):
    engine = RankingEngine(wood_state)
    gold = engine.add_resource(" Gold ")
    assert gold.name == "Gold"
    assert engine.add_resource("Gold") is gold
    assert engine.get_resource("Gold") is gold
    assert engine.remove_resource("Gold")
    assert not engine.remove_resource("Gold")
    with pytest.raises(ValueError):
        engine.add_resource("   ")


def test_total_production_single_resource(wood_state):
    engine = RankingEngine(wood_state)
    assert engine.production_of("Wood") == 11.0
    # Wood plus a zero Stone entry from the Quarry
    assert engine.total_production() == 0.0
    assert RankingEngine(GameState(generators=wood_state.generators[:2])).total_production() == 11.0


def test_resource_values(wood_state):
    values = RankingEngine(wood_state).resource_values()
    assert values["Wood"] == pytest.approx(150.0 / 11.0)
    assert math.isinf(values["Stone"])
    assert isinstance(wood_state.resources[0], Resource)
