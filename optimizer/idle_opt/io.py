"""
Idle Upgrade Optimizer - I/O
=============================
Entity <-> dict conversion, YAML game-state files, CSV import/export and
JSON export of a ranking.

CSV layouts (map fields are "key:value" pairs joined with ";"; amounts may
carry a K, M, B ... Ddc suffix on import):
    generators.csv  Name,BaseProduction,Resources,Count,Cost,ResourceCosts,CostRatio
    research.csv    Name,Cost,ResourceCosts,TargetGenerators,TargetMultipliers
                    (older files carry an extra MultiplierValue column)
    resources.csv   Name
"""

import csv
import json
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from idle_opt.format import fmt_duration, parse_amount
from idle_opt.models import (
    GameState, Generator, RankingSession, Research, Resource, SyncData, UpgradeResult,
)


GENERATOR_CSV_FIELDS = ["Name", "BaseProduction", "Resources", "Count", "Cost",
                        "ResourceCosts", "CostRatio"]
RESEARCH_CSV_FIELDS = ["Name", "Cost", "ResourceCosts", "TargetGenerators",
                       "TargetMultipliers"]
RESOURCE_CSV_FIELDS = ["Name"]


# ---------------------------------------------------------------------------
# Dict conversion
# ---------------------------------------------------------------------------

def _float_map(data) -> Dict[str, float]:
    if not data:
        return {}
    return {str(k): float(v) for k, v in data.items()}


def generator_to_dict(g: Generator) -> dict:
    return {
        "name": g.name,
        "resources": dict(g.resources),
        "count": g.count,
        "resource_costs": dict(g.resource_costs),
        "cost_ratio": g.cost_ratio,
        "base_production": g.base_production,
        "cost": g.cost,
        "base_resources": dict(g.base_resources),
        "base_resource_costs": dict(g.base_resource_costs),
        "required_generators": list(g.required_generators),
        "required_research": list(g.required_research),
    }


def generator_from_dict(data: dict) -> Generator:
    return Generator(
        name=str(data["name"]),
        resources=_float_map(data.get("resources")),
        count=int(data.get("count", 0)),
        resource_costs=_float_map(data.get("resource_costs")),
        cost_ratio=float(data.get("cost_ratio", 1.15)),
        base_production=float(data.get("base_production", 0.0)),
        cost=float(data.get("cost", 0.0)),
        base_resources=_float_map(data.get("base_resources")),
        base_resource_costs=_float_map(data.get("base_resource_costs")),
        required_generators=list(data.get("required_generators") or []),
        required_research=list(data.get("required_research") or []),
    )


def research_to_dict(r: Research) -> dict:
    return {
        "name": r.name,
        "target_multipliers": dict(r.target_multipliers),
        "target_generators": list(r.target_generators),
        "resource_costs": dict(r.resource_costs),
        "multiplier": r.multiplier,
        "cost": r.cost,
        "is_applied": r.is_applied,
        "required_generators": list(r.required_generators),
        "required_research": list(r.required_research),
    }


def research_from_dict(data: dict) -> Research:
    return Research(
        name=str(data["name"]),
        target_multipliers=_float_map(data.get("target_multipliers")),
        target_generators=list(data.get("target_generators") or []),
        resource_costs=_float_map(data.get("resource_costs")),
        multiplier=float(data.get("multiplier", 1.0)),
        cost=float(data.get("cost", 0.0)),
        is_applied=bool(data.get("is_applied", False)),
        required_generators=list(data.get("required_generators") or []),
        required_research=list(data.get("required_research") or []),
    )


def resource_to_dict(r: Resource) -> dict:
    return {"name": r.name, "total_production": r.total_production}


def resource_from_dict(data: dict) -> Resource:
    return Resource(name=str(data["name"]),
                    total_production=float(data.get("total_production", 0.0)))


def sync_data_to_dict(data: SyncData) -> dict:
    return {
        "user_id": data.user_id,
        "generators": [generator_to_dict(g) for g in data.generators],
        "research": [research_to_dict(r) for r in data.research],
        "resources": [resource_to_dict(r) for r in data.resources],
        "last_modified": data.last_modified.isoformat() if data.last_modified else None,
    }


def sync_data_from_dict(data: dict) -> SyncData:
    last_modified = data.get("last_modified")
    return SyncData(
        user_id=str(data.get("user_id", "")),
        generators=[generator_from_dict(g) for g in data.get("generators") or []],
        research=[research_from_dict(r) for r in data.get("research") or []],
        resources=[resource_from_dict(r) for r in data.get("resources") or []],
        last_modified=datetime.fromisoformat(last_modified) if last_modified else None,
    )


# ---------------------------------------------------------------------------
# YAML game state
# ---------------------------------------------------------------------------

def load_game_state(filepath: str) -> Tuple[GameState, RankingSession]:
    with open(filepath, "r") as f:
        data = yaml.safe_load(f) or {}

    state = GameState(
        generators=[generator_from_dict(g) for g in data.get("generators") or []],
        research=[research_from_dict(r) for r in data.get("research") or []],
        resources=[resource_from_dict(r) for r in data.get("resources") or []],
    )
    session_data = data.get("session") or {}
    session = RankingSession(previous_weights=_float_map(session_data.get("previous_weights")))
    return state, session


def save_game_state(state: GameState, filepath: str,
                    session: Optional[RankingSession] = None):
    data = {
        "generators": [generator_to_dict(g) for g in state.generators],
        "research": [research_to_dict(r) for r in state.research],
        "resources": [resource_to_dict(r) for r in state.resources],
    }
    if session and session.previous_weights:
        data["session"] = {"previous_weights": dict(session.previous_weights)}

    with open(filepath, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# ---------------------------------------------------------------------------
# CSV helpers
# ---------------------------------------------------------------------------

def _fmt_num(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_pairs(values: Dict[str, float]) -> str:
    return ";".join(f"{k}:{_fmt_num(v)}" for k, v in values.items())


def parse_pairs(text: str) -> Dict[str, float]:
    """Parse "a:1;b:2.5K". Malformed pairs are dropped."""
    result: Dict[str, float] = {}
    for pair in (text or "").split(";"):
        if ":" not in pair:
            continue
        key, _, value = pair.partition(":")
        try:
            result[key.strip()] = parse_amount(value)
        except ValueError:
            continue
    return result


def _split_names(text: str) -> List[str]:
    return [n.strip() for n in (text or "").split(";") if n.strip()]


def _read_rows(filepath: str) -> List[dict]:
    with open(filepath, "r", newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def _write_rows(filepath: str, fieldnames: List[str], rows: List[dict]):
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)


# ---------------------------------------------------------------------------
# CSV export / import
# ---------------------------------------------------------------------------

def export_generators_csv(generators: List[Generator], filepath: str):
    _write_rows(filepath, GENERATOR_CSV_FIELDS, [
        {
            "Name": g.name,
            "BaseProduction": _fmt_num(g.base_production),
            "Resources": format_pairs(g.resources),
            "Count": g.count,
            "Cost": _fmt_num(g.cost),
            "ResourceCosts": format_pairs(g.resource_costs),
            "CostRatio": _fmt_num(g.cost_ratio),
        }
        for g in generators
    ])


def import_generators_csv(filepath: str) -> List[Generator]:
    generators = []
    for row in _read_rows(filepath):
        name = (row.get("Name") or "").strip()
        if not name:
            continue
        try:
            generators.append(Generator(
                name=name,
                base_production=parse_amount(row.get("BaseProduction") or 0),
                resources=parse_pairs(row.get("Resources")),
                count=int(float(row.get("Count") or 0)),
                cost=parse_amount(row.get("Cost") or 0),
                resource_costs=parse_pairs(row.get("ResourceCosts")),
                cost_ratio=float(row.get("CostRatio") or 1.15),
            ))
        except ValueError:
            continue
    return generators


def export_research_csv(research: List[Research], filepath: str):
    _write_rows(filepath, RESEARCH_CSV_FIELDS, [
        {
            "Name": r.name,
            "Cost": _fmt_num(r.cost),
            "ResourceCosts": format_pairs(r.resource_costs),
            "TargetGenerators": ";".join(r.target_generators),
            "TargetMultipliers": format_pairs(r.target_multipliers),
        }
        for r in research
    ])


def import_research_csv(filepath: str) -> List[Research]:
    research = []
    for row in _read_rows(filepath):
        name = (row.get("Name") or "").strip()
        if not name:
            continue
        try:
            research.append(Research(
                name=name,
                multiplier=float(row.get("MultiplierValue") or 1.0),
                cost=parse_amount(row.get("Cost") or 0),
                resource_costs=parse_pairs(row.get("ResourceCosts")),
                target_generators=_split_names(row.get("TargetGenerators")),
                target_multipliers=parse_pairs(row.get("TargetMultipliers")),
            ))
        except ValueError:
            continue
    return research


def export_resources_csv(resources: List[Resource], filepath: str):
    _write_rows(filepath, RESOURCE_CSV_FIELDS, [{"Name": r.name} for r in resources])


def import_resources_csv(filepath: str) -> List[Resource]:
    return [Resource(name=row["Name"].strip())
            for row in _read_rows(filepath) if (row.get("Name") or "").strip()]


def export_state_csv(state: GameState, directory: str):
    """Write generators.csv, research.csv and resources.csv into `directory`."""
    out = Path(directory)
    out.mkdir(parents=True, exist_ok=True)
    export_generators_csv(state.generators, str(out / "generators.csv"))
    export_research_csv(state.research, str(out / "research.csv"))
    export_resources_csv(state.resources, str(out / "resources.csv"))


def import_state_csv(directory: str) -> GameState:
    """Read whichever of the three CSV files exist in `directory`."""
    src = Path(directory)
    state = GameState()
    if (src / "generators.csv").exists():
        state.generators = import_generators_csv(str(src / "generators.csv"))
    if (src / "research.csv").exists():
        state.research = import_research_csv(str(src / "research.csv"))
    if (src / "resources.csv").exists():
        state.resources = import_resources_csv(str(src / "resources.csv"))
    return state


# ---------------------------------------------------------------------------
# Ranking export
# ---------------------------------------------------------------------------

def _json_time(seconds: float) -> Optional[float]:
    return None if math.isinf(seconds) or math.isnan(seconds) else round(seconds, 3)


def ranking_to_dicts(results: List[UpgradeResult]) -> List[dict]:
    return [
        {
            "rank": i + 1,
            "name": r.item_name,
            "kind": r.kind.value,
            "cost": r.cost,
            "resource_costs": dict(r.resource_costs),
            "gain": r.gain,
            "gain_by_resource": dict(r.gain_by_resource),
            "effective_cost": r.effective_cost,
            "time_to_afford": _json_time(r.time_to_afford),
            "time_to_afford_text": fmt_duration(r.time_to_afford),
            "time_to_payback": _json_time(r.time_to_payback),
            "cascade_multiplier": r.cascade_multiplier,
            "score": r.cascade_score,
            "available_at": r.available_at.isoformat() if r.available_at else None,
            "target_generators": list(r.target_generators),
        }
        for i, r in enumerate(results)
    ]


def export_rankings_json(results: List[UpgradeResult], filepath: str):
    with open(filepath, "w") as f:
        json.dump(ranking_to_dicts(results), f, indent=2)
