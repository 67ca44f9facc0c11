"""
Idle Upgrade Optimizer - Sync Server
=====================================
FastAPI server storing per-user game state for cloud sync, plus a
stateless ranking endpoint.

Usage:
    python -m idle_opt.web
    python cli.py web [--port 8080]
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel
import uvicorn

from idle_opt import db
from idle_opt.config import DEFAULT_DB_PATH
from idle_opt.evaluation import make_cost_fn
from idle_opt.io import (
    generator_from_dict, ranking_to_dicts, research_from_dict, resource_from_dict,
)
from idle_opt.models import GameState, RankingSession
from idle_opt.ranking import RankingEngine
from idle_opt.cascade import make_policy

log = logging.getLogger(__name__)

# Read on every request; cli.py overrides it from the config
DB_PATH = os.environ.get("IDLE_OPT_DB_PATH", str(DEFAULT_DB_PATH))

app = FastAPI(title="Idle Upgrade Optimizer Sync")


# ---------------------------------------------------------------------------
# Pydantic models for request/response
# ---------------------------------------------------------------------------

class GeneratorIn(BaseModel):
    name: str
    resources: dict[str, float] = {}
    count: int = 0
    resource_costs: dict[str, float] = {}
    cost_ratio: float = 1.15
    base_production: float = 0.0
    cost: float = 0.0
    base_resources: dict[str, float] = {}
    base_resource_costs: dict[str, float] = {}
    required_generators: list[str] = []
    required_research: list[str] = []


class ResearchIn(BaseModel):
    name: str
    target_multipliers: dict[str, float] = {}
    target_generators: list[str] = []
    resource_costs: dict[str, float] = {}
    multiplier: float = 1.0
    cost: float = 0.0
    is_applied: bool = False
    required_generators: list[str] = []
    required_research: list[str] = []


class ResourceIn(BaseModel):
    name: str
    total_production: float = 0.0


class SyncDataIn(BaseModel):
    user_id: str = ""
    generators: list[GeneratorIn] = []
    research: list[ResearchIn] = []
    resources: list[ResourceIn] = []
    last_modified: Optional[str] = None


class RankRequest(BaseModel):
    generators: list[GeneratorIn] = []
    research: list[ResearchIn] = []
    resources: list[ResourceIn] = []
    previous_weights: dict[str, float] = {}
    policy: str = "balanced"
    cost_valuation: str = "valued"
    top: Optional[int] = None


def _state_from_request(req) -> GameState:
    return GameState(
        generators=[generator_from_dict(g.model_dump()) for g in req.generators],
        research=[research_from_dict(r.model_dump()) for r in req.research],
        resources=[resource_from_dict(r.model_dump()) for r in req.resources],
    )


# ---------------------------------------------------------------------------
# Sync endpoints
# ---------------------------------------------------------------------------

@app.post("/api/sync/save")
def sync_save(data: SyncDataIn):
    if not data.user_id.strip():
        raise HTTPException(400, "user_id is required")
    payload = data.model_dump()
    payload["user_id"] = data.user_id.strip()
    try:
        stored = db.save_sync_data(payload, DB_PATH)
    except Exception:
        log.exception("Saving sync data for %s failed", payload["user_id"])
        raise HTTPException(500, "Failed to save sync data")
    return {"status": "ok", "user_id": stored["user_id"],
            "last_modified": stored["last_modified"]}


@app.get("/api/sync/load")
def sync_load(user_id: str = Query("")):
    if not user_id.strip():
        raise HTTPException(400, "user_id is required")
    data = db.load_sync_data(user_id.strip(), DB_PATH)
    if data is None:
        raise HTTPException(404, f"No data for user: {user_id}")
    return data


@app.get("/api/sync/users")
def sync_users():
    return db.get_all_user_ids(DB_PATH)


@app.get("/api/health")
def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

@app.post("/api/rank")
def rank(req: RankRequest):
    try:
        policy = make_policy(req.policy)
        cost_fn = make_cost_fn(req.cost_valuation)
    except ValueError as e:
        raise HTTPException(400, str(e))

    session = RankingSession(previous_weights=dict(req.previous_weights))
    engine = RankingEngine(_state_from_request(req), session=session,
                           policy=policy, cost_fn=cost_fn)
    results = engine.ranked_upgrades()
    if req.top is not None:
        results = results[:req.top]
    return {
        "rankings": ranking_to_dicts(results),
        "weights": session.previous_weights,
        "production": engine.production_by_resource(),
    }


def start_server(port: int = 8080):
    """Start the uvicorn server."""
    print(f"Starting Idle Upgrade Optimizer sync server at http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    start_server()
