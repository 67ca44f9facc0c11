"""
Idle Upgrade Optimizer - Game Session
======================================
Ties the ranking engine to its collaborators: loads state before a ranking
pass and saves it afterwards. Cloud data wins over local data whenever a
user id is set and the sync server answers.
"""

import logging
from typing import Optional

from idle_opt.cascade import ScoringPolicy
from idle_opt.evaluation import CostFn, valued_cost
from idle_opt.models import GameState, RankingSession
from idle_opt.ranking import RankingEngine
from idle_opt.storage import LocalStorage
from idle_opt.sync import CloudSync

log = logging.getLogger(__name__)


def migrate_base_fields(state: GameState):
    """Seed prestige baselines for data saved before they existed."""
    for g in state.generators:
        g.ensure_baselines()


class GameSession:
    def __init__(self, storage: LocalStorage, sync: Optional[CloudSync] = None,
                 policy: Optional[ScoringPolicy] = None, cost_fn: CostFn = valued_cost):
        self.storage = storage
        self.sync = sync
        self.state = GameState()
        self.ranking = RankingSession()
        self.engine = RankingEngine(self.state, session=self.ranking,
                                    policy=policy, cost_fn=cost_fn)

    @property
    def user_id(self) -> Optional[str]:
        return self.sync.user_id if self.sync else None

    def initialize(self) -> RankingEngine:
        """Load state and prepare the engine for the first ranking pass."""
        self.load_state()
        self.engine.evaluate_unlock_status()
        self.engine.update_resource_totals()
        return self.engine

    def load_state(self) -> GameState:
        loaded = False
        if self.sync and self.sync.user_id:
            cloud = self.sync.sync_from_cloud()
            if cloud is not None:
                log.info("Loaded state for %s from cloud", cloud.user_id)
                self.state.generators = cloud.generators
                self.state.research = cloud.research
                self.state.resources = cloud.resources
                self.storage.save_generators(self.state.generators)
                self.storage.save_research(self.state.research)
                self.storage.save_resources(self.state.resources)
                loaded = True
            else:
                log.info("No cloud state for %s, using local data", self.sync.user_id)

        if not loaded:
            self.state.generators = self.storage.load_generators()
            self.state.research = self.storage.load_research()
            self.state.resources = self.storage.load_resources()

        self.ranking.previous_weights = self.storage.load_session().previous_weights
        migrate_base_fields(self.state)
        return self.state

    def save_state(self):
        """Save locally, then push to the cloud when a user id is set. Never raises."""
        self.storage.save_generators(self.state.generators)
        self.storage.save_research(self.state.research)
        self.storage.save_resources(self.state.resources)
        self.storage.save_session(self.ranking)
        if self.sync and self.sync.user_id:
            if not self.sync.sync_to_cloud(self.state.generators, self.state.research,
                                           self.state.resources):
                log.warning("Cloud sync failed, state saved locally only")

    def clear_all(self):
        self.storage.clear_all()
        self.state.generators = []
        self.state.research = []
        self.state.resources = []
        self.ranking.reset()

    def perform_prestige(self, production_multiplier: float, cost_multiplier: float):
        self.engine.perform_prestige(production_multiplier, cost_multiplier)
        self.save_state()
