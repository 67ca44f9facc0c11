"""
Idle Upgrade Optimizer - Data Models
=====================================
Dataclasses for game entities, ranking candidates and evaluation results.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from idle_opt.tuning import LEGACY_RESOURCE


# ---------------------------------------------------------------------------
# Game entities
# ---------------------------------------------------------------------------

@dataclass
class Generator:
    """A production source. Rates and costs are per owned unit / next unit."""
    name: str
    resources: Dict[str, float] = field(default_factory=dict)
    count: int = 0
    resource_costs: Dict[str, float] = field(default_factory=dict)
    cost_ratio: float = 1.15

    # Legacy scalar forms, used when the maps above are empty
    base_production: float = 0.0
    cost: float = 0.0

    # Prestige baselines
    base_resources: Dict[str, float] = field(default_factory=dict)
    base_resource_costs: Dict[str, float] = field(default_factory=dict)

    required_generators: List[str] = field(default_factory=list)
    required_research: List[str] = field(default_factory=list)
    is_unlocked: bool = True

    def production_by_resource(self) -> Dict[str, float]:
        """Current output per resource: per-unit rate times count."""
        if self.resources:
            return {r: rate * self.count for r, rate in self.resources.items()}
        if self.base_production:
            return {LEGACY_RESOURCE: self.base_production * self.count}
        return {}

    def purchase_cost(self) -> float:
        if self.resource_costs:
            return sum(self.resource_costs.values())
        return self.cost

    def ensure_baselines(self):
        """Seed prestige baselines from current values where missing."""
        if not self.base_resources and self.resources:
            self.base_resources = dict(self.resources)
        if not self.base_resource_costs and self.resource_costs:
            self.base_resource_costs = dict(self.resource_costs)


@dataclass
class Research:
    """A one-time multiplier applied to the current rates of target generators."""
    name: str
    target_multipliers: Dict[str, float] = field(default_factory=dict)
    target_generators: List[str] = field(default_factory=list)
    resource_costs: Dict[str, float] = field(default_factory=dict)
    multiplier: float = 1.0    # legacy: applies to targets without an explicit entry
    cost: float = 0.0          # legacy scalar cost
    is_applied: bool = False

    required_generators: List[str] = field(default_factory=list)
    required_research: List[str] = field(default_factory=list)
    is_unlocked: bool = True

    def get_multiplier(self, generator_name: str) -> float:
        return self.target_multipliers.get(generator_name, self.multiplier)

    def targets(self) -> List[str]:
        """Target generator names, explicit list first, in stable order."""
        names = list(self.target_generators)
        for name in self.target_multipliers:
            if name not in names:
                names.append(name)
        return names

    def total_cost(self) -> float:
        if self.resource_costs:
            return sum(self.resource_costs.values())
        return self.cost


@dataclass
class Resource:
    name: str
    total_production: float = 0.0    # snapshot, refreshed by the ranking engine


@dataclass
class GameState:
    generators: List[Generator] = field(default_factory=list)
    research: List[Research] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)

    def get_generator(self, name: str) -> Optional[Generator]:
        for g in self.generators:
            if g.name == name:
                return g
        return None

    def get_research(self, name: str) -> Optional[Research]:
        for r in self.research:
            if r.name == name:
                return r
        return None

    def get_resource(self, name: str) -> Optional[Resource]:
        for r in self.resources:
            if r.name == name:
                return r
        return None


@dataclass
class RankingSession:
    """Smoothing memory carried from one ranking pass to the next."""
    previous_weights: Dict[str, float] = field(default_factory=dict)

    def reset(self):
        self.previous_weights = {}


# ---------------------------------------------------------------------------
# Ranking candidates and results
# ---------------------------------------------------------------------------

class UpgradeKind(Enum):
    GENERATOR = "generator"
    RESEARCH = "research"


@dataclass(frozen=True)
class Candidate:
    """Tagged reference to an upgrade source. `source` is never owned."""
    kind: UpgradeKind
    source: Union[Generator, Research]

    @classmethod
    def of_generator(cls, generator: Generator) -> "Candidate":
        return cls(UpgradeKind.GENERATOR, generator)

    @classmethod
    def of_research(cls, research: Research) -> "Candidate":
        return cls(UpgradeKind.RESEARCH, research)

    @property
    def name(self) -> str:
        return self.source.name


@dataclass(frozen=True)
class UpgradeResult:
    item_name: str
    kind: UpgradeKind
    cost: float
    resource_costs: Dict[str, float]
    gain: float                                  # effective gain
    gain_by_resource: Dict[str, float]
    effective_cost: float
    time_to_afford: float                        # math.inf when unaffordable
    time_to_payback: float                       # math.inf when it never pays back
    cascade_multiplier: float
    cascade_score: float
    source: Union[Generator, Research] = field(compare=False, repr=False)
    available_at: Optional[datetime] = None
    target_generators: List[str] = field(default_factory=list)

    @property
    def is_affordable(self) -> bool:
        return self.available_at is not None

    @property
    def candidate(self) -> Candidate:
        return Candidate(self.kind, self.source)


# ---------------------------------------------------------------------------
# Sync payload
# ---------------------------------------------------------------------------

@dataclass
class SyncData:
    user_id: str
    generators: List[Generator] = field(default_factory=list)
    research: List[Research] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    last_modified: Optional[datetime] = None
