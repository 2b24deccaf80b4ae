
import time
import random
import numpy as np

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Sequence

from aurorae.agents.learning.utils.config_loader import load_global_config, get_config_section
from logs.logger import get_logger, PrettyPrinter

logger = get_logger("Strategy Bank")
printer = PrettyPrinter

@dataclass
class Strategy:
    """
    A reusable policy slice (state -> action).

    The policy and provenance fields are fixed at creation; only
    effectiveness and usage_count change afterwards.
    """
    name: str
    version: int
    policy: Dict[Hashable, Hashable]
    effectiveness: float = 0.5
    usage_count: int = 0
    created_at: float = field(default_factory=time.time)
    origin: str = "generated"
    parent: Optional[str] = None
    evolution_count: int = 0
    performance_at_creation: float = 0.0

    @property
    def strategy_id(self) -> str:
        return f"{self.name}:v{self.version}"

    def action_for(self, state: Hashable) -> Optional[Hashable]:
        return self.policy.get(state)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'version': self.version,
            'policy': [[state, action] for state, action in self.policy.items()],
            'effectiveness': self.effectiveness,
            'usage_count': self.usage_count,
            'created_at': self.created_at,
            'origin': self.origin,
            'parent': self.parent,
            'evolution_count': self.evolution_count,
            'performance_at_creation': self.performance_at_creation
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Strategy":
        return cls(
            name=str(data['name']),
            version=int(data['version']),
            policy={state: action for state, action in data['policy']},
            effectiveness=float(data['effectiveness']),
            usage_count=int(data['usage_count']),
            created_at=float(data['created_at']),
            origin=str(data['origin']),
            parent=data.get('parent'),
            evolution_count=int(data['evolution_count']),
            performance_at_creation=float(data['performance_at_creation'])
        )

class StrategyBank:
    def __init__(self):
        self.config = load_global_config()
        self.bank_config = get_config_section('strategy_bank')

        self.min_states = self.bank_config.get('min_states', 10)
        self.initial_effectiveness = self.bank_config.get('initial_effectiveness', 0.5)
        self.mutation_decay = self.bank_config.get('mutation_decay', 0.8)
        self.mutation_fraction = (
            self.bank_config.get('mutation_fraction_min', 0.1),
            self.bank_config.get('mutation_fraction_max', 0.3)
        )
        self.max_strategies = self.bank_config.get('max_strategies', 50)
        self.usage_learning_rate = self.bank_config.get('usage_learning_rate', 0.05)
        self.reevaluation_rate = self.bank_config.get('reevaluation_rate', 0.1)

        self.strategies: List[Strategy] = []
        self._sequence = 0

        logger.info("Strategy Bank successfully initialized")

    def generate(self, policy: Dict[Hashable, Hashable], evolution_count: int = 0,
                 performance: float = 0.0, created_at: float = None) -> Optional[Strategy]:
        """
        Freeze a greedy policy into a new strategy.

        Returns None when the policy covers fewer than min_states states.
        """
        if len(policy) < self.min_states:
            logger.warning(f"Strategy generation skipped: {len(policy)} states known, "
                           f"{self.min_states} required")
            return None

        self._sequence += 1
        strategy = Strategy(
            name=f"strategy_{self._sequence}",
            version=1,
            policy=dict(policy),
            effectiveness=self.initial_effectiveness,
            created_at=time.time() if created_at is None else created_at,
            origin="generated",
            evolution_count=evolution_count,
            performance_at_creation=performance
        )
        self._add(strategy)
        logger.info(f"New strategy {strategy.strategy_id} covering {len(policy)} states")
        return strategy

    def mutate(self, actions: Sequence[Hashable], evolution_count: int = 0,
               performance: float = 0.0, created_at: float = None) -> Optional[Strategy]:
        """
        Clone the most effective strategy and re-point a random 10-30% of its states.
        """
        parent = self.best()
        if parent is None:
            return None

        policy = dict(parent.policy)
        fraction = random.uniform(*self.mutation_fraction)
        count = min(len(policy), int(round(len(policy) * fraction)))
        for state in random.sample(list(policy.keys()), count):
            current = policy[state]
            alternatives = [a for a in actions if a != current]
            policy[state] = random.choice(alternatives) if alternatives else current

        strategy = Strategy(
            name=parent.name,
            version=self._next_version(parent.name),
            policy=policy,
            effectiveness=parent.effectiveness * self.mutation_decay,
            created_at=time.time() if created_at is None else created_at,
            origin="mutated",
            parent=parent.strategy_id,
            evolution_count=evolution_count,
            performance_at_creation=performance
        )
        self._add(strategy)
        logger.info(f"Mutated {parent.strategy_id} -> {strategy.strategy_id} "
                    f"({count} of {len(policy)} entries resampled)")
        return strategy

    def _next_version(self, name: str) -> int:
        return max((s.version for s in self.strategies if s.name == name), default=0) + 1

    def _add(self, strategy: Strategy) -> None:
        self.strategies.append(strategy)
        if len(self.strategies) > self.max_strategies:
            self.strategies.sort(key=lambda s: s.effectiveness, reverse=True)
            dropped = self.strategies[self.max_strategies:]
            del self.strategies[self.max_strategies:]
            logger.debug(f"Dropped {len(dropped)} least effective strategies")

    def pick(self) -> Optional[Strategy]:
        if not self.strategies:
            return None
        return random.choice(self.strategies)

    def best(self) -> Optional[Strategy]:
        if not self.strategies:
            return None
        return max(self.strategies, key=lambda s: s.effectiveness)

    def top(self, n: int = 3) -> List[Strategy]:
        return sorted(self.strategies, key=lambda s: s.effectiveness, reverse=True)[:n]

    def record_outcome(self, strategy: Strategy, reward: float) -> None:
        """Move effectiveness toward 1 on a positive reward, toward 0 otherwise."""
        target = 1.0 if reward > 0 else 0.0
        strategy.effectiveness += self.usage_learning_rate * (target - strategy.effectiveness)
        strategy.effectiveness = float(np.clip(strategy.effectiveness, 0.0, 1.0))

    def reevaluate(self, greedy_policy: Dict[Hashable, Hashable]) -> None:
        """Blend each strategy's effectiveness toward its agreement with the greedy policy."""
        for strategy in self.strategies:
            if not strategy.policy:
                continue
            agreement = sum(
                1 for state, action in strategy.policy.items()
                if greedy_policy.get(state) == action
            ) / len(strategy.policy)
            strategy.effectiveness += self.reevaluation_rate * (agreement - strategy.effectiveness)
            strategy.effectiveness = float(np.clip(strategy.effectiveness, 0.0, 1.0))

    def mean_effectiveness(self) -> float:
        if not self.strategies:
            return 0.0
        return float(np.mean([s.effectiveness for s in self.strategies]))

    def find(self, strategy_id: str) -> Optional[Strategy]:
        for strategy in self.strategies:
            if strategy.strategy_id == strategy_id:
                return strategy
        return None

    def to_list(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.strategies]

    def restore(self, data: List[Dict[str, Any]]) -> None:
        self.strategies = [Strategy.from_dict(d) for d in data]
        self._sequence = max(
            (int(s.name.rsplit('_', 1)[-1]) for s in self.strategies
             if s.name.rsplit('_', 1)[-1].isdigit()),
            default=0
        )

    def show(self):
        rows = [[s.strategy_id, s.origin, len(s.policy), f"{s.effectiveness:.3f}", s.usage_count]
                for s in self.top(len(self.strategies))]
        printer.table(["Strategy", "Origin", "States", "Effectiveness", "Uses"], rows, title="Strategy Bank")

    def __len__(self):
        return len(self.strategies)

    def __iter__(self):
        return iter(list(self.strategies))
