"""
Proficient In:
    Open-ended environments whose state and action spaces are discovered at runtime.
    Long-running sessions where the agent should tune itself without supervision.

Best Used When:
    States are opaque identifiers (strings, small tuples) rather than feature vectors.
    The caller drives the loop one step at a time and can report a scalar reward.
    Learning should keep consolidating between interactions (replay).
"""
import time
import random

from collections import deque
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

from aurorae.agents.learning.registry import ActionSpace, StateSpace
from aurorae.agents.learning.value_table import ValueTable
from aurorae.agents.learning.episodic_memory import EpisodeMemory, LongTermMemory
from aurorae.agents.learning.strategy_bank import Strategy, StrategyBank
from aurorae.agents.learning.adaptation_controller import AdaptationController
from aurorae.agents.learning.dream_engine import DreamEngine
from aurorae.agents.learning.utils.config_loader import load_global_config, get_config_section
from aurorae.agents.learning.utils.error_calls import InvalidConfiguration
from logs.logger import get_logger, PrettyPrinter, LEARN

logger = get_logger("Learning Agent")
printer = PrettyPrinter

HYPERPARAMETERS = (
    'learning_rate', 'discount_factor', 'exploration_rate', 'meta_learning_rate',
    'adaptation_threshold', 'evolution_threshold', 'network_complexity', 'evolution_count'
)

class LearningAgent:
    """
    A self-adapting tabular Q-learning agent.

    The agent keeps a dense action-value table over runtime-growing state and
    action spaces, remembers its episodes, periodically re-tunes its own
    hyperparameters, distils its greedy policy into reusable strategies and
    replays archived episodes offline.

    Mathematical Foundations:
    - Q-learning: Q(s,a) <- Q(s,a) + a*c*(r + g*max_a' Q(s',a') - Q(s,a)),
      with c = min(1 + complexity/10, 2) the complexity factor
    - Epsilon-greedy exploration with soft (top-k) exploitation
    - Experience replay over a score-ranked episodic archive

    Academic Sources (Conceptual Basis):
    - Sutton, R. S., & Barto, A. G. (2018). Reinforcement learning: An introduction. MIT press.
    - Watkins, C. J. C. H., & Dayan, P. (1992). Q-learning. Machine learning, 8(3-4), 279-292.
    - Lin, L. J. (1992). Self-improving reactive agents based on reinforcement learning,
      planning and teaching. Machine learning, 8(3-4), 293-321.
    """

    def __init__(self, actions: Sequence[Hashable], initial_state: Hashable,
                 config: Optional[Dict[str, Any]] = None, clock=None):
        """
        Args:
            actions: Initial action identifiers; at least one is required.
            initial_state: State the agent starts in.
            config: Overrides for the 'learning_agent' config section.
            clock: Callable returning seconds; defaults to time.time.
        """
        self.config = load_global_config()
        self.agent_config = get_config_section('learning_agent')
        self.agent_config.update(config or {})
        self.bank_config = get_config_section('strategy_bank')
        self.memory_config = get_config_section('episodic_memory')

        if not actions:
            raise InvalidConfiguration("At least one action must be provided")
        self.clock = clock or time.time

        self.actions = ActionSpace(actions)
        self.states = StateSpace([initial_state])
        self.value_table = ValueTable(len(self.actions), len(self.states))
        self.state = initial_state

        self.learning_rate = float(self.agent_config.get('learning_rate', 0.1))
        self.discount_factor = float(self.agent_config.get('discount_factor', 0.9))
        self.exploration_rate = float(self.agent_config.get('exploration_rate', 0.1))
        self.meta_learning_rate = float(self.agent_config.get('meta_learning_rate', 0.01))
        self.adaptation_threshold = float(self.agent_config.get('adaptation_threshold', 0.5))
        self.evolution_threshold = float(self.agent_config.get('evolution_threshold', 0.3))
        self.network_complexity = int(self.agent_config.get('network_complexity', 1))
        self.evolution_count = int(self.agent_config.get('evolution_count', 0))
        self.max_complexity_factor = float(self.agent_config.get('max_complexity_factor', 2.0))
        self.complexity_divisor = float(self.agent_config.get('complexity_divisor', 10.0))
        self._validate()

        self.override_probability = self.bank_config.get('override_probability', 0.2)
        self.exploit_top_k = self.bank_config.get('exploit_top_k', 3)
        self.episode_length_limit = self.memory_config.get('episode_length_limit', 50)

        self.created_at = self.clock()
        self.last_evolution = self.created_at
        self.total_steps = 0
        self.performance_history = deque(maxlen=self.agent_config.get('history_size', 1000))

        self.current_episode = EpisodeMemory.anchored(initial_state, self.created_at)
        self.long_term_memory = LongTermMemory()
        self.strategy_bank = StrategyBank()
        self.controller = AdaptationController(self)
        self.dream_engine = DreamEngine(self)

        logger.info(f"Learning Agent successfully initialized with {len(self.actions)} actions "
                    f"in state {initial_state!r}")

    def _validate(self) -> None:
        if self.learning_rate <= 0:
            raise InvalidConfiguration(f"learning_rate must be positive, got {self.learning_rate}")
        for name in ('discount_factor', 'exploration_rate'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidConfiguration(f"{name} must be within [0, 1], got {value}")
        if self.meta_learning_rate < 0:
            raise InvalidConfiguration(f"meta_learning_rate must be non-negative, got {self.meta_learning_rate}")
        if self.network_complexity < 0:
            raise InvalidConfiguration(f"network_complexity must be non-negative, got {self.network_complexity}")

    # ------------------------------------------------------------------
    # Spaces
    # ------------------------------------------------------------------
    def register_state(self, state: Hashable) -> int:
        """Handle for state; a new state gets a zero value for every known action."""
        handle = self.states.handle(state)
        if handle is None:
            handle = self.states.register(state)
            column = self.value_table.add_state()
            assert column == handle, "state registry and value table out of step"
        return handle

    def add_action(self, action: Hashable) -> int:
        """Handle for action; a new action gets a zero value in every known state."""
        handle = self.actions.handle(action)
        if handle is None:
            handle = self.actions.register(action)
            row = self.value_table.add_action()
            assert row == handle, "action registry and value table out of step"
            logger.info(f"{LEARN} Action {action!r} added to the action space")
        return handle

    def q_value(self, action: Hashable, state: Hashable) -> float:
        a, s = self.actions.handle(action), self.states.handle(state)
        if a is None or s is None:
            return 0.0
        return self.value_table.get(a, s)

    def complexity_factor(self) -> float:
        return min(1.0 + self.network_complexity / self.complexity_divisor, self.max_complexity_factor)

    # ------------------------------------------------------------------
    # Action selection
    # ------------------------------------------------------------------
    def choose_action(self, state: Hashable = None) -> Hashable:
        """
        Pick an action for state (default: the current state).

        Priority: strategy override, then epsilon exploration, then a uniform
        pick among the top-k valued actions.
        """
        action, _ = self._select_action(self.state if state is None else state)
        return action

    def _select_action(self, state: Hashable) -> Tuple[Hashable, Optional[Strategy]]:
        if len(self.actions) == 0:
            raise InvalidConfiguration("Cannot select an action from an empty action space")

        if self.strategy_bank and random.random() < self.override_probability:
            strategy = self.strategy_bank.pick()
            action = strategy.action_for(state)
            if action is not None and action in self.actions:
                strategy.usage_count += 1
                logger.debug(f"Strategy override: {strategy.strategy_id} -> {action!r}")
                return action, strategy

        if random.random() < self.exploration_rate:
            action = random.choice(self.actions.items())
            logger.debug(f"Exploring: random action {action!r}")
            return action, None

        handle = self.states.handle(state)
        top = self.value_table.top_actions(-1 if handle is None else handle, self.exploit_top_k)
        action = self.actions.item(random.choice(top))
        logger.debug(f"Exploiting: {action!r} among top {len(top)}")
        return action, None

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------
    def update_value(self, action: Hashable, reward: float, next_state: Hashable) -> float:
        """TD update of (action, current state) toward reward + discounted best next value."""
        return self.apply_update(self.state, action, reward, next_state)

    def apply_update(self, state: Hashable, action: Hashable, reward: float, next_state: Hashable) -> float:
        a = self.actions.handle(action)
        if a is None:
            raise InvalidConfiguration(f"Unknown action {action!r}")
        s = self.register_state(state)
        ns = self.register_state(next_state)

        max_future = self.value_table.max_value(ns)
        old_value = self.value_table.get(a, s)
        td_target = reward + self.discount_factor * max_future
        new_value = old_value + self.learning_rate * self.complexity_factor() * (td_target - old_value)
        self.value_table.set(a, s, new_value)

        logger.debug(f"Q[{action!r}, {state!r}]: {old_value:.4f} -> {new_value:.4f}")
        return new_value

    def learn(self, reward: float, next_state: Hashable) -> Hashable:
        """
        One externally driven step: act, record, update, advance, adapt.

        Returns the action taken from the pre-step state.
        """
        action, strategy = self._select_action(self.state)
        if strategy is not None:
            self.strategy_bank.record_outcome(strategy, reward)

        self.current_episode.record(action, reward, next_state)
        self.update_value(action, reward, next_state)
        self.state = next_state
        self.total_steps += 1

        self.controller.on_step(self.total_steps)

        if len(self.current_episode) > self.episode_length_limit:
            self._archive_episode()
        return action

    def _archive_episode(self) -> None:
        episode = self.current_episode
        episode.performance_score = self.controller.score_episode(episode)
        self.long_term_memory.archive(episode)
        self.current_episode = EpisodeMemory.anchored(self.state, self.clock())
        logger.debug(f"{LEARN} Episode archived, new episode anchored at {self.state!r}")

    # ------------------------------------------------------------------
    # Adaptation hooks
    # ------------------------------------------------------------------
    def evaluate_performance(self) -> float:
        return self.controller.evaluate_performance()

    def evolve(self) -> List[Hashable]:
        return self.controller.evolve()

    def generate_strategy(self) -> Optional[Strategy]:
        return self.strategy_bank.generate(
            self.get_policy(),
            evolution_count=self.evolution_count,
            performance=self.current_performance(),
            created_at=self.clock()
        )

    def mutate_strategy(self) -> Optional[Strategy]:
        return self.strategy_bank.mutate(
            self.actions.items(),
            evolution_count=self.evolution_count,
            performance=self.current_performance(),
            created_at=self.clock()
        )

    def dream(self) -> Dict[str, float]:
        return self.dream_engine.dream()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def get_policy(self) -> Dict[Hashable, Hashable]:
        """Greedy action for every known state."""
        return {
            state: self.actions.item(self.value_table.best_action(s))
            for s, state in enumerate(self.states.items())
        }

    def get_q_table(self) -> Dict[Hashable, Dict[Hashable, float]]:
        """
        Returns:
            dict: action -> {state -> value}
        """
        return self.value_table.to_nested(self.actions.items(), self.states.items())

    def print_q_table(self) -> None:
        rows = [
            [action, state, f"{value:.4f}"]
            for action, values in self.get_q_table().items()
            for state, value in values.items()
        ]
        printer.table(["Action", "State", "Q-value"], rows, title="Q-table")

    def current_performance(self) -> float:
        if not self.performance_history:
            return 0.0
        return self.performance_history[-1][1]

    def hyperparameters(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in HYPERPARAMETERS}

    def metrics(self) -> Dict[str, Any]:
        return {
            'states': len(self.states),
            'actions': len(self.actions),
            'total_steps': self.total_steps,
            'episode_length': len(self.current_episode),
            'performance': self.current_performance(),
            'strategies': len(self.strategy_bank),
            'long_term_memory': self.long_term_memory.metrics(),
            'dreams_completed': self.dream_engine.dreams_completed,
            'hyperparameters': self.hyperparameters()
        }

    def performance_report(self) -> str:
        trend = [score for _, score in list(self.performance_history)[-6:]]
        if len(trend) >= 2:
            delta = trend[-1] - trend[0]
            trend_text = " -> ".join(f"{s:.3f}" for s in trend) + f" ({'+' if delta >= 0 else ''}{delta:.4f})"
        elif trend:
            trend_text = f"{trend[0]:.3f}"
        else:
            trend_text = "no samples yet"

        lines = [
            "=== Learning Agent Performance Report ===",
            f"States known: {len(self.states)} | Actions known: {len(self.actions)} | Steps: {self.total_steps}",
            f"Current performance: {self.current_performance():.4f}",
            f"Trend (last {len(trend)}): {trend_text}",
            f"Learning rate: {self.learning_rate:.4f} | Discount factor: {self.discount_factor:.4f} | "
            f"Exploration rate: {self.exploration_rate:.4f}",
            f"Meta learning rate: {self.meta_learning_rate:.4f} | Network complexity: {self.network_complexity} | "
            f"Evolutions: {self.evolution_count}",
            f"Thresholds: adaptation={self.adaptation_threshold:.4f}, evolution={self.evolution_threshold:.4f}",
            f"Long-term memory: {len(self.long_term_memory)} episode(s)",
            "Top strategies:"
        ]
        top = self.strategy_bank.top(3)
        if not top:
            lines.append("  (none)")
        for rank, strategy in enumerate(top, start=1):
            lines.append(
                f"  {rank}. {strategy.strategy_id} effectiveness={strategy.effectiveness:.3f} "
                f"uses={strategy.usage_count} states={len(strategy.policy)}"
            )
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def save(self, path) -> None:
        from aurorae.agents.learning.persistence import save_agent
        save_agent(self, path)

    @classmethod
    def load(cls, path, clock=None) -> "LearningAgent":
        from aurorae.agents.learning.persistence import load_agent
        return load_agent(path, clock=clock)

    def __repr__(self):
        return (f"LearningAgent(states={len(self.states)}, actions={len(self.actions)}, "
                f"steps={self.total_steps}, state={self.state!r})")
