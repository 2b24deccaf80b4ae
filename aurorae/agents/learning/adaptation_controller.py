"""
Adaptation controller for the learning agent.

Runs on a fixed step cadence and closes the agent's self-referential loop:
- scores current performance (reward, state coverage, strategy quality)
- random-walks exploration and learning rates while performance is poor
- triggers evolution (capability growth) behind a cooldown
- schedules strategy synthesis, mutation and replay consolidation

The hyperparameter walk is a stochastic hill-climb: the agent cannot
differentiate through its own performance score, so it perturbs and keeps
whatever the next evaluation rewards.
"""

import math
import random
import numpy as np

from typing import TYPE_CHECKING

from aurorae.agents.learning.episodic_memory import EpisodeMemory
from aurorae.agents.learning.utils.config_loader import load_global_config, get_config_section
from logs.logger import get_logger, CYCLE, EVAL, EVOLVE, TRIGGER

if TYPE_CHECKING:
    from aurorae.agents.learning.learning_agent import LearningAgent

logger = get_logger("Adaptation Controller")

class AdaptationController:
    def __init__(self, agent: "LearningAgent"):
        self.agent = agent
        self.config = load_global_config()
        self.adaptation_config = get_config_section('adaptation')
        self.memory_config = get_config_section('episodic_memory')

        self.cycle_interval = self.adaptation_config.get('cycle_interval', 100)
        self.strategy_interval = self.adaptation_config.get('strategy_interval', 500)
        self.dream_interval = self.adaptation_config.get('dream_interval', 1000)
        self.evolution_cooldown = self.adaptation_config.get('evolution_cooldown', 3600)

        self.exploration_bounds = tuple(self.adaptation_config.get('exploration_bounds', [0.01, 0.5]))
        self.learning_rate_bounds = tuple(self.adaptation_config.get('learning_rate_bounds', [0.01, 0.3]))
        self.lr_increase_probability = self.adaptation_config.get('learning_rate_increase_probability', 0.3)

        self.reward_weight = self.adaptation_config.get('reward_weight', 0.6)
        self.exploration_weight = self.adaptation_config.get('exploration_weight', 0.3)
        self.strategy_weight = self.adaptation_config.get('strategy_weight', 0.1)
        self.coverage_base = self.adaptation_config.get('coverage_base', 10)
        self.coverage_per_evolution = self.adaptation_config.get('coverage_per_evolution', 5)
        self.recent_window = self.memory_config.get('recent_reward_window', 10)

        self.cycles_run = 0

    # ------------------------------------------------------------------
    # Performance scoring
    # ------------------------------------------------------------------
    def exploration_score(self) -> float:
        scale = self.coverage_base + self.coverage_per_evolution * self.agent.evolution_count
        return min(1.0 - math.exp(-len(self.agent.states) / scale), 1.0)

    def score_episode(self, episode: EpisodeMemory) -> float:
        """Performance of an episode given the agent's current coverage and strategies."""
        return (
            self.reward_weight * episode.recent_reward_average(self.recent_window)
            + self.exploration_weight * self.exploration_score()
            + self.strategy_weight * self.agent.strategy_bank.mean_effectiveness()
        )

    def evaluate_performance(self) -> float:
        score = self.score_episode(self.agent.current_episode)
        self.agent.current_episode.performance_score = score
        self.agent.performance_history.append((self.agent.clock(), score))
        logger.debug(f"{EVAL} Performance score {score:.4f}")
        return score

    # ------------------------------------------------------------------
    # Cadence
    # ------------------------------------------------------------------
    def on_step(self, step: int) -> None:
        """Called after every learning step with the agent's global step count."""
        if step <= 0 or step % self.cycle_interval != 0:
            return
        self.run_cycle(step)

    def run_cycle(self, step: int = None) -> float:
        step = self.agent.total_steps if step is None else step
        self.cycles_run += 1
        score = self.evaluate_performance()

        if score < self.agent.adaptation_threshold:
            self.adjust_hyperparameters()

        if score < self.agent.evolution_threshold and self.evolution_ready():
            self.evolve()

        self.agent.strategy_bank.reevaluate(self.agent.get_policy())

        if step > 0 and step % self.strategy_interval == 0:
            logger.info(f"{TRIGGER} Strategy cycle at step {step}")
            self.agent.generate_strategy()
            self.agent.mutate_strategy()

        if step > 0 and step % self.dream_interval == 0 and self.agent.long_term_memory:
            logger.info(f"{TRIGGER} Dream cycle at step {step}")
            self.agent.dream()

        logger.debug(f"{CYCLE} Adaptation cycle {self.cycles_run} done at step {step} (score={score:.4f})")
        return score

    # ------------------------------------------------------------------
    # Hyperparameter walk
    # ------------------------------------------------------------------
    def adjust_hyperparameters(self) -> None:
        agent = self.agent
        meta = agent.meta_learning_rate

        direction = 1.0 if random.random() < 0.5 else -1.0
        agent.exploration_rate = float(np.clip(
            agent.exploration_rate + direction * meta, *self.exploration_bounds
        ))

        if random.random() < self.lr_increase_probability:
            agent.learning_rate += meta * 0.5
        else:
            agent.learning_rate -= meta * 0.1
        agent.learning_rate = float(np.clip(agent.learning_rate, *self.learning_rate_bounds))

        logger.debug(f"{CYCLE} Hyperparameters adjusted: exploration_rate={agent.exploration_rate:.4f}, "
                     f"learning_rate={agent.learning_rate:.4f}")

    # ------------------------------------------------------------------
    # Evolution
    # ------------------------------------------------------------------
    def evolution_ready(self) -> bool:
        return self.agent.clock() - self.agent.last_evolution >= self.evolution_cooldown

    def evolve(self) -> list:
        """Grow the agent: more complexity, stricter thresholds, less randomness, new actions."""
        agent = self.agent
        cfg = self.adaptation_config

        agent.network_complexity += 1
        agent.evolution_count += 1
        agent.last_evolution = agent.clock()
        agent.adaptation_threshold *= cfg.get('adaptation_threshold_decay', 0.9)
        agent.evolution_threshold *= cfg.get('evolution_threshold_decay', 0.85)
        agent.exploration_rate = max(
            agent.exploration_rate * cfg.get('exploration_decay', 0.9),
            cfg.get('min_exploration_after_evolution', 0.05)
        )

        prefix = cfg.get('evolved_action_prefix', 'evolved')
        count = random.randint(cfg.get('new_actions_min', 1), cfg.get('new_actions_max', 3))
        new_actions = []
        suffix = 0
        while len(new_actions) < count:
            candidate = f"{prefix}_{agent.evolution_count}_{suffix}"
            suffix += 1
            if candidate in agent.actions:
                continue
            agent.add_action(candidate)
            new_actions.append(candidate)

        logger.info(f"{EVOLVE} Evolution #{agent.evolution_count}: complexity={agent.network_complexity}, "
                    f"exploration_rate={agent.exploration_rate:.4f}, new actions={new_actions}")
        return new_actions
