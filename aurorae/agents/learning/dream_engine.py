"""
Offline replay ("dreaming") over archived episodes.

Episodes are drawn from long-term memory with a squared-uniform index over
the score-ranked archive, which concentrates sampling near the top without
always replaying the single best run. Every transition is re-applied with a
scaled-down learning rate; a fraction of rewards is perturbed to rehearse
nearby counterfactual outcomes.
"""

import random

from typing import TYPE_CHECKING, Dict, List

from aurorae.agents.learning.episodic_memory import EpisodeMemory
from aurorae.agents.learning.utils.config_loader import load_global_config, get_config_section
from logs.logger import get_logger, DREAM

if TYPE_CHECKING:
    from aurorae.agents.learning.learning_agent import LearningAgent

logger = get_logger("Dream Engine")

class DreamEngine:
    def __init__(self, agent: "LearningAgent"):
        self.agent = agent
        self.config = load_global_config()
        self.dream_config = get_config_section('dream')

        self.max_episodes = self.dream_config.get('max_episodes', 5)
        self.archive_divisor = self.dream_config.get('archive_divisor', 10)
        self.perturbation_probability = self.dream_config.get('perturbation_probability', 0.2)
        self.perturbation_range = (
            self.dream_config.get('perturbation_min', 0.8),
            self.dream_config.get('perturbation_max', 1.2)
        )
        self.learning_rate_scale = self.dream_config.get('learning_rate_scale', 0.3)

        self.dreams_completed = 0
        self.transitions_replayed = 0

    def episodes_to_sample(self, archive_size: int) -> int:
        return min(self.max_episodes, max(1, archive_size // self.archive_divisor))

    def select_episodes(self) -> List[EpisodeMemory]:
        ranked = self.agent.long_term_memory.ranked()
        if not ranked:
            return []
        size = len(ranked)
        selected = []
        for _ in range(self.episodes_to_sample(size)):
            index = min(int(random.random() ** 2 * size), size - 1)
            selected.append(ranked[index])
        return selected

    def dream(self) -> Dict[str, float]:
        """
        Replay selected episodes into the value table.

        The agent's learning rate is scaled for the duration of the replay
        and restored afterwards, even if an update fails. The live episode
        and the agent's current state are never touched.
        """
        episodes = self.select_episodes()
        if not episodes:
            logger.warning(f"{DREAM} Dream requested with an empty long-term memory")
            return {'episodes': 0, 'transitions': 0, 'perturbed': 0}

        agent = self.agent
        original_rate = agent.learning_rate
        transitions = 0
        perturbed = 0
        agent.learning_rate = original_rate * self.learning_rate_scale
        try:
            for episode in episodes:
                for state, action, reward, next_state in episode.transitions():
                    if random.random() < self.perturbation_probability:
                        reward *= random.uniform(*self.perturbation_range)
                        perturbed += 1
                    agent.apply_update(state, action, reward, next_state)
                    transitions += 1
        finally:
            agent.learning_rate = original_rate

        self.dreams_completed += 1
        self.transitions_replayed += transitions
        logger.info(f"{DREAM} Dream #{self.dreams_completed}: replayed {transitions} transitions "
                    f"from {len(episodes)} episode(s), {perturbed} perturbed")
        return {'episodes': len(episodes), 'transitions': transitions, 'perturbed': perturbed}
