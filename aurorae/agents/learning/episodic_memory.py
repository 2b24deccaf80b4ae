
import copy
import time
import numpy as np

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Hashable, Iterator, List, Tuple

from aurorae.agents.learning.utils.config_loader import load_global_config, get_config_section
from logs.logger import get_logger, MEMORY

logger = get_logger("Episodic Memory")

Transition = Tuple[Hashable, Hashable, float, Hashable]

@dataclass
class EpisodeMemory:
    """
    One continuous run of the agent.

    state_history starts with the anchor state and gains the next state of
    every step, so transition i is
    (state_history[i], action_history[i], reward_history[i], state_history[i + 1]).
    """
    state_history: List[Hashable] = field(default_factory=list)
    action_history: List[Hashable] = field(default_factory=list)
    reward_history: List[float] = field(default_factory=list)
    total_reward: float = 0.0
    performance_score: float = 0.0
    started_at: float = field(default_factory=time.time)

    @classmethod
    def anchored(cls, state: Hashable, started_at: float = None) -> "EpisodeMemory":
        return cls(
            state_history=[state],
            started_at=time.time() if started_at is None else started_at
        )

    def record(self, action: Hashable, reward: float, next_state: Hashable) -> None:
        self.action_history.append(action)
        self.reward_history.append(float(reward))
        self.state_history.append(next_state)
        self.total_reward += float(reward)

    def transitions(self) -> Iterator[Transition]:
        for i, (action, reward) in enumerate(zip(self.action_history, self.reward_history)):
            if i + 1 >= len(self.state_history):
                break
            yield self.state_history[i], action, reward, self.state_history[i + 1]

    def recent_reward_average(self, window: int = 10) -> float:
        if not self.reward_history:
            return 0.0
        return float(np.mean(self.reward_history[-window:]))

    def __len__(self):
        return len(self.state_history)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EpisodeMemory":
        return cls(
            state_history=list(data['state_history']),
            action_history=list(data['action_history']),
            reward_history=[float(r) for r in data['reward_history']],
            total_reward=float(data['total_reward']),
            performance_score=float(data['performance_score']),
            started_at=float(data['started_at'])
        )

class LongTermMemory:
    """Bounded archive of finished episodes, best performers kept on overflow."""

    def __init__(self, capacity: int = None):
        self.config = load_global_config()
        self.memory_config = get_config_section('episodic_memory')
        self.memory_config.setdefault('long_term_capacity', 100)

        self.capacity = capacity if capacity is not None else self.memory_config['long_term_capacity']
        self.episodes: List[EpisodeMemory] = []
        self.archived_total = 0
        self.pruned_total = 0

    def archive(self, episode: EpisodeMemory) -> EpisodeMemory:
        """Store a copy of the episode; the caller keeps ownership of the original."""
        stored = copy.deepcopy(episode)
        self.episodes.append(stored)
        self.archived_total += 1
        logger.debug(f"{MEMORY} Archived episode of {len(stored)} states "
                     f"(score={stored.performance_score:.4f}, total_reward={stored.total_reward:.2f})")
        if len(self.episodes) > self.capacity:
            self._prune()
        return stored

    def _prune(self) -> None:
        self.episodes.sort(key=lambda e: e.performance_score, reverse=True)
        dropped = len(self.episodes) - self.capacity
        del self.episodes[self.capacity:]
        self.pruned_total += dropped
        logger.debug(f"{MEMORY} Pruned {dropped} low-scoring episode(s), {len(self.episodes)} retained")

    def ranked(self) -> List[EpisodeMemory]:
        return sorted(self.episodes, key=lambda e: e.performance_score, reverse=True)

    def metrics(self) -> Dict[str, Any]:
        scores = [e.performance_score for e in self.episodes]
        return {
            'size': len(self.episodes),
            'capacity': self.capacity,
            'archived_total': self.archived_total,
            'pruned_total': self.pruned_total,
            'best_score': max(scores) if scores else 0.0,
            'mean_score': float(np.mean(scores)) if scores else 0.0
        }

    def clear(self):
        self.episodes = []

    def __len__(self):
        return len(self.episodes)

    def __iter__(self):
        return iter(list(self.episodes))

    def __bool__(self):
        return bool(self.episodes)
