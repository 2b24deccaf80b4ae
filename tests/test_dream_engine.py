import pytest
import sys
import os
import random

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from aurorae.agents.learning.learning_agent import LearningAgent
from aurorae.agents.learning.episodic_memory import EpisodeMemory
from aurorae.agents.learning.utils.error_calls import InvalidConfiguration

# =====================================
# FIXTURES
# =====================================
@pytest.fixture(scope="function")
def agent():
    return LearningAgent(["up", "down"], "s0", clock=lambda: 0.0)

def archived(agent, count, score=0.5):
    for n in range(count):
        episode = EpisodeMemory.anchored("a0", started_at=0.0)
        episode.record("up", 1.0, "a1")
        episode.record("down", 1.0, "a0")
        episode.performance_score = score + n / 1000
        agent.long_term_memory.archive(episode)

# =====================================
# SAMPLING
# =====================================
def test_sample_size(agent):
    engine = agent.dream_engine
    assert engine.episodes_to_sample(1) == 1
    assert engine.episodes_to_sample(25) == 2
    assert engine.episodes_to_sample(100) == 5

def test_sampling_prefers_top_episodes(agent):
    random.seed(7)
    archived(agent, 100)
    ranked = agent.long_term_memory.ranked()
    picks = [ranked.index(e) for _ in range(200) for e in agent.dream_engine.select_episodes()]
    assert sum(1 for p in picks if p < 50) > 0.65 * len(picks)

# =====================================
# REPLAY
# =====================================
def test_empty_archive_is_a_noop(agent):
    before = agent.value_table.to_matrix()
    result = agent.dream()
    assert result == {'episodes': 0, 'transitions': 0, 'perturbed': 0}
    assert (agent.value_table.to_matrix() == before).all()

def test_dream_replays_and_restores(agent):
    random.seed(1)
    archived(agent, 3)
    agent.current_episode.record("up", 0.3, "s1")
    live = agent.current_episode.to_dict()
    state = agent.state
    rate = agent.learning_rate

    result = agent.dream()

    assert result['episodes'] == 1
    assert result['transitions'] == 2
    assert agent.learning_rate == rate
    assert agent.state == state
    assert agent.current_episode.to_dict() == live
    assert agent.q_value("up", "a0") > 0.0
    assert agent.dream_engine.dreams_completed == 1

def test_learning_rate_restored_on_failure(agent):
    episode = EpisodeMemory.anchored("a0", started_at=0.0)
    episode.record("unknown_action", 1.0, "a1")
    agent.long_term_memory.archive(episode)
    rate = agent.learning_rate

    with pytest.raises(InvalidConfiguration):
        agent.dream()
    assert agent.learning_rate == rate

def test_replay_uses_scaled_rate(agent):
    random.seed(2)
    agent.dream_engine.perturbation_probability = 0.0
    episode = EpisodeMemory.anchored("a0", started_at=0.0)
    episode.record("up", 1.0, "a1")
    agent.long_term_memory.archive(episode)

    agent.dream()
    expected = 0.1 * 0.3 * agent.complexity_factor() * 1.0
    assert agent.q_value("up", "a0") == pytest.approx(expected)
