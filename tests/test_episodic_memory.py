import pytest
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from aurorae.agents.learning.episodic_memory import EpisodeMemory, LongTermMemory

# =====================================
# FIXTURES
# =====================================
@pytest.fixture(scope="function")
def episode():
    episode = EpisodeMemory.anchored("s0", started_at=0.0)
    episode.record("right", 1.0, "s1")
    episode.record("left", -0.5, "s0")
    return episode

def make_episode(score, length=3):
    episode = EpisodeMemory.anchored("s0", started_at=0.0)
    for i in range(length):
        episode.record("a", 1.0, f"s{i + 1}")
    episode.performance_score = score
    return episode

# =====================================
# EPISODES
# =====================================
def test_anchor_and_transitions(episode):
    assert len(episode) == 3, "Length counts the anchor state"
    assert list(episode.transitions()) == [
        ("s0", "right", 1.0, "s1"),
        ("s1", "left", -0.5, "s0"),
    ]
    assert episode.total_reward == pytest.approx(0.5)

def test_recent_reward_average():
    episode = EpisodeMemory.anchored("s0", started_at=0.0)
    assert episode.recent_reward_average() == 0.0
    for r in range(20):
        episode.record("a", float(r), "s0")
    assert episode.recent_reward_average(10) == pytest.approx(sum(range(10, 20)) / 10)

def test_dict_round_trip(episode):
    restored = EpisodeMemory.from_dict(episode.to_dict())
    assert restored == episode

# =====================================
# LONG-TERM MEMORY
# =====================================
def test_archive_stores_a_copy(episode):
    memory = LongTermMemory(capacity=5)
    stored = memory.archive(episode)
    episode.record("right", 1.0, "s1")

    assert stored is not episode
    assert len(stored) == 3, "Archived copy must not follow later mutation"
    assert memory.archived_total == 1

def test_overflow_keeps_best_scores():
    memory = LongTermMemory(capacity=3)
    for score in [0.5, 0.1, 0.9, 0.3, 0.7]:
        memory.archive(make_episode(score))

    assert len(memory) == 3
    assert sorted(e.performance_score for e in memory) == [0.5, 0.7, 0.9]
    assert memory.pruned_total == 2
    assert memory.metrics()['best_score'] == 0.9

def test_ranked_is_descending():
    memory = LongTermMemory(capacity=10)
    for score in [0.2, 0.8, 0.5]:
        memory.archive(make_episode(score))
    assert [e.performance_score for e in memory.ranked()] == [0.8, 0.5, 0.2]

def test_default_capacity_from_config():
    memory = LongTermMemory()
    assert memory.capacity == 100
    assert not memory

def test_zero_capacity_is_respected():
    memory = LongTermMemory(capacity=0)
    memory.archive(make_episode(0.9))
    assert memory.capacity == 0
    assert len(memory) == 0
    assert memory.archived_total == 1 and memory.pruned_total == 1
