import pytest
import sys
import os
import threading

from concurrent.futures import Future

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from aurorae.agents.learning import LearningAgent, AgentActor, AgentError, IOFailure
from aurorae.agents.learning.agent_actor import _STOP

# =====================================
# FIXTURES
# =====================================
@pytest.fixture(scope="function")
def agent():
    return LearningAgent(["up", "down"], "s0", clock=lambda: 0.0)

# =====================================
# WRITER
# =====================================
def test_learn_through_actor(agent):
    with AgentActor(agent, publish_interval=5) as actor:
        futures = [actor.learn(1.0, f"s{i % 3}") for i in range(12)]
        actions = [f.result(timeout=5) for f in futures]
    assert all(a in ("up", "down") for a in actions)
    assert agent.total_steps == 12

def test_requests_run_in_order(agent):
    with AgentActor(agent) as actor:
        for i in range(20):
            actor.learn(0.0, f"s{i}")
    assert agent.current_episode.state_history == ["s0"] + [f"s{i}" for i in range(20)]

def test_errors_reach_the_caller(agent, tmp_path):
    with AgentActor(agent) as actor:
        assert actor.save(tmp_path / "agent.json").result(timeout=5) is None

        failed = actor.save(tmp_path)
        with pytest.raises(IOFailure):
            failed.result(timeout=5)
        assert actor.learn(1.0, "s1").result(timeout=5) in ("up", "down"), "Worker survives a failed request"

def test_submit_after_stop(agent):
    actor = AgentActor(agent).start()
    actor.stop()
    with pytest.raises(AgentError):
        actor.learn(1.0, "s1")

# =====================================
# READERS
# =====================================
def test_snapshot_publication(agent):
    actor = AgentActor(agent, publish_interval=10)
    assert actor.snapshot().total_steps == 0

    actor.start()
    for i in range(9):
        actor.learn(0.5, f"t{i}").result(timeout=5)
    assert actor.snapshot().total_steps == 0, "Nothing published before the interval"

    actor.learn(0.5, "t9").result(timeout=5)
    snap = actor.snapshot()
    actor.stop()

    assert snap.total_steps == 10
    assert snap.metrics['states'] == 11
    assert "Performance Report" in snap.report
    with pytest.raises(TypeError):
        snap.q_table["up"]["s0"] = 5.0

def test_snapshot_after_dream_and_stop(agent):
    actor = AgentActor(agent, publish_interval=1000).start()
    actor.learn(1.0, "s1").result(timeout=5)
    actor.dream().result(timeout=5)
    assert actor.snapshot().total_steps == 1

    actor.learn(1.0, "s2")
    actor.stop()
    assert actor.snapshot().total_steps == 2

def test_concurrent_readers(agent):
    actor = AgentActor(agent, publish_interval=1).start()
    seen = []

    def reader():
        for _ in range(200):
            seen.append(actor.snapshot().total_steps)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for i in range(100):
        actor.learn(0.1, f"s{i % 7}")
    for t in threads:
        t.join()
    actor.stop()

    assert all(0 <= s <= 100 for s in seen)
    assert actor.snapshot().total_steps == 100

# =====================================
# LIFECYCLE
# =====================================
def test_stop_races_with_writers(agent):
    actor = AgentActor(agent).start()
    accepted, rejected = [], []

    def writer(n):
        for i in range(50):
            try:
                accepted.append(actor.learn(0.1, f"w{n}_{i % 5}"))
            except AgentError:
                rejected.append(n)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    actor.stop()
    for t in threads:
        t.join()

    assert len(accepted) + len(rejected) == 200
    assert all(f.done() for f in accepted), "Every accepted request must be resolved after stop"
    assert agent.total_steps == len(accepted)

def test_stop_timeout_reports_busy_worker(agent, monkeypatch):
    release = threading.Event()
    learn = agent.learn

    def slow_learn(reward, next_state):
        release.wait(5)
        return learn(reward, next_state)

    monkeypatch.setattr(agent, "learn", slow_learn)
    actor = AgentActor(agent).start()
    pending = actor.learn(1.0, "s1")

    with pytest.raises(AgentError):
        actor.stop(timeout=0.05)

    release.set()
    assert pending.result(timeout=5) in ("up", "down")
    actor._worker.join(5)
    assert not actor._worker.is_alive()

def test_requests_left_behind_stop_are_rejected(agent, monkeypatch):
    release = threading.Event()
    learn = agent.learn

    def slow_learn(reward, next_state):
        release.wait(5)
        return learn(reward, next_state)

    monkeypatch.setattr(agent, "learn", slow_learn)
    actor = AgentActor(agent).start()
    first = actor.learn(1.0, "s1")
    actor._requests.put(_STOP)
    straggler = Future()
    actor._requests.put(('learn', (1.0, "s2"), straggler))
    release.set()

    assert first.result(timeout=5) in ("up", "down")
    with pytest.raises(AgentError):
        straggler.result(timeout=5)
    assert agent.total_steps == 1
