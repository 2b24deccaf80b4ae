import pytest
import sys
import os
import random

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from aurorae.agents.learning import LearningAgent, Strategy, InvalidConfiguration

# =====================================
# FIXTURES
# =====================================
@pytest.fixture(scope="function")
def agent():
    return LearningAgent(["up", "down"], "s0", clock=lambda: 0.0)

# =====================================
# CONSTRUCTION
# =====================================
def test_initial_state(agent):
    assert agent.state == "s0"
    assert agent.q_value("up", "s0") == 0.0
    assert agent.q_value("down", "s0") == 0.0
    assert agent.complexity_factor() == pytest.approx(1.1)
    assert len(agent.current_episode) == 1

def test_empty_actions_rejected():
    with pytest.raises(InvalidConfiguration):
        LearningAgent([], "s0")

@pytest.mark.parametrize("override", [
    {'learning_rate': 0.0},
    {'discount_factor': 1.5},
    {'exploration_rate': -0.1},
])
def test_invalid_hyperparameters_rejected(override):
    with pytest.raises(InvalidConfiguration):
        LearningAgent(["up"], "s0", config=override)

def test_complexity_factor_is_capped(agent):
    agent.network_complexity = 25
    assert agent.complexity_factor() == 2.0

# =====================================
# LEARNING
# =====================================
def test_single_update(agent):
    random.seed(0)
    chosen = agent.learn(1.0, "s1")
    other = "down" if chosen == "up" else "up"

    assert agent.q_value(chosen, "s0") == pytest.approx(0.1 * 1.1 * 1.0)
    assert agent.q_value(other, "s0") == 0.0
    assert agent.state == "s1"
    assert agent.total_steps == 1
    assert agent.current_episode.state_history == ["s0", "s1"]
    assert agent.current_episode.action_history == [chosen]

def test_update_uses_discounted_future(agent):
    agent.value_table.set(agent.actions.handle("up"), agent.register_state("s1"), 2.0)
    value = agent.update_value("down", 0.5, "s1")
    assert value == pytest.approx(0.1 * 1.1 * (0.5 + 0.9 * 2.0))

def test_unknown_action_rejected(agent):
    with pytest.raises(InvalidConfiguration):
        agent.update_value("sideways", 1.0, "s1")

def test_new_state_registration(agent):
    agent.learn(0.0, "fresh")
    assert "fresh" in agent.states
    assert agent.q_value("up", "fresh") == 0.0
    assert agent.q_value("down", "fresh") == 0.0

def test_converges_without_discount():
    random.seed(4)
    agent = LearningAgent(["up", "down"], "s0", config={'discount_factor': 0.0}, clock=lambda: 0.0)
    for _ in range(300):
        agent.learn(1.0, "s0")
    assert agent.q_value("up", "s0") == pytest.approx(1.0, abs=0.05)
    assert agent.q_value("down", "s0") == pytest.approx(1.0, abs=0.05)

def test_values_are_bounded_by_reward_scale():
    random.seed(5)
    agent = LearningAgent(["a", "b", "c"], "s0", clock=lambda: 0.0)
    for step in range(400):
        agent.learn(random.uniform(-1.0, 1.0), f"s{step % 5}")
    bound = 1.0 / (1 - agent.discount_factor)
    for values in agent.get_q_table().values():
        assert all(abs(v) <= bound for v in values.values())

# =====================================
# EPISODES
# =====================================
def test_episode_archived_after_limit(agent):
    for step in range(49):
        agent.learn(0.1, f"s{step % 3}")
    assert len(agent.long_term_memory) == 0
    assert len(agent.current_episode) == 50

    agent.learn(0.1, "s9")
    assert len(agent.long_term_memory) == 1
    assert agent.current_episode.state_history == ["s9"]
    assert len(agent.long_term_memory.episodes[0]) == 51

# =====================================
# ACTION SELECTION
# =====================================
def test_exploitation_prefers_top_actions():
    random.seed(6)
    agent = LearningAgent(["a", "b", "c", "d", "e"], "s0",
                          config={'exploration_rate': 0.0}, clock=lambda: 0.0)
    for action, value in zip("abcde", [0.1, 0.9, 0.5, 0.7, 0.0]):
        agent.value_table.set(agent.actions.handle(action), 0, value)
    picks = {agent.choose_action() for _ in range(200)}
    assert picks == {"b", "c", "d"}

def test_strategy_override(agent):
    agent.override_probability = 1.0
    strategy = Strategy(name="strategy_1", version=1, policy={"s0": "down"})
    agent.strategy_bank.strategies.append(strategy)

    assert agent.choose_action() == "down"
    assert strategy.usage_count == 1

    agent.learn(1.0, "s1")
    assert strategy.usage_count == 2
    assert strategy.effectiveness > 0.5
    assert agent.q_value("down", "s0") > 0.0

def test_override_falls_through_for_unmapped_state(agent):
    agent.override_probability = 1.0
    strategy = Strategy(name="strategy_1", version=1, policy={"elsewhere": "down"})
    agent.strategy_bank.strategies.append(strategy)

    assert agent.choose_action() in ("up", "down")
    assert strategy.usage_count == 0

# =====================================
# STRATEGY SYNTHESIS
# =====================================
def test_no_strategy_from_a_single_state(agent):
    for _ in range(501):
        agent.learn(1.0, "s0")
    assert len(agent.strategy_bank) == 0

def test_strategies_from_varied_states(agent):
    random.seed(8)
    for step in range(501):
        agent.learn(0.5, f"s{step % 12}")
    assert len(agent.strategy_bank) >= 1
    assert all(0.0 <= s.effectiveness <= 1.0 for s in agent.strategy_bank)

# =====================================
# INTROSPECTION
# =====================================
def test_policy_and_report(agent, capsys):
    agent.value_table.set(agent.actions.handle("down"), 0, 1.0)
    assert agent.get_policy() == {"s0": "down"}

    agent.print_q_table()
    assert "Q-table" in capsys.readouterr().out

    report = agent.performance_report()
    assert "Top strategies" in report
    assert "States known: 1" in report

def test_metrics(agent):
    agent.learn(1.0, "s1")
    metrics = agent.metrics()
    assert metrics['states'] == 2
    assert metrics['actions'] == 2
    assert metrics['total_steps'] == 1
    assert metrics['strategies'] == 0
    assert metrics['long_term_memory']['size'] == 0
    assert set(metrics['hyperparameters']) >= {'learning_rate', 'exploration_rate'}

def test_generate_strategy_needs_ten_states(agent):
    for i in range(8):
        agent.register_state(f"s{i + 1}")
    assert agent.generate_strategy() is None

    agent.register_state("s9")
    strategy = agent.generate_strategy()
    assert strategy is not None
    assert len(agent.strategy_bank) == 1
    assert set(strategy.policy) == set(agent.states)

def test_update_moves_toward_reward_without_discount():
    agent = LearningAgent(["up"], "s0", config={'discount_factor': 0.0}, clock=lambda: 0.0)
    old = agent.q_value("up", "s0")
    for _ in range(20):
        new = agent.update_value("up", 0.7, "s0")
        assert abs(new - 0.7) < abs(old - 0.7)
        old = new
