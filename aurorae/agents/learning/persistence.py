"""
Snapshot codec for LearningAgent.

The whole agent serialises to one JSON object with stable field names. The
value table is stored as a dense matrix (rows follow 'actions', columns
follow 'states'). State and action identifiers may be JSON scalars or
tuples of them; tuples are written with a "__tuple__" tag.
"""

import os
import json
import tempfile

from collections import deque
from typing import Any, Dict, Hashable

from aurorae.agents.learning.learning_agent import LearningAgent, HYPERPARAMETERS
from aurorae.agents.learning.registry import ActionSpace, StateSpace
from aurorae.agents.learning.value_table import ValueTable
from aurorae.agents.learning.episodic_memory import EpisodeMemory
from aurorae.agents.learning.utils.config_loader import load_global_config, get_config_section
from aurorae.agents.learning.utils.error_calls import (DeserializationError,
                                                       IOFailure, InvalidConfiguration)
from aurorae.agents.learning.utils.numpy_encoder import NumpyEncoder
from logs.logger import get_logger, LOAD, SAVE

logger = get_logger("Agent Persistence")

def _format_version() -> int:
    load_global_config()
    return get_config_section('persistence').get('format_version', 1)

_SCALARS = (str, int, float, bool, type(None))
_TUPLE_TAG = "__tuple__"

def encode_identifier(value: Hashable) -> Any:
    """
    JSON form of a state or action identifier.

    Scalars pass through; tuples are tagged so they come back as tuples.

    Raises:
        TypeError: for identifiers JSON cannot represent faithfully.
    """
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, tuple):
        return {_TUPLE_TAG: [encode_identifier(v) for v in value]}
    raise TypeError(f"identifier {value!r} of type {type(value).__name__} cannot be stored")

def decode_identifier(value: Any) -> Hashable:
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, dict) and set(value) == {_TUPLE_TAG} and isinstance(value[_TUPLE_TAG], list):
        return tuple(decode_identifier(v) for v in value[_TUPLE_TAG])
    raise DeserializationError(reason=f"invalid identifier {value!r}")

def _encode_episode(episode: EpisodeMemory) -> Dict[str, Any]:
    data = episode.to_dict()
    data['state_history'] = [encode_identifier(s) for s in episode.state_history]
    data['action_history'] = [encode_identifier(a) for a in episode.action_history]
    return data

def _decode_episode(data: Dict[str, Any]) -> EpisodeMemory:
    data = dict(data)
    data['state_history'] = [decode_identifier(s) for s in data['state_history']]
    data['action_history'] = [decode_identifier(a) for a in data['action_history']]
    return EpisodeMemory.from_dict(data)

def _encode_strategy(strategy: Dict[str, Any]) -> Dict[str, Any]:
    strategy = dict(strategy)
    strategy['policy'] = [[encode_identifier(s), encode_identifier(a)] for s, a in strategy['policy']]
    return strategy

def _decode_strategy(strategy: Dict[str, Any]) -> Dict[str, Any]:
    strategy = dict(strategy)
    strategy['policy'] = [[decode_identifier(s), decode_identifier(a)] for s, a in strategy['policy']]
    return strategy

def snapshot(agent: LearningAgent) -> Dict[str, Any]:
    """
    Plain-data view of the complete agent state.

    Raises:
        TypeError: if a state or action identifier cannot be stored.
    """
    return {
        'format_version': _format_version(),
        'saved_at': agent.clock(),
        'actions': [encode_identifier(a) for a in agent.actions],
        'states': [encode_identifier(s) for s in agent.states],
        'value_table': agent.value_table.to_matrix(),
        'state': encode_identifier(agent.state),
        'hyperparameters': agent.hyperparameters(),
        'timestamps': {
            'created_at': agent.created_at,
            'last_evolution': agent.last_evolution
        },
        'total_steps': agent.total_steps,
        'current_episode': _encode_episode(agent.current_episode),
        'long_term_memory': {
            'episodes': [_encode_episode(e) for e in agent.long_term_memory],
            'archived_total': agent.long_term_memory.archived_total,
            'pruned_total': agent.long_term_memory.pruned_total
        },
        'strategies': [_encode_strategy(s) for s in agent.strategy_bank.to_list()],
        'performance_history': [[t, s] for t, s in agent.performance_history]
    }

def restore(data: Dict[str, Any], clock=None) -> LearningAgent:
    """
    Rebuild an agent from a snapshot document.

    Raises:
        DeserializationError: if the document does not match the snapshot schema.
    """
    if not isinstance(data, dict):
        raise DeserializationError(reason=f"expected a JSON object, got {type(data).__name__}")
    version = data.get('format_version')
    if version != _format_version():
        raise DeserializationError(reason=f"unsupported format_version {version!r}")

    try:
        actions = [decode_identifier(a) for a in data['actions']]
        states = [decode_identifier(s) for s in data['states']]
        state = decode_identifier(data['state'])
        hyperparameters = data['hyperparameters']
        overrides = {name: hyperparameters[name] for name in HYPERPARAMETERS}

        agent = LearningAgent(actions, state, config=overrides, clock=clock)
        agent.actions = ActionSpace(actions)
        agent.states = StateSpace(states)
        if len(agent.actions) != len(actions) or len(agent.states) != len(states):
            raise DeserializationError(reason="duplicate identifiers in action or state space")
        if state not in agent.states:
            raise DeserializationError(reason=f"current state {state!r} is not a known state")
        agent.value_table = ValueTable.from_matrix(data['value_table'], len(actions), len(states))

        agent.created_at = float(data['timestamps']['created_at'])
        agent.last_evolution = float(data['timestamps']['last_evolution'])
        agent.total_steps = int(data['total_steps'])
        agent.current_episode = _decode_episode(data['current_episode'])

        memory = data['long_term_memory']
        agent.long_term_memory.episodes = [_decode_episode(e) for e in memory['episodes']]
        agent.long_term_memory.archived_total = int(memory['archived_total'])
        agent.long_term_memory.pruned_total = int(memory['pruned_total'])

        agent.strategy_bank.restore([_decode_strategy(s) for s in data['strategies']])
        agent.performance_history = deque(
            ((float(t), float(s)) for t, s in data['performance_history']),
            maxlen=agent.performance_history.maxlen
        )
    except DeserializationError:
        raise
    except InvalidConfiguration as e:
        raise DeserializationError(reason=e.message) from e
    except (KeyError, TypeError, ValueError) as e:
        raise DeserializationError(reason=f"{type(e).__name__}: {e}") from e
    return agent

def save_agent(agent: LearningAgent, path) -> None:
    """
    Write the snapshot through a temporary file in the target directory and
    rename it into place, so a failed save leaves any previous snapshot intact.
    """
    path = os.fspath(path)
    directory = os.path.dirname(os.path.abspath(path))
    indent = get_config_section('persistence').get('indent', 2)

    try:
        document = json.dumps(snapshot(agent), cls=NumpyEncoder, indent=indent)
    except (TypeError, ValueError) as e:
        logger.error(f"{SAVE} Agent state is not JSON-serialisable: {e}")
        raise IOFailure(path, operation="serialize") from e

    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        with tempfile.NamedTemporaryFile('w', encoding='utf-8', dir=directory,
                                         prefix='.agent-', suffix='.tmp', delete=False) as f:
            tmp_path = f.name
            f.write(document)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        logger.error(f"{SAVE} Failed to write agent snapshot to {path}: {e}")
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise IOFailure(path, operation="write") from e

    logger.info(f"{SAVE} Agent snapshot saved to {path} ({agent.total_steps} steps, "
                f"{len(agent.states)} states)")

def load_agent(path, clock=None) -> LearningAgent:
    path = os.fspath(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        logger.error(f"{LOAD} Snapshot not found: {path}")
        raise DeserializationError(path, "file not found") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"{LOAD} Snapshot is not valid JSON: {path}")
        raise DeserializationError(path, f"malformed document: {e}") from e
    except OSError as e:
        logger.error(f"{LOAD} Failed to read snapshot {path}: {e}")
        raise IOFailure(path, operation="read") from e

    try:
        agent = restore(data, clock=clock)
    except DeserializationError as e:
        raise DeserializationError(path, e.reason) from e.__cause__
    logger.info(f"{LOAD} Agent snapshot loaded from {path} ({agent.total_steps} steps)")
    return agent
