
from aurorae.agents.learning.learning_agent import LearningAgent
from aurorae.agents.learning.strategy_bank import Strategy, StrategyBank
from aurorae.agents.learning.episodic_memory import EpisodeMemory, LongTermMemory
from aurorae.agents.learning.agent_actor import AgentActor, AgentSnapshot
from aurorae.agents.learning.utils.error_calls import (AgentError, InvalidConfiguration,
                                                       DeserializationError, IOFailure)

__all__ = [
    'LearningAgent',
    'Strategy',
    'StrategyBank',
    'EpisodeMemory',
    'LongTermMemory',
    'AgentActor',
    'AgentSnapshot',
    'AgentError',
    'InvalidConfiguration',
    'DeserializationError',
    'IOFailure'
]
