"""
Dense action-value table addressed by registry handles.

Rows are actions, columns are states. Growing either space pads the
underlying array with zeros, which gives every (action, state) pair of
registered identifiers a defined 0.0 entry without a second pass.
"""

import numpy as np

from typing import Dict, Hashable, List

from aurorae.agents.learning.utils.config_loader import load_global_config, get_config_section
from logs.logger import get_logger

logger = get_logger("Value Table")

class ValueTable:
    def __init__(self, num_actions: int = 0, num_states: int = 0):
        self.config = load_global_config()
        self.table_config = get_config_section('value_table')

        action_capacity = max(num_actions, self.table_config.get('initial_action_capacity', 8), 1)
        state_capacity = max(num_states, self.table_config.get('initial_state_capacity', 64), 1)
        self._values = np.zeros((action_capacity, state_capacity), dtype=np.float64)
        self.num_actions = num_actions
        self.num_states = num_states

    @property
    def shape(self):
        return (self.num_actions, self.num_states)

    def _grow(self, actions: int, states: int) -> None:
        rows, cols = self._values.shape
        if actions <= rows and states <= cols:
            return
        new_rows = rows if actions <= rows else max(actions, rows * 2)
        new_cols = cols if states <= cols else max(states, cols * 2)
        grown = np.zeros((new_rows, new_cols), dtype=np.float64)
        grown[:rows, :cols] = self._values
        self._values = grown
        logger.debug(f"Value table capacity grown to {grown.shape}")

    def add_action(self) -> int:
        """Append a zero-initialised row; returns its handle."""
        self._grow(self.num_actions + 1, self.num_states)
        self.num_actions += 1
        return self.num_actions - 1

    def add_state(self) -> int:
        """Append a zero-initialised column; returns its handle."""
        self._grow(self.num_actions, self.num_states + 1)
        self.num_states += 1
        return self.num_states - 1

    def has(self, action: int, state: int) -> bool:
        return 0 <= action < self.num_actions and 0 <= state < self.num_states

    def get(self, action: int, state: int) -> float:
        if not self.has(action, state):
            return 0.0
        return float(self._values[action, state])

    def set(self, action: int, state: int, value: float) -> None:
        if not self.has(action, state):
            raise IndexError(f"No value entry for action #{action}, state #{state}")
        self._values[action, state] = value

    def column(self, state: int) -> np.ndarray:
        """Values of every known action in a state (zeros for an unknown state)."""
        if not 0 <= state < self.num_states:
            return np.zeros(self.num_actions, dtype=np.float64)
        return self._values[:self.num_actions, state].copy()

    def max_value(self, state: int) -> float:
        if self.num_actions == 0 or not 0 <= state < self.num_states:
            return 0.0
        return float(np.max(self._values[:self.num_actions, state]))

    def best_action(self, state: int) -> int:
        """Handle of the highest-valued action; first registered wins ties."""
        return int(np.argmax(self.column(state)))

    def top_actions(self, state: int, k: int) -> List[int]:
        """Handles of the k highest-valued actions, descending, stable on ties."""
        column = self.column(state)
        order = np.argsort(-column, kind='stable')
        return [int(a) for a in order[:k]]

    def to_matrix(self) -> np.ndarray:
        return self._values[:self.num_actions, :self.num_states].copy()

    def to_nested(self, actions: List[Hashable], states: List[Hashable]) -> Dict[Hashable, Dict[Hashable, float]]:
        matrix = self.to_matrix()
        return {
            action: {state: float(matrix[a, s]) for s, state in enumerate(states)}
            for a, action in enumerate(actions)
        }

    @classmethod
    def from_matrix(cls, matrix, num_actions: int, num_states: int) -> "ValueTable":
        """Rebuild a table; raises ValueError when the matrix does not fit the spaces."""
        values = np.asarray(matrix, dtype=np.float64).reshape(num_actions, num_states)
        table = cls(num_actions, num_states)
        table._values[:num_actions, :num_states] = values
        return table

    def __len__(self):
        return self.num_actions * self.num_states
