"""
Append-only arenas for the agent's state and action spaces.

Each identifier is mapped to a stable integer handle the first time it is
seen. Handles index directly into the value table, so lookups never hash
the identifier twice and the table can be a dense array.
"""

from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional

from logs.logger import get_logger

logger = get_logger("Space Registry")

class Registry:
    """Ordered, monotonically growing set of identifiers with integer handles."""

    def __init__(self, name: str, items: Optional[Iterable[Hashable]] = None):
        self.name = name
        self._items: List[Hashable] = []
        self._index: Dict[Hashable, int] = {}
        for item in items or []:
            self.register(item)

    def register(self, item: Hashable) -> int:
        """Return the handle for item, allocating one on first sighting."""
        handle = self._index.get(item)
        if handle is not None:
            return handle
        handle = len(self._items)
        self._items.append(item)
        self._index[item] = handle
        logger.debug(f"{self.name}: registered {item!r} as #{handle}")
        return handle

    def handle(self, item: Hashable) -> Optional[int]:
        return self._index.get(item)

    def item(self, handle: int) -> Any:
        return self._items[handle]

    def items(self) -> List[Hashable]:
        return list(self._items)

    def __contains__(self, item) -> bool:
        return item in self._index

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._items))

    def __repr__(self):
        return f"Registry(name={self.name!r}, size={len(self._items)})"

class StateSpace(Registry):
    def __init__(self, states: Optional[Iterable[Hashable]] = None):
        super().__init__("StateSpace", states)

class ActionSpace(Registry):
    def __init__(self, actions: Optional[Iterable[Hashable]] = None):
        super().__init__("ActionSpace", actions)
