"""
Single-writer actor around a LearningAgent.

One worker thread owns the agent and executes learn/dream/save requests in
arrival order; callers get a Future per request. Readers never touch the
agent: they read the last published AgentSnapshot, which is replaced
wholesale every publish_interval steps and after every dream.
"""

import copy
import queue
import threading

from concurrent.futures import Future
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Hashable, Mapping, Optional

from aurorae.agents.learning.learning_agent import LearningAgent
from aurorae.agents.learning.utils.config_loader import load_global_config, get_config_section
from aurorae.agents.learning.utils.error_calls import AgentError
from logs.logger import get_logger, START, STOP

logger = get_logger("Agent Actor")

_STOP = object()

@dataclass(frozen=True)
class AgentSnapshot:
    """Read-only view of the agent published by the actor."""
    total_steps: int
    state: Hashable
    metrics: Mapping[str, Any]
    report: str
    q_table: Mapping[Hashable, Mapping[Hashable, float]]

class AgentActor:
    def __init__(self, agent: LearningAgent, publish_interval: int = None):
        self.config = load_global_config()
        self.actor_config = get_config_section('agent_actor')

        self._agent = agent
        self.publish_interval = publish_interval or self.actor_config.get('publish_interval', 10)
        self.join_timeout = self.actor_config.get('join_timeout', 5.0)
        self._requests = queue.Queue(maxsize=self.actor_config.get('queue_size', 1024))
        self._snapshot_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._snapshot = self._build_snapshot()
        self._steps_since_publish = 0
        self._worker: Optional[threading.Thread] = None
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> "AgentActor":
        with self._lifecycle_lock:
            if self._running:
                return self
            self._running = True
            self._worker = threading.Thread(target=self._run, name="learning-agent-actor", daemon=True)
            self._worker.start()
        logger.info(f"{START} Agent actor started (publish every {self.publish_interval} steps)")
        return self

    def stop(self, timeout: float = None) -> None:
        """
        Finish every queued request, publish a final snapshot and join the worker.

        Raises:
            AgentError: if the worker is still busy when the join times out.
        """
        with self._lifecycle_lock:
            if not self._running:
                return
            self._running = False
            self._requests.put(_STOP)
        self._worker.join(self.join_timeout if timeout is None else timeout)
        if self._worker.is_alive():
            logger.error(f"{STOP} Agent actor worker did not finish within the join timeout")
            raise AgentError("Agent actor worker is still running; the agent is not safe to touch")
        logger.info(f"{STOP} Agent actor stopped at step {self._snapshot.total_steps}")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    # ------------------------------------------------------------------
    # Writer requests
    # ------------------------------------------------------------------
    def learn(self, reward: float, next_state: Hashable) -> Future:
        return self._submit('learn', reward, next_state)

    def dream(self) -> Future:
        return self._submit('dream')

    def save(self, path) -> Future:
        return self._submit('save', path)

    def _submit(self, operation: str, *args) -> Future:
        future = Future()
        with self._lifecycle_lock:
            if not self._running:
                raise AgentError(f"Agent actor is not running; cannot {operation}")
            self._requests.put((operation, args, future))
        return future

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------
    def snapshot(self) -> AgentSnapshot:
        with self._snapshot_lock:
            return self._snapshot

    def _build_snapshot(self) -> AgentSnapshot:
        agent = self._agent
        q_table = {
            action: MappingProxyType(values)
            for action, values in agent.get_q_table().items()
        }
        return AgentSnapshot(
            total_steps=agent.total_steps,
            state=agent.state,
            metrics=MappingProxyType(copy.deepcopy(agent.metrics())),
            report=agent.performance_report(),
            q_table=MappingProxyType(q_table)
        )

    def _publish(self) -> None:
        snapshot = self._build_snapshot()
        with self._snapshot_lock:
            self._snapshot = snapshot
        self._steps_since_publish = 0

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------
    def _run(self) -> None:
        while True:
            item = self._requests.get()
            if item is _STOP:
                self._publish()
                self._reject_pending()
                break
            operation, args, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = getattr(self._agent, operation)(*args)
                if operation == 'learn':
                    self._steps_since_publish += 1
                    if self._steps_since_publish >= self.publish_interval:
                        self._publish()
                elif operation == 'dream':
                    self._publish()
            except Exception as e:
                logger.error(f"Agent actor request '{operation}' failed: {e}")
                future.set_exception(e)
                continue
            # publish before resolving the caller's future
            future.set_result(result)

    def _reject_pending(self) -> None:
        while True:
            try:
                _, _, future = self._requests.get_nowait()
            except queue.Empty:
                return
            if future.set_running_or_notify_cancel():
                future.set_exception(AgentError("Agent actor stopped before the request ran"))
