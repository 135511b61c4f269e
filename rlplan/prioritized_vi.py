"""
Prioritized Value Iteration

After exhaustive discovery, states are kept in a max-priority queue ordered
by their Bellman error:

    error(s) = | V(s) - max_a [ R(s, a, s') + gamma * V(s') ] |

The state with the highest error is backed up first and its predecessors are
pushed again with refreshed priorities. A state may sit in the queue several
times; an entry is checked against the state's current error when popped.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Dict, List, Tuple

from rlplan.agent import TabularPlanner
from rlplan.environment import Action, Environment, State

logger = logging.getLogger(__name__)

CachedTransition = Tuple[Action, State, float]


class PrioritizedValueIteration(TabularPlanner):
    """
    Priority-queue driven asynchronous Value Iteration.

    Attributes:
        max_updates: Maximum number of Bellman backups.
        outgoing: Cached ``(action, successor, reward)`` triples per state.
        predecessors: For each state, the actions leading to it.
        updates: Backups performed by the last ``learn``.
        pops: Queue entries consumed by the last ``learn``.
    """

    label = "Prioritized Value Iteration"

    def __init__(
        self,
        env: Environment,
        gamma: float,
        teta: float,
        max_updates: int
    ) -> None:
        """
        Args:
            env: The environment to plan on.
            gamma: Discount factor in (0, 1].
            teta: Convergence threshold, non-negative.
            max_updates: Maximum number of Bellman backups.

        Raises:
            ValueError: If a hyperparameter is out of range.
        """
        super().__init__(env, gamma, teta)
        if max_updates < 0:
            raise ValueError(f"max_updates must be non-negative, got {max_updates}")
        self.max_updates = max_updates
        self.outgoing: Dict[State, List[CachedTransition]] = {}
        self.predecessors: Dict[State, List[Action]] = {}
        self.updates = 0
        self.pops = 0

    def reset(self) -> None:
        super().reset()
        self.outgoing.clear()
        self.predecessors.clear()
        self.updates = 0
        self.pops = 0

    def build_graphs(self, states: List[State]) -> None:
        """Cache outgoing transitions and build the predecessor map."""
        self.outgoing.clear()
        self.predecessors.clear()

        for s in states:
            transitions: List[CachedTransition] = []
            for action in self.env.actions(s):
                next_state = self.env.successor(action)
                reward = self.env.reward(s, action, next_state)
                transitions.append((action, next_state, reward))
                self.predecessors.setdefault(next_state, []).append(action)
            self.outgoing[s] = transitions

    def _lookahead_cached(self, state: State) -> Dict[Action, float]:
        return {
            action: reward + self.gamma * self.v_values.get(next_state, 0.0)
            for action, next_state, reward in self.outgoing.get(state, ())
        }

    def bellman_error(self, state: State) -> float:
        """Bellman error of a state, 0.0 for terminal states."""
        q = self._lookahead_cached(state)
        if not q:
            return 0.0
        return abs(self.v_values.get(state, 0.0) - max(q.values()))

    def bellman_backup(self, state: State) -> float:
        """
        Back up V(state) and Q(state, .).

        Returns:
            The new value of the state.
        """
        q = self._lookahead_cached(state)
        if not q:
            return self.v_values.get(state, 0.0)
        self.q_values[state] = q
        new_value = max(q.values())
        self.v_values[state] = new_value
        return new_value

    def _plan(self, states: List[State]) -> None:
        self.build_graphs(states)
        for s in states:
            self.v_values[s] = 0.0

        # Max-heap through negated priorities, the counter keeps entries comparable
        counter = itertools.count()
        queue: List[Tuple[float, int, State]] = []
        for s in states:
            error = self.bellman_error(s)
            if error > 0.0:
                heapq.heappush(queue, (-error, next(counter), s))

        while queue and self.updates < self.max_updates:
            _, _, s = heapq.heappop(queue)
            self.pops += 1

            if self.bellman_error(s) < self.teta:
                continue

            old_value = self.v_values.get(s, 0.0)
            new_value = self.bellman_backup(s)
            self.updates += 1
            if self.updates % 100 == 0:
                logger.debug(
                    "Update %d | last delta: %g", self.updates, abs(old_value - new_value)
                )

            for action in self.predecessors.get(s, ()):
                predecessor = action.source
                error = self.bellman_error(predecessor)
                if error >= self.teta:
                    heapq.heappush(queue, (-error, next(counter), predecessor))

        logger.info("Total updates performed: %d (%d queue pops)", self.updates, self.pops)
