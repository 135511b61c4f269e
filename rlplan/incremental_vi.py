"""
Incremental (randomized asynchronous) Value Iteration

Instead of full sweeps, each outer iteration applies a batch of Bellman
backups to states drawn uniformly at random from the discovered set. The
batch size is ``min(updates_per_iteration, |S|)``.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from rlplan.agent import TabularPlanner
from rlplan.environment import Environment, State

logger = logging.getLogger(__name__)


class IncrementalValueIteration(TabularPlanner):
    """
    Randomized asynchronous Value Iteration.

    After each batch the iteration cap is checked first, then the threshold
    on the largest |V change| of the batch.

    Attributes:
        max_iterations: Maximum number of batches.
        updates_per_iteration: Requested Bellman backups per batch.
        rng: Random number generator used to pick states.
        iterations: Number of batches performed by the last ``learn``.
        deltas: Largest |V change| of each batch.
    """

    label = "Incremental Value Iteration"

    def __init__(
        self,
        env: Environment,
        gamma: float,
        teta: float,
        max_iterations: int,
        updates_per_iteration: int,
        rng: Optional[np.random.Generator] = None
    ) -> None:
        """
        Args:
            env: The environment to plan on.
            gamma: Discount factor in (0, 1].
            teta: Convergence threshold, non-negative.
            max_iterations: Maximum number of batches.
            updates_per_iteration: Requested backups per batch, capped by the
                number of discovered states.
            rng: Random number generator. Defaults to a fresh
                ``np.random.default_rng()``.

        Raises:
            ValueError: If a hyperparameter is out of range.
        """
        super().__init__(env, gamma, teta)
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        if updates_per_iteration < 1:
            raise ValueError(
                f"updates_per_iteration must be >= 1, got {updates_per_iteration}"
            )
        self.max_iterations = max_iterations
        self.updates_per_iteration = updates_per_iteration
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()
        self.iterations = 0
        self.deltas: List[float] = []

    def reset(self) -> None:
        super().reset()
        self.iterations = 0
        self.deltas = []

    def _plan(self, states: List[State]) -> None:
        for s in states:
            self.v_values.setdefault(s, 0.0)

        n_states = len(states)
        effective_updates = min(self.updates_per_iteration, n_states)

        while True:
            delta = 0.0
            for index in self.rng.integers(0, n_states, size=effective_updates):
                delta = max(delta, self.backup(states[index]))

            self.iterations += 1
            self.deltas.append(delta)
            logger.debug("Iteration: %d | delta: %g", self.iterations, delta)

            if self.iterations >= self.max_iterations:
                logger.info("Reached maximum number of iterations (%d)", self.max_iterations)
                break
            if delta <= self.teta:
                break

    def backup(self, state: State) -> float:
        """
        Bellman backup of one state (no-op for terminal states).

        Returns:
            The absolute change of V(state).
        """
        q = self._lookahead(state, self.v_values)
        if not q:
            return 0.0
        self.q_values[state] = q

        old_value = self.v_values.get(state, 0.0)
        new_value = max(q.values())
        self.v_values[state] = new_value
        return abs(old_value - new_value)
