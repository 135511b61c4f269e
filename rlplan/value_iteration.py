"""
Value Iteration

Full synchronous sweeps of the Bellman optimality backup over every
discovered state:

    V(s) <- max_a [ R(s, a, s') + gamma * V(s') ]

until the largest change of a sweep drops to ``teta`` or ``max_iterations``
sweeps have run.
"""

from __future__ import annotations

import logging
from typing import List

from rlplan.agent import TabularPlanner
from rlplan.environment import Environment, State

logger = logging.getLogger(__name__)


class ValueIteration(TabularPlanner):
    """
    Value Iteration over an exhaustively explored environment.

    Terminal states keep V(s) = 0.0 and get no Q-values.

    Attributes:
        max_iterations: Maximum number of sweeps.
        iterations: Number of sweeps performed by the last ``learn``.
        deltas: Largest |V change| of each sweep.

    Example:
        >>> agent = ValueIteration(env, gamma=0.9, teta=0.01, max_iterations=10)
        >>> agent.learn(ExplorationStrategy.PREPROCESS)
        >>> agent.get_q_values(env.initial_state())
    """

    label = "Value Iteration"

    def __init__(
        self,
        env: Environment,
        gamma: float,
        teta: float,
        max_iterations: int
    ) -> None:
        """
        Args:
            env: The environment to plan on.
            gamma: Discount factor in (0, 1].
            teta: Convergence threshold, non-negative.
            max_iterations: Maximum number of sweeps.

        Raises:
            ValueError: If a hyperparameter is out of range.
        """
        super().__init__(env, gamma, teta)
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        self.max_iterations = max_iterations
        self.iterations = 0
        self.deltas: List[float] = []

    def reset(self) -> None:
        super().reset()
        self.iterations = 0
        self.deltas = []

    def _plan(self, states: List[State]) -> None:
        for s in states:
            self.v_values.setdefault(s, 0.0)

        while True:
            delta = self.sweep(states)
            self.iterations += 1
            self.deltas.append(delta)
            logger.debug("Iteration: %d | delta: %g", self.iterations, delta)

            if self.iterations >= self.max_iterations:
                logger.info("Reached maximum number of iterations (%d)", self.max_iterations)
                break
            if delta <= self.teta:
                break

    def sweep(self, states: List[State]) -> float:
        """
        Apply one in-place Bellman backup to every state.

        Returns:
            The largest absolute change of V over the sweep.
        """
        delta = 0.0
        for s in states:
            q = self._lookahead(s, self.v_values)
            if not q:
                continue
            self.q_values[s] = q

            old_value = self.v_values.get(s, 0.0)
            new_value = max(q.values())
            self.v_values[s] = new_value
            delta = max(delta, abs(old_value - new_value))
        return delta
