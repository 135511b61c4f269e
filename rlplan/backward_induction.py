"""
Backward Induction (finite-horizon dynamic programming)

Given a planning horizon H, computes V_h(s) for h = 0..H:

    V_0(s) = 0
    V_h(s) = max_a [ R(s, a, s') + gamma * V_{h-1}(s') ]

with one synchronous sweep per step. There is no convergence test: exactly
H sweeps are run.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from rlplan.agent import TabularPlanner
from rlplan.environment import Environment, State

logger = logging.getLogger(__name__)


class BackwardInduction(TabularPlanner):
    """
    Finite-horizon planner.

    Only the Q-values of the last step (h == H) are kept. Terminal states
    have V_h(s) = 0 for every h.

    Attributes:
        horizon: Number of steps H.
        value_history: V_h for h = 0..H (index h).
    """

    label = "Backward Induction"

    def __init__(
        self,
        env: Environment,
        gamma: float,
        horizon: int,
        teta: float = 0.0
    ) -> None:
        """
        Args:
            env: The environment to plan on.
            gamma: Discount factor in (0, 1].
            horizon: Number of steps H, non-negative.
            teta: Unused, kept for a uniform Agent signature.

        Raises:
            ValueError: If a hyperparameter is out of range.
        """
        super().__init__(env, gamma, teta)
        if horizon < 0:
            raise ValueError(f"horizon must be non-negative, got {horizon}")
        self.horizon = horizon
        self.value_history: List[Dict[State, float]] = []

    def reset(self) -> None:
        super().reset()
        self.value_history = []

    def _plan(self, states: List[State]) -> None:
        v_prev: Dict[State, float] = {s: 0.0 for s in states}
        self.value_history = [v_prev]

        for h in range(1, self.horizon + 1):
            v_curr: Dict[State, float] = {}
            delta = 0.0

            for s in states:
                q = self._lookahead(s, v_prev)
                if not q:
                    v_curr[s] = 0.0
                    continue
                if h == self.horizon:
                    self.q_values[s] = q

                v_curr[s] = max(q.values())
                delta = max(delta, abs(v_prev.get(s, 0.0) - v_curr[s]))

            logger.debug("Horizon step: %d | max delta: %g", h, delta)
            self.value_history.append(v_curr)
            v_prev = v_curr

        self.v_values = dict(v_prev)

    def get_value(self, state: State, horizon: Optional[int] = None) -> float:
        """
        Return V_h(s).

        Args:
            state: State to query.
            horizon: Step h in 0..H. Defaults to the full horizon H.

        Raises:
            ValueError: If ``horizon`` is outside 0..H.
        """
        if horizon is None:
            return self.v_values.get(state, 0.0)
        if not 0 <= horizon <= self.horizon:
            raise ValueError(f"horizon must be in [0, {self.horizon}], got {horizon}")
        if horizon >= len(self.value_history):
            return 0.0
        return self.value_history[horizon].get(state, 0.0)
