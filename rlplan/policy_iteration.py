"""
Policy Iteration and Modified Policy Iteration

Both alternate policy evaluation and greedy policy improvement over a
deterministic policy, starting from the first outgoing action of every state.
Modified Policy Iteration (Puterman 1994, chapter 6) truncates evaluation to a
bounded number of sweeps per outer loop.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from rlplan.agent import TabularPlanner
from rlplan.environment import Action, Environment, State

logger = logging.getLogger(__name__)


class PolicyIteration(TabularPlanner):
    """
    Policy Iteration.

    With ``eval_iterations=None`` evaluation only stops once a sweep changes V
    by at most ``teta``. With gamma = 1 this never happens on a policy that
    loops through non-zero rewards, so undiscounted problems with cycles need
    a bounded ``eval_iterations`` (see ModifiedPolicyIteration).

    Attributes:
        max_iterations: Maximum number of evaluation/improvement rounds.
        eval_iterations: Maximum sweeps per evaluation phase (None: until
            the largest change of a sweep is <= teta).
        policy: Deterministic policy, defined on states with an action.
        iterations: Number of rounds performed by the last ``learn``.
        stable: Whether the last improvement left the policy unchanged.
    """

    label = "Policy Iteration"

    def __init__(
        self,
        env: Environment,
        gamma: float,
        teta: float,
        max_iterations: int,
        eval_iterations: Optional[int] = None
    ) -> None:
        """
        Args:
            env: The environment to plan on.
            gamma: Discount factor in (0, 1].
            teta: Convergence threshold, non-negative.
            max_iterations: Maximum number of evaluation/improvement rounds.
            eval_iterations: Maximum sweeps per evaluation, None for no bound.

        Raises:
            ValueError: If a hyperparameter is out of range.
        """
        super().__init__(env, gamma, teta)
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        if eval_iterations is not None and eval_iterations < 1:
            raise ValueError(f"eval_iterations must be >= 1, got {eval_iterations}")
        self.max_iterations = max_iterations
        self.eval_iterations = eval_iterations
        self.policy: Dict[State, Action] = {}
        self.iterations = 0
        self.stable = False

    def reset(self) -> None:
        super().reset()
        self.policy.clear()
        self.iterations = 0
        self.stable = False

    def _plan(self, states: List[State]) -> None:
        for s in states:
            actions = self.env.actions(s)
            if actions:
                self.policy[s] = actions[0]
                self.v_values[s] = 0.0

        while True:
            self.policy_evaluation()
            self.stable = self.policy_improvement()
            self.iterations += 1
            logger.debug("Iteration: %d | policy stable: %s", self.iterations, self.stable)

            if self.iterations >= self.max_iterations:
                logger.info("Reached maximum number of iterations (%d)", self.max_iterations)
                break
            if self.stable:
                break

    def policy_evaluation(self) -> int:
        """
        Evaluate the current policy in place.

        Returns:
            Number of sweeps performed.
        """
        sweeps = 0
        while self.eval_iterations is None or sweeps < self.eval_iterations:
            delta = 0.0
            for s, action in self.policy.items():
                next_state = self.env.successor(action)
                reward = self.env.reward(s, action, next_state)
                new_value = reward + self.gamma * self.v_values.get(next_state, 0.0)
                delta = max(delta, abs(self.v_values.get(s, 0.0) - new_value))
                self.v_values[s] = new_value
            sweeps += 1
            if delta <= self.teta:
                break
        return sweeps

    def policy_improvement(self) -> bool:
        """
        Make the policy greedy with respect to the current V.

        Returns:
            True if no state changed its action.
        """
        stable = True
        for s, old_action in self.policy.items():
            q = self._lookahead(s, self.v_values)
            self.q_values[s] = q

            best_action = max(q, key=q.__getitem__)
            if best_action != old_action:
                self.policy[s] = best_action
                stable = False
        return stable


class ModifiedPolicyIteration(PolicyIteration):
    """
    Modified Policy Iteration: at most ``eval_iterations`` evaluation sweeps
    per round, each phase still stopping early once a sweep changes V by at
    most ``teta``.
    """

    label = "Modified Policy Iteration"

    def __init__(
        self,
        env: Environment,
        gamma: float,
        teta: float,
        max_iterations: int,
        eval_iterations: int
    ) -> None:
        """Same arguments as PolicyIteration, ``eval_iterations`` required."""
        super().__init__(env, gamma, teta, max_iterations, eval_iterations=eval_iterations)
