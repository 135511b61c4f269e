"""
Agent Module

This module defines the contract shared by every solver in rlplan and the
common machinery of the offline (model-based) planners.

An agent holds:
    - gamma: the discount factor, in (0, 1]
    - teta: the convergence threshold, >= 0
    - env: the Environment it learns on

and exposes two operations:
    - learn(strategy): run the algorithm, filling the agent's tables
    - get_q_values(state): Q-values of a state (empty if unknown, never raises)
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional

from rlplan.environment import Action, Environment, ExplorationStrategy, State
from rlplan.policies import greedy_action

logger = logging.getLogger(__name__)


class Agent(ABC):
    """
    Base class of every planning and learning algorithm.

    Attributes:
        env: The environment the agent learns on.
        gamma: Discount factor applied to future rewards.
        teta: Convergence threshold on value changes.
    """

    def __init__(self, env: Environment, gamma: float, teta: float) -> None:
        """
        Args:
            env: The environment the agent learns on.
            gamma: Discount factor in (0, 1].
            teta: Convergence threshold, non-negative.

        Raises:
            ValueError: If gamma or teta is out of range.
        """
        if not 0.0 < gamma <= 1.0:
            raise ValueError(f"gamma must be in (0, 1], got {gamma}")
        if teta < 0.0:
            raise ValueError(f"teta must be non-negative, got {teta}")

        self.env = env
        self.gamma = gamma
        self.teta = teta

    @abstractmethod
    def learn(self, strategy: ExplorationStrategy = ExplorationStrategy.PREPROCESS) -> None:
        """Run the algorithm to completion or to its configured budget."""

    @abstractmethod
    def get_q_values(self, state: State) -> Dict[Action, float]:
        """Return the Q-values of a state, or an empty dict if none is known."""

    def greedy_action(self, state: State) -> Optional[Action]:
        """Return the highest-Q action of a state (None for terminal states)."""
        return greedy_action(self.get_q_values(state), self.env.actions(state))

    def _discovered_states(self) -> List[State]:
        """Discovered states in id order."""
        return [self.env.state_by_id(i) for i in sorted(self.env.discovered_state_ids())]

    def _lookahead(self, state: State, values: Mapping[State, float]) -> Dict[Action, float]:
        """
        One-step lookahead: ``r(s, a, s') + gamma * V(s')`` for every action.

        Terminal states yield an empty dict.
        """
        q: Dict[Action, float] = {}
        for action in self.env.actions(state):
            next_state = self.env.successor(action)
            reward = self.env.reward(state, action, next_state)
            q[action] = reward + self.gamma * values.get(next_state, 0.0)
        return q

    def __repr__(self) -> str:
        return f"{type(self).__name__}(gamma={self.gamma}, teta={self.teta})"


class TabularPlanner(Agent):
    """
    Base class of the offline planners.

    ``learn`` resets the tables and counters, explores the environment, collects the discovered states and
    hands them to ``_plan``. An empty state space is logged and leaves every
    table empty.

    Attributes:
        v_values: State-value function V(s).
        q_values: Action-value function Q(s, a), per state.
    """

    label = "planner"

    def __init__(self, env: Environment, gamma: float, teta: float) -> None:
        super().__init__(env, gamma, teta)
        self.v_values: Dict[State, float] = {}
        self.q_values: Dict[State, Dict[Action, float]] = {}

    def reset(self) -> None:
        """Forget the tables and counters of a previous ``learn``."""
        self.v_values.clear()
        self.q_values.clear()

    def learn(self, strategy: ExplorationStrategy = ExplorationStrategy.PREPROCESS) -> None:
        """Reset, explore with ``strategy`` and plan over the discovered states."""
        self.reset()
        self.env.explore(strategy)
        states = self._discovered_states()
        if not states:
            logger.warning("No reachable states. Aborting learning (%s).", self.label)
            return

        logger.info("Start learning (%s) on %d states", self.label, len(states))
        start_time = time.perf_counter()
        self._plan(states)
        duration = time.perf_counter() - start_time
        logger.info("Execution time (%s): %.3f seconds", self.label, duration)

    @abstractmethod
    def _plan(self, states: List[State]) -> None:
        """Run the planner over the discovered states."""

    def get_q_values(self, state: State) -> Dict[Action, float]:
        """Return a copy of the Q-values of a state, {} if it has none."""
        return dict(self.q_values.get(state, {}))

    def get_value(self, state: State) -> float:
        """Return V(s), 0.0 for states never updated."""
        return self.v_values.get(state, 0.0)
