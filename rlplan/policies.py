"""
Policy Module

This module provides the action-selection rules shared by the solvers and the
extraction of deterministic policies from learned Q-values.

A deterministic policy is represented as a dict mapping each non-terminal
State to the Action chosen there.

Available functions:
    - greedy_action: Highest-Q action, ties broken by first in order
    - epsilon_greedy_action: Random action with probability epsilon, else greedy
    - greedy_policy: Greedy policy of an agent over a set of states
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Sequence, TYPE_CHECKING

import numpy as np

from rlplan.environment import Action, State

if TYPE_CHECKING:
    from rlplan.agent import Agent


def greedy_action(
    q_values: Mapping[Action, float],
    actions: Sequence[Action]
) -> Optional[Action]:
    """
    Select the action with the highest Q-value.

    Missing Q-values count as 0.0. Ties go to the action that comes first
    in ``actions``.

    Args:
        q_values: Mapping from action to Q-value.
        actions: Candidate actions, in the environment's order.

    Returns:
        The greedy action, or None if ``actions`` is empty.

    Example:
        >>> best = greedy_action(agent.get_q_values(s), env.actions(s))
    """
    best: Optional[Action] = None
    best_q = 0.0
    for action in actions:
        q = q_values.get(action, 0.0)
        if best is None or q > best_q:
            best, best_q = action, q
    return best


def epsilon_greedy_action(
    q_values: Mapping[Action, float],
    actions: Sequence[Action],
    epsilon: float,
    rng: np.random.Generator
) -> Action:
    """
    Choose an action based on an epsilon-greedy policy.

    If a random draw is below epsilon, pick an action uniformly at random;
    otherwise select the greedy action.

    Args:
        q_values: Mapping from action to Q-value.
        actions: Candidate actions (must not be empty).
        epsilon: Exploration probability in [0, 1].
        rng: Random number generator.

    Returns:
        The selected action.

    Raises:
        ValueError: If ``actions`` is empty.
    """
    if not actions:
        raise ValueError("Cannot select an action from an empty action set")

    if rng.random() < epsilon:
        return actions[int(rng.integers(0, len(actions)))]
    return greedy_action(q_values, actions)


def greedy_policy(agent: "Agent", states: Iterable[State]) -> Dict[State, Action]:
    """
    Extract the greedy deterministic policy of an agent.

    Terminal states (no outgoing action) are left out, so the policy is
    defined exactly on the states that have an action.

    Args:
        agent: A trained agent.
        states: States to cover.

    Returns:
        Mapping from state to greedy action.
    """
    policy: Dict[State, Action] = {}
    for state in states:
        action = agent.greedy_action(state)
        if action is not None:
            policy[state] = action
    return policy
