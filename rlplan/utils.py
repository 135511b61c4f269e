"""
Utility Module

This module provides helpers to inspect trained agents.

Key functions:
    - greedy_rollout: Follow the greedy policy of an agent
    - discounted_return: Discounted sum of a reward sequence
    - format_q_values: Text table of the Q-values of a state
    - value_grid: V(s) laid out on a GridWorld as a numpy array
    - visualize_values: Matplotlib heat map of value_grid
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np

from rlplan.environment import Action, Environment, State

if TYPE_CHECKING:
    from rlplan.agent import Agent
    from rlplan.grid_env import GridWorldEnv


def greedy_rollout(
    env: Environment,
    agent: "Agent",
    max_steps: int,
    start_state: Optional[State] = None
) -> Tuple[List[State], List[Action], List[float]]:
    """
    Follow the greedy policy of an agent.

    Stops at a terminal state or after ``max_steps`` steps.

    Args:
        env: The environment.
        agent: A trained agent.
        max_steps: Maximum number of steps.
        start_state: Initial state. If None, uses the environment's initial state.

    Returns:
        Tuple of (states, actions, rewards), ``states`` including the start.

    Example:
        >>> states, actions, rewards = greedy_rollout(env, agent, max_steps=50)
        >>> print(f"Return: {discounted_return(rewards, agent.gamma):.4f}")
    """
    if max_steps < 0:
        raise ValueError(f"max_steps must be non-negative, got {max_steps}")

    state = start_state if start_state is not None else env.initial_state()
    states = [state]
    actions: List[Action] = []
    rewards: List[float] = []

    for _ in range(max_steps):
        action = agent.greedy_action(state)
        if action is None:
            break
        next_state = env.successor(action)
        actions.append(action)
        rewards.append(env.reward(state, action, next_state))
        states.append(next_state)
        state = next_state

    return states, actions, rewards


def discounted_return(rewards: Sequence[float], gamma: float) -> float:
    """
    Compute ``sum_t gamma^t * r_t``.

    Example:
        >>> discounted_return([0.0, 1.0], 0.5)
        0.5
    """
    if len(rewards) == 0:
        return 0.0
    discounts = np.power(gamma, np.arange(len(rewards)))
    return float(np.dot(discounts, np.asarray(rewards, dtype=np.float64)))


def format_q_values(agent: "Agent", state: State) -> str:
    """
    Format the Q-values of a state, one action per line, best action marked.

    Returns:
        The formatted table, or a note for states without Q-values.
    """
    q_values = agent.get_q_values(state)
    if not q_values:
        return f"State {state.id}: no Q-values"

    best = agent.greedy_action(state)
    lines = [f"Q-values of state {state.id}:"]
    for i, (action, q) in enumerate(q_values.items()):
        marker = " *" if action == best else ""
        lines.append(f"  {i:>3}: {action.name:<16} Q = {q:>10.4f}{marker}")
    return '\n'.join(lines)


def value_grid(env: "GridWorldEnv", agent: "Agent") -> np.ndarray:
    """
    Lay the state values of a planner out on the grid.

    Args:
        env: The GridWorld environment.
        agent: A planner exposing ``get_value``.

    Returns:
        Array of shape (height, width), NaN on walls.
    """
    values = np.full((env.height, env.width), np.nan, dtype=np.float64)
    for state_id, (row, col) in env.state_to_pos.items():
        values[row, col] = agent.get_value(env.state_by_id(state_id))
    return values


def visualize_values(
    env: "GridWorldEnv",
    agent: "Agent",
    ax=None,
    show_values: bool = True,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (8, 8)
):
    """
    Visualize the value function of a planner on the grid.

    Walls are drawn black, free cells are colored by V(s) and the goal is
    outlined in green.

    Args:
        env: The GridWorld environment.
        agent: A planner exposing ``get_value``.
        ax: Matplotlib axes to plot on. If None, creates new figure.
        show_values: Whether to annotate V(s) on each cell.
        title: Title for the plot.
        figsize: Figure size if creating new figure.

    Returns:
        Matplotlib axes object.

    Example:
        >>> import matplotlib.pyplot as plt
        >>> ax = visualize_values(env, agent, title="Value Iteration")
        >>> plt.show()
    """
    import matplotlib
    import matplotlib.pyplot as plt
    import matplotlib.patches as mpatches

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    values = value_grid(env, agent)
    cmap = matplotlib.colormaps['viridis'].copy()
    cmap.set_bad('black')

    image = ax.imshow(np.ma.masked_invalid(values), cmap=cmap, origin='upper', aspect='equal')
    ax.figure.colorbar(image, ax=ax, label='V(s)')

    for x in range(env.width + 1):
        ax.axvline(x - 0.5, color='gray', linewidth=0.5)
    for y in range(env.height + 1):
        ax.axhline(y - 0.5, color='gray', linewidth=0.5)

    if show_values:
        for (row, col) in env.state_to_pos.values():
            ax.text(
                col, row, f"{values[row, col]:.2f}",
                ha='center', va='center', fontsize=9, color='white'
            )

    if env.goal_pos is not None:
        row, col = env.goal_pos
        ax.add_patch(mpatches.Rectangle(
            (col - 0.5, row - 0.5), 1, 1,
            fill=False, edgecolor='limegreen', linewidth=3
        ))

    ax.set_xlim(-0.5, env.width - 0.5)
    ax.set_ylim(env.height - 0.5, -0.5)
    ax.set_xticks(range(env.width))
    ax.set_yticks(range(env.height))
    ax.set_xlabel('Column')
    ax.set_ylabel('Row')

    if title:
        ax.set_title(title)

    return ax
