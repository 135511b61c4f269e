"""Shared fixtures: small hand-checkable graphs and a 5x5 grid."""

import pytest

from rlplan.graph_env import GraphEnv
from rlplan.grid_env import GridWorldEnv


@pytest.fixture
def chain_env():
    """s0 --a(0)--> s1 --b(1)--> s2 (terminal)."""
    return GraphEnv([("s0", "a", "s1", 0.0), ("s1", "b", "s2", 1.0)])


@pytest.fixture
def loop_env():
    """A single state with a self-loop of reward 1."""
    return GraphEnv([("s", "stay", "s", 1.0)])


@pytest.fixture
def cycle_env():
    """s0 --(1)--> s1 --(0)--> s0."""
    return GraphEnv([("s0", "go", "s1", 1.0), ("s1", "back", "s0", 0.0)])


@pytest.fixture
def grid_env():
    """5x5 grid with the goal in the middle of a 3x3 room."""
    grid = [
        list("#####"),
        list("#...#"),
        list("#.G.#"),
        list("#...#"),
        list("#####"),
    ]
    return GridWorldEnv(grid)
