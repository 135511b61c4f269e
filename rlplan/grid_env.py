"""
GridWorld Environment Module

This module provides the GridWorldEnv class, an episodic deterministic
gridworld exposed through the Environment contract.

The environment is parsed from text files where:
    - '.' represents free cells
    - '#' represents walls (non-traversable)
    - 'G' represents the unique goal cell
    - 'S' optionally marks the start cell (default: first free cell)

The MDP is episodic:
    - Entering the goal yields +1 reward
    - All other transitions yield -1 reward
    - The goal has no outgoing action (terminal state)
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rlplan.environment import ModelLoadError
from rlplan.graph_env import GraphEnv, Transition


class GridWorldEnv(GraphEnv):
    """
    A deterministic episodic gridworld.

    The environment supports four actions: up, right, down, left.
    If an action would lead into a wall or out of bounds, the agent stays
    in place.

    Attributes:
        grid: 2D list of characters representing the grid.
        height: Number of rows in the grid.
        width: Number of columns in the grid.
        state_to_pos: Mapping from state id to (row, col) position.
        pos_to_state: Mapping from (row, col) position to state id.
        goal_state: The state id of the goal cell.
        start_state: The state id of the start cell.
        ACTIONS: Dictionary mapping action indices to action names.
        ACTION_DELTAS: Dictionary mapping action indices to (delta_row, delta_col).

    Example:
        >>> env = GridWorldEnv.from_txt("envs/simple_5x5.txt")
        >>> env.explore()
        >>> print(f"States: {env.n_states}, Goal: {env.goal_state}")
    """

    ACTIONS: Dict[int, str] = {
        0: "up",
        1: "right",
        2: "down",
        3: "left"
    }

    ACTION_DELTAS: Dict[int, Tuple[int, int]] = {
        0: (-1, 0),
        1: (0, 1),
        2: (1, 0),
        3: (0, -1)
    }

    GOAL_REWARD = 1.0
    STEP_REWARD = -1.0

    def __init__(self, grid: List[List[str]]) -> None:
        """
        Initialize the GridWorldEnv from a parsed grid.

        Args:
            grid: 2D list of characters ('.', '#', 'G', 'S').

        Raises:
            ValueError: If grid is invalid (no goal, multiple goals, empty, etc.)
        """
        self._validate_grid(grid)

        self.grid: List[List[str]] = grid
        self.height: int = len(grid)
        self.width: int = len(grid[0])

        self._build_state_mappings()
        positions = [self.state_to_pos[s] for s in range(len(self.state_to_pos))]
        super().__init__(
            self._build_transitions(),
            states=positions,
            initial=self.state_to_pos[self.start_state]
        )

    @classmethod
    def from_txt(cls, path: str | Path) -> "GridWorldEnv":
        """
        Load and build a GridWorldEnv from a .txt grid file.

        Args:
            path: Path to the .txt file containing the grid definition.

        Returns:
            A configured GridWorldEnv instance.

        Raises:
            FileNotFoundError: If the file does not exist.
            ModelLoadError: If the file contains an invalid grid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Grid file not found: {path}")

        with open(path, 'r') as f:
            lines = f.read().strip().split('\n')

        grid = [list(line) for line in lines]
        try:
            return cls(grid)
        except ValueError as e:
            raise ModelLoadError(f"{path}: {e}") from e

    def _validate_grid(self, grid: List[List[str]]) -> None:
        """
        Validate that the grid is well-formed.

        Raises:
            ValueError: If validation fails.
        """
        if not grid or not grid[0]:
            raise ValueError("Grid cannot be empty")

        width = len(grid[0])
        goal_count = 0
        start_count = 0
        valid_chars = {'.', '#', 'G', 'S'}

        for row_idx, row in enumerate(grid):
            if len(row) != width:
                raise ValueError(
                    f"Row {row_idx} has length {len(row)}, expected {width}. "
                    "All rows must have the same length."
                )
            for col_idx, char in enumerate(row):
                if char not in valid_chars:
                    raise ValueError(
                        f"Invalid character '{char}' at position ({row_idx}, {col_idx}). "
                        f"Valid characters are: {valid_chars}"
                    )
                if char == 'G':
                    goal_count += 1
                elif char == 'S':
                    start_count += 1

        if goal_count != 1:
            raise ValueError(f"Grid must contain exactly one goal 'G'. Found {goal_count}.")
        if start_count > 1:
            raise ValueError(f"Grid must contain at most one start 'S'. Found {start_count}.")

    def _build_state_mappings(self) -> None:
        """
        Assign sequential state ids to all non-wall cells, scanning row by
        row from top-left.
        """
        self.state_to_pos: Dict[int, Tuple[int, int]] = {}
        self.pos_to_state: Dict[Tuple[int, int], int] = {}
        self.goal_pos: Optional[Tuple[int, int]] = None
        self.goal_state: Optional[int] = None
        start_state: Optional[int] = None

        state_idx = 0
        for row in range(self.height):
            for col in range(self.width):
                char = self.grid[row][col]
                if char != '#':
                    pos = (row, col)
                    self.state_to_pos[state_idx] = pos
                    self.pos_to_state[pos] = state_idx

                    if char == 'G':
                        self.goal_pos = pos
                        self.goal_state = state_idx
                    elif char == 'S':
                        start_state = state_idx

                    state_idx += 1

        if start_state is None:
            start_state = 0
        self.start_state: int = start_state

    def _build_transitions(self) -> List[Transition]:
        """
        Build the deterministic transitions of every non-goal cell.

        Returns:
            ``(position, action_name, next_position, reward)`` tuples.
        """
        transitions: List[Transition] = []
        for s in range(len(self.state_to_pos)):
            if s == self.goal_state:
                continue
            row, col = self.state_to_pos[s]

            for a, name in self.ACTIONS.items():
                delta_row, delta_col = self.ACTION_DELTAS[a]
                new_row = row + delta_row
                new_col = col + delta_col

                if self._is_valid_position(new_row, new_col):
                    next_pos = (new_row, new_col)
                else:
                    next_pos = (row, col)

                reward = self.GOAL_REWARD if next_pos == self.goal_pos else self.STEP_REWARD
                transitions.append(((row, col), name, next_pos, reward))

        return transitions

    def _is_valid_position(self, row: int, col: int) -> bool:
        """Check if a position is in bounds and not a wall."""
        if row < 0 or row >= self.height or col < 0 or col >= self.width:
            return False
        return self.grid[row][col] != '#'

    def get_grid_string(self) -> str:
        """Return the grid as a string, one line per row."""
        return '\n'.join(''.join(row) for row in self.grid)

    def __repr__(self) -> str:
        """Return string representation of the environment."""
        return (
            f"GridWorldEnv(height={self.height}, width={self.width}, "
            f"n_states={self.n_states}, goal_state={self.goal_state})"
        )

    def __str__(self) -> str:
        """Return the grid string."""
        return self.get_grid_string()
