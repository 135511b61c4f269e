"""
Tic-Tac-Toe Environment Module

A lazily discovered game graph: boards are registered as states the first
time a move reaches them, so the environment works both with exhaustive
discovery (5478 reachable boards) and with online learners that only see the
boards they play.

Both players are driven by the agent. Player 0 ('O') moves first and is the
rewarded side:
    - player 0 completes a line: +1
    - player 1 completes a line: -1
    - full board without a line (draw): 0
    - any other move: -0.25
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple

from rlplan.environment import Action, Environment, State

Board = Tuple[Optional[int], ...]

LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),
    (0, 3, 6), (1, 4, 7), (2, 5, 8),
    (0, 4, 8), (2, 4, 6),
)

SYMBOLS: Dict[Optional[int], str] = {0: "O", 1: "X", None: " "}


class RewardStrategy(Enum):
    """Where the reward of a move comes from."""

    ON_THE_FLY = "on_the_fly"
    EMBEDDED = "embedded"


def winner(board: Board) -> Optional[int]:
    """Return the player owning a complete line, or None."""
    for i, j, k in LINES:
        if board[i] is not None and board[i] == board[j] == board[k]:
            return board[i]
    return None


def is_full(board: Board) -> bool:
    """Return True if every cell holds a mark."""
    return all(cell is not None for cell in board)


def player_to_move(board: Board) -> int:
    """Return the player (0 or 1) whose turn it is; player 0 moves first."""
    placed = sum(cell is not None for cell in board)
    return placed % 2


class TicTacToeEnv(Environment):
    """
    Tic-tac-toe as a deterministic, lazily discovered MDP.

    Attributes:
        reward_strategy: How move rewards are computed.
        WIN_REWARD, LOSS_REWARD, DRAW_REWARD, STEP_REWARD: Reward constants.
    """

    WIN_REWARD = 1.0
    LOSS_REWARD = -1.0
    DRAW_REWARD = 0.0
    STEP_REWARD = -0.25

    def __init__(self, reward_strategy: RewardStrategy = RewardStrategy.ON_THE_FLY) -> None:
        """
        Initialize the environment with only the empty board discovered.

        Args:
            reward_strategy: ON_THE_FLY evaluates the resulting board at each
                ``reward`` call, EMBEDDED computes the reward once when the move
                is created.
        """
        super().__init__()
        self.reward_strategy = reward_strategy
        self._states: List[State] = []
        self._by_board: Dict[Board, State] = {}
        self._out: Dict[int, List[Action]] = {}
        self._moves: List[int] = []
        self._destinations: Dict[int, State] = {}
        self._embedded_rewards: Dict[int, float] = {}
        self._root = self._register((None,) * 9)

    def _register(self, board: Board) -> State:
        state = self._by_board.get(board)
        if state is None:
            state = State(len(self._states), board)
            self._states.append(state)
            self._by_board[board] = state
        return state

    def _play(self, board: Board, cell: int) -> Board:
        cells = list(board)
        cells[cell] = player_to_move(board)
        return tuple(cells)

    def _evaluate(self, board: Board) -> float:
        """Reward for a move that produced ``board``."""
        win = winner(board)
        if win == 0:
            return self.WIN_REWARD
        if win == 1:
            return self.LOSS_REWARD
        if is_full(board):
            return self.DRAW_REWARD
        return self.STEP_REWARD

    def root(self) -> State:
        """Return the empty board."""
        return self._root

    def actions(self, state: State) -> List[Action]:
        """
        Return one ``play(row,col)`` action per free cell, 1-based.

        Won boards, full boards and unknown states have no action.
        """
        if not 0 <= state.id < len(self._states):
            return []
        if state.id not in self._out:
            board: Board = state.label
            actions: List[Action] = []
            if winner(board) is None:
                for cell, mark in enumerate(board):
                    if mark is None:
                        action = Action(
                            len(self._moves), state, f"play({cell // 3 + 1},{cell % 3 + 1})"
                        )
                        self._moves.append(cell)
                        actions.append(action)
                        if self.reward_strategy is RewardStrategy.EMBEDDED:
                            self._embedded_rewards[action.id] = self._evaluate(
                                self._play(board, cell)
                            )
            self._out[state.id] = actions
        return list(self._out[state.id])

    def successor(self, action: Action) -> State:
        """Return the board after the move, registering it on first reach."""
        destination = self._destinations.get(action.id)
        if destination is None:
            board = self._play(action.source.label, self._moves[action.id])
            destination = self._register(board)
            self._destinations[action.id] = destination
        return destination

    def reward(self, state: State, action: Action, next_state: State) -> float:
        """Return the reward of the move under the configured reward strategy."""
        if self.reward_strategy is RewardStrategy.EMBEDDED:
            return self._embedded_rewards[action.id]
        return self._evaluate(next_state.label)

    def state_by_id(self, state_id: int) -> State:
        """
        Return a discovered board.

        Raises:
            KeyError: If no board with this id has been discovered.
        """
        if not 0 <= state_id < len(self._states):
            raise KeyError(f"Unknown state id {state_id}")
        return self._states[state_id]

    def state_for_board(self, board: Board) -> State:
        """Return the state of an already discovered board."""
        return self._by_board[tuple(board)]

    @property
    def n_states(self) -> int:
        """Number of boards materialized so far."""
        return len(self._states)

    def render(self, state: State) -> str:
        """
        Pretty-print a board.

        Returns:
            Three rows separated by ``---+---+---``.
        """
        board: Board = state.label
        rows = []
        for r in range(3):
            cells = [SYMBOLS[board[3 * r + c]] for c in range(3)]
            rows.append(" " + " | ".join(cells))
        return "\n---+---+---\n".join(rows)

    def __repr__(self) -> str:
        """Return string representation of the environment."""
        return (
            f"TicTacToeEnv(reward_strategy={self.reward_strategy.name}, "
            f"n_states={self.n_states})"
        )
