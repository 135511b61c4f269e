"""
Environment Module

This module defines the oracle contract every solver in rlplan depends on:
a deterministic, discoverable Markov Decision Process whose state graph is
revealed either eagerly (offline planning) or on demand (online learning).

Handles:
    - State: opaque, id-keyed handle into the oracle's graph
    - Action: opaque, id-keyed edge from a source state to a successor

Discovery strategies:
    - PREPROCESS: exhaustive discovery of the whole graph
    - RECURSIVE: depth/breadth-bounded traversal from the initial state
    - NONE: no discovery (online learners find states as they act)
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Set, Tuple

logger = logging.getLogger(__name__)


class ExplorationStrategy(Enum):
    """How an environment populates its discovered-state set."""

    PREPROCESS = "preprocess"
    RECURSIVE = "recursive"
    NONE = "none"


class ModelLoadError(ValueError):
    """Raised when the backing model of an environment cannot be loaded."""


@dataclass(frozen=True)
class State:
    """
    Handle to a state of the oracle's graph.

    Equality and hashing only use ``id``, so states are safe to use as table
    keys whatever the label holds.

    Attributes:
        id: Stable identifier assigned by the environment.
        label: Environment-specific payload (grid position, board, name...).
    """

    id: int
    label: Any = field(default=None, compare=False)

    def __repr__(self) -> str:
        """Return string representation of the state."""
        return f"State(id={self.id}, label={self.label!r})"


@dataclass(frozen=True)
class Action:
    """
    Handle to one outgoing edge of a state (a transition).

    Attributes:
        id: Stable identifier, unique within an environment.
        source: State the action leaves from.
        name: Human readable operation name.
    """

    id: int
    source: State = field(compare=False)
    name: str = field(default="", compare=False)

    def __repr__(self) -> str:
        """Return string representation of the action."""
        return f"Action(id={self.id}, source={self.source.id}, name={self.name!r})"


class Environment(ABC):
    """
    Abstract deterministic MDP oracle.

    Subclasses describe the graph through ``root``, ``actions``, ``successor``,
    ``reward`` and ``state_by_id``; this base class owns the discovered-state
    set, the initial/current state and the exploration strategies.

    Taking action ``a`` in state ``s`` always leads to the single state
    ``successor(a)`` and yields the scalar ``reward(s, a, successor(a))``.
    A state without outgoing actions is terminal.

    Attributes:
        setup_action_names: Names of the actions applied, in order, from the
            root to reach the initial state (when the root offers them).
    """

    setup_action_names: Tuple[str, ...] = ("$setup_constants", "$initialise_machine")

    def __init__(self) -> None:
        self._state_ids: Set[int] = set()
        self._initial: Optional[State] = None
        self._current: Optional[State] = None

    # ------------------------------------------------------------------
    # Graph oracle
    # ------------------------------------------------------------------

    @abstractmethod
    def root(self) -> State:
        """Return the root of the graph, before any setup action is applied."""

    @abstractmethod
    def actions(self, state: State) -> List[Action]:
        """
        Return the outgoing actions of a state, materializing them if needed.

        Unknown or terminal states yield an empty list, never an error.
        """

    @abstractmethod
    def successor(self, action: Action) -> State:
        """Return (discovering it if needed) the destination of an action."""

    @abstractmethod
    def reward(self, state: State, action: Action, next_state: State) -> float:
        """Scalar reward of the transition ``state --action--> next_state``."""

    @abstractmethod
    def state_by_id(self, state_id: int) -> State:
        """
        Return a previously discovered state.

        Raises:
            KeyError: If no state with this id has been discovered.
        """

    # ------------------------------------------------------------------
    # Derived queries
    # ------------------------------------------------------------------

    def find_action(self, state: State, name: str) -> Optional[Action]:
        """Return the first outgoing action of ``state`` named ``name``."""
        for action in self.actions(state):
            if action.name == name:
                return action
        return None

    def is_terminal(self, state: State) -> bool:
        """Return True if the state has no outgoing action."""
        return not self.actions(state)

    # ------------------------------------------------------------------
    # Initial / current state
    # ------------------------------------------------------------------

    def initialise(self) -> State:
        """
        Produce the initial state, applying the setup actions once.

        Later calls return the same state and reset the current state to it.

        Returns:
            The initial state.
        """
        if self._initial is None:
            state = self.root()
            for name in self.setup_action_names:
                action = self.find_action(state, name)
                if action is not None:
                    state = self.successor(action)
            self._initial = state
            self.add_state_id(state.id)
        self._current = self._initial
        return self._initial

    def initial_state(self) -> State:
        """Return the initial state, initialising the environment on first use."""
        if self._initial is None:
            return self.initialise()
        return self._initial

    def current_state(self) -> State:
        """
        Return the current state of the environment.

        Before any call to ``initialise`` this is the initial state.
        """
        if self._current is None:
            return self.initialise()
        return self._current

    # ------------------------------------------------------------------
    # Discovered-state set
    # ------------------------------------------------------------------

    def discovered_state_ids(self) -> Set[int]:
        """
        Return the set of discovered state ids.

        The set is the environment's own; use ``add_state_id`` to grow it.
        """
        return self._state_ids

    def add_state_id(self, state_id: int) -> None:
        """Record a state id as discovered (no-op if already present)."""
        self._state_ids.add(state_id)

    # ------------------------------------------------------------------
    # Exploration
    # ------------------------------------------------------------------

    def explore(
        self,
        strategy: ExplorationStrategy = ExplorationStrategy.PREPROCESS,
        max_depth: int = -1,
        max_breadth: int = -1,
    ) -> None:
        """
        Populate the discovered-state set.

        Args:
            strategy: Discovery strategy to apply.
            max_depth: Depth bound for RECURSIVE (-1 for unlimited).
            max_breadth: Children explored per state for RECURSIVE
                (-1 for unlimited).
        """
        logger.info("Start exploration (%s)", strategy.name)
        start_time = time.perf_counter()

        if strategy is ExplorationStrategy.PREPROCESS:
            for state_id in self._exhaustive_discovery():
                self.add_state_id(state_id)
        elif strategy is ExplorationStrategy.RECURSIVE:
            self._recursive(self.initial_state(), max_depth, max_breadth)
        elif strategy is not ExplorationStrategy.NONE:
            raise ValueError(f"Unknown exploration strategy {strategy!r}")

        duration = time.perf_counter() - start_time
        logger.info(
            "End of exploration: %d states | exploration time: %.3f seconds",
            len(self._state_ids), duration
        )

    def _exhaustive_discovery(self) -> Sequence[int]:
        """
        Enumerate every state reachable from the root (breadth first).

        Returns:
            Ids of the discovered states.
        """
        root = self.root()
        seen = {root.id}
        order = [root.id]
        queue = deque([root])
        while queue:
            state = queue.popleft()
            for action in self.actions(state):
                next_state = self.successor(action)
                if next_state.id not in seen:
                    seen.add(next_state.id)
                    order.append(next_state.id)
                    queue.append(next_state)
        return order

    def _recursive(self, start: State, max_depth: int, max_breadth: int) -> None:
        # Depth-first, a state is expanded only on its first visit.
        visited: Set[int] = set()
        stack = [(start, max_depth)]
        while stack:
            state, depth = stack.pop()
            if state.id in visited:
                continue
            visited.add(state.id)
            self.add_state_id(state.id)
            if depth != -1 and depth <= 0:
                continue

            next_depth = -1 if depth == -1 else depth - 1
            children = []
            for count, action in enumerate(self.actions(state)):
                if max_breadth != -1 and count >= max_breadth:
                    break
                children.append((self.successor(action), next_depth))
            # Reversed so the first action is expanded first
            stack.extend(reversed(children))
