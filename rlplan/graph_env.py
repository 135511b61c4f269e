"""
Graph Environment Module

This module provides GraphEnv, an explicit deterministic state graph that
implements the Environment contract. It is the simplest oracle rlplan can
solve and the base of the grid world.

Graphs are given as transitions ``(source, action_name, destination, reward)``
or loaded from text files where:
    - each line ``source action destination reward`` declares one transition
    - ``init <label>`` selects the initial state (default: first state)
    - ``state <label>`` declares a state without outgoing transitions
    - ``#`` starts a comment
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

from rlplan.environment import Action, Environment, ModelLoadError, State

Transition = Tuple[Hashable, str, Hashable, float]


class GraphEnv(Environment):
    """
    A deterministic MDP given by an explicit list of transitions.

    State ids follow the order in which labels first appear: extra ``states``
    first, then sources and destinations of ``transitions``.

    Attributes:
        n_states: Number of states in the graph.
        n_actions: Number of actions (edges) in the graph.

    Example:
        >>> env = GraphEnv([("s0", "go", "s1", 1.0)])
        >>> s0 = env.initialise()
        >>> [a.name for a in env.actions(s0)]
        ['go']
    """

    def __init__(
        self,
        transitions: Iterable[Transition],
        states: Iterable[Hashable] = (),
        initial: Optional[Hashable] = None,
    ) -> None:
        """
        Build the graph.

        Args:
            transitions: ``(source, action_name, destination, reward)`` tuples.
            states: Additional state labels (e.g. isolated terminal states).
            initial: Label of the root state. Defaults to the first state.

        Raises:
            ValueError: If the graph is empty, if an action name is repeated
                for one source, or if ``initial`` is unknown.
        """
        super().__init__()
        self._states: List[State] = []
        self._by_label: Dict[Hashable, State] = {}
        self._out: Dict[int, List[Action]] = {}
        self._destinations: Dict[int, State] = {}
        self._rewards: Dict[int, float] = {}

        for label in states:
            self._register(label)
        for source, name, destination, reward in transitions:
            self._add_transition(source, name, destination, float(reward))

        if not self._states:
            raise ValueError("Graph cannot be empty")

        if initial is None:
            self._root = self._states[0]
        elif initial in self._by_label:
            self._root = self._by_label[initial]
        else:
            raise ValueError(f"Unknown initial state {initial!r}")

    @classmethod
    def from_txt(cls, path: str | Path) -> "GraphEnv":
        """
        Load a GraphEnv from a text file.

        Args:
            path: Path to the graph description.

        Returns:
            A configured GraphEnv instance.

        Raises:
            FileNotFoundError: If the file does not exist.
            ModelLoadError: If the file does not describe a valid graph.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Graph file not found: {path}")

        with open(path, 'r') as f:
            lines = f.read().splitlines()

        transitions: List[Transition] = []
        states: List[str] = []
        initial: Optional[str] = None
        for line_no, raw in enumerate(lines, start=1):
            line = raw.split('#', 1)[0].strip()
            if not line:
                continue
            parts = line.split()
            if parts[0] == "init" and len(parts) == 2:
                initial = parts[1]
            elif parts[0] == "state" and len(parts) == 2:
                states.append(parts[1])
            elif len(parts) == 4:
                try:
                    reward = float(parts[3])
                except ValueError:
                    raise ModelLoadError(
                        f"{path}:{line_no}: invalid reward '{parts[3]}'"
                    ) from None
                transitions.append((parts[0], parts[1], parts[2], reward))
            else:
                raise ModelLoadError(
                    f"{path}:{line_no}: expected 'source action destination reward', "
                    f"got '{line}'"
                )

        try:
            return cls(transitions, states=states, initial=initial)
        except ValueError as e:
            raise ModelLoadError(f"{path}: {e}") from e

    def _register(self, label: Hashable) -> State:
        state = self._by_label.get(label)
        if state is None:
            state = State(len(self._states), label)
            self._states.append(state)
            self._by_label[label] = state
            self._out[state.id] = []
        return state

    def _add_transition(
        self,
        source: Hashable,
        name: str,
        destination: Hashable,
        reward: float
    ) -> Action:
        src = self._register(source)
        dst = self._register(destination)
        if any(a.name == name for a in self._out[src.id]):
            raise ValueError(
                f"Action '{name}' is defined twice from state {source!r}. "
                "Transitions must be deterministic."
            )
        action = Action(len(self._destinations), src, name)
        self._out[src.id].append(action)
        self._destinations[action.id] = dst
        self._rewards[action.id] = reward
        return action

    @property
    def n_states(self) -> int:
        """Number of states in the graph."""
        return len(self._states)

    @property
    def n_actions(self) -> int:
        """Number of actions (edges) in the graph."""
        return len(self._destinations)

    def state(self, label: Hashable) -> State:
        """Return the state with the given label."""
        return self._by_label[label]

    def states(self) -> Sequence[State]:
        """Return every state, in id order."""
        return tuple(self._states)

    def root(self) -> State:
        """Return the root state (the ``initial`` label or the first state)."""
        return self._root

    def actions(self, state: State) -> List[Action]:
        """Return the outgoing actions of a state, in declaration order."""
        return list(self._out.get(state.id, ()))

    def successor(self, action: Action) -> State:
        """Return the destination of an action."""
        return self._destinations[action.id]

    def reward(self, state: State, action: Action, next_state: State) -> float:
        """Return the reward declared for the transition of ``action``."""
        return self._rewards[action.id]

    def state_by_id(self, state_id: int) -> State:
        """
        Return the state with the given id.

        Raises:
            KeyError: If the id is not part of the graph.
        """
        if not 0 <= state_id < len(self._states):
            raise KeyError(f"Unknown state id {state_id}")
        return self._states[state_id]

    def _exhaustive_discovery(self) -> Sequence[int]:
        # Every state of the model, reachable or not
        return [s.id for s in self._states]

    def __repr__(self) -> str:
        """Return string representation of the graph."""
        return (
            f"{type(self).__name__}(n_states={self.n_states}, "
            f"n_actions={self.n_actions}, root={self._root.label!r})"
        )
