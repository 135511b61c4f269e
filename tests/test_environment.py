"""
Unit Tests for the Environment contract and GraphEnv

Tests state/action handles, initialisation, the exploration strategies,
the discovered-state set and loading graphs from text files.
"""

import pytest

from rlplan.environment import Action, ExplorationStrategy, ModelLoadError, State
from rlplan.graph_env import GraphEnv


@pytest.fixture
def chain_env():
    """s0 --a(0)--> s1 --b(1)--> s2 (terminal), plus an unreachable state z."""
    return GraphEnv(
        [("s0", "a", "s1", 0.0), ("s1", "b", "s2", 1.0)],
        states=["s0", "z"],
    )


@pytest.fixture
def branching_env():
    """A root with three children, each with one terminal child."""
    return GraphEnv([
        ("root", "x", "c1", 0.0),
        ("root", "y", "c2", 0.0),
        ("root", "z", "c3", 0.0),
        ("c1", "go", "leaf1", 1.0),
        ("c2", "go", "leaf2", 1.0),
        ("c3", "go", "leaf3", 1.0),
    ])


class TestHandles:
    """Tests for State and Action handles."""

    def test_state_equality_uses_id(self):
        """Test states compare and hash by id only."""
        assert State(3, "a") == State(3, "b")
        assert hash(State(3, "a")) == hash(State(3, "b"))
        assert State(3) != State(4)

    def test_action_equality_uses_id(self):
        """Test actions compare by id only."""
        s = State(0)
        assert Action(1, s, "up") == Action(1, State(5), "down")
        assert Action(1, s) != Action(2, s)

    def test_state_is_immutable(self):
        """Test states are frozen."""
        with pytest.raises(AttributeError):
            State(0).id = 1


class TestGraphConstruction:
    """Tests for GraphEnv construction."""

    def test_ids_follow_first_appearance(self, chain_env):
        """Test extra states come first, then transition labels."""
        labels = [chain_env.state_by_id(i).label for i in range(chain_env.n_states)]
        assert labels == ["s0", "z", "s1", "s2"]

    def test_counts(self, chain_env):
        """Test number of states and actions."""
        assert chain_env.n_states == 4
        assert chain_env.n_actions == 2

    def test_root_defaults_to_first_state(self, chain_env):
        """Test the root is the first registered state."""
        assert chain_env.root().label == "s0"

    def test_explicit_initial(self):
        """Test an explicit initial label is used as root."""
        env = GraphEnv([("a", "go", "b", 1.0)], initial="b")
        assert env.root().label == "b"

    def test_unknown_initial_error(self):
        """Test error on unknown initial state."""
        with pytest.raises(ValueError, match="Unknown initial state"):
            GraphEnv([("a", "go", "b", 1.0)], initial="c")

    def test_empty_graph_error(self):
        """Test error on empty graph."""
        with pytest.raises(ValueError, match="cannot be empty"):
            GraphEnv([])

    def test_duplicate_action_error(self):
        """Test the same action name twice from one state is rejected."""
        with pytest.raises(ValueError, match="deterministic"):
            GraphEnv([("a", "go", "b", 1.0), ("a", "go", "c", 0.0)])

    def test_transitions(self, chain_env):
        """Test actions, successors and rewards."""
        s0 = chain_env.state("s0")
        (a,) = chain_env.actions(s0)
        assert a.name == "a"
        assert a.source == s0
        s1 = chain_env.successor(a)
        assert s1.label == "s1"
        assert chain_env.reward(s0, a, s1) == 0.0

        (b,) = chain_env.actions(s1)
        s2 = chain_env.successor(b)
        assert chain_env.reward(s1, b, s2) == 1.0

    def test_terminal_state(self, chain_env):
        """Test a state without actions is terminal."""
        s2 = chain_env.state("s2")
        assert chain_env.actions(s2) == []
        assert chain_env.is_terminal(s2)
        assert not chain_env.is_terminal(chain_env.state("s0"))

    def test_unknown_state_has_no_actions(self, chain_env):
        """Test an unknown state yields no actions instead of failing."""
        assert chain_env.actions(State(99)) == []

    def test_state_by_id_unknown(self, chain_env):
        """Test unknown ids raise KeyError."""
        with pytest.raises(KeyError):
            chain_env.state_by_id(99)

    def test_find_action(self, branching_env):
        """Test lookup of an action by name."""
        root = branching_env.root()
        assert branching_env.find_action(root, "y").name == "y"
        assert branching_env.find_action(root, "missing") is None


class TestInitialise:
    """Tests for initialise / initial_state / current_state."""

    def test_initialise_returns_root(self, chain_env):
        """Test the initial state is the root when no setup action exists."""
        assert chain_env.initialise() == chain_env.state("s0")

    def test_initialise_is_idempotent(self, chain_env):
        """Test repeated calls return the same state."""
        first = chain_env.initialise()
        assert chain_env.initialise() == first
        assert chain_env.initial_state() == first
        assert chain_env.current_state() == first

    def test_initialise_records_state(self, chain_env):
        """Test the initial state joins the discovered set."""
        s0 = chain_env.initialise()
        assert chain_env.discovered_state_ids() == {s0.id}

    def test_setup_actions_applied(self):
        """Test setup actions lead from the root to the initial state."""
        env = GraphEnv([
            ("root", "$setup_constants", "constants", 0.0),
            ("constants", "$initialise_machine", "init", 0.0),
            ("init", "go", "end", 1.0),
        ])
        assert env.initialise().label == "init"

    def test_current_state_initialises_lazily(self, chain_env):
        """Test current_state works before initialise."""
        assert chain_env.current_state().label == "s0"


class TestExploration:
    """Tests for the exploration strategies."""

    def test_none_discovers_nothing(self, chain_env):
        """Test NONE leaves the discovered set empty."""
        chain_env.explore(ExplorationStrategy.NONE)
        assert chain_env.discovered_state_ids() == set()

    def test_preprocess_reports_every_state(self, chain_env):
        """Test PREPROCESS on a graph includes unreachable states."""
        chain_env.explore(ExplorationStrategy.PREPROCESS)
        assert chain_env.discovered_state_ids() == {0, 1, 2, 3}

    def test_recursive_reaches_reachable_states(self, chain_env):
        """Test RECURSIVE only finds states reachable from the initial state."""
        chain_env.explore(ExplorationStrategy.RECURSIVE)
        labels = {chain_env.state_by_id(i).label for i in chain_env.discovered_state_ids()}
        assert labels == {"s0", "s1", "s2"}

    def test_recursive_depth_bound(self, chain_env):
        """Test max_depth limits the traversal."""
        chain_env.explore(ExplorationStrategy.RECURSIVE, max_depth=1)
        labels = {chain_env.state_by_id(i).label for i in chain_env.discovered_state_ids()}
        assert labels == {"s0", "s1"}

    def test_recursive_depth_zero(self, chain_env):
        """Test max_depth=0 only records the initial state."""
        chain_env.explore(ExplorationStrategy.RECURSIVE, max_depth=0)
        labels = {chain_env.state_by_id(i).label for i in chain_env.discovered_state_ids()}
        assert labels == {"s0"}

    def test_recursive_breadth_bound(self, branching_env):
        """Test max_breadth limits the children explored per state."""
        branching_env.explore(ExplorationStrategy.RECURSIVE, max_breadth=1)
        labels = {
            branching_env.state_by_id(i).label
            for i in branching_env.discovered_state_ids()
        }
        assert labels == {"root", "c1", "leaf1"}

    def test_discovered_set_only_grows(self, chain_env):
        """Test successive explorations never remove states."""
        chain_env.explore(ExplorationStrategy.RECURSIVE, max_depth=0)
        before = set(chain_env.discovered_state_ids())
        chain_env.explore(ExplorationStrategy.NONE)
        chain_env.explore(ExplorationStrategy.RECURSIVE)
        assert before <= chain_env.discovered_state_ids()

    def test_add_state_id(self, chain_env):
        """Test the insertion operation."""
        chain_env.add_state_id(2)
        assert 2 in chain_env.discovered_state_ids()


class TestGraphFile:
    """Tests for GraphEnv.from_txt."""

    def test_load_graph(self, tmp_path):
        """Test loading transitions, comments, init and extra states."""
        path = tmp_path / "graph.txt"
        path.write_text(
            "# a small chain\n"
            "init s0\n"
            "state lonely\n"
            "s0 a s1 0.5\n"
            "s1 b s2 1   # reward one\n"
        )
        env = GraphEnv.from_txt(path)

        assert env.n_states == 4
        assert env.root().label == "s0"
        s0 = env.state("s0")
        (a,) = env.actions(s0)
        assert env.reward(s0, a, env.successor(a)) == 0.5

    def test_file_not_found(self):
        """Test error when file doesn't exist."""
        with pytest.raises(FileNotFoundError):
            GraphEnv.from_txt("nonexistent_graph.txt")

    def test_malformed_line(self, tmp_path):
        """Test error on a line with the wrong number of fields."""
        path = tmp_path / "bad.txt"
        path.write_text("s0 a s1\n")
        with pytest.raises(ModelLoadError, match="expected"):
            GraphEnv.from_txt(path)

    def test_invalid_reward(self, tmp_path):
        """Test error on a non-numeric reward."""
        path = tmp_path / "bad.txt"
        path.write_text("s0 a s1 lots\n")
        with pytest.raises(ModelLoadError, match="invalid reward"):
            GraphEnv.from_txt(path)

    def test_empty_file(self, tmp_path):
        """Test an empty model cannot be loaded."""
        path = tmp_path / "empty.txt"
        path.write_text("# nothing here\n")
        with pytest.raises(ModelLoadError, match="cannot be empty"):
            GraphEnv.from_txt(path)

    def test_load_error_is_value_error(self, tmp_path):
        """Test ModelLoadError can be caught as ValueError."""
        path = tmp_path / "bad.txt"
        path.write_text("s0 a s1 x\n")
        with pytest.raises(ValueError):
            GraphEnv.from_txt(path)
