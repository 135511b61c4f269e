"""
Unit Tests for Prioritized Value Iteration
"""

import pytest

from rlplan.environment import ExplorationStrategy
from rlplan.graph_env import GraphEnv
from rlplan.prioritized_vi import PrioritizedValueIteration


class TestPrioritizedValueIteration:
    """Tests for PrioritizedValueIteration."""

    def test_chain_backs_up_from_the_reward(self, chain_env):
        """Test the rewarding state is updated first, then its predecessor."""
        agent = PrioritizedValueIteration(chain_env, gamma=0.9, teta=0.01, max_updates=100)
        agent.learn(ExplorationStrategy.PREPROCESS)

        assert agent.get_value(chain_env.state("s1")) == pytest.approx(1.0)
        assert agent.get_value(chain_env.state("s0")) == pytest.approx(0.9)
        assert agent.updates == 2
        assert agent.pops >= agent.updates

    def test_predecessor_graph(self, chain_env):
        """Test predecessors map each state to the actions reaching it."""
        agent = PrioritizedValueIteration(chain_env, gamma=0.9, teta=0.01, max_updates=100)
        agent.learn(ExplorationStrategy.PREPROCESS)

        s0, s1 = chain_env.state("s0"), chain_env.state("s1")
        assert [a.source for a in agent.predecessors[s1]] == [s0]
        assert s0 not in agent.predecessors
        assert agent.outgoing[chain_env.state("s2")] == []

    def test_update_budget(self, loop_env):
        """Test max_updates bounds the backups when errors never vanish."""
        agent = PrioritizedValueIteration(loop_env, gamma=0.9, teta=0.0, max_updates=50)
        agent.learn(ExplorationStrategy.PREPROCESS)
        assert agent.updates == 50

    def test_zero_budget(self, chain_env):
        """Test no backup happens with max_updates = 0."""
        agent = PrioritizedValueIteration(chain_env, gamma=0.9, teta=0.01, max_updates=0)
        agent.learn(ExplorationStrategy.PREPROCESS)
        assert agent.updates == 0
        assert agent.get_value(chain_env.state("s1")) == 0.0

    def test_bellman_error(self, chain_env):
        """Test the error is 0 for terminal states."""
        agent = PrioritizedValueIteration(chain_env, gamma=0.9, teta=0.01, max_updates=0)
        agent.learn(ExplorationStrategy.PREPROCESS)
        assert agent.bellman_error(chain_env.state("s1")) == pytest.approx(1.0)
        assert agent.bellman_error(chain_env.state("s2")) == 0.0

    def test_grid_values(self, grid_env):
        """Test values around the goal of a grid."""
        agent = PrioritizedValueIteration(grid_env, gamma=0.9, teta=1e-6, max_updates=100_000)
        agent.learn(ExplorationStrategy.PREPROCESS)

        for pos, expected in [((1, 2), 1.0), ((2, 3), 1.0), ((1, 1), -0.1), ((3, 3), -0.1)]:
            state = grid_env.state_by_id(grid_env.pos_to_state[pos])
            assert agent.get_value(state) == pytest.approx(expected, abs=1e-3)

    def test_negative_budget(self, chain_env):
        """Test max_updates must be non-negative."""
        with pytest.raises(ValueError, match="max_updates"):
            PrioritizedValueIteration(chain_env, gamma=0.9, teta=0.01, max_updates=-1)

    def test_stale_entries_skipped(self):
        """Test a duplicate queue entry is popped without spending an update."""
        env = GraphEnv([
            ("p", "x", "a", 0.0),
            ("p", "y", "b", 0.0),
            ("a", "go", "t", 1.0),
            ("b", "go", "t", 1.0),
        ])
        agent = PrioritizedValueIteration(env, gamma=0.9, teta=0.01, max_updates=100)
        agent.learn(ExplorationStrategy.PREPROCESS)

        # p is pushed once after a and once after b, its second entry is stale
        assert agent.updates == 3
        assert agent.pops == 4
        assert agent.pops > agent.updates
        assert agent.get_value(env.state("p")) == pytest.approx(0.9)

    def test_learn_twice_restarts(self, chain_env):
        """Test a second learn redoes the backups instead of hitting the budget."""
        agent = PrioritizedValueIteration(chain_env, gamma=0.9, teta=0.01, max_updates=2)
        agent.learn(ExplorationStrategy.PREPROCESS)
        agent.learn(ExplorationStrategy.PREPROCESS)

        s1 = chain_env.state("s1")
        assert agent.updates == 2
        assert agent.pops == 2
        assert agent.get_value(s1) == pytest.approx(1.0)
        assert max(agent.get_q_values(s1).values()) == agent.get_value(s1)
