"""
Unit Tests for Backward Induction
"""

import pytest

from rlplan.backward_induction import BackwardInduction
from rlplan.environment import ExplorationStrategy
from rlplan.tictactoe import TicTacToeEnv


class TestBackwardInduction:
    """Tests for finite-horizon planning."""

    def test_chain_two_steps(self, chain_env):
        """Test V_h on s0 -(0)-> s1 -(1)-> s2 with gamma = 1."""
        agent = BackwardInduction(chain_env, gamma=1.0, horizon=2)
        agent.learn(ExplorationStrategy.PREPROCESS)

        s0, s1, s2 = (chain_env.state(label) for label in ("s0", "s1", "s2"))
        assert agent.get_value(s0) == 1.0
        assert agent.get_value(s1) == 1.0
        assert agent.get_value(s2) == 0.0
        assert agent.get_value(s0, horizon=1) == 0.0
        assert agent.get_value(s1, horizon=1) == 1.0
        assert agent.get_value(s0, horizon=0) == 0.0

    def test_history_length(self, chain_env):
        """Test one value table is kept per step, including h = 0."""
        agent = BackwardInduction(chain_env, gamma=0.9, horizon=4)
        agent.learn(ExplorationStrategy.PREPROCESS)
        assert len(agent.value_history) == 5

    def test_short_horizon_truncates(self, chain_env):
        """Test the reward two steps away is unseen with H = 1."""
        agent = BackwardInduction(chain_env, gamma=1.0, horizon=1)
        agent.learn(ExplorationStrategy.PREPROCESS)
        assert agent.get_value(chain_env.state("s0")) == 0.0

    def test_q_values_of_last_step(self, chain_env):
        """Test Q-values are those of the final step."""
        agent = BackwardInduction(chain_env, gamma=0.5, horizon=3)
        agent.learn(ExplorationStrategy.PREPROCESS)

        s0 = chain_env.state("s0")
        (a,) = chain_env.actions(s0)
        assert agent.get_q_values(s0) == {a: pytest.approx(0.5)}
        assert agent.get_q_values(chain_env.state("s2")) == {}

    def test_zero_horizon(self, chain_env):
        """Test H = 0 leaves every value at zero and no Q-values."""
        agent = BackwardInduction(chain_env, gamma=0.9, horizon=0)
        agent.learn(ExplorationStrategy.PREPROCESS)

        assert agent.get_value(chain_env.state("s1")) == 0.0
        assert agent.get_q_values(chain_env.state("s1")) == {}
        assert len(agent.value_history) == 1

    def test_deterministic(self, chain_env):
        """Test two runs give identical tables."""
        first = BackwardInduction(chain_env, gamma=0.9, horizon=3)
        first.learn(ExplorationStrategy.PREPROCESS)
        second = BackwardInduction(chain_env, gamma=0.9, horizon=3)
        second.learn(ExplorationStrategy.PREPROCESS)
        assert first.value_history == second.value_history

    def test_horizon_out_of_range(self, chain_env):
        """Test querying a step beyond H raises ValueError."""
        agent = BackwardInduction(chain_env, gamma=0.9, horizon=2)
        agent.learn(ExplorationStrategy.PREPROCESS)
        with pytest.raises(ValueError, match="horizon"):
            agent.get_value(chain_env.state("s0"), horizon=3)
        with pytest.raises(ValueError, match="horizon"):
            agent.get_value(chain_env.state("s0"), horizon=-1)

    def test_negative_horizon(self, chain_env):
        """Test H must be non-negative."""
        with pytest.raises(ValueError, match="horizon"):
            BackwardInduction(chain_env, gamma=0.9, horizon=-1)

    def test_tictactoe_root(self):
        """Test the empty board gets one Q-value per opening move."""
        env = TicTacToeEnv()
        agent = BackwardInduction(env, gamma=0.9, horizon=9)
        agent.learn(ExplorationStrategy.PREPROCESS)

        q = agent.get_q_values(env.initial_state())
        assert len(q) == 9
        assert set(q) == set(env.actions(env.initial_state()))

    def test_learn_twice_restarts(self, chain_env):
        """Test a second learn rebuilds the history instead of extending it."""
        agent = BackwardInduction(chain_env, gamma=1.0, horizon=2)
        agent.learn(ExplorationStrategy.PREPROCESS)
        agent.learn(ExplorationStrategy.PREPROCESS)

        assert len(agent.value_history) == 3
        assert agent.get_value(chain_env.state("s0")) == 1.0
