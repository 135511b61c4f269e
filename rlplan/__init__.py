"""
rlplan: Planning and learning algorithms for deterministic, discoverable MDPs.

This package provides tools for:
- Describing a deterministic MDP as an oracle (the Environment contract)
- Solving it offline with dynamic programming (value/policy iteration,
  backward induction, incremental and prioritized value iteration)
- Learning it online with model-based reinforcement learning (Dyna-Q, Dyna-Q+)
- Building any solver from an algorithm identifier with fixed hyperparameters
"""

from rlplan.environment import (
    Action,
    Environment,
    ExplorationStrategy,
    ModelLoadError,
    State,
)
from rlplan.graph_env import GraphEnv
from rlplan.grid_env import GridWorldEnv
from rlplan.tictactoe import RewardStrategy, TicTacToeEnv
from rlplan.agent import Agent, TabularPlanner
from rlplan.value_iteration import ValueIteration
from rlplan.policy_iteration import PolicyIteration, ModifiedPolicyIteration
from rlplan.backward_induction import BackwardInduction
from rlplan.incremental_vi import IncrementalValueIteration
from rlplan.prioritized_vi import PrioritizedValueIteration
from rlplan.dyna_q import DynaQ, DynaQPlus
from rlplan.factory import AlgorithmId, AgentSpec, AGENT_SPECS, create_agent
from rlplan.policies import greedy_action, epsilon_greedy_action, greedy_policy
from rlplan.utils import greedy_rollout, discounted_return, format_q_values

__version__ = "0.1.0"
__all__ = [
    "Action",
    "Environment",
    "ExplorationStrategy",
    "ModelLoadError",
    "State",
    "GraphEnv",
    "GridWorldEnv",
    "RewardStrategy",
    "TicTacToeEnv",
    "Agent",
    "TabularPlanner",
    "ValueIteration",
    "PolicyIteration",
    "ModifiedPolicyIteration",
    "BackwardInduction",
    "IncrementalValueIteration",
    "PrioritizedValueIteration",
    "DynaQ",
    "DynaQPlus",
    "AlgorithmId",
    "AgentSpec",
    "AGENT_SPECS",
    "create_agent",
    "greedy_action",
    "epsilon_greedy_action",
    "greedy_policy",
    "greedy_rollout",
    "discounted_return",
    "format_q_values",
]
