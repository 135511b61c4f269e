"""
Agent Factory

Binds each algorithm identifier to a solver class and its fixed
hyperparameters. Construction only: no exploration or learning happens here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Type, Union

from rlplan.agent import Agent
from rlplan.backward_induction import BackwardInduction
from rlplan.dyna_q import DynaQ, DynaQPlus
from rlplan.environment import Environment
from rlplan.incremental_vi import IncrementalValueIteration
from rlplan.policy_iteration import ModifiedPolicyIteration, PolicyIteration
from rlplan.prioritized_vi import PrioritizedValueIteration
from rlplan.value_iteration import ValueIteration


class AlgorithmId(Enum):
    """Identifiers of the available algorithms."""

    VALUE_ITERATION = "value_iteration"
    POLICY_ITERATION = "policy_iteration"
    MODIFIED_POLICY_ITERATION = "modified_policy_iteration"
    BACKWARD_INDUCTION = "backward_induction"
    INCREMENTAL_VALUE_ITERATION = "incremental_value_iteration"
    PRIORITIZED_VALUE_ITERATION = "prioritized_value_iteration"
    DYNA_Q = "dyna_q"
    DYNA_Q_PLUS = "dyna_q_plus"


@dataclass(frozen=True)
class AgentSpec:
    """Solver class and the keyword arguments it is built with."""

    agent_cls: Type[Agent]
    params: Dict[str, Any] = field(default_factory=dict)

    def build(self, env: Environment, **overrides: Any) -> Agent:
        """Instantiate the solver on ``env``, ``overrides`` replacing ``params``."""
        return self.agent_cls(env, **{**self.params, **overrides})


_DYNA_Q_PARAMS: Dict[str, Any] = {
    "gamma": 0.9,
    "teta": 0.01,
    "alpha": 0.1,
    "epsilon": 0.1,
    "planning_steps": 10,
    "max_episodes": 500,
    "max_steps_per_episode": 100,
}

AGENT_SPECS: Dict[AlgorithmId, AgentSpec] = {
    AlgorithmId.VALUE_ITERATION: AgentSpec(
        ValueIteration,
        {"gamma": 0.9, "teta": 0.01, "max_iterations": 10},
    ),
    AlgorithmId.POLICY_ITERATION: AgentSpec(
        PolicyIteration,
        {"gamma": 0.9, "teta": 0.01, "max_iterations": 100},
    ),
    AlgorithmId.MODIFIED_POLICY_ITERATION: AgentSpec(
        ModifiedPolicyIteration,
        {"gamma": 0.9, "teta": 0.01, "max_iterations": 100, "eval_iterations": 5},
    ),
    AlgorithmId.BACKWARD_INDUCTION: AgentSpec(
        BackwardInduction,
        # 9 moves fill a tic-tac-toe board
        {"gamma": 0.9, "horizon": 9},
    ),
    AlgorithmId.INCREMENTAL_VALUE_ITERATION: AgentSpec(
        IncrementalValueIteration,
        {"gamma": 0.9, "teta": 0.001, "max_iterations": 200, "updates_per_iteration": 500},
    ),
    AlgorithmId.PRIORITIZED_VALUE_ITERATION: AgentSpec(
        PrioritizedValueIteration,
        # k * |S| with k in 10..50
        {"gamma": 0.9, "teta": 0.01, "max_updates": 100_000},
    ),
    AlgorithmId.DYNA_Q: AgentSpec(DynaQ, dict(_DYNA_Q_PARAMS)),
    AlgorithmId.DYNA_Q_PLUS: AgentSpec(
        DynaQPlus,
        {**_DYNA_Q_PARAMS, "kappa": 0.001, "log_every_episodes": 50},
    ),
}

_missing = [algorithm.name for algorithm in AlgorithmId if algorithm not in AGENT_SPECS]
if _missing:
    raise RuntimeError(f"No agent registered for {', '.join(_missing)}")


def parse_algorithm(algorithm: Union[AlgorithmId, str]) -> AlgorithmId:
    """
    Resolve an algorithm identifier from the enum or its name.

    Raises:
        ValueError: If the name is unknown.
    """
    if isinstance(algorithm, AlgorithmId):
        return algorithm
    try:
        return AlgorithmId[str(algorithm).upper()]
    except KeyError:
        valid = ", ".join(a.name for a in AlgorithmId)
        raise ValueError(f"Unknown algorithm '{algorithm}'. Valid algorithms are: {valid}") from None


def create_agent(
    algorithm: Union[AlgorithmId, str],
    env: Environment,
    **overrides: Any
) -> Agent:
    """
    Build the solver registered for ``algorithm``.

    Args:
        algorithm: Algorithm identifier (enum value or name).
        env: Environment the agent will learn on.
        **overrides: Keyword arguments replacing the fixed hyperparameters
            (e.g. ``rng`` for the randomized solvers).

    Returns:
        An untrained agent.

    Example:
        >>> agent = create_agent(AlgorithmId.VALUE_ITERATION, env)
        >>> agent.learn(ExplorationStrategy.PREPROCESS)
    """
    return AGENT_SPECS[parse_algorithm(algorithm)].build(env, **overrides)
