"""
Command-line entry point.

Selects an algorithm, an environment and an exploration strategy, runs
``learn`` and optionally prints a greedy playthrough with the Q-values of
every visited state.

Usage:
    python -m rlplan BACKWARD_INDUCTION --env tictactoe
    python -m rlplan VALUE_ITERATION --env grid --file envs/maze.txt --play
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

import numpy as np

from rlplan.environment import Environment, ExplorationStrategy
from rlplan.factory import AlgorithmId, create_agent
from rlplan.graph_env import GraphEnv
from rlplan.grid_env import GridWorldEnv
from rlplan.tictactoe import RewardStrategy, TicTacToeEnv
from rlplan.utils import discounted_return, format_q_values, greedy_rollout

logger = logging.getLogger(__name__)

RANDOMIZED = {
    AlgorithmId.INCREMENTAL_VALUE_ITERATION,
    AlgorithmId.DYNA_Q,
    AlgorithmId.DYNA_Q_PLUS,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the command-line tool."""
    parser = argparse.ArgumentParser(
        prog="rlplan",
        description="Solve a deterministic MDP with a planning or learning algorithm."
    )
    parser.add_argument(
        "algorithm", nargs="?", default=AlgorithmId.BACKWARD_INDUCTION.name,
        choices=[a.name for a in AlgorithmId],
        help="Algorithm to run (default: BACKWARD_INDUCTION)"
    )
    parser.add_argument(
        "--env", choices=["tictactoe", "grid", "graph"], default="tictactoe",
        help="Environment to solve (default: tictactoe)"
    )
    parser.add_argument(
        "--file", default=None,
        help="Grid or graph description file (required for --env grid/graph)"
    )
    parser.add_argument(
        "--reward-strategy", choices=[r.name for r in RewardStrategy],
        default=RewardStrategy.ON_THE_FLY.name,
        help="Tic-tac-toe reward strategy (default: ON_THE_FLY)"
    )
    parser.add_argument(
        "--exploration", choices=[e.name for e in ExplorationStrategy],
        default=ExplorationStrategy.PREPROCESS.name,
        help="Exploration strategy (default: PREPROCESS)"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--play", action="store_true",
        help="Print a greedy playthrough after learning"
    )
    parser.add_argument(
        "--max-steps", type=int, default=50,
        help="Maximum steps of the playthrough (default: 50)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def build_env(args: argparse.Namespace) -> Environment:
    """
    Build the environment selected on the command line.

    Raises:
        SystemExit: If a grid or graph environment is selected without --file.
    """
    if args.env == "tictactoe":
        return TicTacToeEnv(RewardStrategy[args.reward_strategy])
    if args.file is None:
        raise SystemExit(f"--file is required for --env {args.env}")
    if args.env == "grid":
        return GridWorldEnv.from_txt(args.file)
    return GraphEnv.from_txt(args.file)


def play(env: Environment, agent, max_steps: int) -> None:
    """Print the greedy playthrough of a trained agent."""
    states, actions, rewards = greedy_rollout(env, agent, max_steps)
    render = getattr(env, "render", None)

    for state, action, reward in zip(states, actions, rewards):
        print(format_q_values(agent, state))
        print(f"Action chosen: {action.name} (reward {reward:+.2f})")
        if render is not None:
            print(render(env.successor(action)))
        print()

    print(f"Game ended after {len(actions)} steps, "
          f"discounted return {discounted_return(rewards, agent.gamma):.4f}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command-line tool. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    algorithm = AlgorithmId[args.algorithm]
    exploration = ExplorationStrategy[args.exploration]
    logger.info("Selected algorithm = %s", algorithm.name)
    logger.info("Selected environment = %s", args.env)
    logger.info("Exploration strategy = %s", exploration.name)

    env = build_env(args)
    overrides = {}
    if algorithm in RANDOMIZED:
        overrides["rng"] = np.random.default_rng(args.seed)
    agent = create_agent(algorithm, env, **overrides)

    agent.learn(exploration)

    if args.play:
        play(env, agent, args.max_steps)
    return 0
