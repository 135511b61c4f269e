"""
Dyna-Q and Dyna-Q+ (online, model-based)

Both combine:
    - Q-learning from real interaction with the environment
    - a learned deterministic model (s, a) -> (s', r)
    - planning updates replaying uniformly drawn model entries

No exhaustive exploration is needed: states are discovered on the fly and
recorded in the environment's discovered-state set.

Dyna-Q+ adds an exploration bonus ``kappa * sqrt(time - last_visit(s, a))``
to the reward of planning updates, favouring pairs that have not been tried
for a long time in real interaction.
"""

from __future__ import annotations

import logging
import math
import time as timer
from typing import Dict, List, Optional, Set, Tuple

import numpy as np

from rlplan.agent import Agent
from rlplan.environment import Action, Environment, ExplorationStrategy, State
from rlplan.policies import epsilon_greedy_action

logger = logging.getLogger(__name__)

StateAction = Tuple[State, Action]


class DynaQ(Agent):
    """
    Dyna-Q.

    Calling ``learn`` again continues from the current Q-values and model.

    Attributes:
        alpha: Learning rate.
        epsilon: Exploration probability of the epsilon-greedy policy.
        planning_steps: Simulated updates per real step.
        max_episodes: Number of episodes.
        max_steps_per_episode: Real steps per episode.
        rng: Random number generator.
        q: Q-values per (state, action), default 0.0.
        model: Observed (successor, reward) per (state, action).
        visited: States reached during real interaction.
        total_steps: Real steps performed so far, across ``learn`` calls.
    """

    label = "Dyna-Q"

    def __init__(
        self,
        env: Environment,
        gamma: float,
        teta: float,
        alpha: float,
        epsilon: float,
        planning_steps: int,
        max_episodes: int,
        max_steps_per_episode: int,
        rng: Optional[np.random.Generator] = None
    ) -> None:
        """
        Args:
            env: The environment to interact with.
            gamma: Discount factor in (0, 1].
            teta: Convergence threshold, non-negative (kept for a uniform
                Agent signature).
            alpha: Learning rate in (0, 1].
            epsilon: Exploration probability in [0, 1].
            planning_steps: Simulated updates per real step.
            max_episodes: Number of episodes per ``learn``.
            max_steps_per_episode: Real steps per episode.
            rng: Random number generator. Defaults to a fresh
                ``np.random.default_rng()``.

        Raises:
            ValueError: If a hyperparameter is out of range.
        """
        super().__init__(env, gamma, teta)
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        if not 0.0 <= epsilon <= 1.0:
            raise ValueError(f"epsilon must be in [0, 1], got {epsilon}")
        if planning_steps < 0 or max_episodes < 0 or max_steps_per_episode < 0:
            raise ValueError(
                "planning_steps, max_episodes and max_steps_per_episode "
                "must be non-negative"
            )
        self.alpha = alpha
        self.epsilon = epsilon
        self.planning_steps = planning_steps
        self.max_episodes = max_episodes
        self.max_steps_per_episode = max_steps_per_episode
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()

        self.q: Dict[StateAction, float] = {}
        self.model: Dict[StateAction, Tuple[State, float]] = {}
        self._model_keys: List[StateAction] = []
        self.visited: Set[State] = set()
        self.total_steps = 0

    def learn(self, strategy: ExplorationStrategy = ExplorationStrategy.NONE) -> None:
        """
        Run ``max_episodes`` episodes of real interaction and planning.

        Only the initial state is needed, ``strategy`` is not applied.
        """
        self.env.initialise()
        logger.info(
            "Start learning (%s): max_episodes=%d, max_steps_per_episode=%d, "
            "planning_steps=%d, alpha=%g, epsilon=%g, gamma=%g",
            self.label, self.max_episodes, self.max_steps_per_episode,
            self.planning_steps, self.alpha, self.epsilon, self.gamma
        )
        start_time = timer.perf_counter()

        for episode in range(1, self.max_episodes + 1):
            steps = self._run_episode(self._episode_start())
            self._end_of_episode(episode, steps)

        duration = timer.perf_counter() - start_time
        logger.info(
            "Finished (%s) in %.3f seconds: %d states discovered, "
            "%d (s,a) in model, %d Q-values",
            self.label, duration, len(self.env.discovered_state_ids()),
            len(self.model), len(self.q)
        )

    def _episode_start(self) -> State:
        return self.env.current_state()

    def _end_of_episode(self, episode: int, steps: int) -> None:
        pass

    def _run_episode(self, state: State) -> int:
        """
        Interact from ``state`` until a terminal state or the step budget.

        Returns:
            Number of real steps taken.
        """
        steps = 0
        self.visited.add(state)
        while steps < self.max_steps_per_episode:
            actions = self.env.actions(state)
            if not actions:
                break

            action = epsilon_greedy_action(
                self._q_of(state, actions), actions, self.epsilon, self.rng
            )
            next_state = self.env.successor(action)
            self.env.add_state_id(state.id)
            self.env.add_state_id(next_state.id)
            self.visited.add(next_state)

            reward = self.env.reward(state, action, next_state)
            key = (state, action)
            self.q_update(key, reward, next_state)

            if key not in self.model:
                self._model_keys.append(key)
            self.model[key] = (next_state, reward)
            self._record_real_step(key)

            for _ in range(self.planning_steps):
                self.planning_update()

            state = next_state
            steps += 1
            self._advance_clock()

        self.total_steps += steps
        return steps

    def _record_real_step(self, key: StateAction) -> None:
        pass

    def _advance_clock(self) -> None:
        pass

    def _planning_reward(self, key: StateAction, reward: float) -> float:
        return reward

    def _q_of(self, state: State, actions: List[Action]) -> Dict[Action, float]:
        return {a: self.q.get((state, a), 0.0) for a in actions}

    def max_q(self, state: State) -> float:
        """max_a Q(state, a), 0.0 for terminal states."""
        return max(
            (self.q.get((state, a), 0.0) for a in self.env.actions(state)),
            default=0.0
        )

    def q_update(self, key: StateAction, reward: float, next_state: State) -> None:
        """One-step Q-learning update of ``key``."""
        old_q = self.q.get(key, 0.0)
        target = reward + self.gamma * self.max_q(next_state)
        self.q[key] = old_q + self.alpha * (target - old_q)

    def planning_update(self) -> None:
        """Replay one uniformly drawn model entry."""
        if not self._model_keys:
            return
        key = self._model_keys[int(self.rng.integers(0, len(self._model_keys)))]
        next_state, reward = self.model[key]
        self.q_update(key, self._planning_reward(key, reward), next_state)

    def get_q_values(self, state: State) -> Dict[Action, float]:
        """Q-values of every outgoing action of a visited state, {} otherwise."""
        if state not in self.visited:
            return {}
        return self._q_of(state, self.env.actions(state))


class DynaQPlus(DynaQ):
    """
    Dyna-Q+: Dyna-Q with an exploration bonus on planning updates.

    Episodes always restart from the environment's initial state.

    Attributes:
        kappa: Bonus coefficient.
        log_every_episodes: Progress logging period (episodes).
        time: Real interaction steps so far.
        last_visit: Value of ``time`` when each (state, action) was last executed.
    """

    label = "Dyna-Q+"

    def __init__(
        self,
        env: Environment,
        gamma: float,
        teta: float,
        alpha: float,
        epsilon: float,
        planning_steps: int,
        max_episodes: int,
        max_steps_per_episode: int,
        kappa: float,
        log_every_episodes: int,
        rng: Optional[np.random.Generator] = None
    ) -> None:
        """
        Args:
            kappa: Exploration bonus coefficient, non-negative.
            log_every_episodes: Progress logging period, in episodes.

        The other arguments are those of DynaQ.

        Raises:
            ValueError: If a hyperparameter is out of range.
        """
        super().__init__(
            env, gamma, teta, alpha, epsilon, planning_steps,
            max_episodes, max_steps_per_episode, rng=rng
        )
        if kappa < 0.0:
            raise ValueError(f"kappa must be non-negative, got {kappa}")
        self.kappa = kappa
        self.log_every_episodes = max(1, log_every_episodes)
        self.time = 0
        self.last_visit: Dict[StateAction, int] = {}

    def exploration_bonus(self, dt: int) -> float:
        """Bonus ``kappa * sqrt(dt)`` for a pair last tried ``dt`` steps ago."""
        return self.kappa * math.sqrt(max(0, dt))

    def _episode_start(self) -> State:
        return self.env.initial_state()

    def _record_real_step(self, key: StateAction) -> None:
        self.last_visit[key] = self.time

    def _advance_clock(self) -> None:
        self.time += 1

    def _planning_reward(self, key: StateAction, reward: float) -> float:
        dt = self.time - self.last_visit.get(key, 0)
        return reward + self.exploration_bonus(dt)

    def _end_of_episode(self, episode: int, steps: int) -> None:
        if episode % self.log_every_episodes == 0:
            logger.info(
                "[%s] episode=%d | steps(last episode)=%d | states=%d | model=%d "
                "| Q=%d | time=%d",
                self.label, episode, steps, len(self.env.discovered_state_ids()),
                len(self.model), len(self.q), self.time
            )
