"""Tabular Q-learning tracker that learns which adaptation works for a learner.

The state space is a coarse discretization of the profile:

    topic | tier | accuracy bucket | velocity bucket | consistency bucket | recent correct

and the action space is the five adaptations the session can take. Values are
stored sparsely: a state only holds the actions that were actually tried, in
the order they were first tried. That order is also the tie-break when two
actions share the best value.

Learning rate and exploration both decay with the episode count toward a
floor, so the tracker keeps adapting slowly after it has settled.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from neurotutor.engine.difficulty import shift_tier
from neurotutor.engine.models import Difficulty, UserProfile

logger = logging.getLogger(__name__)

DISCOUNT_FACTOR = 0.95
INITIAL_LEARNING_RATE = 0.2
MIN_LEARNING_RATE = 0.05
LEARNING_RATE_DECAY = 0.9995
INITIAL_EXPLORATION = 0.3
MIN_EXPLORATION = 0.05
EXPLORATION_DECAY = 0.998
CONVERGENCE_EVERY = 20


class RLAction(str, Enum):
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    MAINTAIN = "maintain"
    FOCUS_WEAK = "focusWeak"
    REVIEW_PREVIOUS = "reviewPrevious"


@dataclass
class RLState:
    q_table: dict[str, dict[str, float]] = field(default_factory=dict)
    exploration_rate: float = INITIAL_EXPLORATION
    episode_count: int = 0
    total_reward: float = 0.0
    average_reward: float = 0.0
    convergence_score: float = 0.0
    last_action: Optional[RLAction] = None


@dataclass
class RLOutcome:
    """What one tracker step did, reported back to the caller."""
    state_key: str
    action: RLAction
    reward: float
    next_state_key: str
    new_value: float


def _bucket(value: float, bounds: list[float]) -> int:
    for i, bound in enumerate(bounds):
        if value < bound:
            return i
    return len(bounds)


def state_key(profile: UserProfile, topic: str) -> str:
    """Discretize the profile into a Q-table key."""
    metrics = profile.performance_metrics
    accuracy = _bucket(metrics.accuracy, [20, 40, 60, 80])
    velocity = _bucket(metrics.learning_velocity, [-20, 0, 20])
    if metrics.consistency < 40:
        consistency = 0
    elif metrics.consistency <= 75:
        consistency = 1
    else:
        consistency = 2
    recent = sum(1 for r in profile.progress_history[-3:] if r.correct)
    return (
        f"{topic}|{profile.current_difficulty.value}"
        f"|a{accuracy}|v{velocity}|c{consistency}|r{recent}"
    )


def learning_rate(episode_count: int) -> float:
    return max(MIN_LEARNING_RATE, INITIAL_LEARNING_RATE * LEARNING_RATE_DECAY ** episode_count)


def exploration_rate(episode_count: int) -> float:
    return max(MIN_EXPLORATION, INITIAL_EXPLORATION * EXPLORATION_DECAY ** episode_count)


def best_action(rl: RLState, key: str) -> RLAction:
    entry = rl.q_table.get(key)
    if not entry:
        return RLAction.MAINTAIN
    best_name, best_value = None, float("-inf")
    for name, value in entry.items():
        if value > best_value:
            best_name, best_value = name, value
    return RLAction(best_name)


def select_action(rl: RLState, key: str, rng: random.Random) -> RLAction:
    """Epsilon-greedy choice for ``key``."""
    if rng.random() < rl.exploration_rate:
        return rng.choice(list(RLAction))
    return best_action(rl, key)


def calculate_reward(
    is_correct: bool,
    difficulty: Difficulty,
    accuracy: float,
    previous_accuracy: float,
    time_spent: float,
    consistency: float,
) -> float:
    reward = 0.0
    if is_correct:
        reward += 20 * difficulty.multiplier
        reward += max(0.0, accuracy - previous_accuracy) * 0.5
        if accuracy >= 85 and difficulty != Difficulty.HARD:
            reward += 10
    else:
        reward -= 10
        if accuracy < 50:
            reward -= 5
        # Trying hard problems while still shaky earns a little credit
        if difficulty == Difficulty.HARD and previous_accuracy < 70:
            reward += 3

    target = difficulty.target_time
    if time_spent <= target:
        reward += 5
    elif time_spent > target * 2:
        reward -= 3

    if consistency > 75:
        reward += 2
    elif consistency < 40:
        reward -= 2
    return reward


def update_q_value(
    rl: RLState, key: str, action: RLAction, reward: float, next_key: str,
) -> float:
    """Apply one Q-learning step in place and return the new value."""
    entry = rl.q_table.setdefault(key, {})
    old = entry.get(action.value, 0.0)
    next_entry = rl.q_table.get(next_key)
    max_next = max(next_entry.values()) if next_entry else 0.0

    alpha = learning_rate(rl.episode_count)
    new = old + alpha * (reward + DISCOUNT_FACTOR * max_next - old)
    entry[action.value] = new
    return new


def convergence_score(q_table: dict[str, dict[str, float]]) -> float:
    variances = []
    for entry in q_table.values():
        if len(entry) < 2:
            continue
        values = list(entry.values())
        mean = sum(values) / len(values)
        variances.append(sum((v - mean) ** 2 for v in values) / len(values))
    if not variances:
        return 0.0
    return max(0.0, min(100.0, 100 - sum(variances) / len(variances)))


def record_episode(rl: RLState, reward: float) -> None:
    rl.episode_count += 1
    rl.total_reward += reward
    rl.average_reward = rl.total_reward / rl.episode_count
    rl.exploration_rate = exploration_rate(rl.episode_count)
    if rl.episode_count % CONVERGENCE_EVERY == 0:
        rl.convergence_score = convergence_score(rl.q_table)
        logger.debug(
            "RL convergence %.1f after %d episodes",
            rl.convergence_score, rl.episode_count,
        )


def apply_action(current: Difficulty, action: RLAction) -> Difficulty:
    """Tier implied by an action; only upgrade and downgrade move it."""
    if action == RLAction.UPGRADE:
        return shift_tier(current, 1)
    if action == RLAction.DOWNGRADE:
        return shift_tier(current, -1)
    return current


def step(
    rl: RLState,
    before: UserProfile,
    after: UserProfile,
    topic: str,
    is_correct: bool,
    time_spent: float,
    rng: random.Random,
) -> RLOutcome:
    """Run a full select/reward/update cycle for one submission."""
    key = state_key(before, topic)
    action = select_action(rl, key, rng)

    previous = before.performance_metrics
    metrics = after.performance_metrics
    reward = calculate_reward(
        is_correct=is_correct,
        difficulty=before.current_difficulty,
        accuracy=metrics.accuracy,
        previous_accuracy=previous.accuracy,
        time_spent=time_spent,
        consistency=metrics.consistency,
    )

    next_key = state_key(after, topic)
    new_value = update_q_value(rl, key, action, reward, next_key)
    rl.last_action = action
    record_episode(rl, reward)

    return RLOutcome(
        state_key=key,
        action=action,
        reward=reward,
        next_state_key=next_key,
        new_value=new_value,
    )
