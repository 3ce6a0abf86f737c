"""Difficulty policy: weighted performance score with streak, time and confidence multipliers.

The policy is a pure function of the profile. It looks at the ten most recent
progress records and moves the learner at most one tier per call. Thresholds
differ per tier so a learner does not bounce between two tiers on every
submission.
"""

from __future__ import annotations

from typing import Optional, Sequence

from neurotutor.engine.metrics import calculate_performance_metrics
from neurotutor.engine.models import Difficulty, UserProfile, UserProgress

RECENT_WINDOW = 10
MIN_ATTEMPTS = 5

WEIGHTS = {
    "accuracy": 0.4,
    "speed": 0.2,
    "consistency": 0.25,
    "velocity": 0.15,
}

_TIER_BASE_LEVEL = {Difficulty.EASY: 1, Difficulty.MEDIUM: 4, Difficulty.HARD: 7}


def streaks(records: Sequence[UserProgress]) -> tuple[int, int]:
    """Return (correct_streak, wrong_streak) counted back from the newest record."""
    if not records:
        return 0, 0
    newest = records[-1].correct
    run = 0
    for record in reversed(records):
        if record.correct != newest:
            break
        run += 1
    return (run, 0) if newest else (0, run)


def streak_multiplier(records: Sequence[UserProgress]) -> float:
    correct, wrong = streaks(records)
    if correct >= 5:
        return 1.3
    if correct >= 3:
        return 1.15
    if correct >= 1:
        return 1.05
    if wrong >= 3:
        return 0.7
    if wrong >= 2:
        return 0.85
    return 1.0


def time_multiplier(accuracy: float, average_time: float, estimated_time: float) -> float:
    if estimated_time <= 0:
        return 1.0
    if average_time > estimated_time * 2:
        return 0.8
    if average_time > estimated_time * 1.5:
        return 0.9
    if accuracy > 80 and average_time < estimated_time * 0.7:
        return 1.2
    return 1.0


def confidence_multiplier(confidence: float) -> float:
    if confidence < 30:
        return 0.75
    if confidence < 50:
        return 0.9
    if confidence > 80:
        return 1.2
    if confidence > 70:
        return 1.1
    return 1.0


def difficulty_score(profile: UserProfile, estimated_time: Optional[float] = None) -> float:
    """Weighted score in roughly [0, 1.9]; higher means ready for harder work."""
    recent = profile.progress_history[-RECENT_WINDOW:]
    metrics = calculate_performance_metrics(recent, window=RECENT_WINDOW)

    base = (
        metrics.accuracy / 100 * WEIGHTS["accuracy"]
        + metrics.speed / 100 * WEIGHTS["speed"]
        + metrics.consistency / 100 * WEIGHTS["consistency"]
        + max(0.0, metrics.learning_velocity) / 100 * WEIGHTS["velocity"]
    )

    if estimated_time is None:
        estimated_time = profile.current_difficulty.target_time
    average_time = sum(r.time_spent for r in recent) / len(recent) if recent else 0.0

    return (
        base
        * streak_multiplier(recent)
        * time_multiplier(metrics.accuracy, average_time, estimated_time)
        * confidence_multiplier(metrics.confidence_level)
    )


def next_tier(current: Difficulty, score: float) -> Difficulty:
    if current == Difficulty.EASY:
        if score >= 0.8:
            return Difficulty.MEDIUM
    elif current == Difficulty.MEDIUM:
        if score >= 0.85:
            return Difficulty.HARD
        if score < 0.55:
            return Difficulty.EASY
    elif current == Difficulty.HARD:
        if score < 0.6:
            return Difficulty.MEDIUM
    return current


def calculate_next_difficulty(
    profile: UserProfile, estimated_time: Optional[float] = None,
) -> Difficulty:
    """Decide the tier for the next question."""
    if len(profile.progress_history[-RECENT_WINDOW:]) < MIN_ATTEMPTS:
        return Difficulty.EASY
    return next_tier(profile.current_difficulty, difficulty_score(profile, estimated_time))


def calculate_adaptive_level(difficulty: Difficulty, score: float) -> int:
    level = _TIER_BASE_LEVEL[difficulty] + round(min(max(score, 0.0), 1.0) * 3)
    return max(1, min(10, level))


def shift_tier(current: Difficulty, step: int) -> Difficulty:
    """Move ``step`` tiers up (positive) or down (negative), saturating at the ends."""
    order = list(Difficulty)
    index = max(0, min(len(order) - 1, order.index(current) + step))
    return order[index]
