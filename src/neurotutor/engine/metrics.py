"""Performance metrics and learning analytics derived from attempt history."""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime
from typing import Sequence

from neurotutor.engine.models import (
    LearningAnalytics,
    LearningStyle,
    PerformanceMetrics,
    UserProfile,
    UserProgress,
)

METRICS_WINDOW = 50
CONSISTENCY_CHUNK = 10
SESSION_GAP_SECONDS = 30 * 60
DAY_SECONDS = 24 * 60 * 60
WEAK_CONCEPT_THRESHOLD = 70.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def accuracy_of(records: Sequence[UserProgress]) -> float:
    """Percent of records whose latest attempt was correct (0 when empty)."""
    if not records:
        return 0.0
    correct = sum(1 for r in records if r.correct)
    return min(100.0, correct / len(records) * 100)


def _speed(records: Sequence[UserProgress]) -> float:
    hours = sum(r.time_spent for r in records) / 3600
    if hours <= 0:
        return 0.0
    return min(100.0, len(records) / hours * 100)


def _consistency(records: Sequence[UserProgress]) -> float:
    chunks = [
        records[i : i + CONSISTENCY_CHUNK]
        for i in range(0, len(records), CONSISTENCY_CHUNK)
    ]
    if not chunks:
        return 0.0
    scores = [accuracy_of(c) for c in chunks]
    mean = sum(scores) / len(scores)
    variance = sum((s - mean) ** 2 for s in scores) / len(scores)
    return max(0.0, 100 - math.sqrt(variance))


def _velocity(records: Sequence[UserProgress]) -> float:
    if len(records) < 2:
        return 0.0
    mid = len(records) // 2
    first, second = records[:mid], records[mid:]
    return clamp(accuracy_of(second) - accuracy_of(first), -100.0, 100.0)


def _concept_mastery(records: Sequence[UserProgress]) -> dict[str, float]:
    attempted: Counter[str] = Counter()
    correct: Counter[str] = Counter()
    for record in records:
        for concept in record.concepts:
            attempted[concept] += 1
            if record.correct:
                correct[concept] += 1
    return {c: correct[c] / n * 100 for c, n in attempted.items()}


def calculate_performance_metrics(
    history: Sequence[UserProgress], window: int = METRICS_WINDOW,
) -> PerformanceMetrics:
    """Summarize the most recent ``window`` progress records."""
    records = list(history[-window:]) if window > 0 else []
    if not records:
        return PerformanceMetrics()

    errors = Counter(r.error_type for r in records if r.error_type)
    return PerformanceMetrics(
        accuracy=accuracy_of(records),
        speed=_speed(records),
        consistency=_consistency(records),
        learning_velocity=_velocity(records),
        confidence_level=sum(r.confidence for r in records) / len(records),
        error_patterns=dict(errors),
        concept_mastery=_concept_mastery(records),
    )


def weak_concepts(metrics: PerformanceMetrics) -> list[str]:
    return [
        c for c, m in metrics.concept_mastery.items() if m < WEAK_CONCEPT_THRESHOLD
    ]


def classify_learning_style(metrics: PerformanceMetrics) -> LearningStyle:
    if metrics.accuracy >= 80 and metrics.learning_velocity >= 0:
        return LearningStyle.FAST_LEARNER
    if metrics.accuracy < 50 or metrics.learning_velocity <= -20:
        return LearningStyle.STRUGGLING
    return LearningStyle.STEADY_LEARNER


def daily_goal_for(style: LearningStyle) -> int:
    return {
        LearningStyle.FAST_LEARNER: 8,
        LearningStyle.STEADY_LEARNER: 5,
        LearningStyle.STRUGGLING: 3,
    }[style]


def _day_part(timestamp: float) -> str:
    hour = datetime.fromtimestamp(timestamp).hour
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "night"


def _sessions(history: Sequence[UserProgress]) -> int:
    stamps = sorted(r.timestamp for r in history)
    if not stamps:
        return 0
    sessions = 1
    for prev, cur in zip(stamps, stamps[1:]):
        if cur - prev > SESSION_GAP_SECONDS:
            sessions += 1
    return sessions


def calculate_learning_analytics(profile: UserProfile, now: float) -> LearningAnalytics:
    """Aggregate session, topic and style information for the profile."""
    history = profile.progress_history
    metrics = profile.performance_metrics

    sessions = _sessions(history)
    total_time = sum(r.total_time_spent for r in history)

    ranked = sorted(
        profile.topic_stats.values(), key=lambda s: s.average_accuracy,
    )
    weak = [s.topic for s in ranked[:3]]
    strong = [s.topic for s in reversed(ranked[-3:])]

    focus: list[str] = []
    for item in weak + weak_concepts(metrics):
        if item not in focus:
            focus.append(item)

    peaks = Counter(_day_part(r.timestamp) for r in history if r.correct)
    peak = peaks.most_common(1)[0][0] if peaks else "afternoon"

    if metrics.learning_velocity > 0:
        days = min(365.0, 7 * (100 - metrics.accuracy) / metrics.learning_velocity)
    else:
        days = 30.0

    return LearningAnalytics(
        total_session_time=total_time,
        sessions_completed=sessions,
        average_session_duration=total_time / sessions if sessions else 0.0,
        peak_performance_time=peak,
        weak_areas=weak,
        strong_areas=strong,
        recommended_focus_areas=focus[:5],
        estimated_mastery_date=now + days * DAY_SECONDS,
        learning_style=classify_learning_style(metrics),
    )
