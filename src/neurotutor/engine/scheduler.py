"""Spaced repetition: when should an attempted question come back."""

from __future__ import annotations

from typing import Sequence

from neurotutor.engine.models import UserProgress

DAY_SECONDS = 24 * 60 * 60

# Days between reviews, indexed by how often the question was already reviewed
REVIEW_INTERVALS = [0.5, 1, 3, 7, 14, 30, 90]


def review_interval_days(review_count: int) -> float:
    index = max(0, min(review_count, len(REVIEW_INTERVALS) - 1))
    return REVIEW_INTERVALS[index]


def accuracy_multiplier(recent_accuracy: float) -> float:
    if recent_accuracy > 90:
        return 1.5
    if recent_accuracy < 60:
        return 0.5
    return 1.0


def calculate_next_review(review_count: int, recent_accuracy: float, now: float) -> float:
    """Timestamp of the next review; always later than ``now``."""
    days = review_interval_days(review_count) * accuracy_multiplier(recent_accuracy)
    return now + days * DAY_SECONDS


def due_reviews(history: Sequence[UserProgress], now: float) -> list[UserProgress]:
    return [
        r for r in history
        if r.next_review_date is not None and r.next_review_date <= now
    ]
