"""Profile updater: folds one answer submission into a new profile."""

from __future__ import annotations

import copy
import logging
import random
import time
from datetime import datetime
from typing import Optional, Sequence

from neurotutor.engine import reinforcement
from neurotutor.engine.difficulty import (
    RECENT_WINDOW,
    calculate_adaptive_level,
    calculate_next_difficulty,
    difficulty_score,
)
from neurotutor.engine.metrics import (
    DAY_SECONDS,
    accuracy_of,
    calculate_learning_analytics,
    calculate_performance_metrics,
    daily_goal_for,
)
from neurotutor.engine.models import (
    Attempt,
    ConceptStats,
    Question,
    TopicStats,
    UserProfile,
    UserProgress,
)
from neurotutor.engine.reinforcement import RLOutcome, RLState
from neurotutor.engine.scheduler import calculate_next_review
from neurotutor.engine.wrong_submissions import WrongSubmissionTracker

logger = logging.getLogger(__name__)

MASTERY_SCALE = 1.2
COMPLETION_MASTERY = 80.0
COMPLETION_MIN_ATTEMPTS = 5


def _upsert_progress(
    profile: UserProfile,
    question: Question,
    is_correct: bool,
    time_spent: float,
    submitted_code: str,
    confidence: Optional[float],
    error_type: Optional[str],
    concepts: Sequence[str],
    hints_used: int,
    now: float,
) -> tuple[UserProgress, bool]:
    record = profile.find_progress(question.id)
    created = record is None
    if record is None:
        record = UserProgress(
            question_id=question.id,
            topic=question.topic,
            difficulty=question.difficulty,
            timestamp=now,
            attempts=0,
            time_to_first_attempt=time_spent,
        )
        profile.progress_history.append(record)

    record.attempts += 1
    record.attempt_history.append(Attempt(correct=is_correct, time_spent=time_spent))
    record.total_time_spent += time_spent
    record.time_spent = record.total_time_spent / record.attempts
    record.correct = is_correct
    record.submitted_code = submitted_code
    record.timestamp = now
    record.difficulty = question.difficulty
    record.hints_used += hints_used
    record.error_type = None if is_correct else error_type
    if confidence is not None:
        record.confidence = max(0.0, min(100.0, confidence))
    for concept in concepts:
        if concept not in record.concepts:
            record.concepts.append(concept)
    return record, created


def _update_topic_stats(
    profile: UserProfile,
    question: Question,
    is_correct: bool,
    time_spent: float,
    concepts: Sequence[str],
    now: float,
) -> TopicStats:
    stats = profile.topic_stats.setdefault(question.topic, TopicStats(topic=question.topic))
    stats.questions_attempted += 1
    if is_correct:
        stats.questions_correct += 1
    stats.average_accuracy = stats.questions_correct / stats.questions_attempted * 100
    stats.average_time += (time_spent - stats.average_time) / stats.questions_attempted
    stats.mastery_level = min(100.0, stats.average_accuracy * MASTERY_SCALE)

    for concept in concepts:
        entry = stats.concepts.setdefault(concept, ConceptStats())
        entry.attempted += 1
        if is_correct:
            entry.correct += 1

    tier = question.difficulty.value
    stats.difficulty_attempts[tier] = stats.difficulty_attempts.get(tier, 0) + 1
    stats.last_attempt = now

    if (
        stats.mastery_level >= COMPLETION_MASTERY
        and stats.questions_attempted >= COMPLETION_MIN_ATTEMPTS
        and question.topic not in profile.topics_completed
    ):
        profile.topics_completed.append(question.topic)
        logger.info("Topic %s completed", question.topic)
    return stats


def _update_streak(profile: UserProfile, now: float) -> None:
    last = profile.last_activity_date
    if last is None:
        profile.streak_count = 1
    elif datetime.fromtimestamp(last).date() == datetime.fromtimestamp(now).date():
        profile.streak_count = max(1, profile.streak_count)
    elif now - last <= DAY_SECONDS:
        profile.streak_count += 1
    else:
        profile.streak_count = 1
    profile.last_activity_date = now


def update_user_profile(
    profile: UserProfile,
    question: Question,
    is_correct: bool,
    time_spent: float,
    submitted_code: str,
    *,
    confidence: Optional[float] = None,
    error_type: Optional[str] = None,
    concepts: Optional[Sequence[str]] = None,
    solution_viewed: bool = False,
    hints_used: int = 0,
    wrong_tracker: Optional[WrongSubmissionTracker] = None,
    now: Optional[float] = None,
) -> UserProfile:
    """Return a new profile with the submission applied; ``profile`` is untouched."""
    now = time.time() if now is None else now
    time_spent = max(0.0, time_spent)
    concepts = list(concepts) if concepts is not None else list(question.tags)
    updated = copy.deepcopy(profile)

    record, created = _upsert_progress(
        updated, question, is_correct, time_spent, submitted_code,
        confidence, error_type, concepts, hints_used, now,
    )
    if solution_viewed and not record.solution_viewed:
        record.solution_viewed = True
        record.solution_viewed_at = now

    recent_accuracy = accuracy_of(updated.progress_history[-RECENT_WINDOW:])
    if is_correct:
        record.next_review_date = calculate_next_review(record.review_count, recent_accuracy, now)
        record.review_count += 1
        if wrong_tracker is not None:
            wrong_tracker.reset_streak(question.id)
    else:
        if created:
            # First sighting: put it on the review queue at the shortest interval
            record.next_review_date = calculate_next_review(0, recent_accuracy, now)
        if wrong_tracker is not None:
            wrong_tracker.track(question.id, error_type, time_spent)

    updated.total_questions_attempted += 1
    if is_correct:
        updated.correct_answers += 1
    updated.total_time_spent += time_spent
    updated.average_time_per_question = (
        updated.total_time_spent / updated.total_questions_attempted
    )

    _update_topic_stats(updated, question, is_correct, time_spent, concepts, now)

    updated.performance_metrics = calculate_performance_metrics(updated.progress_history)

    if is_correct:
        updated.current_difficulty = calculate_next_difficulty(
            updated, estimated_time=question.estimated_time,
        )
    score = difficulty_score(updated, estimated_time=question.estimated_time)
    updated.adaptive_level = calculate_adaptive_level(updated.current_difficulty, score)

    _update_streak(updated, now)
    updated.learning_analytics = calculate_learning_analytics(updated, now)
    updated.learning_style = updated.learning_analytics.learning_style
    updated.recommended_daily_goal = daily_goal_for(updated.learning_style)
    updated.last_analytics_update = now

    if updated.current_difficulty != profile.current_difficulty:
        logger.info(
            "Difficulty %s -> %s",
            profile.current_difficulty.value, updated.current_difficulty.value,
        )
    return updated


def update_user_profile_with_rl(
    profile: UserProfile,
    rl_state: RLState,
    question: Question,
    is_correct: bool,
    time_spent: float,
    submitted_code: str,
    *,
    rng: Optional[random.Random] = None,
    **kwargs,
) -> tuple[UserProfile, RLState, RLOutcome]:
    """Same as update_user_profile, and also trains the Q-table on the outcome.

    The returned RL state is a copy; the caller persists it under its own key.
    """
    updated = update_user_profile(
        profile, question, is_correct, time_spent, submitted_code, **kwargs,
    )
    rl = copy.deepcopy(rl_state)
    outcome = reinforcement.step(
        rl,
        before=profile,
        after=updated,
        topic=question.topic,
        is_correct=is_correct,
        time_spent=max(0.0, time_spent),
        rng=rng or random.Random(),
    )
    logger.debug(
        "RL %s action=%s reward=%.2f", outcome.state_key, outcome.action.value, outcome.reward,
    )
    return updated, rl, outcome
