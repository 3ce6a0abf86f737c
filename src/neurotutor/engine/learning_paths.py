"""Learning paths: ordering predefined paths by progress and generating custom ones."""

from __future__ import annotations

import copy
import dataclasses
import logging
import time
from typing import Optional

from neurotutor.engine.metrics import DAY_SECONDS
from neurotutor.engine.models import Difficulty, LearningPath, UserProfile

logger = logging.getLogger(__name__)

REGENERATE_AFTER_DAYS = 7
MAX_CUSTOM_PATHS = 5


def user_level(profile: UserProfile) -> str:
    accuracy = profile.performance_metrics.accuracy
    if profile.current_difficulty == Difficulty.HARD and accuracy > 75:
        return "advanced"
    if profile.current_difficulty == Difficulty.MEDIUM and accuracy > 70:
        return "intermediate"
    return "beginner"


def reorder_by_progress(profile: UserProfile, path: LearningPath) -> LearningPath:
    """Incomplete topics first, each group ordered by ascending mastery."""
    def sort_key(topic: str) -> tuple[bool, float]:
        stats = profile.topic_stats.get(topic)
        mastery = stats.mastery_level if stats else 0.0
        return topic in profile.topics_completed, mastery

    return dataclasses.replace(path, topics=sorted(path.topics, key=sort_key))


def should_regenerate(profile: UserProfile, now: Optional[float] = None) -> bool:
    now = time.time() if now is None else now
    last = profile.last_path_generation_time
    if last is None or (now - last) / DAY_SECONDS > REGENERATE_AFTER_DAYS:
        return True
    handled = set(profile.topics_completed_at_last_path)
    return any(topic not in handled for topic in profile.topics_completed)


async def generate_personalized_path(
    profile: UserProfile, provider, topics: list[str], now: Optional[float] = None,
) -> UserProfile:
    """Ask the provider for a custom path and return a profile that follows it.

    Raises AIUnavailableError when the provider fails; ``profile`` is untouched.
    """
    now = time.time() if now is None else now
    level = user_level(profile)
    analytics = profile.learning_analytics
    logger.info("Generating learning path for %s learner", level)

    path = await provider.generate_learning_path(
        level, list(analytics.weak_areas), list(analytics.strong_areas), topics,
    )

    updated = copy.deepcopy(profile)
    updated.custom_learning_paths = [*updated.custom_learning_paths, path][-MAX_CUSTOM_PATHS:]
    updated.current_learning_path = path.id
    updated.last_path_generation_time = now
    updated.topics_completed_at_last_path = list(profile.topics_completed)
    return updated


def current_path(profile: UserProfile, predefined: list[LearningPath]) -> Optional[LearningPath]:
    for path in [*profile.custom_learning_paths, *predefined]:
        if path.id == profile.current_learning_path:
            return reorder_by_progress(profile, path)
    return None
