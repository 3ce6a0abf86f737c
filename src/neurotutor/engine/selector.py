"""Question selection: due reviews first, then weak concepts, then fresh material."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from neurotutor.engine.metrics import weak_concepts
from neurotutor.engine.models import Question, UserProfile
from neurotutor.engine.scheduler import due_reviews


def _mean_mastery(concepts: Sequence[str], mastery: dict[str, float]) -> float:
    if not concepts:
        return 0.0
    return sum(mastery.get(c, 0.0) for c in concepts) / len(concepts)


def select_due_review(
    catalog: Sequence[Question], profile: UserProfile, topic: str, now: float,
) -> Optional[Question]:
    """Due question in ``topic`` whose concepts the learner knows least."""
    by_id = {q.id: q for q in catalog}
    mastery = profile.performance_metrics.concept_mastery
    best: Optional[Question] = None
    best_score = float("inf")
    for record in due_reviews(profile.progress_history, now):
        question = by_id.get(record.question_id)
        if question is None or question.topic != topic:
            continue
        concepts = record.concepts or list(question.tags)
        score = _mean_mastery(concepts, mastery)
        if score < best_score:
            best, best_score = question, score
    return best


def select_next_question(
    catalog: Sequence[Question],
    profile: UserProfile,
    topic: str,
    now: float,
    rng: Optional[random.Random] = None,
) -> Optional[Question]:
    """Pick the next question for ``topic``, relaxing filters step by step.

    Returns None when every question in the topic was attempted; the caller
    then resets attempt history to recycle questions.
    """
    rng = rng or random.Random()

    review = select_due_review(catalog, profile, topic, now)
    if review is not None:
        return review

    attempted = profile.attempted_ids()
    fresh = [
        q for q in catalog
        if q.topic == topic
        and q.difficulty == profile.current_difficulty
        and q.id not in attempted
    ]

    weak = set(weak_concepts(profile.performance_metrics))
    if weak:
        targeted = [q for q in fresh if weak.intersection(q.tags)]
        if targeted:
            return rng.choice(targeted)

    if fresh:
        return rng.choice(fresh)

    for question in catalog:
        if question.topic == topic and question.id not in attempted:
            return question
    return None


def select_alternative_question(
    catalog: Sequence[Question],
    profile: UserProfile,
    topic: str,
    exclude_id: str,
    rng: Optional[random.Random] = None,
) -> Optional[Question]:
    """Swap the current question for another of the same topic and tier."""
    rng = rng or random.Random()
    candidates = [
        q for q in catalog
        if q.topic == topic
        and q.difficulty == profile.current_difficulty
        and q.id != exclude_id
    ]
    attempted = profile.attempted_ids()
    unseen = [q for q in candidates if q.id not in attempted]
    pool = unseen or candidates
    return rng.choice(pool) if pool else None
