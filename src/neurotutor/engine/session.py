"""Practice session: select -> present -> evaluate -> update -> persist."""

from __future__ import annotations

import dataclasses
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from neurotutor.catalog.registry import QuestionCatalog
from neurotutor.config.settings import DifficultySource, Settings
from neurotutor.engine.difficulty import calculate_adaptive_level, difficulty_score, shift_tier
from neurotutor.engine.evaluator import EvalResult, Evaluator
from neurotutor.engine.learning_paths import (
    current_path,
    generate_personalized_path,
    should_regenerate,
)
from neurotutor.engine.models import Difficulty, LearningPath, Question, UserProfile
from neurotutor.engine.reinforcement import RLAction, apply_action
from neurotutor.engine.selector import select_alternative_question, select_next_question
from neurotutor.engine.updater import update_user_profile, update_user_profile_with_rl
from neurotutor.engine.wrong_submissions import HINT_AFTER, WrongSubmissionTracker
from neurotutor.errors import AIUnavailableError, CatalogError
from neurotutor.state.repository import ProfileRepository, RLStateRepository
from neurotutor.state.store import KeyValueStore, SqliteStore

logger = logging.getLogger(__name__)

PENDING_AIDS_KEY = "pending-aids"


@dataclass
class SubmissionResult:
    question_id: str
    passed: bool
    evaluation: EvalResult
    difficulty: Difficulty  # live tier after this submission
    policy_difficulty: Difficulty
    rl_action: Optional[RLAction] = None
    rl_difficulty: Optional[Difficulty] = None
    reward: Optional[float] = None
    message: str = ""
    hint: Optional[str] = None
    skip_suggested: bool = False
    downgraded: bool = False
    next_review_date: Optional[float] = None
    topics_completed: list[str] = field(default_factory=list)


class PracticeSession:
    """Owns the stores for one learner between open() and close()."""

    def __init__(
        self,
        store: KeyValueStore,
        catalog: Optional[QuestionCatalog] = None,
        settings: Optional[Settings] = None,
        provider=None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock
        self.rng = rng or random.Random()
        self.catalog = catalog or QuestionCatalog(store, clock=clock)
        self.provider = provider
        self.evaluator = Evaluator(provider)
        self.profiles = ProfileRepository(store)
        self.rl_states = RLStateRepository(store)
        self.wrong_tracker = WrongSubmissionTracker(store)

    @classmethod
    def open(cls, settings: Optional[Settings] = None) -> "PracticeSession":
        settings = settings or Settings.load()
        store = SqliteStore(settings.data_dir / "state.db")
        from neurotutor.engine.ai_provider import ClaudeProvider
        provider = ClaudeProvider(settings)
        return cls(store, settings=settings, provider=provider if provider.available else None)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "PracticeSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def profile(self) -> UserProfile:
        return self.profiles.load()

    def _question(self, question_id: str) -> Question:
        question = self.catalog.get(question_id)
        if question is None:
            raise CatalogError(f"Unknown question: {question_id}")
        return question

    # --- Selection ---

    def next_question(self, topic: Optional[str] = None) -> Optional[Question]:
        """Next question for ``topic``; recycles seen questions once the topic runs dry."""
        topic = topic or self.settings.default_topic
        profile = self.profile
        questions = self.catalog.questions
        question = select_next_question(questions, profile, topic, self.clock(), self.rng)
        if question is None:
            logger.info("Every %s question attempted, recycling", topic)
            recycled = dataclasses.replace(profile, progress_history=[])
            question = select_next_question(questions, recycled, topic, self.clock(), self.rng)
        return question

    def reload_question(self, current_id: str, topic: Optional[str] = None) -> Optional[Question]:
        topic = topic or self.settings.default_topic
        return select_alternative_question(
            self.catalog.questions, self.profile, topic, current_id, self.rng,
        )

    async def fetch_generated_question(self, topic: Optional[str] = None) -> Optional[Question]:
        """Generate a fresh question, falling back to the catalog when AI is unavailable."""
        topic = topic or self.settings.default_topic
        if self.provider is None:
            return self.next_question(topic)
        profile = self.profile
        try:
            question = await self.provider.generate_question(
                profile.current_difficulty, topic=topic, profile=profile,
            )
        except AIUnavailableError as e:
            logger.warning("Question generation failed, using catalog: %s", e)
            return self.next_question(topic)
        self.catalog.add_ai_question(question)
        return question

    # --- Learning aids ---

    def _pending(self) -> dict:
        return self.store.get(PENDING_AIDS_KEY) or {"hints": {}, "solutions": []}

    def get_hint(self, question_id: str) -> Optional[str]:
        """Reveal the next unseen hint for the question."""
        question = self._question(question_id)
        if not question.hints:
            return None
        pending = self._pending()
        used = pending["hints"].get(question_id, 0)
        pending["hints"][question_id] = used + 1
        self.store.set(PENDING_AIDS_KEY, pending)
        return question.hints[min(used, len(question.hints) - 1)]

    def view_solution(self, question_id: str) -> Optional[str]:
        question = self._question(question_id)
        pending = self._pending()
        if question_id not in pending["solutions"]:
            pending["solutions"].append(question_id)
            self.store.set(PENDING_AIDS_KEY, pending)
        return question.solution_code

    def _consume_aids(self, question_id: str) -> tuple[int, bool]:
        pending = self._pending()
        hints_used = pending["hints"].pop(question_id, 0)
        viewed = question_id in pending["solutions"]
        if viewed:
            pending["solutions"].remove(question_id)
        self.store.set(PENDING_AIDS_KEY, pending)
        return hints_used, viewed

    # --- Submission ---

    async def submit(
        self,
        question_id: str,
        code: str,
        time_spent: float,
        confidence: Optional[float] = None,
    ) -> SubmissionResult:
        question = self._question(question_id)
        evaluation = await self.evaluator.evaluate(code, question)
        passed = evaluation.passed
        hints_used, solution_viewed = self._consume_aids(question_id)
        now = self.clock()

        before = self.profile
        kwargs = dict(
            confidence=confidence,
            error_type=evaluation.error_type,
            solution_viewed=solution_viewed,
            hints_used=hints_used,
            wrong_tracker=self.wrong_tracker,
            now=now,
        )
        outcome = None
        if self.settings.engine.use_rl:
            updated, rl_state, outcome = update_user_profile_with_rl(
                before, self.rl_states.load(), question, passed, time_spent, code,
                rng=self.rng, **kwargs,
            )
            self.rl_states.save(rl_state)
        else:
            updated = update_user_profile(before, question, passed, time_spent, code, **kwargs)

        policy_tier = updated.current_difficulty
        rl_tier = apply_action(before.current_difficulty, outcome.action) if outcome else None
        live = policy_tier
        if self.settings.engine.difficulty_source == DifficultySource.RL and rl_tier is not None:
            live = rl_tier

        downgraded = False
        if not passed and self.wrong_tracker.should_downgrade_difficulty(question_id):
            lowered = shift_tier(live, -1)
            downgraded = lowered != live
            live = lowered

        if live != updated.current_difficulty:
            updated.current_difficulty = live
            updated.adaptive_level = calculate_adaptive_level(
                live, difficulty_score(updated, estimated_time=question.estimated_time),
            )
        self.profiles.save(updated)

        if passed:
            message = evaluation.encouragement
            hint = None
        else:
            message = self.wrong_tracker.adaptive_message(question_id)
            hint = None
            if self.wrong_tracker.should_provide_hint(question_id) and question.hints:
                streak = self.wrong_tracker.get(question_id).consecutive_wrongs
                hint = question.hints[min(streak - HINT_AFTER, len(question.hints) - 1)]

        record = updated.find_progress(question_id)
        return SubmissionResult(
            question_id=question_id,
            passed=passed,
            evaluation=evaluation,
            difficulty=live,
            policy_difficulty=policy_tier,
            rl_action=outcome.action if outcome else None,
            rl_difficulty=rl_tier,
            reward=outcome.reward if outcome else None,
            message=message,
            hint=hint,
            skip_suggested=not passed and self.wrong_tracker.should_skip_question(question_id),
            downgraded=downgraded,
            next_review_date=record.next_review_date if record else None,
            topics_completed=list(updated.topics_completed),
        )

    # --- Learning paths ---

    def learning_path(self) -> Optional[LearningPath]:
        return current_path(self.profile, self.catalog.learning_paths())

    async def refresh_learning_path(self, force: bool = False) -> Optional[LearningPath]:
        """Regenerate the custom path when due; keeps the current one if AI is unavailable."""
        profile = self.profile
        if self.provider is not None and (force or should_regenerate(profile, self.clock())):
            try:
                profile = await generate_personalized_path(
                    profile, self.provider, self.catalog.topics(), self.clock(),
                )
                self.profiles.save(profile)
            except AIUnavailableError as e:
                logger.warning("Learning path generation failed: %s", e)
        return current_path(profile, self.catalog.learning_paths())

    def reset(self, rl: bool = False) -> None:
        self.profiles.reset()
        self.wrong_tracker.clear()
        self.store.delete(PENDING_AIDS_KEY)
        if rl:
            self.rl_states.reset()
