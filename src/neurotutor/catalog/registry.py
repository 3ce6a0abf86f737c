"""Question catalog: the shipped bundle plus imported and generated questions."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from neurotutor.catalog.loader import (
    load_bundle,
    load_csv,
    question_from_dict,
    question_to_dict,
)
from neurotutor.engine.models import Difficulty, LearningPath, Question, UserProfile
from neurotutor.errors import CatalogError
from neurotutor.state.store import KeyValueStore

logger = logging.getLogger(__name__)

CSV_CACHE_KEY = "csv-questions"
AI_CACHE_KEY = "ai-questions"
CSV_CACHE_MAX_AGE = 7 * 24 * 3600
AI_CACHE_LIMIT = 200


@dataclass
class AnsweredStats:
    total_answered: int = 0
    by_difficulty: dict[str, int] = field(default_factory=dict)
    correct_count: int = 0
    accuracy: float = 0.0


class QuestionCatalog:
    """Merges static, CSV-imported and AI-generated questions, in that order.

    A question id seen in an earlier source shadows later ones.
    """

    def __init__(
        self,
        store: KeyValueStore,
        bundle_file: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.bundle_file = bundle_file or (Path(__file__).parent / "questions.yaml")
        self.clock = clock
        self._static: Optional[list[Question]] = None
        self._paths: list[LearningPath] = []

    def _load_static(self) -> list[Question]:
        if self._static is None:
            self._static, self._paths = load_bundle(self.bundle_file)
            logger.debug("Loaded %d static questions", len(self._static))
        return self._static

    def _csv_questions(self) -> list[Question]:
        cached = self.store.get(CSV_CACHE_KEY)
        if not cached:
            return []
        if self.clock() - cached.get("timestamp", 0) > CSV_CACHE_MAX_AGE:
            # A stale cache is only replaced when its source file can be read again
            source = Path(cached["source"]) if cached.get("source") else None
            if source is not None and source.is_file():
                logger.info("CSV question cache stale, re-importing %s", source)
                try:
                    self.import_csv(source)
                    cached = self.store.get(CSV_CACHE_KEY)
                except CatalogError as e:
                    logger.warning("Re-import of %s failed, keeping cached questions: %s", source, e)
            else:
                logger.debug("CSV question cache stale and source unavailable, keeping it")
        return [question_from_dict(raw, source="csv") for raw in cached.get("questions", [])]

    def _ai_questions(self) -> list[Question]:
        return [question_from_dict(raw, source="ai") for raw in self.store.get(AI_CACHE_KEY) or []]

    @property
    def questions(self) -> list[Question]:
        merged: list[Question] = []
        seen: set[str] = set()
        for source in (self._load_static(), self._csv_questions(), self._ai_questions()):
            for question in source:
                if question.id in seen:
                    continue
                seen.add(question.id)
                merged.append(question)
        return merged

    def get(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def topics(self) -> list[str]:
        """Distinct topics in catalog order."""
        seen: dict[str, None] = {}
        for question in self.questions:
            seen.setdefault(question.topic, None)
        return list(seen)

    def learning_paths(self) -> list[LearningPath]:
        self._load_static()
        return list(self._paths)

    def add_ai_question(self, question: Question) -> None:
        cached = self.store.get(AI_CACHE_KEY) or []
        cached.append(question_to_dict(question))
        self.store.set(AI_CACHE_KEY, cached[-AI_CACHE_LIMIT:])

    def import_csv(self, csv_file: Path) -> int:
        """Replace the CSV cache with the rows of ``csv_file``; returns the count."""
        imported = load_csv(csv_file)
        self.store.set(CSV_CACHE_KEY, {
            "timestamp": self.clock(),
            "source": str(Path(csv_file).resolve()),
            "questions": [question_to_dict(q) for q in imported],
        })
        logger.info("Imported %d questions from %s", len(imported), csv_file)
        return len(imported)

    def answered_stats(self, profile: UserProfile) -> AnsweredStats:
        records = profile.progress_history
        by_difficulty = {d.value: 0 for d in Difficulty}
        for record in records:
            by_difficulty[record.difficulty.value] += 1
        correct = sum(1 for r in records if r.correct)
        return AnsweredStats(
            total_answered=len(records),
            by_difficulty=by_difficulty,
            correct_count=correct,
            accuracy=correct / len(records) * 100 if records else 0.0,
        )
