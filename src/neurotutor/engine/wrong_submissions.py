"""Consecutive wrong-answer tracking per question."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

from neurotutor.state.store import KeyValueStore

WRONG_SUBMISSIONS_KEY = "wrong-submissions"

HINT_AFTER = 2
DOWNGRADE_AFTER = 4
SKIP_AFTER = 5

_MESSAGES = {
    1: "Not quite right. Try again!",
    2: "Still not right. Here's a hint: check your logic flow.",
    3: "Let's try a different approach. Consider breaking down the problem.",
    4: "This is challenging. Would you like to try an easier problem?",
}
_MOVE_ON = "Let's move on to another problem and come back to this later."


@dataclass
class WrongSubmissionContext:
    question_id: str
    attempts: int = 0
    consecutive_wrongs: int = 0
    last_error_type: Optional[str] = None
    time_spent_total: float = 0.0


class WrongSubmissionTracker:
    """Store-backed wrong streak counter consulted by the session."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _load(self) -> dict[str, WrongSubmissionContext]:
        raw = self.store.get(WRONG_SUBMISSIONS_KEY) or []
        return {item["question_id"]: WrongSubmissionContext(**item) for item in raw}

    def _save(self, contexts: dict[str, WrongSubmissionContext]) -> None:
        self.store.set(WRONG_SUBMISSIONS_KEY, [asdict(c) for c in contexts.values()])

    def get(self, question_id: str) -> Optional[WrongSubmissionContext]:
        return self._load().get(question_id)

    def track(self, question_id: str, error_type: Optional[str], time_spent: float) -> WrongSubmissionContext:
        contexts = self._load()
        context = contexts.setdefault(question_id, WrongSubmissionContext(question_id))
        context.attempts += 1
        context.consecutive_wrongs += 1
        context.last_error_type = error_type
        context.time_spent_total += time_spent
        self._save(contexts)
        return context

    def reset_streak(self, question_id: str) -> None:
        contexts = self._load()
        context = contexts.get(question_id)
        if context is None:
            return
        context.consecutive_wrongs = 0
        self._save(contexts)

    def clear(self) -> None:
        self.store.delete(WRONG_SUBMISSIONS_KEY)

    def _streak(self, question_id: str) -> int:
        context = self.get(question_id)
        return context.consecutive_wrongs if context else 0

    def should_provide_hint(self, question_id: str) -> bool:
        return self._streak(question_id) >= HINT_AFTER

    def should_downgrade_difficulty(self, question_id: str) -> bool:
        return self._streak(question_id) >= DOWNGRADE_AFTER

    def should_skip_question(self, question_id: str) -> bool:
        return self._streak(question_id) >= SKIP_AFTER

    def adaptive_message(self, question_id: str) -> str:
        streak = self._streak(question_id)
        if streak == 0:
            return ""
        return _MESSAGES.get(streak, _MOVE_ON)
