"""Shared fixtures for NeuroTutor tests."""

from __future__ import annotations

import random

import pytest
import yaml

from neurotutor.catalog.registry import QuestionCatalog
from neurotutor.engine.models import Difficulty, Question, UserProfile, UserProgress
from neurotutor.state.store import MemoryStore

NOW = 1_760_000_000.0
DAY = 24 * 60 * 60


def make_record(
    index: int,
    correct: bool,
    *,
    topic: str = "Basics",
    difficulty: Difficulty = Difficulty.EASY,
    time_spent: float = 60.0,
    confidence: float = 50.0,
    concepts: list[str] | None = None,
    timestamp: float | None = None,
    next_review_date: float | None = None,
) -> UserProgress:
    return UserProgress(
        question_id=f"q{index}",
        topic=topic,
        difficulty=difficulty,
        timestamp=NOW - 3600 + index * 60 if timestamp is None else timestamp,
        attempts=1,
        time_spent=time_spent,
        total_time_spent=time_spent,
        correct=correct,
        confidence=confidence,
        concepts=list(concepts or []),
        next_review_date=next_review_date,
    )


def make_profile(pattern: list[bool], **record_kwargs) -> UserProfile:
    """Profile whose history follows ``pattern`` (oldest first)."""
    history = [make_record(i, c, **record_kwargs) for i, c in enumerate(pattern)]
    return UserProfile(progress_history=history)


def make_question(qid: str, topic: str = "Basics", difficulty: Difficulty = Difficulty.EASY, **kwargs) -> Question:
    kwargs.setdefault("title", qid)
    kwargs.setdefault("description", f"Solve {qid}")
    return Question(id=qid, topic=topic, difficulty=difficulty, **kwargs)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def bundle_file(tmp_path):
    """A small question bundle with two topics across all tiers."""
    data = {
        "learning_paths": [
            {
                "id": "path-beginner",
                "name": "Foundations",
                "description": "Start here",
                "topics": ["Basics", "Loops"],
                "estimated_hours": 5,
            },
        ],
        "questions": [
            {
                "id": "add",
                "topic": "Basics",
                "difficulty": "easy",
                "title": "Add",
                "description": "Return a + b.",
                "starter_code": "def add(a, b):\n    pass\n",
                "solution_code": "def add(a, b):\n    return a + b\n",
                "hints": ["Use +.", "Return the result."],
                "tags": ["operators"],
                "test_cases": [{"input": "add(1, 2)", "expected_output": "3"}],
                "estimated_time": 120,
            },
            {
                "id": "parity",
                "topic": "Basics",
                "difficulty": "easy",
                "title": "Parity",
                "description": "Return even or odd.",
                "starter_code": "def parity(n):\n    pass\n",
                "tags": ["conditionals"],
            },
            {
                "id": "grade",
                "topic": "Basics",
                "difficulty": "medium",
                "title": "Grade",
                "description": "Return a letter grade.",
                "starter_code": "def grade(score):\n    pass\n",
                "hints": ["Check the highest band first."],
                "tags": ["conditionals"],
            },
            {
                "id": "leap",
                "topic": "Basics",
                "difficulty": "hard",
                "title": "Leap",
                "description": "Leap years.",
                "starter_code": "def is_leap(year):\n    pass\n",
                "tags": ["conditionals", "operators"],
            },
            {
                "id": "sum-to",
                "topic": "Loops",
                "difficulty": "easy",
                "title": "Sum to n",
                "description": "Sum 1..n.",
                "tags": ["for-loops"],
            },
        ],
    }
    path = tmp_path / "questions.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


@pytest.fixture
def catalog(store, bundle_file, clock):
    return QuestionCatalog(store, bundle_file=bundle_file, clock=clock)
