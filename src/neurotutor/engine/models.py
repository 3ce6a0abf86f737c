"""Domain model for the adaptive practice engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def multiplier(self) -> float:
        return {"easy": 1.0, "medium": 1.5, "hard": 2.0}[self.value]

    @property
    def target_time(self) -> float:
        """Seconds a learner is expected to need at this tier."""
        return {"easy": 300.0, "medium": 600.0, "hard": 900.0}[self.value]

    @classmethod
    def parse(cls, value: str) -> "Difficulty":
        """Map free-form labels ("Easy", " HARD ") to a tier, medium if unknown."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.MEDIUM


class QuestionType(str, Enum):
    CODE_WRITING = "code-writing"
    CODE_COMPLETION = "code-completion"
    DEBUGGING = "debugging"
    OUTPUT_PREDICTION = "output-prediction"


class LearningStyle(str, Enum):
    FAST_LEARNER = "fast-learner"
    STEADY_LEARNER = "steady-learner"
    STRUGGLING = "struggling"


@dataclass(frozen=True)
class TestCase:
    __test__ = False  # keep pytest from collecting it

    input: str
    expected_output: str


@dataclass(frozen=True)
class Question:
    id: str
    topic: str
    difficulty: Difficulty
    title: str
    description: str
    subtopic: str = ""
    type: QuestionType = QuestionType.CODE_WRITING
    starter_code: str = ""
    solution_code: Optional[str] = None
    test_cases: tuple[TestCase, ...] = ()
    hints: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    estimated_time: float = 300.0  # seconds
    expected_output: str = ""
    source: str = "static"  # "static", "csv", "ai"


@dataclass
class Attempt:
    correct: bool
    time_spent: float


@dataclass
class UserProgress:
    """One live record per attempted question, updated in place on retries."""
    question_id: str
    topic: str
    difficulty: Difficulty
    timestamp: float
    attempts: int = 1
    time_spent: float = 0.0  # mean seconds per attempt
    total_time_spent: float = 0.0
    correct: bool = False
    submitted_code: str = ""
    next_review_date: Optional[float] = None
    review_count: int = 0
    confidence: float = 50.0
    hints_used: int = 0
    concepts: list[str] = field(default_factory=list)
    error_type: Optional[str] = None
    time_to_first_attempt: float = 0.0
    attempt_history: list[Attempt] = field(default_factory=list)
    solution_viewed: bool = False
    solution_viewed_at: Optional[float] = None


@dataclass
class ConceptStats:
    correct: int = 0
    attempted: int = 0


@dataclass
class TopicStats:
    topic: str
    questions_attempted: int = 0
    questions_correct: int = 0
    average_accuracy: float = 0.0
    average_time: float = 0.0
    mastery_level: float = 0.0
    concepts: dict[str, ConceptStats] = field(default_factory=dict)
    difficulty_attempts: dict[str, int] = field(default_factory=dict)
    last_attempt: Optional[float] = None


@dataclass
class PerformanceMetrics:
    accuracy: float = 0.0
    speed: float = 0.0
    consistency: float = 0.0
    learning_velocity: float = 0.0
    confidence_level: float = 50.0
    error_patterns: dict[str, int] = field(default_factory=dict)
    concept_mastery: dict[str, float] = field(default_factory=dict)


@dataclass
class LearningAnalytics:
    total_session_time: float = 0.0
    sessions_completed: int = 0
    average_session_duration: float = 0.0
    peak_performance_time: str = "afternoon"
    weak_areas: list[str] = field(default_factory=list)
    strong_areas: list[str] = field(default_factory=list)
    recommended_focus_areas: list[str] = field(default_factory=list)
    estimated_mastery_date: Optional[float] = None
    learning_style: LearningStyle = LearningStyle.STEADY_LEARNER


@dataclass
class LearningPath:
    id: str
    name: str
    description: str
    topics: list[str] = field(default_factory=list)
    is_custom: bool = False
    estimated_hours: Optional[float] = None


@dataclass
class UserProfile:
    """Root aggregate for one learner; the unit of persistence."""
    current_difficulty: Difficulty = Difficulty.EASY
    total_questions_attempted: int = 0
    correct_answers: int = 0
    total_time_spent: float = 0.0
    average_time_per_question: float = 0.0
    progress_history: list[UserProgress] = field(default_factory=list)
    topic_stats: dict[str, TopicStats] = field(default_factory=dict)
    topics_completed: list[str] = field(default_factory=list)
    streak_count: int = 0
    last_activity_date: Optional[float] = None
    performance_metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    learning_analytics: LearningAnalytics = field(default_factory=LearningAnalytics)
    adaptive_level: int = 1
    learning_style: LearningStyle = LearningStyle.STEADY_LEARNER
    recommended_daily_goal: int = 5
    current_learning_path: str = "path-beginner"
    custom_learning_paths: list[LearningPath] = field(default_factory=list)
    last_path_generation_time: Optional[float] = None
    topics_completed_at_last_path: list[str] = field(default_factory=list)
    last_analytics_update: Optional[float] = None

    def find_progress(self, question_id: str) -> Optional[UserProgress]:
        for record in self.progress_history:
            if record.question_id == question_id:
                return record
        return None

    def attempted_ids(self) -> set[str]:
        return {p.question_id for p in self.progress_history}
