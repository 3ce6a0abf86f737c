"""Claude-backed question generation, solution judgement and path generation.

Every public method either returns a validated result or raises
AIUnavailableError. Callers treat that as "fall back to the static catalog".
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import uuid
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from neurotutor.config.settings import Settings
from neurotutor.engine.models import (
    Difficulty,
    LearningPath,
    Question,
    QuestionType,
    TestCase,
    UserProfile,
)
from neurotutor.errors import AIUnavailableError

logger = logging.getLogger(__name__)

DIFFICULTY_GUIDES = {
    Difficulty.EASY: "beginner-friendly, 2-5 minutes, basic syntax, simple concepts",
    Difficulty.MEDIUM: "intermediate, 5-15 minutes, data structures, some algorithmic thinking",
    Difficulty.HARD: "advanced, 15-30 minutes, complex algorithms, optimization required",
}

ESTIMATED_TIME = {Difficulty.EASY: 300.0, Difficulty.MEDIUM: 600.0, Difficulty.HARD: 900.0}

class GeneratedTestCase(BaseModel):
    input: str
    expectedOutput: str


class GeneratedQuestion(BaseModel):
    title: str
    description: str
    starterCode: str
    solutionCode: str = ""
    expectedOutput: str = ""
    hints: list[str] = []
    testCases: list[GeneratedTestCase] = []
    tags: list[str] = []


class GeneratedLearningPath(BaseModel):
    name: str
    description: str
    topics: list[str]
    estimatedHours: float
    focusAreas: list[str] = []


class Judgement(BaseModel):
    passed: bool
    reason: str = ""


def _topic_slug(topic: str) -> str:
    return re.sub(r"[\s_-]+", " ", topic).strip().lower()


def extract_json(text: str) -> dict:
    """Pull the outermost JSON object out of a model reply."""
    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        raise AIUnavailableError("No JSON object in model response")
    try:
        return json.loads(match.group())
    except json.JSONDecodeError as e:
        raise AIUnavailableError(f"Malformed JSON in model response: {e}") from e


def _adaptive_guidance(profile: Optional[UserProfile]) -> str:
    if profile is None:
        return ""
    recent = profile.progress_history[-10:]
    accuracy = sum(1 for r in recent if r.correct) / len(recent) * 100 if recent else 0.0
    if accuracy >= 80:
        guidance = "This should be a challenging problem that requires advanced thinking."
    elif accuracy < 60:
        guidance = "This should focus on fundamental concepts to build confidence."
    else:
        guidance = "This should be a balanced problem that reinforces current skills."

    patterns = profile.performance_metrics.error_patterns
    weak = sorted(patterns, key=patterns.get, reverse=True)[:3]
    if weak:
        guidance += f" Exercise these error-prone areas: {', '.join(weak)}."
    return guidance


class ClaudeProvider:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or Settings.load()
        self._client = client
        self._sleep = sleep

    def _get_client(self):
        if self._client is None:
            api_key = self.settings.claude.get_api_key()
            if api_key:
                import anthropic
                self._client = anthropic.AsyncAnthropic(
                    api_key=api_key,
                    timeout=self.settings.retry.timeout_seconds,
                    max_retries=0,
                )
        return self._client

    @property
    def available(self) -> bool:
        return self._get_client() is not None

    async def _complete(self, prompt: str) -> str:
        """Send ``prompt`` under the configured retry policy."""
        client = self._get_client()
        if client is None:
            raise AIUnavailableError("Claude API not configured")

        policy = self.settings.retry
        last_error: Optional[Exception] = None
        for attempt in range(1, policy.max_attempts + 1):
            try:
                response = await asyncio.wait_for(
                    client.messages.create(
                        model=self.settings.claude.get_model(),
                        max_tokens=self.settings.claude.max_tokens,
                        messages=[{"role": "user", "content": prompt}],
                    ),
                    timeout=policy.timeout_seconds,
                )
                return response.content[0].text
            except Exception as e:
                last_error = e
                logger.warning(
                    "Claude call failed (attempt %d/%d): %s", attempt, policy.max_attempts, e,
                )
                if attempt < policy.max_attempts:
                    await self._sleep(policy.delay_for(attempt))

        raise AIUnavailableError(f"Claude unavailable after {policy.max_attempts} attempts") from last_error

    async def generate_question(
        self,
        difficulty: Difficulty,
        topic: Optional[str] = None,
        profile: Optional[UserProfile] = None,
    ) -> Question:
        topic_context = f"Focus on the topic: {topic}." if topic else ""
        prompt = f"""Generate a unique Python coding question that is {DIFFICULTY_GUIDES[difficulty]}.
{topic_context}
{_adaptive_guidance(profile)}

Respond ONLY with valid JSON in this exact format:
{{
  "title": "string",
  "description": "string",
  "starterCode": "string",
  "solutionCode": "string",
  "expectedOutput": "string",
  "hints": ["string"],
  "testCases": [{{"input": "string", "expectedOutput": "string"}}],
  "tags": ["string"]
}}"""
        data = extract_json(await self._complete(prompt))
        try:
            generated = GeneratedQuestion.model_validate(data)
        except ValidationError as e:
            raise AIUnavailableError(f"Generated question failed validation: {e}") from e

        return Question(
            id=f"ai-{uuid.uuid4().hex[:12]}",
            topic=topic or (generated.tags[0] if generated.tags else "general"),
            difficulty=difficulty,
            title=generated.title,
            description=generated.description,
            subtopic=generated.tags[1] if len(generated.tags) > 1 else "",
            type=QuestionType.CODE_WRITING,
            starter_code=generated.starterCode,
            solution_code=generated.solutionCode or None,
            test_cases=tuple(
                TestCase(input=t.input, expected_output=t.expectedOutput)
                for t in generated.testCases
            ),
            hints=tuple(generated.hints),
            tags=tuple(generated.tags),
            estimated_time=ESTIMATED_TIME[difficulty],
            expected_output=generated.expectedOutput,
            source="ai",
        )

    async def judge_solution(self, code: str, description: str) -> Judgement:
        """Ask the model whether ``code`` solves the exercise in ``description``."""
        prompt = f"""You are grading a Python exercise.

Exercise:
{description}

Student code:
```python
{code}
```

Respond ONLY with JSON: {{"passed": true/false, "reason": "<one sentence>"}}"""
        data = extract_json(await self._complete(prompt))
        try:
            return Judgement.model_validate(data)
        except ValidationError as e:
            raise AIUnavailableError(f"Judgement failed validation: {e}") from e

    async def generate_learning_path(
        self, level: str, weak_areas: list[str], strong_areas: list[str], topics: list[str],
    ) -> LearningPath:
        """Ask for a path over ``topics``; replies are mapped back onto those exact names."""
        weak = f"Weak areas to focus on: {', '.join(weak_areas)}" if weak_areas else ""
        strong = f"Strong areas to build upon: {', '.join(strong_areas)}" if strong_areas else ""
        topic_list = ", ".join(topics)
        prompt = f"""Create a personalized Python learning path for a {level} learner.
{weak}
{strong}

Use 5-8 topics, chosen only from: {topic_list}

Respond ONLY with JSON:
{{"name": "string", "description": "string", "topics": ["string"], "estimatedHours": number, "focusAreas": ["string"]}}"""
        data = extract_json(await self._complete(prompt))
        try:
            generated = GeneratedLearningPath.model_validate(data)
        except ValidationError as e:
            raise AIUnavailableError(f"Learning path failed validation: {e}") from e

        known = {_topic_slug(t): t for t in topics}
        chosen = list(dict.fromkeys(
            known[_topic_slug(t)] for t in generated.topics if _topic_slug(t) in known
        ))
        if not chosen:
            raise AIUnavailableError("Learning path used none of the catalog topics")

        return LearningPath(
            id=f"custom-{uuid.uuid4().hex[:12]}",
            name=generated.name,
            description=generated.description,
            topics=chosen,
            is_custom=True,
            estimated_hours=generated.estimatedHours,
        )
