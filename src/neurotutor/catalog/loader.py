"""YAML question bundle parser and CSV dataset import."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any

import yaml

from neurotutor.engine.models import (
    Difficulty,
    LearningPath,
    Question,
    QuestionType,
    TestCase,
)
from neurotutor.errors import CatalogError

CSV_ESTIMATED_TIME = 600.0


def _parse_test_cases(raw) -> tuple[TestCase, ...]:
    if not raw:
        return ()
    return tuple(
        TestCase(input=str(item.get("input", "")), expected_output=str(item.get("expected_output", "")))
        for item in raw
    )


def question_from_dict(raw: dict[str, Any], source: str = "static") -> Question:
    """Build a Question from one bundle entry."""
    try:
        qid = str(raw["id"])
        title = raw["title"]
        description = raw["description"]
        topic = raw["topic"]
    except KeyError as e:
        raise CatalogError(f"Question entry is missing {e}") from e

    try:
        qtype = QuestionType(raw.get("type", QuestionType.CODE_WRITING.value))
    except ValueError as e:
        raise CatalogError(f"Question {qid}: unknown type {raw.get('type')!r}") from e

    return Question(
        id=qid,
        topic=topic,
        difficulty=Difficulty.parse(str(raw.get("difficulty", "medium"))),
        title=title,
        description=description.strip(),
        subtopic=raw.get("subtopic", ""),
        type=qtype,
        starter_code=raw.get("starter_code", ""),
        solution_code=raw.get("solution_code"),
        test_cases=_parse_test_cases(raw.get("test_cases")),
        hints=tuple(raw.get("hints", [])),
        tags=tuple(raw.get("tags", [])),
        estimated_time=float(raw.get("estimated_time", 300)),
        expected_output=str(raw.get("expected_output", "")),
        source=raw.get("source", source),
    )


def question_to_dict(question: Question) -> dict[str, Any]:
    """Inverse of question_from_dict, used for the CSV and AI caches."""
    return {
        "id": question.id,
        "topic": question.topic,
        "difficulty": question.difficulty.value,
        "title": question.title,
        "description": question.description,
        "subtopic": question.subtopic,
        "type": question.type.value,
        "starter_code": question.starter_code,
        "solution_code": question.solution_code,
        "test_cases": [
            {"input": t.input, "expected_output": t.expected_output}
            for t in question.test_cases
        ],
        "hints": list(question.hints),
        "tags": list(question.tags),
        "estimated_time": question.estimated_time,
        "expected_output": question.expected_output,
        "source": question.source,
    }


def _parse_path(raw: dict[str, Any]) -> LearningPath:
    try:
        return LearningPath(
            id=raw["id"],
            name=raw["name"],
            description=raw.get("description", ""),
            topics=list(raw.get("topics", [])),
            is_custom=False,
            estimated_hours=raw.get("estimated_hours"),
        )
    except KeyError as e:
        raise CatalogError(f"Learning path entry is missing {e}") from e


def load_bundle(bundle_file: Path) -> tuple[list[Question], list[LearningPath]]:
    """Load questions and predefined learning paths from a YAML bundle."""
    try:
        with open(bundle_file) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise CatalogError(f"Cannot read question bundle {bundle_file}: {e}") from e

    questions = [question_from_dict(raw) for raw in data.get("questions", [])]
    paths = [_parse_path(raw) for raw in data.get("learning_paths", [])]
    return questions, paths


def parse_csv(text: str) -> list[Question]:
    """Convert a problem dataset (id, title, description, difficulty, related_topics)."""
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        return []
    missing = {"title", "description"} - set(reader.fieldnames)
    if missing:
        raise CatalogError(f"CSV is missing columns: {', '.join(sorted(missing))}")

    questions = []
    for index, row in enumerate(reader, start=1):
        title = (row.get("title") or "").strip()
        description = (row.get("description") or "").strip()
        if not title or not description:
            continue

        raw_topics = row.get("related_topics") or ""
        topics = [t.strip() for t in raw_topics.split(",") if t.strip()] or ["general"]
        row_id = (row.get("id") or "").strip() or str(index)

        questions.append(Question(
            id=f"csv-{row_id}",
            topic=topics[0],
            difficulty=Difficulty.parse(row.get("difficulty") or "medium"),
            title=title,
            description=description,
            subtopic=topics[1] if len(topics) > 1 else topics[0],
            tags=tuple(topics),
            estimated_time=CSV_ESTIMATED_TIME,
            source="csv",
        ))
    return questions


def load_csv(csv_file: Path) -> list[Question]:
    try:
        text = Path(csv_file).read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read CSV {csv_file}: {e}") from e
    return parse_csv(text)
