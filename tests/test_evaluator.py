"""Tests for the evaluation engine."""

import pytest

from neurotutor.engine.ai_provider import Judgement
from neurotutor.engine.evaluator import EvalResult, Evaluator
from neurotutor.errors import AIUnavailableError

from conftest import make_question

QUESTION = make_question(
    "add",
    description="Return a + b.",
    starter_code="def add(a, b):\n    pass\n",
)

GOOD = "def add(a, b):\n    return a + b\n"


class FakeJudge:
    def __init__(self, judgement=None, error=None):
        self.judgement = judgement
        self.error = error
        self.calls = 0

    async def judge_solution(self, code, description):
        self.calls += 1
        if self.error:
            raise self.error
        return self.judgement


class TestLocalChecks:
    @pytest.fixture
    def evaluator(self):
        return Evaluator()

    def test_syntax_check_valid(self, evaluator):
        assert evaluator.check_syntax("x = 42").passed

    def test_syntax_check_invalid(self, evaluator):
        result = evaluator.check_syntax("x = ")
        assert not result.passed
        assert result.error_type == "syntax"
        assert result.feedback[0].severity == "error"
        assert result.feedback[0].line is not None
        assert "missing colon" in result.feedback[0].suggestion

    def test_indentation_error_type(self, evaluator):
        result = evaluator.check_syntax("def f():\nreturn 1\n")
        assert result.error_type == "indentation"

    def test_required_function_present(self, evaluator):
        assert evaluator.check_required_functions(GOOD, QUESTION.starter_code).passed

    def test_required_function_missing(self, evaluator):
        result = evaluator.check_required_functions(
            "def plus(a, b):\n    return a + b\n", QUESTION.starter_code,
        )
        assert not result.passed
        assert result.error_type == "name"
        assert "add" in result.feedback[0].message
        assert "starter code" in result.feedback[0].suggestion

    def test_no_starter_code(self, evaluator):
        assert evaluator.check_required_functions("x = 1", "").passed

    def test_structure_empty(self, evaluator):
        result = evaluator.check_structure("   ")
        assert not result.passed
        assert result.feedback[0].message == "Code cannot be empty"

    def test_structure_too_short(self, evaluator):
        assert evaluator.check_structure("x = 1").feedback[0].message == "Code appears incomplete"

    def test_structure_needs_definition(self, evaluator):
        result = evaluator.check_structure("total = 0\nfor i in range(10):\n    total += i\n")
        assert not result.passed
        assert result.error_type == "logic"

    def test_structure_needs_logic_when_short(self, evaluator):
        result = evaluator.check_structure("def add(a, b):\n    a + b\n")
        assert not result.passed

    def test_structure_ok(self, evaluator):
        assert evaluator.check_structure(GOOD).passed


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_local_only(self):
        result = await Evaluator().evaluate(GOOD, QUESTION)
        assert isinstance(result, EvalResult)
        assert result.passed
        assert result.encouragement

    @pytest.mark.asyncio
    async def test_first_failing_check_reported(self):
        result = await Evaluator().evaluate("def add(a, b)\n    return a + b\n", QUESTION)
        assert not result.passed
        assert result.error_type == "syntax"

    @pytest.mark.asyncio
    async def test_judge_rejects(self):
        judge = FakeJudge(Judgement(passed=False, reason="Returns the difference."))
        result = await Evaluator(judge).evaluate(GOOD, QUESTION)
        assert not result.passed
        assert result.error_type == "logic"
        assert result.feedback[0].message == "Returns the difference."
        assert result.feedback[0].suggestion is None

    @pytest.mark.asyncio
    async def test_judge_mismatch_explained(self):
        judge = FakeJudge(Judgement(passed=False, reason="Test failed: expected 3 but got -1"))
        result = await Evaluator(judge).evaluate(GOOD, QUESTION)
        assert result.error_type == "logic"
        assert result.feedback[0].suggestion == "The output does not match the expected result."

    @pytest.mark.asyncio
    async def test_judge_not_called_on_local_failure(self):
        judge = FakeJudge(Judgement(passed=True))
        await Evaluator(judge).evaluate("", QUESTION)
        assert judge.calls == 0

    @pytest.mark.asyncio
    async def test_unavailable_judge_falls_back(self):
        judge = FakeJudge(error=AIUnavailableError("down"))
        result = await Evaluator(judge).evaluate(GOOD, QUESTION)
        assert result.passed
        assert judge.calls == 1
