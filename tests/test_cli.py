"""Tests for the click command surface."""

import pytest
import yaml
from click.testing import CliRunner

from neurotutor.cli import main


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({"data_dir": str(tmp_path / "data")}))
    return path


def invoke(config, *args, **kwargs):
    return CliRunner().invoke(main, ["--config", str(config), *args], **kwargs)


class TestCli:
    def test_next(self, config):
        result = invoke(config, "next", "--topic", "Loops")
        assert result.exit_code == 0
        assert "(easy, Loops)" in result.output

    def test_submit_from_stdin(self, config):
        code = "def add(a, b):\n    return a + b\n"
        result = invoke(config, "submit", "basics-sum-two", "-", "--time", "45", input=code)
        assert result.exit_code == 0, result.output
        assert "Correct!" in result.output

        stats = invoke(config, "stats")
        assert "Attempts:        1 (1 correct)" in stats.output

    def test_unknown_question_is_reported(self, config):
        result = invoke(config, "hint", "does-not-exist")
        assert result.exit_code == 1
        assert "Unknown question" in result.output

    def test_hint_and_solution(self, config):
        assert "+" in invoke(config, "hint", "basics-sum-two").output
        assert "return a + b" in invoke(config, "solution", "basics-sum-two").output

    def test_import_csv(self, config, tmp_path):
        csv_file = tmp_path / "p.csv"
        csv_file.write_text("id,title,description,difficulty,related_topics\n7,T,D,Hard,Graphs\n")
        result = invoke(config, "import-csv", str(csv_file))
        assert "Imported 1 questions." in result.output

    def test_path(self, config):
        result = invoke(config, "path")
        assert "Python Foundations" in result.output

    def test_reset(self, config):
        result = invoke(config, "reset", "--yes")
        assert result.exit_code == 0
        assert "Progress reset." in result.output
