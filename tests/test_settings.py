"""Tests for configuration loading and small formatting helpers."""

import pytest
import yaml
from pydantic import ValidationError

from neurotutor.config.settings import DifficultySource, Settings
from neurotutor.utils.formatting import format_average_time, format_duration


class TestSettings:
    def test_defaults(self, tmp_path):
        settings = Settings.load(tmp_path / "missing.yaml")
        assert settings.engine.difficulty_source == DifficultySource.POLICY
        assert settings.retry.max_attempts == 3
        assert settings.default_topic == "Basics"

    def test_load_yaml(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text(yaml.dump({
            "engine": {"difficulty_source": "rl", "use_rl": True},
            "retry": {"max_attempts": 5},
            "log_level": "DEBUG",
        }))
        settings = Settings.load(config)
        assert settings.engine.difficulty_source == DifficultySource.RL
        assert settings.retry.max_attempts == 5
        assert settings.log_level == "DEBUG"

    def test_invalid_retry(self):
        with pytest.raises(ValidationError):
            Settings(retry={"max_attempts": 0})

    def test_save_roundtrip(self, tmp_path):
        settings = Settings(data_dir=tmp_path, default_topic="Loops")
        settings.save()
        assert Settings.load(tmp_path / "config.yaml").default_topic == "Loops"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "from-env")
        monkeypatch.setenv("NEUROTUTOR_CLAUDE_MODEL", "some-model")
        settings = Settings()
        assert settings.claude.get_api_key() == "from-env"
        assert settings.claude.get_model() == "some-model"


class TestFormatting:
    def test_format_duration(self):
        assert format_duration(43) == "43 seconds"
        assert format_duration(720) == "12 minutes"
        assert format_duration(4680) == "1.3 hours"

    def test_format_average_time(self):
        assert format_average_time(12) == "12s"
        assert format_average_time(300) == "5m"
        assert format_average_time(5400) == "1.5h"
