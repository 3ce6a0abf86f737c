"""Configuration model for NeuroTutor."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class DifficultySource(str, Enum):
    POLICY = "policy"
    RL = "rl"


class ClaudeConfig(BaseModel):
    api_key: Optional[str] = Field(default=None)
    model: str = "claude-sonnet-4-6"
    max_tokens: int = 2000

    def get_api_key(self) -> Optional[str]:
        return self.api_key or os.environ.get("ANTHROPIC_API_KEY")

    def get_model(self) -> str:
        return os.environ.get("NEUROTUTOR_CLAUDE_MODEL") or self.model


class RetryPolicy(BaseModel):
    """Retry behaviour around AI calls; the delay grows by ``backoff_multiplier``."""
    max_attempts: int = Field(default=3, ge=1)
    delay_seconds: float = Field(default=1.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)
    timeout_seconds: float = Field(default=60.0, gt=0)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.delay_seconds * self.backoff_multiplier ** (attempt - 1)


class EngineConfig(BaseModel):
    difficulty_source: DifficultySource = DifficultySource.POLICY
    use_rl: bool = True
    ai_generation: bool = False


class Settings(BaseModel):
    claude: ClaudeConfig = Field(default_factory=ClaudeConfig)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    default_topic: str = "Basics"
    log_level: str = "WARNING"
    data_dir: Path = Path.home() / ".neurotutor"

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        config_path = config_path or Path.home() / ".neurotutor" / "config.yaml"
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()

    def save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.data_dir / "config.yaml"
        with open(config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
