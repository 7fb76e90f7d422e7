"""Configuration management for Quibble."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseModel):
    """Application configuration."""

    name: str = "quibble"
    mode: Literal["production", "development"] = "development"
    log_level: str = "INFO"


class LLMConfig(BaseModel):
    """Answer classifier (LLM) configuration.

    ``model`` and ``fallback_model`` default per provider when left unset.
    """

    provider: Literal["gemini", "openai", "anthropic", "mock"] = "gemini"
    api_key: str | None = None
    gemini_endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_endpoint: str = "https://api.openai.com/v1"
    anthropic_endpoint: str | None = None
    model: str | None = None
    fallback_model: str | None = None
    temperature: float = 0.1
    max_tokens: int = 32
    timeout_seconds: float = 30.0


class TranscriptConfig(BaseModel):
    """Transcript accumulation and dispatch configuration."""

    min_dispatch_chars: int = 10
    min_growth_chars: int = 1
    end_of_clue_phrases: list[str] = Field(
        default_factory=lambda: ["for 10 points", "for ten points"]
    )


class DisplayConfig(BaseModel):
    """Display policy configuration."""

    show_live_transcription: bool = True
    silence_clear_seconds: float = 20.0
    question_tail_chars: int = 50
    ready_text: str = "Quibble Ready."
    welcome_text: str = "Quibble Ready. Ask me a trivia question!"


class Config(BaseSettings):
    """Main configuration for Quibble."""

    model_config = SettingsConfigDict(
        env_prefix="QUIBBLE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppConfig = Field(default_factory=AppConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    transcript: TranscriptConfig = Field(default_factory=TranscriptConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)

    # Use the scripted mock classifier instead of a real provider
    mock_mode: bool = False

    @classmethod
    def from_yaml(cls, path: Path | str) -> Config:
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False)


def load_config(
    config_path: Path | str | None = None,
    env_override: bool = True,
) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Path to config file. If None, searches standard locations.
        env_override: Whether to allow environment variables to override config.

    Returns:
        Loaded configuration.
    """
    search_paths = [
        Path("/etc/quibble/config.yaml"),
        Path.home() / ".config" / "quibble" / "config.yaml",
        Path("config.yaml"),
        Path("configs/quibble.yaml"),
    ]

    if config_path:
        search_paths.insert(0, Path(config_path))

    config_file = next((p for p in search_paths if p.exists()), None)
    config = Config.from_yaml(config_file) if config_file else Config()

    if env_override:
        api_key = os.environ.get("QUIBBLE_LLM_API_KEY")
        if api_key:
            config.llm.api_key = api_key

        if os.environ.get("QUIBBLE_MOCK_MODE", "").lower() in ("1", "true", "yes"):
            config.mock_mode = True

    return config
