"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """ATR configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    extraction_model: str = Field(default="sonnet")

    # Gateway defaults (used when a caller passes no options)
    gateway_temperature: float = Field(default=0.2)
    gateway_max_tokens: int = Field(default=800)

    # Extraction call overrides
    extraction_temperature: float = Field(default=0.1)
    extraction_max_tokens: int = Field(default=1400)

    # Database
    database_path: Path = Field(default=Path("data/atr.db"))

    # Context budgets, in characters (a cheap stand-in for tokens)
    context_budget_chars: int = Field(default=12000)
    recent_tail_chars: int = Field(default=6000)
    task_snapshot_chars: int = Field(default=4000)
    semantic_recall_chars: int = Field(default=2000)
    recent_message_limit: int = Field(default=30)
    task_snapshot_limit: int = Field(default=300)

    # Rolling summary
    summary_window: int = Field(default=20)
    summary_max_chars: int = Field(default=6000)

    # HTTP API
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8080)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
