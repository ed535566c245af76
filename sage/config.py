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
    """Sage configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="claude-sonnet-4-5-20250929")
    model_max_tokens: int = Field(default=1024)

    # Persistent key-value store
    database_path: Path = Field(default=Path("data/sage.db"))

    # Audit trail
    audit_log_limit: int = Field(default=200)
    archive_evicted_audit: bool = Field(default=False)

    # Memory / ACF
    prior_insight_limit: int = Field(default=8)
    trajectory_window: int = Field(default=10)
    consent_review_days: int = Field(default=90)
    redaction_rules: str = Field(default="email,phone,address,ssn,password")
    redaction_marker: str = Field(default="[REDACTED]")

    # Conversation
    conversation_window_size: int = Field(default=50)

    # Export
    export_prefix: str = Field(default="sage")
    export_dir: Path = Field(default=Path("data/exports"))

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

    def get_redaction_rules(self) -> list[str]:
        """Parse REDACTION_RULES into a list of lowercase field-name substrings."""
        if not self.redaction_rules.strip():
            return []
        return [r.strip().lower() for r in self.redaction_rules.split(",") if r.strip()]


settings = Settings()
