"""
Application configuration loaded from environment variables.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    embedding_provider: Literal["local", "openai", "custom"] = Field(default="local", alias="EMBEDDING_PROVIDER")
    embedding_model_name: str = Field(default="text-embedding-3-small", alias="EMBEDDING_MODEL_NAME")
    embedding_dimensions: int = Field(default=384, gt=0, alias="EMBEDDING_DIMENSIONS")
    embedding_timeout_sec: float = Field(default=30.0, gt=0, alias="EMBEDDING_TIMEOUT_SEC")

    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")
    custom_embed_url: str | None = Field(default=None, alias="CUSTOM_EMBED_URL")
    custom_embed_key: SecretStr | None = Field(default=None, alias="CUSTOM_EMBED_KEY")
    llm_model_name: str = Field(default="gpt-4.1-mini", alias="LLM_MODEL_NAME")

    index_name: str = Field(default="autocare", alias="INDEX_NAME")
    vector_store_path: str = Field(default="./data/vector-store.json", alias="VECTOR_STORE_PATH")
    docs_dir: str = Field(default="./data/docs", alias="DOCS_DIR")

    search_top_k: int = Field(default=5, gt=0, alias="SEARCH_TOP_K")
    search_threshold: float = Field(default=0.55, alias="SEARCH_THRESHOLD")

    session_max_size: int = Field(default=1000, gt=0, alias="SESSION_MAX_SIZE")
    session_max_age_sec: float = Field(default=3600.0, gt=0, alias="SESSION_MAX_AGE_SEC")
    session_max_messages: int = Field(default=6, gt=0, alias="SESSION_MAX_MESSAGES")
    session_max_requests_per_minute: int = Field(default=60, gt=0, alias="SESSION_MAX_REQUESTS_PER_MINUTE")
    session_sweep_interval_sec: float = Field(default=300.0, gt=0, alias="SESSION_SWEEP_INTERVAL_SEC")

    admin_token: SecretStr | None = Field(default=None, alias="ADMIN_TOKEN")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")


settings = Settings()


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure base logging for the app.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    return logging.getLogger("autocare")


def public_settings(settings_: Settings | None = None) -> Dict[str, Any]:
    """
    Return settings without secrets for safe logging/inspection.
    """
    return (settings_ or settings).model_dump(
        exclude={"openai_api_key", "custom_embed_key", "admin_token"},
        exclude_none=True,
    )


__all__ = ["Settings", "settings", "setup_logging", "public_settings"]
