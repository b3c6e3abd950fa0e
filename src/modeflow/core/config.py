"""Configuration for modeflow using environment variables."""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Environment Variables:
        LLM_API_KEY: API key for the LLM provider (required for live calls)
        LLM_BASE_URL: Base URL for the LLM API (default: OpenAI)
        LLM_MODEL: Default model for modes without their own model config
        LLM_TEMPERATURE: Default sampling temperature
        LLM_MAX_TOKENS: Default completion token limit
        MODEFLOW_MAX_MODEL_ROUNDS: Model calls allowed in a single turn
        MODEFLOW_LOG_LEVEL: Logging level (default: INFO)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM Configuration
    llm_api_key: str = Field(
        default="",
        validation_alias="LLM_API_KEY",
        description="API key for the LLM provider",
    )
    llm_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias="LLM_BASE_URL",
        description="Base URL for the LLM API (OpenAI or compatible)",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        validation_alias="LLM_MODEL",
        description="Model name used when a mode does not pick one",
    )
    llm_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        validation_alias="LLM_TEMPERATURE",
        description="Sampling temperature used when a mode does not pick one",
    )
    llm_max_tokens: int = Field(
        default=1000,
        gt=0,
        validation_alias="LLM_MAX_TOKENS",
        description="Completion token limit used when a mode does not pick one",
    )

    # Turn handling
    max_model_rounds: int = Field(
        default=8,
        ge=1,
        validation_alias="MODEFLOW_MAX_MODEL_ROUNDS",
        description="Maximum model invocations within one turn (tool continuations, mode entries)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias="MODEFLOW_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        return getattr(logging, self.log_level.upper(), logging.INFO)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_llm_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    settings: Optional[Settings] = None,
):
    """Get configured async OpenAI client for LLM access.

    Args:
        api_key: API key override (default: LLM_API_KEY)
        base_url: Base URL override (default: LLM_BASE_URL)
        settings: Settings to read defaults from (default: environment)

    Returns:
        AsyncOpenAI client configured for the current provider

    Raises:
        ValueError: If LLM_API_KEY is not set
    """
    from openai import AsyncOpenAI

    settings = settings or get_settings()
    api_key = api_key or settings.llm_api_key
    if not api_key:
        raise ValueError(
            "LLM_API_KEY environment variable is required. "
            "Set it to your API key for OpenAI or a compatible provider."
        )

    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url or settings.llm_base_url,
    )
