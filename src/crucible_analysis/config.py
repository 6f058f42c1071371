"""Configuration for solution analysis providers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from types import MappingProxyType

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderName(str, Enum):
    """Supported analysis backends."""

    GEMINI = "gemini"
    OPENROUTER = "openrouter"


@dataclass(frozen=True)
class ProviderConfig:
    """Generation defaults for an analysis backend."""

    default_model: str
    env_var: str
    max_output_tokens: int = 8192
    temperature: float = 0.2
    top_p: float = 0.95


# Provider defaults - single source of truth
PROVIDER_CONFIGS: MappingProxyType[ProviderName, ProviderConfig] = MappingProxyType(
    {
        ProviderName.GEMINI: ProviderConfig(
            default_model="gemini-2.5-flash",
            env_var="GEMINI_API_KEY",
        ),
        ProviderName.OPENROUTER: ProviderConfig(
            default_model="anthropic/claude-3.5-sonnet",
            env_var="OPENROUTER_API_KEY",
        ),
    }
)


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Provider selection
    analysis_provider: str = ProviderName.GEMINI.value
    enable_analysis_fallback: bool = False
    analysis_fallback_provider: str = ProviderName.GEMINI.value

    # Call budget
    analysis_provider_timeout: float = Field(default=30.0, gt=0)
    analysis_max_attempts: int = Field(default=2, ge=1)
    analysis_retry_delay_base: float = Field(default=0.3, ge=0)

    # Gemini
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "gemini_pro_api_key"),
    )
    gemini_model: str = PROVIDER_CONFIGS[ProviderName.GEMINI].default_model

    # OpenRouter
    openrouter_api_key: str | None = None
    openrouter_analysis_model: str = PROVIDER_CONFIGS[ProviderName.OPENROUTER].default_model
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_title: str = "Crucible Solution Analysis"
    openrouter_referer: str = "http://localhost:5173"

    # Logging
    log_level: str = "INFO"
    log_json_format: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
