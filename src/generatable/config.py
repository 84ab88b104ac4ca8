"""
config.py

PURPOSE: Configuration loading and settings management.
DEPENDENCIES: pydantic, pydantic-settings

ARCHITECTURE NOTES:
Configuration comes from multiple sources (in priority order):
1. CLI flags (highest priority)
2. Environment variables (GENERATABLE_* prefixes)
3. Conventional provider variables (OPENAI_API_KEY)
4. Defaults (lowest priority)

Settings only describe where to connect. Sessions receive a provider
object built from them (OpenAIProvider.from_settings) rather than reading
the environment themselves.
"""

import os
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class ProviderSettings(BaseSettings):
    """Settings for the language model provider."""

    api: Literal["OpenAI"] = Field(
        default="OpenAI",
        description="Wire format spoken by the provider",
    )
    address: str = Field(
        default="https://api.openai.com",
        description="Base URL of the provider",
    )
    api_key: str = Field(
        default="",
        description="Provider API key (or set OPENAI_API_KEY env var)",
    )
    model: str = Field(
        default="gpt-3.5-turbo-instruct",
        description="Model name/ID",
    )
    timeout: float | None = Field(
        default=60.0,
        gt=0,
        description="Per-request network timeout in seconds",
    )

    model_config = {"env_prefix": "GENERATABLE_PROVIDER_"}


class OpenTelemetrySettings(BaseSettings):
    """Settings for optional OpenTelemetry tracing."""

    enabled: bool = Field(
        default=False,
        description="Enable tracing",
    )
    service_name: str = Field(
        default="generatable",
        description="Service name reported with spans",
    )
    endpoint: str = Field(
        default="",
        description="OTLP gRPC endpoint; console export only when empty",
    )

    model_config = {"env_prefix": "GENERATABLE_OTEL_"}


class Settings(BaseSettings):
    """Main application settings."""

    log_level: str = Field(
        default="WARNING",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug output",
    )
    provider: ProviderSettings = Field(
        default_factory=ProviderSettings,
        description="Provider settings",
    )
    otel: OpenTelemetrySettings = Field(
        default_factory=OpenTelemetrySettings,
        description="OpenTelemetry settings",
    )

    model_config = {"env_prefix": "GENERATABLE_"}


def get_settings() -> Settings:
    """Get application settings, loading from environment."""
    provider_settings = ProviderSettings()

    # Fall back to the standard OpenAI env var
    if not provider_settings.api_key:
        api_key = os.environ.get("OPENAI_API_KEY", "")
        if api_key:
            provider_settings = provider_settings.model_copy(update={"api_key": api_key})

    return Settings(provider=provider_settings)
