"""Configuration and environment for cluster-health."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="CLUSTER_HEALTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Kubernetes
    kubeconfig: Path | None = Field(
        default=None,
        description="Path to kubeconfig; uses KUBECONFIG env or default location if unset",
    )
    context: str | None = Field(default=None, description="Kubernetes context to use")

    # LLM
    llm_provider: Literal["openai", "openai_compatible", "azure"] = Field(
        default="openai",
        description="LLM provider: openai, openai_compatible (e.g. local Ollama) or azure",
    )
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "CLUSTER_HEALTH_OPENAI_API_KEY",
            "OPENAI_API_KEY",
            "AZURE_OPENAI_API_KEY",
        ),
        description="API key for OpenAI or Azure OpenAI",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Base URL for OpenAI-compatible API (e.g. http://localhost:11434/v1)",
    )
    azure_endpoint: str | None = Field(default=None, description="Azure OpenAI endpoint URL")
    azure_api_version: str = Field(default="2024-06-01", description="Azure OpenAI API version")
    model: str = Field(default="gpt-4o", description="Model name for insights and resource suggestions")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="LLM temperature")
    max_tokens: int = Field(default=2000, ge=1, description="Completion token limit")
    ai_enabled: bool = Field(default=True, description="If false, skip AI insights and suggestions")

    # Analysis and output
    workload_pattern: str = Field(
        default="rabbit",
        description="Pod name substring identifying the critical workload to protect",
    )
    output_dir: Path = Field(default=Path("."), description="Directory in which report folders are created")

    @property
    def ai_configured(self) -> bool:
        return self.ai_enabled and bool(self.openai_api_key)


def get_settings() -> Settings:
    """Return validated settings instance."""
    return Settings()
