"""Centralised application configuration.

Settings are loaded from environment variables or the `.env` file in the
project root. Using pydantic's BaseSettings provides convenient parsing
and type checking. The process builds one Settings instance at startup and
freezes the pipeline-relevant part of it into a :class:`PipelineConfig`
that is handed explicitly to the retrieval and generation clients.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Knowledge base (retrieval is skipped when unset)
    knowledge_base_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("KNOWLEDGE_BASE_ID", "knowledge_base_id"),
    )
    aws_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("AWS_REGION", "AWS_DEFAULT_REGION", "aws_region"),
    )

    # Generation
    llm_provider: str = Field(
        default="bedrock", validation_alias=AliasChoices("LLM_PROVIDER", "llm_provider")
    )
    llm_model_id: str = Field(
        default="us.anthropic.claude-haiku-4-5-20251001-v1:0",
        validation_alias=AliasChoices("LLM_MODEL_ID", "llm_model_id"),
    )
    anthropic_version: str = Field(
        default="bedrock-2023-05-31",
        validation_alias=AliasChoices("ANTHROPIC_VERSION", "anthropic_version"),
    )
    max_tokens: int = Field(
        default=1024, validation_alias=AliasChoices("MAX_TOKENS", "max_tokens")
    )

    # Gemini (alternative provider)
    gemini_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "gemini_api_key")
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        validation_alias=AliasChoices("GEMINI_MODEL", "GEMINI_FAST_MODEL"),
    )

    # Retrieval shaping
    max_retrieval_results: int = Field(5, validation_alias="MAX_RETRIEVAL_RESULTS")
    excerpt_max_length: int = Field(200, validation_alias="EXCERPT_MAX_LENGTH")
    default_confidence: float = Field(0.5, validation_alias="DEFAULT_CONFIDENCE")

    # Upstream call bounds (seconds)
    retrieval_timeout_seconds: float = Field(
        10.0, validation_alias="RETRIEVAL_TIMEOUT_SECONDS"
    )
    generation_timeout_seconds: float = Field(
        30.0, validation_alias="GENERATION_TIMEOUT_SECONDS"
    )

    # HTTP surface
    cors_allow_origin: str = Field("*", validation_alias="CORS_ALLOW_ORIGIN")

    # Logging/observability
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    langfuse_enabled: bool = Field(True, validation_alias="LANGFUSE_ENABLED")
    langfuse_host: str = Field("", validation_alias="LANGFUSE_HOST")
    langfuse_public_key: str = Field("", validation_alias="LANGFUSE_PUBLIC_KEY")
    langfuse_secret_key: str = Field("", validation_alias="LANGFUSE_SECRET_KEY")
    tracing_backend: str = Field("langfuse", validation_alias="TRACING_BACKEND")
    trace_name: str = Field("portfolio-assistant", validation_alias="TRACE_NAME")


class PipelineConfig(BaseModel):
    """Immutable per-deployment policy for the query pipeline.

    Built once from :class:`Settings` at process start; never mutated.
    """

    model_config = ConfigDict(frozen=True)

    knowledge_base_id: Optional[str] = None
    aws_region: str = "us-east-1"
    llm_provider: str = "bedrock"
    llm_model_id: str = "us.anthropic.claude-haiku-4-5-20251001-v1:0"
    anthropic_version: str = "bedrock-2023-05-31"
    max_tokens: int = 1024
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    max_retrieval_results: int = 5
    excerpt_max_length: int = 200
    default_confidence: float = 0.5
    retrieval_timeout_seconds: float = 10.0
    generation_timeout_seconds: float = 30.0
    cors_allow_origin: str = "*"

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineConfig":
        kb_id = (settings.knowledge_base_id or "").strip() or None
        return cls(
            knowledge_base_id=kb_id,
            aws_region=settings.aws_region,
            llm_provider=settings.llm_provider.strip().lower(),
            llm_model_id=settings.llm_model_id,
            anthropic_version=settings.anthropic_version,
            max_tokens=settings.max_tokens,
            gemini_api_key=settings.gemini_api_key,
            gemini_model=settings.gemini_model,
            max_retrieval_results=settings.max_retrieval_results,
            excerpt_max_length=settings.excerpt_max_length,
            default_confidence=settings.default_confidence,
            retrieval_timeout_seconds=settings.retrieval_timeout_seconds,
            generation_timeout_seconds=settings.generation_timeout_seconds,
            cors_allow_origin=settings.cors_allow_origin,
        )
