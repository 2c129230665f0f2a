"""Configuration management using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from the environment and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API
    api_title: str = Field(default="SmolChat Inbox AI", description="OpenAPI title")
    api_version: str = Field(default="1.0.0", description="OpenAPI version")
    api_host: str = Field(default="0.0.0.0", description="Bind address for the server")
    api_port: int = Field(default=8080, ge=1, le=65535, description="Bind port for the server")
    docs_url: str = Field(default="/docs", description="Interactive documentation path")
    openapi_url: str = Field(default="/openapi.json", description="OpenAPI schema path")
    use_scalar_docs: bool = Field(default=True, description="Serve Scalar docs instead of Swagger UI")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    debug: bool = Field(default=False, description="Include error details in error responses")

    # Logging
    log_level: str = Field(default="INFO", description="Root logging level")
    log_format: str = Field(default="text", description="'text' or 'json'")

    # In-process model (persona generation)
    llm_model_path: Optional[str] = Field(
        default=None,
        description="Local GGUF path; when unset the model is downloaded from the Hub",
    )
    llm_repo_id: str = Field(default="google/gemma-3-1b-it-qat-q4_0-gguf")
    llm_model_filename: str = Field(default="gemma-3-1b-it-q4_0.gguf")
    hugging_face_hub_token: Optional[str] = Field(default=None)
    llm_context_size: int = Field(default=2048, ge=16)
    llm_n_threads: int = Field(default=4, ge=1)
    llm_gpu_layers: int = Field(default=0, ge=-1)
    load_model_on_startup: bool = Field(
        default=True,
        description="Load the in-process model during application startup",
    )

    # Sampler chain
    llm_top_k: int = Field(default=40, ge=0)
    llm_top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    llm_temperature: float = Field(default=0.7, ge=0.0)
    llm_repeat_penalty: float = Field(default=1.0, gt=0.0)
    llm_repeat_last_n: int = Field(default=64, ge=0)
    llm_seed: Optional[int] = Field(default=None, ge=0)

    persona_max_tokens: int = Field(default=256, ge=0)

    # Vision subprocess (inbox tasks)
    vision_cli_path: str = Field(default="../externals/llama.cpp/build/bin/llama-mtmd-cli")
    vision_model_path: str = Field(default="models/gemma-3-4b-it-q4_0.gguf")
    vision_mmproj_path: str = Field(default="models/mmproj-model-f16-4B.gguf")
    vision_gpu_layers: int = Field(default=0, ge=0)
    vision_timeout_seconds: Optional[float] = Field(default=None, gt=0.0)
    cv_temperature: float = Field(default=0.3, ge=0.0)
    cv_max_tokens: int = Field(default=800, ge=1)
    draft_reply_temperature: float = Field(default=0.7, ge=0.0)
    draft_reply_max_tokens: int = Field(default=1000, ge=1)
    classify_temperature: float = Field(default=0.3, ge=0.0)
    classify_max_tokens: int = Field(default=500, ge=1)

    # Attachments
    upload_dir: str = Field(default="../uploads", description="Directory holding uploaded attachments")
    render_dir: str = Field(default="../uploads/temp", description="Scratch directory for rendered pages")
    render_dpi: int = Field(default=150, ge=36, le=600)

    # Best-effort persona forward
    persona_forward_enabled: bool = Field(default=True)
    persona_forward_url: str = Field(default="http://localhost:8081")
    persona_forward_path: str = Field(default="/ai/profile/persona")
    persona_forward_connect_timeout: float = Field(default=5.0, gt=0.0)
    persona_forward_read_timeout: float = Field(default=10.0, gt=0.0)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = str(value).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings."""
    return Settings()
