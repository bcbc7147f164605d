"""
Configuration and settings for the studio backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared import constants


def split_csv(value: str) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    site_url: str = Field(default="http://localhost:5173")
    # Comma separated; "*" allows any origin like the original edge functions.
    cors_origins: str = Field(default="*")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible object storage
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_bucket: str = Field(default=constants.GALLERY_BUCKET)
    storage_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Hosted auth provider (GoTrue compatible)
    auth_url: Optional[str] = Field(default=None)
    auth_api_key: Optional[str] = Field(default=None)
    # Comma separated "token:email" pairs for the in-memory auth client.
    admin_tokens: str = Field(default="")

    # Image compression
    compression_backend: Literal["pillow", "gemini"] = Field(default="pillow")
    compression_max_bytes: int = Field(default=constants.MAX_IMAGE_BYTES, gt=0)
    compression_start_quality: int = Field(
        default=constants.DEFAULT_START_QUALITY, ge=1, le=100
    )
    compression_min_quality: int = Field(default=constants.MIN_QUALITY, ge=1, le=100)
    compression_quality_step: int = Field(default=constants.QUALITY_STEP, ge=1)
    head_check_workers: int = Field(default=8, ge=1)

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_image_model: str = Field(default="gemini-2.5-flash-image")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Queue (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="studio:compression-jobs")

    def cors_origin_list(self) -> list[str]:
        return split_csv(self.cors_origins) or ["*"]

    def admin_token_map(self) -> dict[str, str]:
        tokens: dict[str, str] = {}
        for item in split_csv(self.admin_tokens):
            token, _, email = item.partition(":")
            tokens[token] = email or "admin@localhost"
        return tokens


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
