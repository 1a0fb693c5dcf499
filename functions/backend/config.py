"""
Configuration and settings for the campus community HTTP API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from community.storage import DEFAULT_STORAGE_ENDPOINT
from shared.constants import ALLOWED_EMAIL_DOMAIN


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Firebase (Firestore, Auth, Cloud Messaging)
    firebase_project_id: Optional[str] = Field(default=None, env="FIREBASE_PROJECT_ID")

    # S3-compatible storage (Cloud Storage interoperability by default)
    storage_endpoint: str = Field(
        default=DEFAULT_STORAGE_ENDPOINT, env="STORAGE_ENDPOINT"
    )
    storage_region: str = Field(default="auto", env="STORAGE_REGION")
    storage_bucket: Optional[str] = Field(default=None, env="STORAGE_BUCKET")
    aws_access_key_id: Optional[str] = Field(
        default=None, env="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, env="AWS_SECRET_ACCESS_KEY"
    )

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")

    allowed_email_domain: str = Field(
        default=ALLOWED_EMAIL_DOMAIN, env="ALLOWED_EMAIL_DOMAIN"
    )
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Leave off when the Firestore announcement trigger is deployed as well.
    send_push_notifications: bool = Field(
        default=False, env="SEND_PUSH_NOTIFICATIONS"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "CAMPUS_USE_IN_MEMORY_BACKENDS", "USE_IN_MEMORY_BACKENDS"
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
