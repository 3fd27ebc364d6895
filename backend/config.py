"""
Configuration and settings for the AAC backend and operations scripts.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings shared by the API and the scripts."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api/v1")

    # Google Cloud / Firebase
    google_cloud_project: Optional[str] = None
    firebase_project_id: Optional[str] = None
    firebase_web_api_key: Optional[str] = None
    google_application_credentials: Optional[str] = None
    firestore_database: str = "(default)"

    # Object storage
    storage_bucket_name: Optional[str] = None

    # Vertex AI
    vertex_ai_location: str = "us-central1"
    imagen_text_to_icon_model: str = "imagen-4.0-fast-generate-001"
    gemini_image_to_icon_model: str = "gemini-2.5-flash-image"
    gemini_translate_model: str = "gemini-2.5-pro"
    gemini_tts_model: str = "gemini-2.5-flash-preview-tts"

    # API under test
    api_base_url: str = "http://localhost:8080"
    test_user_token: Optional[str] = None
    test_user_email: Optional[str] = None
    test_user_password: Optional[str] = None
    smoke_test_prompt: str = "apple fruit"
    step_delay_seconds: float = 1.0

    node_env: str = "development"

    # Development toggles
    aac_use_in_memory_backends: bool = False

    @property
    def project_id(self) -> Optional[str]:
        return self.google_cloud_project or self.firebase_project_id


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
