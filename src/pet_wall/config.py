"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    storage_bucket: str = "pet-wall"
    submissions_table: str = "wall_photos"
    upload_max_mb: float = Field(default=3.0, gt=0)
    upload_max_side: int = Field(default=1920, gt=0)
    output_width: int = Field(default=1920, gt=0)
    output_height: int = Field(default=1080, gt=0)
    slide_seconds: float = Field(default=7.0, gt=0)
    queue_limit: int = Field(default=120, gt=0)
    pending_limit: int = Field(default=80, gt=0)
    default_pet_title: str = "Pet"
    submit_url: str = ""
    live_wall_enabled: bool = True
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def upload_max_bytes(self) -> int:
        """Return the source shrink budget in bytes."""
        return int(self.upload_max_mb * 1024 * 1024)
