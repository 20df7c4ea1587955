"""
Configuration module for the booking slot service.
Loads environment variables and provides typed configuration.
"""

from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    environment: str = "development"  # development, staging, production, test

    # Scheduling
    timezone: str = "America/Sao_Paulo"
    # None = back-to-back (the service duration is the step)
    slot_step_minutes: Optional[int] = Field(default=None, gt=0, le=600)
    allow_past_bookings: bool = False

    # Storage
    storage_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None  # service_role key

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_dir: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def validate_all_required(self) -> None:
        """
        Validate that settings required by the selected backend are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        if self.storage_backend != "supabase":
            return

        missing = []
        for field in ("supabase_url", "supabase_key"):
            value = getattr(self, field, None)
            if not value or str(value).lower().startswith("your_"):
                missing.append(field)

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
