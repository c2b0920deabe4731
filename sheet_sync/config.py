"""
Configuration management.
Simple .env based config for VPS deployment.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Security
    session_secret: str = "change-me-in-production-use-random-string"
    admin_password_hash: str = ""  # bcrypt hash

    # Database
    database_path: str = "./data/sheet_sync.db"

    # Throttling (seconds)
    shopify_request_delay: float = 0.8
    sheets_request_delay: float = 0.5
    row_delay: float = 0.1

    # Fallback Google service account, used when a sheet has no credentials of its own
    google_project_id: Optional[str] = None
    google_private_key_id: Optional[str] = None
    google_private_key: Optional[str] = None
    google_client_email: Optional[str] = None
    google_client_id: Optional[str] = None

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
