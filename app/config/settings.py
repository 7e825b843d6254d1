from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    document_root: Path = Path("uploads")
    naming_policy: str = "versioned"
    upload_lock_timeout_seconds: int = 30
    allowed_extensions: list[str] = Field(
        default_factory=lambda: ["pdf", "jpg", "jpeg", "png", "doc", "docx"]
    )

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "fleet"
    db_username: str = "fleet"
    db_password: str = "secret"
