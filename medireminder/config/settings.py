import os
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List

env = os.getenv("APP_ENV", "development")
env_file = f".env.{env}"


class Settings(BaseSettings):
    database_url: str
    # CORS origins can be overridden via CORS_ORIGINS env var (JSON list)
    cors_origins: List[str] = Field(default=["*"])
    # JWT configuration
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # connection pool (ignored for SQLite)
    db_pool_size: int = 10
    db_max_overflow: int = 0
    db_pool_timeout: float = 30.0
    auto_create_tables: bool = True

    # medicament attachments
    upload_dir: Path = Path("uploads") / "medicaments"
    media_url_path: str = "/uploads/medicaments"
    public_base_url: str = "http://localhost:8000"
    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_image_types: List[str] = Field(
        default=["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
    )

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=env_file,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def media_base_url(self) -> str:
        """Absolute URL prefix under which stored attachments are served."""
        return f"{self.public_base_url.rstrip('/')}/{self.media_url_path.strip('/')}"


settings = Settings()
