"""Application configuration from environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All config comes from env vars or .env.beam file."""

    APP_NAME: str = "Beam v1.0"
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/beam.db"
    FILE_STORAGE_PATH: str = "./uploads"
    STATIC_DIR: str = "./public"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    MAX_UPLOAD_BYTES: int = 2 * 1024 * 1024 * 1024  # 2GB

    # Retrieval codes
    CODE_LENGTH: int = 4
    CODE_MAX_ATTEMPTS: int = 50

    # Lifecycle timers
    BURN_GRACE_SECONDS: float = 10.0
    SWEEP_INTERVAL_SECONDS: float = 60.0
    # Unreferenced blobs younger than this survive startup reconciliation
    ORPHAN_MIN_AGE_SECONDS: float = 3600.0

    class Config:
        env_file = ".env.beam"
        env_file_encoding = "utf-8"


settings = Settings()
