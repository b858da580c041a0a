from __future__ import annotations

import os

APP_VERSION = "0.4.0"

_DEFAULT_SECRET_KEYS = frozenset({"change-me-in-production", ""})


class Settings:
    PROJECT_NAME: str = "Roadmap"
    API_V1_PREFIX: str = "/api/v1"

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Full SQLAlchemy URL; when unset the PostgreSQL parts below are used
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "roadmap")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "roadmap")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "roadmap")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "20"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))

    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

    # "preserve" keeps dependents where the stored dates put them (FS/SS only
    # fill a missing end date); "shift" moves them by the source's offset.
    RESCHEDULE_MODE: str = os.getenv("RESCHEDULE_MODE", "preserve").lower()

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
