"""Configuration management for the OpenElevate gamification engine
- Handles environment variables and application settings.
"""

import os
from typing import Literal
from urllib.parse import urlparse

from pydantic import ConfigDict, model_validator
from pydantic_settings import BaseSettings

DatabaseType = Literal["sqlite", "postgresql"]


class Settings(BaseSettings):
    """Application settings with env variable support"""

    # Database Config
    DATABASE_URL: str = "sqlite://openelevate.db"
    DATABASE_TYPE: DatabaseType | None = None

    # Postgres Config
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "openelevate"

    # SQLite Config
    SQLITE_DB_PATH: str = "openelevate.db"

    # Database Connection settings
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_PRE_PING: bool = True

    # Application Config
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Redis Config
    REDIS_URL: str = "redis://localhost:6379"
    EVENT_STREAM_NAME: str = "openelevate:events"
    EVENT_BUFFER_SIZE: int = 10000
    ENABLE_EVENT_PROCESSOR: bool = False

    # Gamification Config
    # Full catalog rescan on every event unless filtering is switched on
    BADGE_EVENT_FILTERING: bool = False
    BADGE_AWARD_MAX_RETRIES: int = 3
    LOAD_DEFAULT_BADGES: bool = True

    # Development Config
    RELOAD: bool = True
    LOG_LEVEL: str = "info"

    model_config = ConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    @model_validator(mode="after")
    def validate_model(self):
        """Post initialization hook using Pydantic v2 model validator"""
        if not self.DATABASE_TYPE:
            self.DATABASE_TYPE = self._detect_database_type()  # pylint: disable=C0103
        if self.BADGE_AWARD_MAX_RETRIES < 1:
            raise ValueError("BADGE_AWARD_MAX_RETRIES must be at least 1")
        return self

    def _detect_database_type(self) -> DatabaseType:
        """Detect the database type from the DATABASE_URL"""
        parsed = urlparse(self.DATABASE_URL)
        scheme = parsed.scheme.lower()

        if scheme.startswith(("postgresql", "postgres")):
            return "postgresql"
        return "sqlite"

    def get_database_url(self) -> str:
        """Get the formatted database URL"""

        if self.DATABASE_TYPE == "postgresql":
            return self._get_postgresql_url()
        return self._get_sqlite_url()

    def _get_sqlite_url(self) -> str:
        """Get the SQLite database URL"""
        if self.DATABASE_URL.startswith("sqlite"):
            if ":///" in self.DATABASE_URL:
                return self.DATABASE_URL
            db_path = self.DATABASE_URL.replace("sqlite://", "")
            return f"sqlite:///{os.path.abspath(db_path)}"
        return f"sqlite:///{os.path.abspath(self.SQLITE_DB_PATH)}"

    def _get_postgresql_url(self) -> str:
        """Get the PostgreSQL database URL"""
        if (
            self.DATABASE_URL.startswith(("postgresql", "postgres"))
            and "localhost" not in self.DATABASE_URL
        ):
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def get_database_config(self) -> dict:
        """Get the database specific configuration"""
        base_config = {"echo": self.DB_ECHO}
        if self.DATABASE_TYPE == "sqlite":
            base_config.update(
                {
                    "connect_args": {"check_same_thread": False},
                    "pool_pre_ping": self.DB_POOL_PRE_PING,
                }
            )
        elif self.DATABASE_TYPE == "postgresql":
            base_config.update(
                {
                    "pool_size": self.DB_POOL_SIZE,
                    "max_overflow": self.DB_MAX_OVERFLOW,
                    "pool_timeout": self.DB_POOL_TIMEOUT,
                    "pool_pre_ping": self.DB_POOL_PRE_PING,
                }
            )
        return base_config


# Global settings instance
settings = Settings()
