from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Info
    PROJECT_NAME: str = "KeyAuth API"
    VERSION: str = "2.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/keyauth.db",
        description="Database URL (SQLite or PostgreSQL)"
    )
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Database max overflow connections")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Database pool timeout in seconds")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time in seconds")
    DB_CONNECT_TIMEOUT: int = Field(default=30, description="Timeout for opening a database connection in seconds")
    DB_OPERATION_TIMEOUT: float = Field(default=15.0, description="Timeout for one unit of work in seconds")
    DB_RETRY_ATTEMPTS: int = Field(default=5, description="Attempts on transient database failures")
    DB_RETRY_BACKOFF: float = Field(default=0.5, description="Base backoff between attempts in seconds (doubles each retry)")
    DB_CREATE_TABLES: bool = Field(default=True, description="Create missing tables on startup")

    @field_validator('DATABASE_URL')
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        # Hosted Postgres providers hand out postgres:// URLs
        v = v.strip()
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # Access control
    MAIN_ADMIN_ID: str = Field(default="techdavisk007", description="Fixed main admin identity")
    MAX_APPS_PER_USER: int = Field(default=10, description="Application quota for regular users")
    UNLIMITED_APPS: int = Field(default=999, description="Quota reported for admins and support users")

    # Keys
    KEY_SUFFIX_LENGTH: int = Field(default=6, description="Random characters appended to the key prefix")

    # Security - CORS
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    MAX_REQUEST_SIZE: int = Field(default=65536, description="Max request body size in bytes (default 64KB)")

    # Server Configuration
    WORKERS: int = Field(default=4, description="Number of Uvicorn workers")
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    LOG_DIR: str = Field(default="./logs", description="Directory for log files")
    LOG_RETENTION_DAYS: int = Field(default=30, description="Number of days to keep log files")
    LOG_TO_FILE: bool = Field(default=True, description="Write logs to a daily rotated file")
    LOG_ENABLE_REQUEST_LOGGING: bool = Field(default=True, description="Enable HTTP request/response logging")

    def get_log_level(self) -> str:
        """Get log level based on environment."""
        if self.ENVIRONMENT.lower() in ["development", "dev", "test"]:
            return "DEBUG"
        return self.LOG_LEVEL.upper()

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
