from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="portalapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Portal Ledger API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""

    # Explicit URL wins over the POSTGRES_* parts (sqlite for local runs and tests)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Resolve the SQLAlchemy URL from DATABASE_URL or the POSTGRES_* parts"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if not self.POSTGRES_HOST:
            return "sqlite:///./portal.db"

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Third-party enrollment API
    ENROLLMENT_API_URL: str = "https://meslekkocu.com/api/partner/v1/students"
    ENROLLMENT_API_KEY: Optional[str] = None
    ENROLLMENT_API_SECRET: Optional[str] = None
    ENROLLMENT_TIMEOUT_SECONDS: float = 10.0
    ENROLLMENT_MAX_ATTEMPTS: int = 3
    ENROLLMENT_BACKOFF_SECONDS: float = 1.0

    # Business Rules
    LEADERBOARD_SIZE: int = 25
    DEFAULT_AWARD_REASON: str = "Puan eklendi"
    DEFAULT_DEDUCT_REASON: str = "Puan azaltıldı"

    @property
    def enrollment_configured(self) -> bool:
        return bool(self.ENROLLMENT_API_KEY and self.ENROLLMENT_API_SECRET)


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
