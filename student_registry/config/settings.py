from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "Student Registry"
    VERSION: str = "1.0.0"
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    """Pydantic v2 doesn't support parsing List[str] from a plain comma-separated string by default anymore."""
    ALLOWED_ORIGINS: Union[str, List[str]] = "http://localhost:3000,http://localhost:5175"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    LOG_JSON: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./students.db"
    DATABASE_TIMEOUT_SECONDS: int = 30
    DATABASE_ECHO: bool = False

    # Record identity
    SEQUENCE_MAX_ATTEMPTS: int = 5

    # Request throttling
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_MAX_TRACKED_CLIENTS: int = 10_000
    TRUST_FORWARDED_FOR: bool = False

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if not v:
            return []
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator(
        "SEQUENCE_MAX_ATTEMPTS", "RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_WINDOW_SECONDS"
    )
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
