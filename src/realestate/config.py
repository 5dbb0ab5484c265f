from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Pydantic Settings reads env vars matching field names (case-insensitive).
    In development, it also reads from .env file if present.
    """

    app_name: str = "realestate"

    # Status returned when an INSERT hits a unique constraint.
    # 409 Conflict by default; legacy clients that expect the old behaviour
    # can set CONFLICT_STATUS_CODE=400.
    conflict_status_code: int = Field(default=409, ge=400, le=499)

    model_config = SettingsConfigDict(
        env_file=".env",  # Load from .env in development
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


settings = Settings()
