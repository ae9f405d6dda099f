from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # === Telegram transport ===
    BOT_API_TOKEN: str | None = None
    TELEGRAM_API_BASE_URL: str = "https://api.telegram.org"
    TELEGRAM_POLL_TIMEOUT: int = Field(
        default=30,
        ge=0,
        le=50,
        description="Long-poll timeout passed to getUpdates (seconds).",
    )

    # === Fetch pipeline ===
    FETCH_TIMEOUT_SECONDS: float = Field(
        default=30.0, description="Per-request transport timeout in seconds"
    )
    FETCH_CONCURRENCY: int = Field(
        default=8, description="Maximum in-flight fetches for a single batch"
    )
    FETCH_MAX_BYTES: int = 50 * 1024 * 1024  # Telegram bots cannot upload more than 50 MB
    FETCH_USER_AGENT: str = "mergebot/1.0"
    GDRIVE_HOSTS: str = "drive.google.com,drive.usercontent.google.com"

    MERGED_FILENAME: str = "merged.pdf"

    METRICS_PORT: int | None = None

    @field_validator("FETCH_CONCURRENCY")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Validate the per-batch fetch bound."""
        if v < 1:
            raise ValueError("FETCH_CONCURRENCY must be >= 1")
        if v > 64:
            raise ValueError("FETCH_CONCURRENCY must be <= 64")
        return v

    @field_validator("FETCH_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("FETCH_TIMEOUT_SECONDS must be > 0")
        return v

    @field_validator("FETCH_MAX_BYTES")
    @classmethod
    def validate_max_bytes(cls, v: int) -> int:
        if v < 1024:
            raise ValueError("FETCH_MAX_BYTES must be >= 1024 bytes")
        return v

    @property
    def gdrive_hosts(self) -> frozenset[str]:
        """Parse the comma separated Drive host list."""
        return frozenset(
            part.strip().lower() for part in self.GDRIVE_HOSTS.split(",") if part.strip()
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process settings. Only the composition root should call this."""
    return Settings()
