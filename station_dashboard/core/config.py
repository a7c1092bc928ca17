from __future__ import annotations

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


LICOR_DATA_URL = "https://api.licor.cloud/v1/data"

TIME_RANGE_HOURS: tuple[int, ...] = (1, 6, 12, 24)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        case_sensitive=False,
    )

    env: str = Field(default="development")
    debug: bool = Field(default=False)
    docs_enabled: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])

    licor_base_url: AnyHttpUrl = Field(default=LICOR_DATA_URL)
    licor_api_token: str = Field(default="")
    licor_logger_serial: str = Field(default="", max_length=64)
    licor_timeout_seconds: float = Field(default=10.0, ge=1.0, le=60.0)

    display_timezone: str = Field(default="America/Chicago", min_length=1)
    default_time_range_hours: int = Field(default=24, ge=1, le=24 * 7)
    auto_refresh_enabled: bool = Field(default=True)
    auto_refresh_interval_seconds: float = Field(default=5 * 60, ge=0.1, le=24 * 3600)

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def provider_configured(self) -> bool:
        return bool(self.licor_api_token and self.licor_logger_serial)


def load_settings() -> Settings:
    settings = Settings()
    if not settings.cors_origins:
        settings.cors_origins = ["http://localhost:3000", "http://localhost:8000"]
    return settings
