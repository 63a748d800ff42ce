"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    APP_NAME: str = "BrokerDesk Notifications"
    ENV: str = "development"

    DATABASE_URL: str = "postgresql+psycopg://postgres@localhost:5432/brokerdesk"

    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    COOKIE_NAME: str = "bd_access"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:5173"

    # deadline scan loop
    NOTIFICATION_SCAN_ENABLED: bool = True
    NOTIFICATION_SCAN_INTERVAL_SECONDS: int = 5 * 60
    NOTIFICATION_DEDUP_WINDOW_HOURS: int = 24
    NOTIFICATION_LIST_LIMIT: int = 200
    # sessions with no request for this long lose their scan loop
    NOTIFICATION_SESSION_IDLE_SECONDS: int = 30 * 60

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 120

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8")

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() in {"prod", "production"}

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def scan_interval_seconds(self) -> int:
        return max(30, self.NOTIFICATION_SCAN_INTERVAL_SECONDS)

    @property
    def session_idle_seconds(self) -> int:
        return max(self.scan_interval_seconds, self.NOTIFICATION_SESSION_IDLE_SECONDS)

    @property
    def dedup_window_hours(self) -> int:
        return max(1, self.NOTIFICATION_DEDUP_WINDOW_HOURS)


settings = Settings()
