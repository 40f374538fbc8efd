from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    SERVICE_NAME: str = "teamhub-service"
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    TEAMHUB_DATABASE_URL: str
    TEAMHUB_DB_ECHO: bool = False
    TEAMHUB_REDIS_URL: str | None = None
    TEAMHUB_REALTIME_CHANNEL: str = "teamhub:changes"
    TEAMHUB_REALTIME_QUEUE_SIZE: int = 256

    CORS_ORIGINS: str = "*"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    INTERNAL_GATEWAY_SECRET: str | None = None

    FIREBASE_WEB_API_KEY: str | None = None
    FIREBASE_CHECK_REVOKED: bool = False
    FIREBASE_IDENTITY_TOOLKIT_URL: str = "https://identitytoolkit.googleapis.com/v1"

    AI_ASSISTANT_URL: str = "http://agent-service:8006/chat"
    AI_ASSISTANT_TIMEOUT_SECONDS: float = 60.0

    STORAGE_MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
