from backend_common.logging import configure_logging as _configure_logging

from .config import get_settings


def configure_logging() -> None:
    settings = get_settings()
    _configure_logging(
        settings.SERVICE_NAME,
        app_env=settings.APP_ENV,
        log_level=settings.LOG_LEVEL,
        sentry_dsn=settings.SENTRY_DSN,
        sentry_traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )
