from urllib.parse import urlparse

import structlog
from backend_common.database import create_async_engine_and_session, ensure_async_driver_url
from sqlalchemy.orm import declarative_base

from .config import get_settings

logger = structlog.get_logger(__name__)

settings = get_settings()
DATABASE_URL = ensure_async_driver_url(settings.TEAMHUB_DATABASE_URL)

parsed = urlparse(DATABASE_URL)
logger.info("database_configured", scheme=parsed.scheme, url=parsed._replace(netloc="***").geturl())

engine, AsyncSessionLocal = create_async_engine_and_session(DATABASE_URL, echo=settings.TEAMHUB_DB_ECHO)
Base = declarative_base()
