import os
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool


def get_required_env_url(env_name: str) -> str:
    url = os.getenv(env_name)
    if not url:
        raise RuntimeError(f"{env_name} environment variable is required")
    return url


def ensure_async_driver_url(url: str) -> str:
    """Map plain postgres/sqlite URLs onto their asyncio drivers."""
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("sqlite://") and not url.startswith("sqlite+"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    if not url.startswith("postgresql+asyncpg://"):
        return url

    # asyncpg understands `ssl`, not libpq's `sslmode`/`channel_binding`
    parsed = urlparse(url)
    q = dict(parse_qsl(parsed.query, keep_blank_values=True))
    sslmode = (q.pop("sslmode", None) or "").strip().lower()
    if sslmode in {"require", "verify-full", "verify-ca"}:
        q.setdefault("ssl", "true")
    elif sslmode == "disable":
        q.setdefault("ssl", "false")
    q.pop("channel_binding", None)
    return urlunparse(parsed._replace(query=urlencode(q, doseq=True)))


def to_sync_driver_url(url: str) -> str:
    """Inverse of ensure_async_driver_url, used by alembic migrations."""
    if url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    if "+asyncpg" in url:
        url = url.replace("postgresql+asyncpg", "postgresql+psycopg2", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg2://", 1)
    elif url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)

    if "+psycopg2" not in url:
        return url

    parsed = urlparse(url)
    q = dict(parse_qsl(parsed.query, keep_blank_values=True))
    ssl_val = (q.pop("ssl", None) or "").strip().lower()
    if ssl_val in {"true", "1", "require"}:
        q.setdefault("sslmode", "require")
    q.pop("channel_binding", None)
    return urlunparse(parsed._replace(query=urlencode(q, doseq=True)))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_async_engine_and_session(
    database_url: str,
    *,
    echo: bool = False,
    expire_on_commit: bool = False,
    autoflush: bool = False,
    **engine_kwargs: Any,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        # aiosqlite connections are bound to the loop that opened them
        engine_kwargs.setdefault("poolclass", NullPool)

    engine = create_async_engine(database_url, echo=echo, **engine_kwargs)
    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    session_factory = async_sessionmaker(
        bind=engine,
        expire_on_commit=expire_on_commit,
        autoflush=autoflush,
        class_=AsyncSession,
    )
    return engine, session_factory
