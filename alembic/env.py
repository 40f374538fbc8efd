import os
from logging.config import fileConfig

from alembic import context
from backend_common.database import to_sync_driver_url
from sqlalchemy import create_engine, pool

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

try:
    from teamhub_service import models  # noqa: F401
    from teamhub_service.database import Base as ServiceBase
except Exception:
    ServiceBase = None

target_metadata = ServiceBase.metadata if ServiceBase is not None else None


def _database_url() -> str:
    url = os.getenv("TEAMHUB_DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("TEAMHUB_DATABASE_URL environment variable is not set")
    # migrations always run on a synchronous driver
    return to_sync_driver_url(url)


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(_database_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
