from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

config = context.config

# convene.db sets configure_logger=False so the app's own logging setup survives.
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)

target_metadata = None


def _get_url() -> str:
    """Resolve database URL: explicit ini option first, then CONVENE_* settings."""
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    from convene.settings import settings

    return settings.db_url


def run_migrations_offline() -> None:
    context.configure(
        url=_get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(_get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
