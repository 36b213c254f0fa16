"""
Alembic environment configuration for database migrations.

Configures Alembic against the catalog models and the database URL derived
from application settings.
"""

import sys
from pathlib import Path
from logging.config import fileConfig

# Add project root to path before importing project modules
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from alembic import context  # noqa: E402

from mrf_loader.catalog.database import create_db_engine  # noqa: E402
from mrf_loader.catalog.models import Base  # noqa: E402
from mrf_loader.config.settings import get_settings  # noqa: E402


# this is the Alembic Config object
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = get_settings()

# MetaData used for 'autogenerate' support
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Emits the SQL to the script output instead of executing it.
    """
    url = config.get_main_option("sqlalchemy.url") or create_db_engine(settings).url
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against the configured database."""
    connectable = create_db_engine(settings)

    try:
        with connectable.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata
            )

            with context.begin_transaction():
                context.run_migrations()
    finally:
        connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
