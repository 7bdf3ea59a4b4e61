# migrations/env.py
import sys
from logging.config import fileConfig

from flask import current_app
from alembic import context

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# --- Flask-Migrate Integration ---
try:
    from sippool.extensions import db
    from sippool.database import models  # noqa Ensures models are registered with metadata
except ImportError as e:
    print(f"Error importing sippool components in migrations/env.py: {e}")
    print("Install the project (pip install -e .) before running migrations.")
    sys.exit(1)

target_metadata = db.metadata


def get_engine_url():
    """Retrieve database URL from Flask config."""
    try:
        return current_app.config['SQLALCHEMY_DATABASE_URI']
    except RuntimeError:  # Outside an application context
        return config.get_main_option("sqlalchemy.url")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = get_engine_url()
    if not url:
        raise ValueError("Database URL not found. Set SQLALCHEMY_DATABASE_URI in config.")

    context.configure(
        url=url.replace('%', '%%'),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = db.engine

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite needs batch mode for ALTER TABLE
            render_as_batch=connection.dialect.name == 'sqlite',
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
