"""
Alembic Environment for the Book Review API

The database URL always comes from DATABASE_URL through bookreview.config,
so migrations run against the same database as the app.

Schema notes that matter for autogenerate:
- reviews carries a PARTIAL unique index (book_id, user_id) WHERE
  status = 'active'. Autogenerate cannot see the WHERE clause reliably,
  so changes to that index are written by hand.
- SQLite cannot ALTER most constraints; batch mode recreates the table.

Workflow:
    alembic revision --autogenerate -m "add column"
    alembic upgrade head
    alembic downgrade -1
"""

import logging
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from bookreview.config import get_settings
from bookreview.database import Base
from bookreview.models import Book, Review, User  # noqa: F401 - registers tables

config = context.config
config.set_main_option("sqlalchemy.url", get_settings().database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

# Indexes maintained manually in migrations
MANUAL_INDEXES = {"uq_reviews_active_book_user"}


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Keep autogenerate away from the hand-written partial index."""
    return not (type_ == "index" and name in MANUAL_INDEXES)


def skip_empty_revision(context, revision, directives) -> None:
    """Don't write a revision file when autogenerate finds no changes."""
    if getattr(config.cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []
            logger.info("No schema changes detected; no revision written.")


def configure_context(**kwargs) -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        include_object=include_object,
        process_revision_directives=skip_empty_revision,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout: alembic upgrade head --sql > migration.sql"""
    configure_context(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        configure_context(connection=connection)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
