"""
Database Engine and Sessions

Synchronous SQLAlchemy 2.0. FastAPI runs the sync endpoints on its
threadpool, and every request gets its own Session from get_db().

Transactions belong to the lifecycle services: a service performs all the
writes of one operation (the row itself, counters, rating aggregates) and
then commits once. The session is closed when the request ends, which
discards anything left uncommitted.
"""

import json
from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from bookreview.config import get_settings

settings = get_settings()


def dump_json(value) -> str:
    """
    JSON column serializer that keeps non-ASCII text as is.

    Book search matches tags against the stored JSON text, so "café" has
    to be stored as "café" and not as an escaped "caf\\u00e9".
    """
    return json.dumps(value, ensure_ascii=False)


def _engine_options() -> dict:
    options: dict = {
        "echo": settings.db_echo,
        "pool_pre_ping": True,
        "json_serializer": dump_json,
    }
    if settings.is_sqlite:
        # The sessions cross threadpool workers
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


engine = create_engine(settings.database_url, **_engine_options())

if settings.is_sqlite:

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


class Base(DeclarativeBase):
    """Declarative base for users, books and reviews (Base.metadata feeds Alembic)."""


def get_db() -> Generator[Session, None, None]:
    """
    Session-per-request dependency.

    Yields:
        A Session that is closed after the response, even on errors
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """
    Create any missing tables (development and seeding only).

    Deployed databases are managed with `alembic upgrade head`.
    """
    Base.metadata.create_all(bind=engine)
