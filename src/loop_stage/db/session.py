"""Engine, declarative base and request sessions for the Loop Stage database.

``get_db`` hands one session to each request through the FastAPI
dependencies. ``create_tables`` builds the schema straight from the models
for local SQLite runs; deployed databases go through Alembic instead.
"""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from loop_stage.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import loop_stage.models  # noqa: E402,F401

DATABASE_URL = settings.effective_database_url

# Sessions cross the threadpool boundary between dependencies and async endpoints.
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
    echo=settings.sql_debug,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request session, rolling back whatever the handler left uncommitted on error."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables() -> None:
    """Create every loop, post, reply, vote and profile table."""
    Base.metadata.create_all(bind=engine)
