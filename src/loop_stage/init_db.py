# src/loop_stage/init_db.py
"""Create every table directly, for local development without Alembic."""

import logging

from loop_stage.core.logging_setup import configure_logging
from loop_stage.db.session import create_tables

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()


if __name__ == "__main__":
    configure_logging()
    init_db()
    logger.info("Database initialized.")
