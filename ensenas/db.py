"""Database connection and schema setup."""

from __future__ import annotations

import logging
import os
import time
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ensenas.models import User

logger = logging.getLogger(__name__)

_TABLES = (("User", User.__table__),)


def create_tables(engine: Engine) -> dict[str, Optional[SQLAlchemyError]]:
    """Create every table; map each table name to the error it raised, or None."""
    results: dict[str, Optional[SQLAlchemyError]] = {}
    for name, table in _TABLES:
        try:
            table.create(engine)
        except SQLAlchemyError as exc:
            logger.error("Error creating table '%s': %s", name, exc)
            results[name] = exc
        else:
            logger.info("Table '%s' created successfully!", name)
            results[name] = None
    return results


def establish_connection(
    database_url: Optional[str] = None,
    max_attempts: int = 5,
    delay: float = 5.0,
) -> Engine:
    """Connect to the database, retrying, and create the schema.

    The URL defaults to the DATABASE_URL environment variable.
    """
    if database_url is None:
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL must be set")

    logger.info("Trying to connect to db")
    for attempt in range(1, max_attempts + 1):
        engine = None
        try:
            engine = create_engine(database_url)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            if engine is not None:
                engine.dispose()
            logger.warning(
                "Failed to connect to database: %s. Attempt %d of %d",
                exc,
                attempt,
                max_attempts,
            )
            time.sleep(delay)
            continue
        logger.info("Database connected successfully!")
        create_tables(engine)
        return engine

    raise ConnectionError(
        f"Failed to connect to database after {max_attempts} attempts"
    )