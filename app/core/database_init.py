"""Database initialization on app startup.

Creates any missing catalog tables from the SQLAlchemy metadata. Existing
tables are left alone; schema changes go through the alembic migrations.
"""

import logging

from sqlalchemy import inspect

from app.models import Base

from .db import _get_engine

logger = logging.getLogger(__name__)


def init_database_schema() -> None:
    engine = _get_engine()
    existing = set(inspect(engine).get_table_names())
    missing = [table.name for table in Base.metadata.sorted_tables if table.name not in existing]
    if not missing:
        logger.info("Database schema up to date")
        return
    Base.metadata.create_all(bind=engine)
    logger.info("Created database tables: %s", ", ".join(missing))
