"""Database helper utilities for ensuring schema consistency."""
from __future__ import annotations

from typing import Iterable, Set

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db


def _get_column_names(table_name: str) -> Set[str]:
    inspector = inspect(db.engine)
    return {column["name"] for column in inspector.get_columns(table_name)}


def ensure_database_schema() -> None:
    """Create the session table when missing and patch columns added later.

    Runs on every application start, so it only issues DDL when something is
    actually absent. Databases created before ``updated_at`` existed get the
    column added in place.
    """

    try:
        inspector = inspect(db.engine)
        table_names: Iterable[str] = inspector.get_table_names()

        # Import locally to avoid circular import issues during application setup.
        from .models import SessionEntry

        if "session_entries" not in table_names:
            SessionEntry.__table__.create(bind=db.engine)
            return

        columns = _get_column_names("session_entries")
        if "updated_at" not in columns:
            with db.engine.begin() as connection:
                connection.execute(
                    text("ALTER TABLE session_entries ADD COLUMN updated_at DATETIME")
                )
    except SQLAlchemyError:
        # A half-migrated schema would break every page, so refuse to start.
        raise
