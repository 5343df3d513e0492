"""Dialect-aware INSERT constructs for ON CONFLICT upserts."""

from sqlalchemy.dialects import postgresql, sqlite


def insert_for(dialect_name: str):
    """``insert`` supporting ``on_conflict_do_update`` for the given dialect."""
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upserts are not supported on {dialect_name}")
