"""
INSERT ... ON CONFLICT for the dialects we run on: PostgreSQL in production, SQLite in tests.
Both dialect insert constructs expose the same on_conflict_do_nothing / on_conflict_do_update API.
"""
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session


def dialect_insert(db: Session, model):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


def insert_ignore(db: Session, model, values: dict, index_elements: list[str]) -> bool:
    """Insert unless a row with the same key exists. True when a row was written."""
    stmt = dialect_insert(db, model).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    result = db.execute(stmt)
    return (result.rowcount or 0) > 0
