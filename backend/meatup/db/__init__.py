from meatup.db.base import Base
from meatup.db.session import build_engine, build_session_factory, get_db
from meatup.db.tables import ALL_TABLE_NAMES
from meatup.db.upsert import dialect_insert, insert_ignore

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "get_db",
    "ALL_TABLE_NAMES",
    "dialect_insert",
    "insert_ignore",
]
