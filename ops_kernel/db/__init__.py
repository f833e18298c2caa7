"""Database layer - engine, base classes, immutability enforcement."""

from ops_kernel.db.base import Base, ISOTimestamp
from ops_kernel.db.engine import create_tables, get_engine, get_session, session_scope

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "ISOTimestamp",
]
