"""Database package — async SQLAlchemy engine, session factory, Base, unit of work."""
from app.db.base import (
    Base,
    after_commit,
    async_session_factory,
    build_engine,
    build_session_factory,
    engine,
    get_db,
    transaction,
)

__all__ = [
    "Base",
    "after_commit",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "engine",
    "get_db",
    "transaction",
]
