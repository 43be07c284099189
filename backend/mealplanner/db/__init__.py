"""Database package: shared engine, session factory, and Redis pool."""

from mealplanner.db.base import Base, close_db, get_session_factory, init_db
from mealplanner.db.redis import close_redis, get_redis_or_none, init_redis

__all__ = [
    "Base",
    "close_db",
    "close_redis",
    "get_redis_or_none",
    "get_session_factory",
    "init_db",
    "init_redis",
]
