import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import wraps
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)

# Connection bound to the current task context (one per context)
_current_connection: ContextVar[asyncpg.Connection | None] = ContextVar(
    "current_connection", default=None
)
_query_tracker: ContextVar["QueryTracker | None"] = ContextVar(
    "query_tracker", default=None
)
_db_pools: dict[str, asyncpg.Pool] = {}


@dataclass
class QueryLog:
    """A query executed while a tracker was active"""

    query: str
    params: list[Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class QueryTracker:
    """Collects the queries executed during a context"""

    def __init__(self):
        self.queries: list[QueryLog] = []

    def log_query(self, query: str, params: list[Any]):
        self.queries.append(QueryLog(query=query, params=list(params)))

    def get_queries(self) -> list[QueryLog]:
        return self.queries.copy()

    def count(self) -> int:
        return len(self.queries)


class DatabaseManager:
    """Manages named asyncpg pools and the connection bound to the current context"""

    @classmethod
    async def add_pool(cls, name: str, pool: asyncpg.Pool):
        _db_pools[name] = pool

    @classmethod
    async def remove_pool(cls, name: str) -> asyncpg.Pool | None:
        return _db_pools.pop(name, None)

    @classmethod
    async def get_pool(cls, name: str = "default") -> asyncpg.Pool:
        if name not in _db_pools:
            raise ValueError(f"Database pool '{name}' not found")
        return _db_pools[name]

    @classmethod
    def get_current_connection(cls) -> asyncpg.Connection | None:
        return _current_connection.get()

    @classmethod
    def log_query(cls, query: str, params: list[Any]):
        """Log a query at debug level and to the active tracker, if any"""
        logger.debug("Executing query: %s params=%r", query, params)
        tracker = _query_tracker.get()
        if tracker:
            tracker.log_query(query, params)

    @classmethod
    @asynccontextmanager
    async def transaction(cls, db_name: str = "default"):
        """Context manager for database transactions.

        Within an existing transaction a nested transaction (savepoint) is opened
        on the same connection. Otherwise a connection is acquired from the named
        pool; it is released back to the pool on every exit path, including
        exceptions and cancellation.

        Args:
            db_name: Name of the database pool to use
        """
        current_conn = _current_connection.get()

        if current_conn:
            async with current_conn.transaction():
                yield current_conn
            return

        pool = await cls.get_pool(db_name)
        async with pool.acquire() as conn, conn.transaction():
            conn_token = _current_connection.set(conn)
            try:
                yield conn
            finally:
                _current_connection.reset(conn_token)

    @classmethod
    @asynccontextmanager
    async def track_queries(cls):
        """Enable query tracking for the enclosed block.

        async with DatabaseManager.transaction():
            async with DatabaseManager.track_queries() as tracker:
                await view.render()
                queries = tracker.get_queries()
        """
        current_tracker = _query_tracker.get()
        if current_tracker:
            yield current_tracker
            return

        tracker = QueryTracker()
        token = _query_tracker.set(tracker)
        try:
            yield tracker
        finally:
            _query_tracker.reset(token)


def transactional(db_name: str = "default"):
    """Decorator to run a coroutine function within a database transaction.

    Example:
        @transactional("default")
        async def users_page(search: str | None):
            return await UserTableView().render(TableQuery(search=search))
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            async with DatabaseManager.transaction(db_name):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
