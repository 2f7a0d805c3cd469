import asyncio
import logging
import time
import traceback
from collections.abc import Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import wraps
from typing import Any

import asyncpg

from blogvault.config import Settings
from blogvault.errors import BlogVaultError, PersistenceError

logger = logging.getLogger(__name__)

# Storage-layer failures reported as PersistenceError
STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError)


@dataclass
class QueryLog:
    """Represents a logged query"""

    query: str
    params: list[Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    stack_trace: str | None = None

    def __repr__(self) -> str:
        return f"QueryLog(query={self.query!r}, params={self.params!r}, timestamp={self.timestamp})"


class QueryTracker:
    """Tracks queries executed during a context"""

    def __init__(self):
        self.queries: list[QueryLog] = []
        self._enabled: bool = False

    def enable(self):
        self._enabled = True

    def disable(self):
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def log_query(self, query: str, params: list[Any], stack_trace: str | None = None):
        """Log a query with its parameters and optional stack trace"""
        if self._enabled:
            self.queries.append(
                QueryLog(query=query, params=list(params), stack_trace=stack_trace)
            )

    def get_queries(self) -> list[QueryLog]:
        return self.queries.copy()

    def clear(self):
        self.queries.clear()

    def count(self) -> int:
        return len(self.queries)

    def matching(self, fragment: str) -> list[QueryLog]:
        """Queries whose SQL text contains ``fragment``"""
        return [log for log in self.queries if fragment in log.query]


# Context variable to store the query tracker
_query_tracker: ContextVar[QueryTracker | None] = ContextVar(
    "query_tracker", default=None
)


class Database:
    """Handle over one connection pool.

    The pool is injected so the repositories never reach for global state;
    anything exposing asyncpg's ``acquire()`` / ``transaction()`` /
    ``fetch*`` / ``execute`` contract works, including in-memory fakes.

    The connection checked out by the outermost ``transaction()`` is stored
    in a context variable, so repository calls made inside it (and nested
    ``transaction()`` blocks, which become savepoints) share that connection.
    """

    def __init__(self, pool: Any, *, checkout_warning_seconds: float = 5.0):
        self.pool = pool
        self.checkout_warning_seconds = checkout_warning_seconds
        self._current_connection: ContextVar[Any | None] = ContextVar(
            f"current_connection_{id(self)}", default=None
        )

    @classmethod
    async def connect(cls, settings: Settings) -> "Database":
        """Create an asyncpg pool from settings and wrap it"""
        pool = await asyncpg.create_pool(
            dsn=settings.dsn,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
        logger.info("Connected to PostgreSQL (pool max_size=%s)", settings.db_pool_max_size)
        return cls(pool, checkout_warning_seconds=settings.checkout_warning_seconds)

    async def close(self) -> None:
        await self.pool.close()

    def get_current_connection(self) -> Any | None:
        """Get the current active connection from context"""
        return self._current_connection.get()

    @staticmethod
    def get_query_tracker() -> QueryTracker | None:
        return _query_tracker.get()

    @staticmethod
    def log_query(query: str, params: list[Any]):
        """Log a query to the current query tracker if available"""
        tracker = _query_tracker.get()
        if tracker:
            # Skip this frame and the DatabaseOperations frame
            stack = traceback.extract_stack()[:-2]
            tracker.log_query(query, params, "".join(traceback.format_list(stack)))

    def _warn_long_checkout(self, started: float) -> None:
        logger.warning(
            "A connection has been checked out for more than %.1f seconds (%.1fs so far)",
            self.checkout_warning_seconds,
            time.monotonic() - started,
        )

    @asynccontextmanager
    async def transaction(self, track_queries: bool = False):
        """Context manager for database transactions.

        Behavior:
        - Inside an existing transaction it opens a nested transaction
          (savepoint) on the same connection.
        - Otherwise it acquires a connection with ``async with pool.acquire()``
          and starts a transaction; the connection goes back to the pool when
          the block exits, normally or through an exception (which rolls the
          transaction back).
        """
        current_conn = self._current_connection.get()

        if current_conn is not None:
            async with current_conn.transaction():
                yield current_conn
            return

        started = time.monotonic()
        loop = asyncio.get_running_loop()
        warning = loop.call_later(
            self.checkout_warning_seconds, self._warn_long_checkout, started
        )
        try:
            async with self.pool.acquire() as conn, conn.transaction():
                conn_token = self._current_connection.set(conn)

                tracker_token = None
                if track_queries and _query_tracker.get() is None:
                    tracker = QueryTracker()
                    tracker.enable()
                    tracker_token = _query_tracker.set(tracker)

                try:
                    yield conn
                finally:
                    self._current_connection.reset(conn_token)
                    if tracker_token:
                        _query_tracker.reset(tracker_token)
        finally:
            warning.cancel()

    @asynccontextmanager
    async def track_queries(self):
        """Context manager for query tracking.

        async with db.track_queries() as tracker:
            await repo.get(slug)
            queries = tracker.get_queries()
        """
        current_tracker = _query_tracker.get()

        if current_tracker:
            was_enabled = current_tracker.is_enabled()
            current_tracker.enable()
            try:
                yield current_tracker
            finally:
                if not was_enabled:
                    current_tracker.disable()
        else:
            tracker = QueryTracker()
            tracker.enable()
            token = _query_tracker.set(tracker)
            try:
                yield tracker
            finally:
                _query_tracker.reset(token)


def transactional(query_logs: bool = False) -> Callable:
    """Decorator running a repository method inside ``self.db.transaction()``.

    Storage errors (``STORAGE_ERRORS``) roll the transaction back and are
    re-raised as ``PersistenceError``; blogvault errors propagate unchanged (after the
    rollback).

    Example:
        class PostRepository(Repository):
            @transactional()
            async def delete(self, post_id): ...
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                async with self.db.transaction(track_queries=query_logs):
                    return await func(self, *args, **kwargs)
            except BlogVaultError:
                raise
            except STORAGE_ERRORS as exc:
                logger.exception("Error in %s", func.__qualname__)
                raise PersistenceError(str(exc) or type(exc).__name__) from exc

        return wrapper

    return decorator
