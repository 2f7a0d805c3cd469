import logging
import time
from typing import Any

from blogvault.db_context import Database

logger = logging.getLogger(__name__)


class DatabaseOperations:
    """Composition class for database operations"""

    def __init__(self, db: Database):
        self.db = db

    def get_connection(self) -> Any:
        """Get the current database connection from context"""
        conn = self.db.get_current_connection()
        if conn is None:
            raise ValueError(
                "No active transaction found. Repository methods must be called within a transaction context."
            )
        return conn

    @staticmethod
    def _log_duration(query: str, started: float) -> None:
        logger.debug(
            "Executed query in %.1fms: %s", (time.perf_counter() - started) * 1000, query
        )

    async def fetch_all(self, query: str, params: list[Any]) -> list[Any]:
        """Execute query and fetch all rows"""
        conn = self.get_connection()
        Database.log_query(query, params)
        started = time.perf_counter()
        rows = await conn.fetch(query, *params)
        self._log_duration(query, started)
        return rows

    async def fetch_one(self, query: str, params: list[Any]) -> Any:
        """Execute a query and fetch one row"""
        conn = self.get_connection()
        Database.log_query(query, params)
        started = time.perf_counter()
        row = await conn.fetchrow(query, *params)
        self._log_duration(query, started)
        return row

    async def fetch_value(self, query: str, params: list[Any]) -> Any:
        """Execute query and fetch single value"""
        conn = self.get_connection()
        Database.log_query(query, params)
        started = time.perf_counter()
        value = await conn.fetchval(query, *params)
        self._log_duration(query, started)
        return value

    async def execute_query(self, query: str, params: list[Any]) -> str:
        """Execute query and return the command status (e.g. ``UPDATE 1``)"""
        conn = self.get_connection()
        Database.log_query(query, params)
        started = time.perf_counter()
        status = await conn.execute(query, *params)
        self._log_duration(query, started)
        return status
