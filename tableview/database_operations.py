from collections.abc import AsyncIterator
from typing import Any

import asyncpg

from tableview.db_context import DatabaseManager


class DatabaseOperations:
    """Executes queries on the connection bound to the current transaction"""

    @staticmethod
    def get_connection() -> asyncpg.Connection:
        conn = DatabaseManager.get_current_connection()
        if not conn:
            raise ValueError(
                "No active transaction found. Repository methods must be called within a transaction context."
            )
        return conn

    async def fetch_all(self, query: str, params: list[Any]) -> list[Any]:
        conn = self.get_connection()
        DatabaseManager.log_query(query, params)
        return await conn.fetch(query, *params)

    async def fetch_value(self, query: str, params: list[Any]) -> Any:
        conn = self.get_connection()
        DatabaseManager.log_query(query, params)
        return await conn.fetchval(query, *params)

    async def execute_query(self, query: str, params: list[Any]) -> str:
        conn = self.get_connection()
        DatabaseManager.log_query(query, params)
        return await conn.execute(query, *params)

    async def iterate(
        self, query: str, params: list[Any], prefetch: int | None = None
    ) -> AsyncIterator[Any]:
        """Stream rows through a server-side cursor.

        Rows are fetched in batches of `prefetch` as the caller pulls them;
        closing the generator early stops fetching.
        """
        conn = self.get_connection()
        DatabaseManager.log_query(query, params)
        async for row in conn.cursor(query, *params, prefetch=prefetch):
            yield row
