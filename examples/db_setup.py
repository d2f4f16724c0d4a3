"""
Database setup utilities for examples
"""

import sys
from pathlib import Path

import asyncpg

# Make the tableview package importable when running from a checkout
sys.path.append(str(Path(__file__).parent.parent))

from tableview.db_context import DatabaseManager


async def setup_postgres_connection(
    host: str = "localhost",
    port: int = 5432,
    database: str = "postgres",
    user: str = "postgres",
    password: str = "postgres",
    pool_name: str = "default",
) -> asyncpg.Pool:
    """
    Create a pool against a local PostgreSQL instance and register it
    with DatabaseManager under `pool_name`.
    """
    try:
        pool = await asyncpg.create_pool(
            host=host,
            port=port,
            database=database,
            user=user,
            password=password,
            min_size=1,
            max_size=10,
        )
    except (OSError, asyncpg.PostgresError) as e:
        print(f"❌ Failed to connect to PostgreSQL at {host}:{port}/{database}: {e}")
        raise

    await DatabaseManager.add_pool(pool_name, pool)
    print(f"✅ Connected to PostgreSQL at {host}:{port}/{database} as {user}")
    return pool


async def setup_example_schema(pool_name: str = "default"):
    """Create the users table for examples if it doesn't exist, and empty it."""
    pool = await DatabaseManager.get_pool(pool_name)
    async with pool.acquire() as conn:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id UUID PRIMARY KEY,
                name VARCHAR(255) NOT NULL,
                email VARCHAR(255) NOT NULL,
                active BOOLEAN NOT NULL DEFAULT TRUE,
                role VARCHAR(50) NOT NULL DEFAULT 'member'
            );
            TRUNCATE TABLE users;
            """
        )
    print("✅ Users table ready")


async def close_connections(pool_name: str = "default"):
    pool = await DatabaseManager.remove_pool(pool_name)
    if pool is not None:
        await pool.close()
    print("🔒 Closed database connections")
