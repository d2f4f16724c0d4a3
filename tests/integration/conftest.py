import asyncpg
import pytest
import pytest_asyncio

from tableview.db_context import DatabaseManager


def _docker_available() -> bool:
    try:
        import docker

        docker.from_env().ping()
    except Exception:
        return False
    return True


def pytest_collection_modifyitems(config, items):
    if _docker_available():
        return
    skip = pytest.mark.skip(reason="Docker is required for Postgres integration tests")
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(skip)


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session."""
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:17") as postgres:
        yield postgres


@pytest_asyncio.fixture
async def test_db_pool(postgres_container):
    """Create a pool against the container and register it as 'test_db'."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    dsn = f"postgresql://{postgres_container.username}:{postgres_container.password}@{host}:{port}/{postgres_container.dbname}"

    # A pool per test avoids sharing connections across event loops
    pool = await asyncpg.create_pool(dsn, min_size=1, max_size=5)

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
            """
        )

    await DatabaseManager.add_pool("test_db", pool)

    yield pool

    async with pool.acquire() as conn:
        await conn.execute("TRUNCATE TABLE users;")
    await DatabaseManager.remove_pool("test_db")
    await pool.close()
