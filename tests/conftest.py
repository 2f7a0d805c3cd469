import asyncpg
import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from blogvault.db_context import Database
from blogvault.migrations import apply_schema


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session.

    Only the integration tests request it; they are skipped when no
    container runtime is available.
    """
    container = PostgresContainer("postgres:17")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"PostgreSQL container unavailable: {exc}")
    try:
        yield container
    finally:
        container.stop()


@pytest.fixture
def postgres_dsn(postgres_container) -> str:
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    return (
        f"postgresql://{postgres_container.username}:{postgres_container.password}"
        f"@{host}:{port}/{postgres_container.dbname}"
    )


@pytest_asyncio.fixture
async def db(postgres_dsn):
    """A Database over a fresh pool with the full schema applied.

    A new pool per test avoids sharing connections across event loops.
    """
    pool = await asyncpg.create_pool(postgres_dsn, min_size=1, max_size=5)
    database = Database(pool)
    await apply_schema(database)

    yield database

    async with pool.acquire() as conn:
        await conn.execute("TRUNCATE TABLE posts, about_me CASCADE")

    await database.close()
