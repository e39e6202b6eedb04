"""
Integration tests for read-only enforcement at database connection level.

Every generated query runs inside a READ ONLY transaction, so a write
that slipped past the allow-list is still refused by PostgreSQL.

Usage:
    pytest tests/integration/test_read_only_enforcement.py -v -m integration

Requirements:
    - DATABASE__DATABASE_URL must be set in .env
"""

import pytest
import asyncpg

from sql_agent.config import get_settings
from sql_agent.domain.errors import DatabaseQueryError
from sql_agent.infrastructure.database_client import DatabaseClient


@pytest.fixture
def database_config():
    return get_settings().database


@pytest.fixture
async def db_client(database_config):
    client = DatabaseClient(database_config)
    await client.connect()
    yield client
    if client.is_connected():
        await client.close()


@pytest.mark.integration
class TestReadOnlyEnforcement:
    """Test read-only enforcement at connection level."""

    @pytest.mark.asyncio
    async def test_read_operations_work_in_read_only_mode(self, db_client):
        async with db_client.acquire_connection(read_only=True) as conn:
            assert await conn.fetchval("SELECT 1") == 1

    @pytest.mark.asyncio
    async def test_write_operations_blocked_in_read_only_mode(self, db_client):
        with pytest.raises(asyncpg.ReadOnlySQLTransactionError):
            async with db_client.acquire_connection(read_only=True) as conn:
                await conn.execute("CREATE TEMP TABLE test_read_only (id INT);")

    @pytest.mark.asyncio
    async def test_write_operations_work_with_read_only_false(self, db_client):
        async with db_client.acquire_connection(read_only=False) as conn:
            await conn.execute("CREATE TEMP TABLE test_write_allowed (id INT);")
            await conn.execute("INSERT INTO test_write_allowed VALUES (1), (2), (3);")
            assert await conn.fetchval("SELECT COUNT(*) FROM test_write_allowed;") == 3

    @pytest.mark.asyncio
    async def test_execute_query_refuses_writes(self, db_client):
        """A write passed to execute_query surfaces as a query error."""
        with pytest.raises(DatabaseQueryError):
            await db_client.execute_query("CREATE TEMP TABLE test_execute (id INT);", read_only=True)

    @pytest.mark.asyncio
    async def test_execute_query_reads(self, db_client):
        result = await db_client.execute_query("SELECT 1 AS value", read_only=True)
        assert result == [{"value": 1}]
