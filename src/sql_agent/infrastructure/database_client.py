"""
Database client for PostgreSQL using asyncpg.

This module provides an async database client with a small bounded
connection pool, read-only transaction enforcement and error mapping to
the domain exception hierarchy.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import UUID

import asyncpg

from ..config import DatabaseConfig
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..domain.errors import DatabaseConnectionError, DatabaseQueryError


logger = get_module_logger()


def _json_safe(value: Any) -> Any:
    """Coerce asyncpg values into JSON-serializable ones."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


class DatabaseClient:
    """
    Low-level async PostgreSQL client using asyncpg.

    This is a thin infrastructure layer. Catalog introspection and the
    guarded execution of generated SQL live in repositories.

    Features:
    - Bounded connection pool; every acquire is released on all exit paths
    - READ ONLY transactions by default (DatabaseConfig.enforce_read_only_default)
    - Per-query statement timeout
    - Structured logging with trace IDs

    Usage:
        client = DatabaseClient(config)
        await client.connect()

        rows = await client.execute_query('SELECT "nombre" FROM "public"."producto" LIMIT 5')
        count = await client.execute_scalar('SELECT COUNT(*) FROM "public"."producto"')

        await client.close()
    """

    def __init__(self, config: DatabaseConfig):
        """
        Initialize database client with configuration.

        Args:
            config: Database configuration
        """
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None
        self._is_connected = False

        logger.info(
            "DatabaseClient initialized",
            default_schema=config.default_schema,
            connection_pool_size=config.connection_pool_max_size,
            query_timeout_seconds=config.query_timeout_seconds,
            read_only=config.enforce_read_only_default,
            application_name=config.application_name
        )

    async def connect(self) -> None:
        """
        Create the connection pool.

        Raises:
            DatabaseConnectionError: If connection fails
        """
        if self._is_connected:
            logger.warning("Database client already connected")
            return

        trace_id = current_trace_id()
        logger.info("Establishing database connection", trace_id=trace_id)

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.config.database_url,
                min_size=self.config.connection_pool_min_size,
                max_size=self.config.connection_pool_max_size,
                command_timeout=self.config.query_timeout_seconds,
                timeout=self.config.connection_timeout_seconds,
                max_queries=self.config.connection_pool_max_queries,
                server_settings={
                    'application_name': self.config.application_name,
                    'search_path': self.config.default_schema,
                }
            )

            async with self._pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise DatabaseConnectionError("Connection test query failed")

            self._is_connected = True
            logger.info(
                "Database connection established successfully",
                pool_size=self.config.connection_pool_max_size,
                trace_id=trace_id
            )

        except asyncpg.InvalidCatalogNameError as e:
            error_msg = f"Database does not exist: {e}"
            logger.error(error_msg, trace_id=trace_id)
            raise DatabaseConnectionError(error_msg) from e

        except asyncpg.InvalidPasswordError as e:
            error_msg = f"Authentication failed: {e}"
            logger.error(error_msg, trace_id=trace_id)
            raise DatabaseConnectionError(error_msg) from e

        except DatabaseConnectionError:
            raise

        except Exception as e:
            error_msg = f"Failed to connect to database: {e}"
            logger.error(error_msg, error_type=type(e).__name__, trace_id=trace_id)
            raise DatabaseConnectionError(error_msg) from e

    async def close(self) -> None:
        """Close database connection pool."""
        trace_id = current_trace_id()

        if self._pool:
            await self._pool.close()
            logger.info("Connection pool closed", trace_id=trace_id)

        self._is_connected = False
        self._pool = None

    def is_connected(self) -> bool:
        """Check if database client is connected."""
        return self._is_connected and self._pool is not None

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on database connection.

        Returns:
            {"status": "healthy" | "unhealthy", "connected": bool, ...}
        """
        if not self.is_connected():
            return {
                "status": "unhealthy",
                "connected": False,
                "error": "Database client not connected"
            }

        try:
            async with self.acquire_connection(read_only=True) as conn:
                result = await conn.fetchval("SELECT 1")

            if result != 1:
                return {
                    "status": "unhealthy",
                    "connected": True,
                    "error": "Connection test query failed"
                }

            return {
                "status": "healthy",
                "connected": True,
                "pool_size": self.config.connection_pool_max_size,
            }

        except Exception as e:
            logger.error(
                "Database health check failed",
                error=str(e),
                error_type=type(e).__name__,
                trace_id=current_trace_id()
            )
            return {
                "status": "unhealthy",
                "connected": True,
                "error": str(e)
            }

    @asynccontextmanager
    async def acquire_connection(self, read_only: Optional[bool] = None) -> AsyncIterator[asyncpg.Connection]:
        """
        Acquire a pooled connection, inside a READ ONLY transaction when required.

        Args:
            read_only: Override DatabaseConfig.enforce_read_only_default

        Yields:
            asyncpg.Connection

        Example:
            async with client.acquire_connection() as conn:
                rows = await conn.fetch('SELECT * FROM "public"."producto" LIMIT 5')
        """
        if not self.is_connected() or self._pool is None:
            raise DatabaseConnectionError("Database client is not connected")

        effective_read_only = self.config.enforce_read_only_default if read_only is None else read_only

        async with self._pool.acquire() as connection:
            if effective_read_only:
                async with connection.transaction(readonly=True):
                    yield connection
            else:
                yield connection

    async def execute_query(
        self,
        query: str,
        params: Optional[List[Any]] = None,
        timeout: Optional[int] = None,
        read_only: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        """
        Execute a SQL query and return results as list of dictionaries.

        Args:
            query: SQL query string
            params: Optional positional parameters ($1, $2, ...)
            timeout: Optional statement timeout in seconds
            read_only: Override the read-only default

        Returns:
            Rows as dictionaries with JSON-safe values

        Raises:
            DatabaseConnectionError: If the client is not connected
            DatabaseQueryError: If the query fails
        """
        if not self.is_connected():
            raise DatabaseConnectionError("Database client is not connected")

        trace_id = current_trace_id()
        effective_timeout = timeout or self.config.query_timeout_seconds

        logger.debug(
            "Executing database query",
            query=query[:200],
            timeout=effective_timeout,
            trace_id=trace_id
        )

        try:
            async with self.acquire_connection(read_only=read_only) as conn:
                if params is not None:
                    rows = await conn.fetch(query, *params, timeout=effective_timeout)
                else:
                    rows = await conn.fetch(query, timeout=effective_timeout)

            results = [{key: _json_safe(value) for key, value in dict(row).items()} for row in rows]

            logger.debug(
                "Query executed successfully",
                row_count=len(results),
                trace_id=trace_id
            )

            return results

        except DatabaseConnectionError:
            raise

        except asyncpg.QueryCanceledError as e:
            error_msg = f"Query timeout exceeded: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.PostgresSyntaxError as e:
            error_msg = f"SQL syntax error: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.UndefinedTableError as e:
            error_msg = f"Table does not exist: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.UndefinedColumnError as e:
            error_msg = f"Column does not exist: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.ReadOnlySQLTransactionError as e:
            error_msg = f"Write statements are not allowed: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except Exception as e:
            error_msg = f"Query execution failed: {e}"
            logger.error(
                error_msg,
                error_type=type(e).__name__,
                query=query[:200],
                trace_id=trace_id
            )
            raise DatabaseQueryError(error_msg) from e

    async def execute_scalar(
        self,
        query: str,
        params: Optional[List[Any]] = None,
        read_only: Optional[bool] = None,
    ) -> Any:
        """Execute a query and return a single scalar value."""
        if not self.is_connected():
            raise DatabaseConnectionError("Database client is not connected")

        trace_id = current_trace_id()

        try:
            async with self.acquire_connection(read_only=read_only) as conn:
                if params is not None:
                    result = await conn.fetchval(query, *params)
                else:
                    result = await conn.fetchval(query)

            return _json_safe(result)

        except DatabaseConnectionError:
            raise

        except Exception as e:
            error_msg = f"Scalar query execution failed: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e
