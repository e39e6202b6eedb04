"""
SQL Execution Repository.

This repository runs generated SQL against the database with strict
safety constraints and turns every outcome into rows or a diagnostic.

Safety Features:
- Allow-list re-check: the SQL is validated again right before it runs,
  independently of the generation-time check
- Read-only enforcement: every query runs in a READ ONLY transaction
- Timeout protection: configurable statement timeout

Diagnostics:
- Blocked SQL: "Blocked execution. ..." without touching the database
- Empty result: COUNT(*) of the first referenced table, to tell an
  empty-but-correct query from a structurally wrong one
- Database error: "DB error: <message>"; never raised to the caller

Usage:
    repo = SQLExecutionRepository(db_client)
    result = await repo.execute(
        sql='SELECT "nombre" FROM "public"."producto" LIMIT 5',
        allowed_tables=["public.producto"]
    )
    print(f"Returned {len(result.rows)} rows in {result.execution_time_ms}ms")
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

from ..config import DatabaseConfig
from ..domain.base_enums import ErrorKind
from ..domain.errors import DatabaseError
from ..domain.responses import SqlExecutionResult, ValidationResult
from ..infrastructure.database_client import DatabaseClient
from ..utils.logging import get_module_logger
from ..utils.sql_text import quote_qualified, resolve_allowed
from ..utils.tracing import current_trace_id
from .sql_validation import validate_sql_tables

logger = get_module_logger()


def describe_blocked_execution(validation: ValidationResult) -> str:
    """Render the diagnostic for SQL that fails the pre-execution check."""
    if validation.none_found:
        return "Blocked execution. SQL must reference at least one fully-qualified allowed table."
    return f"Blocked execution. SQL references unknown tables: {', '.join(validation.unknown_tables)}."


class SQLExecutionRepository:
    """
    Repository for SQL execution.

    Executes allow-listed SQL with read-only enforcement.
    """

    def __init__(self, db_client: DatabaseClient, config: Optional[DatabaseConfig] = None):
        self.db_client = db_client
        self.timeout_seconds = config.query_timeout_seconds if config else None

    async def execute(self, sql: str, allowed_tables: Sequence[str]) -> SqlExecutionResult:
        """
        Validate and execute SQL.

        Args:
            sql: SQL to run (the qualified variant, never the display one)
            allowed_tables: Allow-listed "schema.table" identifiers

        Returns:
            SqlExecutionResult with rows, plus answer for blocked, failed or
            empty executions. error is set for blocked (UNKNOWN_TABLES) and
            failed (DATABASE_ERROR) executions only.
        """
        trace_id = current_trace_id()

        validation = validate_sql_tables(sql, allowed_tables)
        if not validation.ok:
            logger.warning(
                "Execution blocked",
                none_found=validation.none_found,
                unknown_tables=validation.unknown_tables,
                trace_id=trace_id,
            )
            return SqlExecutionResult(
                answer=describe_blocked_execution(validation),
                error=ErrorKind.UNKNOWN_TABLES,
            )

        logger.info(
            "Executing SQL query",
            sql_length=len(sql),
            found_tables=validation.found_tables,
            timeout=self.timeout_seconds,
            trace_id=trace_id,
        )

        start_time = datetime.now(timezone.utc)

        try:
            rows = await self.db_client.execute_query(
                query=sql,
                timeout=self.timeout_seconds,
                read_only=True,
            )
        except DatabaseError as e:
            logger.warning("SQL execution failed", error=e.message, trace_id=trace_id)
            return SqlExecutionResult(answer=f"DB error: {e.message}", error=ErrorKind.DATABASE_ERROR)

        execution_time_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

        logger.info(
            "SQL execution successful",
            row_count=len(rows),
            execution_time_ms=round(execution_time_ms, 2),
            trace_id=trace_id,
        )

        if rows:
            return SqlExecutionResult(rows=rows, execution_time_ms=execution_time_ms)

        first_table = resolve_allowed(validation.found_tables[0], allowed_tables) or validation.found_tables[0]
        return SqlExecutionResult(
            answer=await self._describe_empty_result(first_table),
            execution_time_ms=execution_time_ms,
        )

    async def _describe_empty_result(self, qualified_table: str) -> str:
        """Count the rows of a table to explain an empty result."""
        quoted = quote_qualified(qualified_table)

        try:
            total = await self.db_client.execute_scalar(
                f"SELECT COUNT(*)::int AS count FROM {quoted}",
                read_only=True,
            )
        except DatabaseError as e:
            logger.warning(
                "Empty-result diagnostic failed",
                table=qualified_table,
                error=e.message,
                trace_id=current_trace_id(),
            )
            return "No results."

        return f"No results. Diagnostics: table {quoted} has {total or 0} rows."
