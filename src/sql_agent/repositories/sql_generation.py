"""
SQL Generation Repository.

Handles LLM-based SQL generation:
- Prompt building with the schema text and the allow-list
- LLM interaction
- Sanitation of the completion (fences, whitespace)
- Auto-qualification of bare table names
- Allow-list validation of the result

The completion is untrusted text. Everything after the LLM call is
deterministic, and a rejected query is reported as a diagnostic answer
rather than raised.
"""

from typing import Sequence

from ..config import LLMConfig
from ..config_constants import UNANSWERABLE_SQL
from ..domain.base_enums import ErrorKind
from ..domain.errors import LLMError
from ..domain.responses import SqlGenerationResult, ValidationResult
from ..infrastructure.llm_client import LLMClient
from ..utils.logging import get_module_logger
from ..utils.sql_text import sanitize_completion_sql
from ..utils.tracing import current_trace_id
from .sql_qualification import qualify_sql_tables, single_referenced_table, strip_table_qualifier
from .sql_validation import validate_sql_tables

logger = get_module_logger()


SQL_SYSTEM_PROMPT = f"""You are a helpful data analyst that writes PostgreSQL SQL queries.
Constraints:
- Use ONLY the tables and columns available in the provided schema.
- Write read-only queries: a single SELECT statement, nothing else.
- If aggregation is requested (e.g., top products), include ORDER BY and LIMIT.
- Use ANSI SQL and functions supported by PostgreSQL.
- Quote identifiers (schema, table, and column names) with double quotes EXACTLY as they appear in the SCHEMA/ALLOWED_TABLES (PostgreSQL is case-sensitive with quoted identifiers).
- Do NOT add WHERE filters unless they are clearly implied by the question.
- Prefer straightforward queries (e.g., ORDER BY + LIMIT for top-N) without unnecessary conditions.
- Always fully-qualify and quote tables in FROM and JOIN (e.g., FROM "public"."Producto").
- For single-table queries, use only quoted column names without table prefixes in SELECT/ORDER BY (e.g., SELECT "nombre" ... ORDER BY "precio" DESC).
- Only use table qualifiers on columns when there are multiple tables and ambiguity.
- Do not write SQL comments.
- If the question cannot be answered with the available tables, return exactly: {UNANSWERABLE_SQL}
- Return ONLY the SQL, without explanation or markdown fences."""


def describe_validation_failure(validation: ValidationResult, allowed_tables: Sequence[str]) -> str:
    """Render the generation-time diagnostic for SQL rejected by the allow-list."""
    allowed = ", ".join(allowed_tables)
    if validation.none_found:
        return (
            f"SQL must reference at least one fully-qualified table from: {allowed}. "
            "Use schema.table names."
        )
    return f"SQL references unknown tables: {', '.join(validation.unknown_tables)}. Allowed tables: {allowed}"


class SQLGenerationRepository:
    """
    Repository for LLM-based SQL generation.

    Handles prompt construction, LLM interaction and the deterministic
    qualify/validate pass over the completion.
    """

    def __init__(self, llm_client: LLMClient, config: LLMConfig):
        self.llm_client = llm_client
        self.config = config

    async def generate(
        self,
        question: str,
        schema_text: str,
        allowed_tables: Sequence[str],
    ) -> SqlGenerationResult:
        """
        Generate SQL for a question.

        Args:
            question: Natural language question
            schema_text: One "TABLE schema.table ( ... )" line per table
            allowed_tables: Allow-listed "schema.table" identifiers

        Returns:
            SqlGenerationResult. On success sql is qualified and sql_clean is
            the display variant. On rejection answer carries the diagnostic
            and error is UNKNOWN_TABLES (or COMPLETION_UNAVAILABLE when the
            completion call failed).
        """
        trace_id = current_trace_id()
        prompt = self._build_prompt(question, schema_text, allowed_tables)

        logger.debug(
            "Calling LLM for SQL generation",
            prompt_length=len(prompt),
            allowed_table_count=len(allowed_tables),
            trace_id=trace_id,
        )

        try:
            completion = await self.llm_client.generate(
                prompt=prompt,
                system_prompt=SQL_SYSTEM_PROMPT,
                temperature=self.config.temperature,
            )
        except LLMError as e:
            logger.warning(
                "SQL generation unavailable",
                error=e.message,
                error_code=e.error_code,
                trace_id=trace_id,
            )
            return SqlGenerationResult(
                answer=f"SQL could not be generated: {e.message}",
                error=ErrorKind.COMPLETION_UNAVAILABLE,
            )

        sql = sanitize_completion_sql(completion)
        sql = qualify_sql_tables(sql, allowed_tables)

        validation = validate_sql_tables(sql, allowed_tables)
        if not validation.ok:
            logger.warning(
                "Generated SQL rejected",
                none_found=validation.none_found,
                unknown_tables=validation.unknown_tables,
                sql_length=len(sql),
                trace_id=trace_id,
            )
            return SqlGenerationResult(
                sql=sql,
                answer=describe_validation_failure(validation, allowed_tables),
                error=ErrorKind.UNKNOWN_TABLES,
            )

        sql_clean = sql
        single_table = single_referenced_table(validation.found_tables)
        if single_table:
            sql_clean = strip_table_qualifier(sql, single_table)

        logger.info(
            "SQL generated",
            found_tables=validation.found_tables,
            sql_length=len(sql),
            trace_id=trace_id,
        )

        return SqlGenerationResult(sql=sql, sql_clean=sql_clean)

    def _build_prompt(self, question: str, schema_text: str, allowed_tables: Sequence[str]) -> str:
        """Build the user prompt for SQL generation."""
        allowed_section = "\n".join(f"- {table}" for table in allowed_tables)

        return f"""SCHEMA
{schema_text}

ALLOWED_TABLES (use only fully qualified names, and quote exactly like this):
{allowed_section}

QUESTION: {question}

Write a single PostgreSQL SQL query to answer the question. You MUST use only tables from ALLOWED_TABLES and you MUST double-quote identifiers exactly as shown (e.g., "public"."Producto"). If the question cannot be answered with these tables, write: {UNANSWERABLE_SQL};"""
