"""
Schema Repository for catalog introspection.

This repository reads column metadata from PostgreSQL's information_schema
through the DatabaseClient and builds the two artifacts every question
needs:
- schema text: one "TABLE schema.table ( col type, ... )" line per table,
  embedded in the SQL generation prompt
- allowed tables: the allow-list of "schema.table" identifiers

Only base tables are included; views and the pg_catalog /
information_schema schemas never are. The catalog is read fresh for
every question and never cached.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..config import AgentConfig
from ..config_constants import SYSTEM_SCHEMAS
from ..infrastructure.database_client import DatabaseClient
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..domain.catalog import SchemaCatalog
from ..domain.errors import CatalogUnavailableError
from ..domain.types import AllowedTables


logger = get_module_logger()


_CATALOG_QUERY = """
    SELECT c.table_schema, c.table_name, c.column_name, c.data_type
    FROM information_schema.columns c
    JOIN information_schema.tables t
      ON c.table_schema = t.table_schema AND c.table_name = t.table_name
    WHERE t.table_type = 'BASE TABLE'
      AND c.table_schema <> ALL($1::text[])
      {schema_filter}
    ORDER BY c.table_schema, c.table_name, c.ordinal_position
"""


class SchemaIntrospector:
    """
    Repository for catalog metadata.

    Usage:
        db_client = DatabaseClient(config)
        await db_client.connect()

        introspector = SchemaIntrospector(db_client)
        schema_text, allowed_tables = await introspector.introspect()
    """

    def __init__(self, db_client: DatabaseClient, config: Optional[AgentConfig] = None):
        """
        Initialize schema introspector.

        Args:
            db_client: DatabaseClient instance for database operations
            config: Agent configuration; schema_names restricts introspection
        """
        self.db_client = db_client
        self.schema_names: List[str] = list(config.schema_names) if config else []
        logger.info("SchemaIntrospector initialized", schema_names=self.schema_names or "all")

    def _build_query(self) -> Tuple[str, List[Any]]:
        params: List[Any] = [list(SYSTEM_SCHEMAS)]
        schema_filter = ""
        if self.schema_names:
            params.append(self.schema_names)
            schema_filter = "AND c.table_schema = ANY($2::text[])"
        return _CATALOG_QUERY.format(schema_filter=schema_filter), params

    async def list_columns(self) -> List[Dict[str, Any]]:
        """
        Fetch one row per column of every base table.

        Returns:
            Rows with table_schema, table_name, column_name and data_type,
            ordered by schema, table and ordinal position

        Raises:
            CatalogUnavailableError: If the metadata query fails
        """
        trace_id = current_trace_id()
        query, params = self._build_query()

        try:
            rows = await self.db_client.execute_query(query=query, params=params)
        except Exception as e:
            error_msg = f"Failed to read catalog metadata: {e}"
            logger.error(error_msg, error_type=type(e).__name__, trace_id=trace_id)
            raise CatalogUnavailableError(
                error_msg,
                details={"schema_names": self.schema_names}
            ) from e

        logger.debug("Catalog columns fetched", column_count=len(rows), trace_id=trace_id)
        return rows

    async def get_catalog(self) -> SchemaCatalog:
        """
        Fetch the structured catalog.

        Raises:
            CatalogUnavailableError: If the metadata query fails
        """
        rows = await self.list_columns()
        return SchemaCatalog.from_rows(rows)

    async def introspect(self) -> Tuple[str, AllowedTables]:
        """
        Build schema text and the allow-list.

        Returns:
            (schema_text, allowed_tables). Both are empty when the database
            has no base tables.

        Raises:
            CatalogUnavailableError: If the metadata query fails
        """
        trace_id = current_trace_id()
        logger.info("Introspecting catalog", trace_id=trace_id)

        catalog = await self.get_catalog()
        schema_text = catalog.to_schema_text()
        allowed_tables = catalog.allowed_tables()

        logger.info(
            "Catalog introspected",
            table_count=len(allowed_tables),
            schema_text_length=len(schema_text),
            trace_id=trace_id
        )

        return schema_text, allowed_tables
