"""
Catalog models built from PostgreSQL information_schema rows.

The catalog is rebuilt for every question and is the single source of
the allow-list: one qualified identifier per base table, in catalog order.
"""

from typing import Any, Dict, List, Mapping, Sequence

from pydantic import BaseModel, Field

from .types import AllowedTables


class CatalogColumn(BaseModel):
    """A column of a base table, in ordinal position order."""

    column_name: str = Field(..., description="Name of the column")
    data_type: str = Field(..., description="information_schema data type")


class CatalogTable(BaseModel):
    """A base table with its ordered columns."""

    schema_name: str = Field(..., description="Schema to which the table belongs")
    table_name: str = Field(..., description="Name of the table")
    columns: List[CatalogColumn] = Field(default_factory=list, description="Columns in ordinal order")

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"

    def describe(self) -> str:
        """Render as 'TABLE schema.table ( col type, ... )'."""
        columns = ", ".join(f"{c.column_name} {c.data_type}" for c in self.columns)
        return f"TABLE {self.qualified_name} ( {columns} )"


class SchemaCatalog(BaseModel):
    """Ordered set of base tables discovered by introspection."""

    tables: List[CatalogTable] = Field(default_factory=list, description="Tables in catalog order")

    @classmethod
    def from_rows(cls, rows: Sequence[Mapping[str, Any]]) -> "SchemaCatalog":
        """
        Group catalog rows into tables.

        Rows must carry table_schema, table_name, column_name and data_type,
        already ordered by schema, table and ordinal position.
        """
        by_table: Dict[str, CatalogTable] = {}
        for row in rows:
            key = f"{row['table_schema']}.{row['table_name']}"
            table = by_table.get(key)
            if table is None:
                table = CatalogTable(schema_name=row["table_schema"], table_name=row["table_name"])
                by_table[key] = table
            table.columns.append(CatalogColumn(column_name=row["column_name"], data_type=row["data_type"]))
        return cls(tables=list(by_table.values()))

    def to_schema_text(self) -> str:
        return "\n".join(table.describe() for table in self.tables)

    def allowed_tables(self) -> AllowedTables:
        return [table.qualified_name for table in self.tables]
