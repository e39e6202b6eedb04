from conftest import CATALOG_ROWS
from sql_agent.domain.catalog import SchemaCatalog


def test_rows_grouped_in_catalog_order():
    catalog = SchemaCatalog.from_rows(CATALOG_ROWS)

    assert [t.qualified_name for t in catalog.tables] == ["public.producto", "public.Cliente"]
    assert [c.column_name for c in catalog.tables[0].columns] == ["id", "nombre", "precio"]


def test_schema_text_one_line_per_table():
    catalog = SchemaCatalog.from_rows(CATALOG_ROWS)

    assert catalog.to_schema_text().splitlines() == [
        "TABLE public.producto ( id integer, nombre text, precio numeric )",
        "TABLE public.Cliente ( id integer, nombre text )",
    ]


def test_allowed_tables_keep_catalog_case():
    assert SchemaCatalog.from_rows(CATALOG_ROWS).allowed_tables() == ["public.producto", "public.Cliente"]


def test_empty_catalog():
    catalog = SchemaCatalog.from_rows([])
    assert catalog.to_schema_text() == ""
    assert catalog.allowed_tables() == []
