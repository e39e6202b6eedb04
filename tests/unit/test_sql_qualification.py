from sql_agent.repositories.sql_qualification import (
    build_unambiguous_table_map,
    qualify_sql_tables,
    single_referenced_table,
    strip_table_qualifier,
)
from sql_agent.repositories.sql_validation import validate_sql_tables


ALLOWED = ["public.producto", "public.Cliente", "sales.orden", "archive.orden"]


def test_unambiguous_map_drops_shared_names():
    table_map = build_unambiguous_table_map(ALLOWED)
    assert table_map["producto"] == ("public", "producto")
    assert table_map["cliente"] == ("public", "Cliente")
    assert "orden" not in table_map


class TestQualifySqlTables:
    """Rewriting of bare FROM/JOIN targets."""

    def test_bare_name_qualified(self):
        sql = 'SELECT "nombre" FROM producto ORDER BY "precio" DESC LIMIT 5'
        assert qualify_sql_tables(sql, ALLOWED) == (
            'SELECT "nombre" FROM "public"."producto" ORDER BY "precio" DESC LIMIT 5'
        )

    def test_quoted_bare_name_qualified(self):
        assert qualify_sql_tables('SELECT * FROM "producto"', ALLOWED) == 'SELECT * FROM "public"."producto"'

    def test_case_insensitive_match_renders_catalog_case(self):
        assert qualify_sql_tables("select * from CLIENTE", ALLOWED) == 'select * from "public"."Cliente"'

    def test_join_target_qualified(self):
        sql = "SELECT * FROM producto p JOIN cliente c ON c.id = p.id"
        assert qualify_sql_tables(sql, ALLOWED) == (
            'SELECT * FROM "public"."producto" p JOIN "public"."Cliente" c ON c.id = p.id'
        )

    def test_ambiguous_name_unchanged(self):
        sql = "SELECT * FROM orden"
        assert qualify_sql_tables(sql, ALLOWED) == sql

    def test_unknown_name_unchanged(self):
        sql = "SELECT * FROM unknown_table"
        assert qualify_sql_tables(sql, ALLOWED) == sql

    def test_already_qualified_unchanged(self):
        for sql in ['SELECT * FROM "public"."producto"', "SELECT * FROM public.producto"]:
            assert qualify_sql_tables(sql, ALLOWED) == sql

    def test_function_call_unchanged(self):
        sql = "SELECT * FROM producto(1)"
        assert qualify_sql_tables(sql, ALLOWED) == sql

    def test_literal_and_comment_unchanged(self):
        sql = "SELECT 'FROM producto' AS label FROM producto -- JOIN cliente"
        assert qualify_sql_tables(sql, ALLOWED) == (
            "SELECT 'FROM producto' AS label FROM \"public\".\"producto\" -- JOIN cliente"
        )

    def test_comma_separated_items_qualified(self):
        sql = "SELECT * FROM producto p, cliente c WHERE c.id = p.id"
        assert qualify_sql_tables(sql, ALLOWED) == (
            'SELECT * FROM "public"."producto" p, "public"."Cliente" c WHERE c.id = p.id'
        )

    def test_with_query_name_unchanged(self):
        sql = 'WITH producto AS (SELECT 1 AS "id") SELECT * FROM producto'
        assert qualify_sql_tables(sql, ALLOWED) == sql

    def test_identifier_with_apostrophe_does_not_hide_target(self):
        sql = "SELECT \"o'brien\" FROM producto"
        assert qualify_sql_tables(sql, ALLOWED) == "SELECT \"o'brien\" FROM \"public\".\"producto\""

    def test_no_allowed_tables(self):
        assert qualify_sql_tables("SELECT * FROM producto", []) == "SELECT * FROM producto"

    def test_validation_unchanged_for_qualified_sql(self):
        sql = 'SELECT "nombre" FROM "public"."producto" JOIN "public"."Cliente" ON TRUE'
        assert validate_sql_tables(qualify_sql_tables(sql, ALLOWED), ALLOWED) == validate_sql_tables(sql, ALLOWED)


class TestStripTableQualifier:
    """Display variant of single-table SQL."""

    def test_quoted_prefix_removed(self):
        sql = 'SELECT "public"."producto"."nombre" FROM "public"."producto" ORDER BY "public"."producto"."precio"'
        assert strip_table_qualifier(sql, "public.producto") == (
            'SELECT "nombre" FROM "public"."producto" ORDER BY "precio"'
        )

    def test_bare_prefix_removed(self):
        sql = "SELECT public.producto.nombre FROM public.producto"
        assert strip_table_qualifier(sql, "public.producto") == "SELECT nombre FROM public.producto"

    def test_case_insensitive(self):
        sql = 'SELECT "public"."Cliente"."nombre" FROM "public"."Cliente"'
        assert strip_table_qualifier(sql, "public.cliente") == 'SELECT "nombre" FROM "public"."Cliente"'


def test_single_referenced_table():
    assert single_referenced_table(["public.producto"]) == "public.producto"
    assert single_referenced_table(["public.producto", "public.cliente"]) is None
    assert single_referenced_table([]) is None
