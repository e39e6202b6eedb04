import pytest

from sql_agent.repositories.sql_qualification import qualify_sql_tables
from sql_agent.repositories.sql_validation import validate_sql_tables


ALLOWED = ["public.producto", "public.Cliente", "sales.orden", "archive.orden"]


class TestDottedReferences:
    """Phase 1: dotted schema.table references."""

    def test_allowed_table(self):
        result = validate_sql_tables("SELECT nombre FROM public.producto LIMIT 5", ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]
        assert result.unknown_tables == []
        assert not result.none_found

    def test_unknown_table(self):
        result = validate_sql_tables("SELECT * FROM public.unknown_table", ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["public.unknown_table"]
        assert not result.none_found

    def test_matching_is_case_insensitive(self):
        result = validate_sql_tables("SELECT * FROM PUBLIC.CLIENTE", ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.cliente"]

    def test_order_of_first_appearance_without_duplicates(self):
        sql = "SELECT * FROM sales.orden JOIN public.producto ON TRUE JOIN sales.orden ON TRUE"
        result = validate_sql_tables(sql, ALLOWED)
        assert result.found_tables == ["sales.orden", "public.producto"]

    def test_mixed_allowed_and_unknown(self):
        result = validate_sql_tables("SELECT * FROM public.producto JOIN private.secret ON TRUE", ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["private.secret"]

    def test_literals_and_comments_ignored(self):
        sql = "SELECT 'private.secret' FROM public.producto /* other.table */ -- x.y"
        result = validate_sql_tables(sql, ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]


class TestFromJoinTargets:
    """Phase 2: FROM/JOIN targets, checked alongside dotted references."""

    def test_quoted_qualified_target(self):
        result = validate_sql_tables('SELECT "nombre" FROM "public"."producto" LIMIT 5', ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]

    def test_quoted_unknown_target(self):
        result = validate_sql_tables('SELECT * FROM "public"."unknown_table"', ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["public.unknown_table"]

    def test_bare_name_resolved_by_unique_suffix(self):
        result = validate_sql_tables("SELECT * FROM producto", ALLOWED)
        assert result.ok
        assert not result.none_found
        assert result.found_tables == ["public.producto"]

    def test_quoted_bare_name_resolved(self):
        result = validate_sql_tables('SELECT * FROM "Cliente"', ALLOWED)
        assert result.found_tables == ["public.cliente"]

    def test_ambiguous_bare_name_is_unknown(self):
        result = validate_sql_tables("SELECT * FROM orden", ALLOWED)
        assert not result.ok
        assert not result.none_found
        assert result.unknown_tables == ["orden"]

    def test_unknown_bare_name_is_unknown(self):
        result = validate_sql_tables("SELECT * FROM unknown_table", ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["unknown_table"]

    def test_multiple_quoted_targets(self):
        sql = 'SELECT * FROM "public"."producto" p JOIN "public"."Cliente" c ON c."id" = p."id"'
        result = validate_sql_tables(sql, ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto", "public.cliente"]


class TestMixedQuoting:
    """Dotted references are read whatever their quoting."""

    def test_quoted_join_after_bare_from(self):
        sql = 'SELECT * FROM public.producto JOIN "auth"."users" ON TRUE'
        result = validate_sql_tables(sql, ALLOWED)
        assert not result.ok
        assert result.found_tables == ["public.producto", "auth.users"]
        assert result.unknown_tables == ["auth.users"]

    @pytest.mark.parametrize("target", ['auth."users"', '"auth".users', '"AUTH"."Users"'])
    def test_partially_quoted_pair(self, target):
        sql = f'SELECT * FROM "public"."producto" JOIN {target} ON TRUE'
        result = validate_sql_tables(sql, ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["auth.users"]

    def test_quoted_column_of_foreign_table(self):
        sql = 'SELECT "auth"."users"."email" FROM "public"."producto"'
        result = validate_sql_tables(sql, ALLOWED)
        assert result.unknown_tables == ["auth.users"]

    def test_alias_qualified_columns_allowed(self):
        sql = 'SELECT p."nombre", "p"."precio" FROM "public"."producto" AS p ORDER BY p.precio'
        result = validate_sql_tables(sql, ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]

    def test_table_qualified_columns_allowed(self):
        result = validate_sql_tables("SELECT producto.nombre FROM public.producto", ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]

    def test_alias_named_like_a_schema_does_not_hide_a_join(self):
        sql = "SELECT auth.id FROM public.producto auth JOIN auth.users ON TRUE"
        result = validate_sql_tables(sql, ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["auth.users"]


class TestCommaSeparatedFrom:
    """Every item of a FROM list is a table target."""

    def test_quoted_second_item(self):
        result = validate_sql_tables('SELECT * FROM "public"."producto", "auth"."users"', ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["auth.users"]

    def test_aliased_items(self):
        sql = "SELECT * FROM public.producto p, auth.users u WHERE u.id = p.id"
        result = validate_sql_tables(sql, ALLOWED)
        assert result.unknown_tables == ["auth.users"]

    def test_bare_items_after_qualification(self):
        sql = qualify_sql_tables("SELECT * FROM producto, users", ALLOWED)
        assert sql == 'SELECT * FROM "public"."producto", users'

        result = validate_sql_tables(sql, ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["users"]

    def test_item_after_join_condition(self):
        sql = 'SELECT * FROM "public"."producto" p JOIN "public"."Cliente" c ON TRUE, users'
        result = validate_sql_tables(sql, ALLOWED)
        assert result.unknown_tables == ["users"]

    def test_item_after_subquery(self):
        result = validate_sql_tables("SELECT * FROM (SELECT 1) x, auth.users", ALLOWED)
        assert result.unknown_tables == ["auth.users"]

    def test_commas_in_other_clauses_ignored(self):
        sql = (
            'SELECT "nombre", "precio" FROM "public"."producto" '
            'WHERE "id" IN (1, 2) ORDER BY "nombre", "precio" LIMIT 5'
        )
        result = validate_sql_tables(sql, ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]

    def test_function_item_is_not_a_table(self):
        sql = 'SELECT * FROM "public"."producto", generate_series(1, 3) AS g'
        assert validate_sql_tables(sql, ALLOWED).ok


class TestQuotedIdentifierContents:
    """Quote characters inside double-quoted identifiers."""

    def test_apostrophes_in_identifiers_do_not_hide_tables(self):
        sql = "SELECT 1 AS \"a'\", * FROM auth.users AS \"b'\" JOIN public.producto ON TRUE"
        result = validate_sql_tables(sql, ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["auth.users"]

    def test_apostrophe_in_column_name_allowed(self):
        result = validate_sql_tables('SELECT "o\'brien" FROM "public"."producto"', ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]

    def test_doubled_quotes_in_identifier(self):
        sql = 'SELECT "say ""hi""" FROM "public"."producto" JOIN "auth"."us""ers" ON TRUE'
        result = validate_sql_tables(sql, ALLOWED)
        assert result.unknown_tables == ['auth.us"ers']

    def test_dot_inside_quoted_identifier_is_not_a_separator(self):
        result = validate_sql_tables('SELECT "a.b" FROM "public"."producto"', ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]


class TestNonTableFrom:
    """FROM keywords and names that do not introduce tables."""

    @pytest.mark.parametrize(
        "expression",
        [
            'EXTRACT(YEAR FROM "fecha")',
            'SUBSTRING("nombre" FROM 1 FOR 3)',
            "TRIM(LEADING 'x' FROM \"nombre\")",
        ],
    )
    def test_from_inside_function_arguments(self, expression):
        result = validate_sql_tables(f'SELECT {expression} FROM "public"."producto"', ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]

    def test_is_distinct_from(self):
        sql = 'SELECT * FROM "public"."producto" WHERE "nombre" IS DISTINCT FROM "precio"'
        assert validate_sql_tables(sql, ALLOWED).ok

    def test_with_query_name(self):
        sql = 'WITH top AS (SELECT * FROM "public"."producto" LIMIT 5) SELECT top."nombre" FROM top'
        result = validate_sql_tables(sql, ALLOWED)
        assert result.ok
        assert result.found_tables == ["public.producto"]

    def test_with_query_body_sees_real_table(self):
        result = validate_sql_tables("WITH users AS (SELECT * FROM users) SELECT * FROM users", ALLOWED)
        assert not result.ok
        assert result.unknown_tables == ["users"]

    def test_with_query_name_not_visible_outside_subquery(self):
        sql = 'SELECT * FROM (WITH users AS (SELECT 1) SELECT * FROM users) x, users'
        result = validate_sql_tables(sql, ALLOWED)
        assert result.unknown_tables == ["users"]


def test_no_table_at_all():
    result = validate_sql_tables("SELECT 1 WHERE FALSE", ALLOWED)
    assert not result.ok
    assert result.none_found
    assert result.found_tables == []


def test_empty_allow_list_rejects_everything():
    result = validate_sql_tables("SELECT * FROM public.producto", [])
    assert not result.ok
    assert result.unknown_tables == ["public.producto"]
