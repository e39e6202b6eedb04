"""
SQL Table Qualification.

Generated queries often name tables without their schema. This module
rewrites bare FROM/JOIN targets, comma-listed FROM items included, into
their quoted "schema"."table" form when the bare name maps to exactly
one allow-listed table.

Rules:
- Ambiguous bare names (same table name in two schemas) are left alone,
  so the ambiguity surfaces as a validation failure instead of being
  resolved silently.
- Already-qualified targets, unknown names and WITH query names are left alone.
- Rewritten names use the catalog's original case.
- String literals and comments are never rewritten (see utils.sql_text).

This is a best-effort textual rewrite, not a parse. Pure functions, no I/O.
"""

import re
from typing import Dict, Iterable, Optional, Tuple

from ..utils.sql_text import (
    find_cte_scopes,
    find_table_targets,
    is_cte_reference,
    quote_identifier,
    quote_qualified,
    tokenize_sql,
)


def build_unambiguous_table_map(allowed_tables: Iterable[str]) -> Dict[str, Tuple[str, str]]:
    """
    Map lower-cased bare table names to (schema, table) when exactly one schema has them.

    Example:
        >>> build_unambiguous_table_map(["public.Producto", "sales.orden", "archive.orden"])
        {'producto': ('public', 'Producto')}
    """
    candidates: Dict[str, Dict[str, Tuple[str, str]]] = {}
    for qualified in allowed_tables:
        schema, _, table = qualified.partition(".")
        if not table:
            continue
        candidates.setdefault(table.lower(), {})[qualified.lower()] = (schema, table)

    return {
        bare: next(iter(by_qualified.values()))
        for bare, by_qualified in candidates.items()
        if len(by_qualified) == 1
    }


def qualify_sql_tables(sql: str, allowed_tables: Iterable[str]) -> str:
    """
    Qualify bare FROM/JOIN table names that map to exactly one allowed table.

    Args:
        sql: SQL text
        allowed_tables: Allow-listed "schema.table" identifiers

    Returns:
        SQL with unambiguous bare targets rewritten as "schema"."table"

    Example:
        >>> qualify_sql_tables('SELECT "nombre" FROM producto LIMIT 5', ["public.producto"])
        'SELECT "nombre" FROM "public"."producto" LIMIT 5'
    """
    table_map = build_unambiguous_table_map(allowed_tables)
    if not table_map:
        return sql

    tokens = tokenize_sql(sql)
    scopes = find_cte_scopes(tokens)
    pieces = []
    cursor = 0

    for target in find_table_targets(tokens):
        if len(target.parts) != 1 or is_cte_reference(target, scopes):
            continue

        mapped = table_map.get(target.table_name.lower())
        if mapped is None:
            continue

        pieces.append(sql[cursor:target.start])
        pieces.append(f"{quote_identifier(mapped[0])}.{quote_identifier(mapped[1])}")
        cursor = target.end

    pieces.append(sql[cursor:])
    return "".join(pieces)


def strip_table_qualifier(sql: str, qualified_table: str) -> str:
    """
    Remove "schema"."table". (or schema.table.) prefixes from column references.

    Used only for the display variant of single-table SQL; the FROM target
    itself has no trailing dot and is kept.

    Example:
        >>> strip_table_qualifier(
        ...     'SELECT "public"."producto"."nombre" FROM "public"."producto"', "public.producto")
        'SELECT "nombre" FROM "public"."producto"'
    """
    schema, _, table = qualified_table.partition(".")
    quoted_prefix = re.escape(quote_qualified(qualified_table)) + r'\s*\.\s*'
    bare_prefix = rf'\b{re.escape(schema)}\.{re.escape(table)}\.(?=[A-Za-z_"])'
    cleaned = re.sub(quoted_prefix, "", sql, flags=re.IGNORECASE)
    return re.sub(bare_prefix, "", cleaned, flags=re.IGNORECASE)


def single_referenced_table(found_tables: Iterable[str]) -> Optional[str]:
    """Return the table when exactly one is referenced, else None."""
    tables = list(found_tables)
    return tables[0] if len(tables) == 1 else None
