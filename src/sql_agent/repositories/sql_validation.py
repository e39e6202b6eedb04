"""
SQL Table Validation.

Extracts the tables a SQL string references and checks them against the
allow-list built by introspection. Validation is lexical, over the tokens
of utils.sql_text, and both phases always run:

1. Every dotted identifier chain (a.b, "a"."b", a."b", "a".b) is taken as
   a schema.table reference, unquoted and lower-cased. A chain whose first
   part is a FROM alias, a FROM table name or a WITH query name is a
   column reference and is skipped.
2. Every FROM/JOIN/TABLE target, including comma-separated FROM items,
   is read. A two-part name is checked as is. A single-part name resolves
   when exactly one allowed table ends with ".name"; otherwise it is
   reported unknown, unless it names a WITH query in scope.

The result is recomputed wherever it is needed (generation, execution,
answer formatting) and never stored on the pipeline state.

Usage:
    result = validate_sql_tables(
        'SELECT "nombre" FROM "public"."producto" LIMIT 5',
        ["public.producto"]
    )
    if result.ok:
        # Safe to execute
    else:
        # Report result.unknown_tables / result.none_found
"""

from typing import Iterable, List, Set, Tuple

from ..domain.responses import ValidationResult
from ..utils.logging import get_module_logger
from ..utils.sql_text import (
    CteScope,
    SqlToken,
    TableTarget,
    find_cte_scopes,
    find_dotted_references,
    find_table_targets,
    is_cte_reference,
    tokenize_sql,
)

logger = get_module_logger()

# (offset in the SQL text, lower-cased reference)
Reference = Tuple[int, str]


def _column_prefixes(targets: List[TableTarget], scopes: List[CteScope]) -> Set[str]:
    """Names that qualify columns rather than tables: aliases, table names, WITH names."""
    prefixes = {target.table_name.lower() for target in targets}
    prefixes.update(target.alias.lower() for target in targets if target.alias)
    prefixes.update(scope.name for scope in scopes)
    return prefixes


def _dotted_references(tokens: List[SqlToken], column_prefixes: Set[str]) -> List[Reference]:
    references: List[Reference] = []
    for parts in find_dotted_references(tokens):
        if parts[0].name.lower() in column_prefixes:
            continue
        references.append((parts[0].start, f"{parts[0].name}.{parts[1].name}".lower()))
    return references


def _target_references(
    targets: List[TableTarget], scopes: List[CteScope], allowed_lower: List[str]
) -> List[Reference]:
    references: List[Reference] = []
    for target in targets:
        if target.qualified_name is not None:
            references.append((target.start, target.qualified_name.lower()))
            continue
        if is_cte_reference(target, scopes):
            continue

        bare = target.table_name.lower()
        candidates = [table for table in allowed_lower if table.endswith("." + bare)]
        references.append((target.start, candidates[0] if len(candidates) == 1 else bare))
    return references


def validate_sql_tables(sql: str, allowed_tables: Iterable[str]) -> ValidationResult:
    """
    Check that the SQL references at least one table and only allowed ones.

    Args:
        sql: SQL text
        allowed_tables: Allow-listed "schema.table" identifiers

    Returns:
        ValidationResult with ok, unknown_tables, none_found and
        found_tables (lower-cased, in order of first appearance)

    Example:
        >>> validate_sql_tables("SELECT * FROM public.unknown_table", ["public.producto"]).unknown_tables
        ['public.unknown_table']
    """
    allowed_lower = [table.lower() for table in allowed_tables]
    allowed_set = set(allowed_lower)

    tokens = tokenize_sql(sql)
    targets = find_table_targets(tokens)
    scopes = find_cte_scopes(tokens)

    references = _dotted_references(tokens, _column_prefixes(targets, scopes))
    references.extend(_target_references(targets, scopes, allowed_lower))
    references.sort(key=lambda reference: reference[0])

    # dict keeps first-appearance order without duplicates
    found_tables = list(dict.fromkeys(name for _, name in references))
    unknown_tables = [table for table in found_tables if table not in allowed_set]
    none_found = not found_tables

    result = ValidationResult(
        ok=not unknown_tables and not none_found,
        unknown_tables=unknown_tables,
        none_found=none_found,
        found_tables=found_tables,
    )

    logger.debug(
        "SQL tables validated",
        ok=result.ok,
        found_tables=found_tables,
        unknown_tables=unknown_tables,
    )

    return result
