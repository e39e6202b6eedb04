"""
Lexical helpers shared by table qualification and validation.

SQL text is masked, then split into tokens. Masking blanks string
literals and comments so keywords or dotted names inside them are never
read as table references, and never rewritten. Double-quoted identifiers
are matched in the same pass and kept verbatim, so an apostrophe inside
one cannot open a fake literal. Masking preserves length, so token
offsets are valid offsets in the original SQL.

On top of the tokens:
- find_table_targets reads FROM, JOIN, TABLE and comma-listed FROM items
- find_dotted_references reads identifier.identifier chains in any quoting
- find_cte_scopes reads WITH names and the span where they are visible

This is a lexical reading, not a parse.
"""

import re
from typing import Iterable, Iterator, List, NamedTuple, Optional, Set, Tuple

# One pass, alternatives tried left to right at each position
_LEXEME = re.compile(
    r"""
      (?P<identifier>"(?:[^"]|"")*")                     # quoted identifier, kept
    | --[^\n]*                                           # line comment
    | /\*.*?(?:\*/|\Z)                                   # block comment
    | (?<![\w$])\$(?P<tag>[A-Za-z_]*)\$.*?(?:\$(?P=tag)\$|\Z)   # dollar-quoted string
    | '(?:[^']|'')*(?:'|\Z)                              # single-quoted string, '' escapes
    """,
    re.DOTALL | re.VERBOSE,
)

_TOKEN = re.compile(
    r"""
      (?P<quoted>"(?:[^"]|"")*")
    | (?P<word>[^\W\d][\w$]*)
    | (?P<number>\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+)
    | (?P<punct>[.,;()\[\]])
    | (?P<other>\S)
    """,
    re.VERBOSE,
)

# FROM inside these calls separates arguments, e.g. EXTRACT(YEAR FROM "fecha")
_FROM_ARGUMENT_CALLS = frozenset({"EXTRACT", "SUBSTRING", "SUBSTR", "TRIM", "OVERLAY", "POSITION"})

# End the FROM list open at the same nesting level
_FROM_CLAUSE_END = frozenset({
    "SELECT", "VALUES", "WHERE", "GROUP", "HAVING", "WINDOW", "ORDER", "LIMIT", "OFFSET",
    "FETCH", "FOR", "UNION", "INTERSECT", "EXCEPT", "RETURNING",
})

# Words after a table name that are never its alias
_NOT_ALIAS = _FROM_CLAUSE_END | frozenset({
    "ON", "USING", "JOIN", "INNER", "LEFT", "RIGHT", "FULL", "OUTER", "CROSS", "NATURAL",
    "LATERAL", "TABLESAMPLE", "AS",
})

_OPENERS = ("(", "[")
_CLOSERS = (")", "]")


class SqlToken(NamedTuple):
    kind: str
    text: str
    start: int
    end: int

    @property
    def is_identifier(self) -> bool:
        return self.kind in ("quoted", "word")

    @property
    def name(self) -> str:
        """Identifier text with quotes removed."""
        return unquote_identifier(self.text)

    def is_keyword(self, *keywords: str) -> bool:
        return self.kind == "word" and self.text.upper() in keywords


class TableTarget(NamedTuple):
    """A table named after FROM, JOIN, TABLE or a comma in a FROM list."""

    parts: Tuple[SqlToken, ...]
    alias: Optional[str]

    @property
    def start(self) -> int:
        return self.parts[0].start

    @property
    def end(self) -> int:
        return self.parts[-1].end

    @property
    def table_name(self) -> str:
        return self.parts[-1].name

    @property
    def qualified_name(self) -> Optional[str]:
        """'schema.table' from the last two parts, or None for a single-part name."""
        if len(self.parts) < 2:
            return None
        return f"{self.parts[-2].name}.{self.parts[-1].name}"


class CteScope(NamedTuple):
    """A WITH query name and the character span where it shadows tables."""

    name: str
    start: int
    end: int


def _blank(match: "re.Match[str]") -> str:
    text = match.group(0)
    # Keep newlines so line-based reading of the masked text is unchanged
    return "".join("\n" if ch == "\n" else " " for ch in text)


def _mask(match: "re.Match[str]") -> str:
    if match.group("identifier") is not None:
        return match.group(0)
    return _blank(match)


def mask_literals(sql: str) -> str:
    """
    Replace string literals and comments with spaces of the same length.

    Double-quoted identifiers are left untouched, including any quote
    characters inside them. An unterminated literal or comment is masked
    to the end of the text.

    Example:
        >>> mask_literals("SELECT 'FROM x' FROM t -- JOIN y")
        'SELECT          FROM t          '
    """
    return _LEXEME.sub(_mask, sql)


def tokenize_sql(sql: str) -> List[SqlToken]:
    """Split masked SQL into tokens; offsets refer to the original text."""
    masked = mask_literals(sql)
    return [
        SqlToken(match.lastgroup, match.group(0), match.start(), match.end())
        for match in _TOKEN.finditer(masked)
    ]


def _read_name(tokens: List[SqlToken], index: int) -> Tuple[List[SqlToken], int]:
    """Read identifier parts joined by dots starting at index."""
    parts: List[SqlToken] = []
    if index < len(tokens) and tokens[index].is_identifier:
        parts.append(tokens[index])
        index += 1
        while (
            index + 1 < len(tokens)
            and tokens[index].text == "."
            and tokens[index + 1].is_identifier
        ):
            parts.append(tokens[index + 1])
            index += 2
    return parts, index


def _read_target(tokens: List[SqlToken], index: int) -> Optional[TableTarget]:
    if index < len(tokens) and tokens[index].is_keyword("ONLY"):
        index += 1
    if index < len(tokens) and tokens[index].is_keyword("LATERAL"):
        return None

    parts, index = _read_name(tokens, index)
    if not parts:
        return None
    # Function call in FROM, e.g. generate_series(1, 3)
    if index < len(tokens) and tokens[index].text == "(":
        return None

    if index < len(tokens) and tokens[index].is_keyword("AS"):
        index += 1
    alias = None
    if index < len(tokens) and tokens[index].is_identifier and not tokens[index].is_keyword(*_NOT_ALIAS):
        alias = tokens[index].name
    return TableTarget(tuple(parts), alias)


def find_table_targets(tokens: List[SqlToken]) -> List[TableTarget]:
    """
    Read every table named in a FROM list, a JOIN or a TABLE statement.

    Comma-separated FROM items are read until a clause keyword or the
    closing parenthesis of the level the FROM opened at. Subqueries,
    LATERAL items and function calls are not table targets.

    Example:
        >>> [t.table_name for t in find_table_targets(tokenize_sql('SELECT * FROM a x, "b" JOIN c ON TRUE'))]
        ['a', 'b', 'c']
    """
    targets: List[TableTarget] = []
    depth = 0
    calls: List[Optional[str]] = []
    from_depths: Set[int] = set()
    previous: Optional[SqlToken] = None

    for index, token in enumerate(tokens):
        read = False

        if token.text in _OPENERS:
            is_call = token.text == "(" and previous is not None and previous.kind == "word"
            calls.append(previous.text.upper() if is_call else None)
            depth += 1
        elif token.text in _CLOSERS:
            from_depths.discard(depth)
            if calls:
                calls.pop()
            depth = max(depth - 1, 0)
        elif token.text == ";":
            from_depths.clear()
        elif token.is_keyword("FROM"):
            in_argument_call = bool(calls) and calls[-1] in _FROM_ARGUMENT_CALLS
            # IS [NOT] DISTINCT FROM is a comparison
            after_distinct = previous is not None and previous.is_keyword("DISTINCT")
            if not in_argument_call and not after_distinct:
                from_depths.add(depth)
                read = True
        elif token.is_keyword("JOIN"):
            from_depths.add(depth)
            read = True
        elif token.is_keyword("TABLE"):
            read = True
        elif token.text == "," and depth in from_depths:
            read = True
        elif token.is_keyword(*_FROM_CLAUSE_END):
            from_depths.discard(depth)

        if read:
            target = _read_target(tokens, index + 1)
            if target is not None:
                targets.append(target)
        previous = token

    return targets


def find_dotted_references(tokens: List[SqlToken]) -> Iterator[List[SqlToken]]:
    """
    Yield identifier chains of two or more parts: a.b, "a"."b", a."b", "a".b.c
    """
    index = 0
    while index < len(tokens):
        if tokens[index].is_identifier:
            parts, index = _read_name(tokens, index)
            if len(parts) >= 2:
                yield parts
        else:
            index += 1


def _skip_group(tokens: List[SqlToken], open_index: int) -> int:
    """Return the index just after the parenthesis closing tokens[open_index]."""
    depth = 0
    for index in range(open_index, len(tokens)):
        if tokens[index].text == "(":
            depth += 1
        elif tokens[index].text == ")":
            depth -= 1
            if depth == 0:
                return index + 1
    return len(tokens)


def _scope_end(tokens: List[SqlToken], start_index: int) -> int:
    """Offset where the statement or parenthesized query holding start_index ends."""
    depth = 0
    for token in tokens[start_index:]:
        if token.text == "(":
            depth += 1
        elif token.text == ")":
            depth -= 1
            if depth < 0:
                return token.start
        elif token.text == ";" and depth == 0:
            return token.start
    return tokens[-1].end if tokens else 0


def find_cte_scopes(tokens: List[SqlToken]) -> List[CteScope]:
    """
    Read WITH query names and where each one can be referenced.

    A name is visible from the end of its own body (from the start of the
    body under WITH RECURSIVE) to the end of the enclosing query.

    Example:
        >>> [s.name for s in find_cte_scopes(tokenize_sql("WITH t AS (SELECT 1), u AS (SELECT 2) SELECT 1"))]
        ['t', 'u']
    """
    scopes: List[CteScope] = []
    count = len(tokens)

    for with_index, token in enumerate(tokens):
        if not token.is_keyword("WITH"):
            continue
        end = _scope_end(tokens, with_index + 1)
        index = with_index + 1
        recursive = index < count and tokens[index].is_keyword("RECURSIVE")
        if recursive:
            index += 1

        while index < count and tokens[index].is_identifier:
            name = tokens[index].name.lower()
            index += 1
            if index < count and tokens[index].text == "(":
                index = _skip_group(tokens, index)
            if not (index < count and tokens[index].is_keyword("AS")):
                break
            index += 1
            while index < count and tokens[index].is_keyword("NOT", "MATERIALIZED"):
                index += 1
            if not (index < count and tokens[index].text == "("):
                break
            body_start = tokens[index].start
            index = _skip_group(tokens, index)
            body_end = tokens[index - 1].end
            scopes.append(CteScope(name, body_start if recursive else body_end, end))
            if not (index < count and tokens[index].text == ","):
                break
            index += 1

    return scopes


def is_cte_reference(target: TableTarget, scopes: Iterable[CteScope]) -> bool:
    """True when a single-part target names a WITH query visible at its position."""
    if len(target.parts) != 1:
        return False
    name = target.table_name.lower()
    return any(scope.name == name and scope.start <= target.start < scope.end for scope in scopes)


def unquote_identifier(identifier: str) -> str:
    """Strip surrounding double quotes and undo doubled inner quotes."""
    identifier = identifier.strip()
    if len(identifier) >= 2 and identifier.startswith('"') and identifier.endswith('"'):
        return identifier[1:-1].replace('""', '"')
    return identifier


def quote_identifier(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def split_qualified(qualified_name: str) -> Tuple[str, str]:
    """Split 'schema.table' on the first dot."""
    schema, _, table = qualified_name.partition(".")
    return schema, table


def quote_qualified(qualified_name: str) -> str:
    """Render 'schema.table' as '"schema"."table"'."""
    schema, table = split_qualified(qualified_name)
    return f"{quote_identifier(schema)}.{quote_identifier(table)}"


def resolve_allowed(found_table: str, allowed_tables: Iterable[str]) -> Optional[str]:
    """Return the allow-listed identifier, in catalog case, matching a lower-cased reference."""
    for allowed in allowed_tables:
        if allowed.lower() == found_table.lower():
            return allowed
    return None


def sanitize_completion_sql(text: str) -> str:
    """
    Clean SQL returned by the completion service.

    Strips surrounding code fences (``` or ```sql), collapses whitespace
    runs to single spaces and trims.
    """
    cleaned = text.strip()
    cleaned = re.sub(r"^```[A-Za-z]*\s*", "", cleaned)
    cleaned = re.sub(r"\s*```$", "", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()
