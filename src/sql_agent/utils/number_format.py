"""
Numeric coercion, column statistics and CLP currency rendering.

Result cells arrive as numbers or as locale-formatted strings
("1.234,56", "$ 12 345", "CLP 1,234.56"). The answer formatter needs a
numeric view of them to compute statistics, and a fixed currency
rendering for monetary columns.
"""

import math
import re
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..domain.responses import ColumnStats, FormattedColumnStats

_CURRENCY_PREFIX = re.compile(r"^(?:CLP)?\$?", re.IGNORECASE)
_NUMERIC_BODY = re.compile(r"^\d[\d.,]*$|^[.,]\d+$")
_DOT_GROUPED = re.compile(r"^\d{1,3}(?:\.\d{3})+$")


def _normalize_separators(body: str) -> str:
    has_dot = "." in body
    has_comma = "," in body

    if has_dot and has_comma:
        # Rightmost separator is the decimal one
        if body.rfind(",") > body.rfind("."):
            return body.replace(".", "").replace(",", ".")
        return body.replace(",", "")

    if has_comma:
        if body.count(",") == 1:
            return body.replace(",", ".")
        return body.replace(",", "")

    if has_dot and _DOT_GROUPED.match(body):
        return body.replace(".", "")

    return body


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a cell to a float, or None when it is not numeric.

    Example:
        >>> to_number("1.234,56")
        1234.56
        >>> to_number("$ 12 345")
        12345.0
        >>> to_number(True) is None
        True
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None

    if not isinstance(value, str):
        return None

    text = re.sub(r"\s", "", value)
    negative = text.startswith("-")
    if negative:
        text = text[1:]
    text = _CURRENCY_PREFIX.sub("", text, count=1)

    if not text or not _NUMERIC_BODY.match(text):
        return None

    try:
        number = float(_normalize_separators(text))
    except ValueError:
        return None

    if not math.isfinite(number):
        return None
    return -number if negative else number


def format_clp(value: float) -> str:
    """
    Render a number as Chilean pesos: no decimals, "." grouping, "$" prefix.

    Rounds half up; negatives carry the sign before the symbol.

    Example:
        >>> format_clp(1234.56)
        '$1.235'
        >>> format_clp(-1234567)
        '-$1.234.567'
    """
    if not math.isfinite(value):
        return ""

    rounded = math.floor(value + 0.5)
    grouped = f"{abs(rounded):,}".replace(",", ".")
    return f"-${grouped}" if rounded < 0 else f"${grouped}"


def is_money_column(name: str, hints: Iterable[str]) -> bool:
    """True when the column name contains any currency hint (case-insensitive)."""
    lowered = str(name or "").lower()
    return any(hint.lower() in lowered for hint in hints)


def compute_column_stats(rows: Sequence[Mapping[str, Any]]) -> Dict[str, ColumnStats]:
    """
    Compute count/min/max/avg for every column with at least one numeric value.

    Columns are visited in order of first appearance across the rows.
    """
    columns: Dict[str, None] = {}
    for row in rows:
        columns.update(dict.fromkeys(row.keys()))

    stats: Dict[str, ColumnStats] = {}
    for column in columns:
        numbers: List[float] = []
        for row in rows:
            number = to_number(row.get(column))
            if number is not None:
                numbers.append(number)

        if numbers:
            stats[column] = ColumnStats(
                count=len(numbers),
                min=min(numbers),
                max=max(numbers),
                avg=sum(numbers) / len(numbers),
            )

    return stats


def format_column_stats(
    stats: Mapping[str, ColumnStats],
    currency_hints: Iterable[str],
) -> Dict[str, Union[ColumnStats, FormattedColumnStats]]:
    """Render min/max/avg as CLP for monetary columns; other columns pass through."""
    hints = list(currency_hints)
    formatted: Dict[str, Union[ColumnStats, FormattedColumnStats]] = {}

    for column, column_stats in stats.items():
        if is_money_column(column, hints):
            formatted[column] = FormattedColumnStats(
                count=column_stats.count,
                min=format_clp(column_stats.min),
                max=format_clp(column_stats.max),
                avg=format_clp(column_stats.avg),
            )
        else:
            formatted[column] = column_stats

    return formatted
