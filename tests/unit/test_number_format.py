from decimal import Decimal

import pytest

from sql_agent.config_constants import DEFAULT_CURRENCY_HINTS
from sql_agent.domain.responses import ColumnStats, FormattedColumnStats
from sql_agent.utils.number_format import (
    compute_column_stats,
    format_clp,
    format_column_stats,
    is_money_column,
    to_number,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (42, 42.0),
        (3.5, 3.5),
        (Decimal("10.25"), 10.25),
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("CLP 1,234.56", 1234.56),
        ("$ 12 345", 12345.0),
        ("1.234.567", 1234567.0),
        ("1.5", 1.5),
        ("1,5", 1.5),
        ("1,234,567", 1234567.0),
        ("-$1.234", -1234.0),
        ("  99  ", 99.0),
    ],
)
def test_to_number_coerces(value, expected):
    assert to_number(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", [None, True, False, "", "  ", "$", "abc", "12abc", float("nan"), float("inf"), {"a": 1}])
def test_to_number_rejects(value):
    assert to_number(value) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        (1234.56, "$1.235"),
        (0, "$0"),
        (999, "$999"),
        (1234567, "$1.234.567"),
        (-1234567, "-$1.234.567"),
        (2.5, "$3"),
        (-0.4, "$0"),
    ],
)
def test_format_clp(value, expected):
    assert format_clp(value) == expected


def test_is_money_column():
    assert is_money_column("precio_unitario", DEFAULT_CURRENCY_HINTS)
    assert is_money_column("TotalVentas", DEFAULT_CURRENCY_HINTS)
    assert not is_money_column("nombre", DEFAULT_CURRENCY_HINTS)


def test_compute_column_stats_skips_non_numeric_columns():
    rows = [
        {"nombre": "A", "precio": "1.234,56", "stock": 3},
        {"nombre": "B", "precio": 100, "stock": None},
        {"nombre": "C", "precio": "n/a", "stock": 7},
    ]

    stats = compute_column_stats(rows)

    assert list(stats) == ["precio", "stock"]
    assert stats["precio"].count == 2
    assert stats["precio"].min == 100.0
    assert stats["precio"].max == 1234.56
    assert stats["precio"].avg == pytest.approx(667.28)
    assert stats["stock"].count == 2
    assert stats["stock"].avg == 5.0


def test_compute_column_stats_visits_columns_beyond_first_row():
    stats = compute_column_stats([{"a": "x"}, {"a": "y", "monto": 5}])
    assert list(stats) == ["monto"]


def test_format_column_stats_renders_currency_columns_only():
    stats = {
        "precio": ColumnStats(count=1, min=1234.56, max=1234.56, avg=1234.56),
        "stock": ColumnStats(count=1, min=3, max=3, avg=3),
    }

    formatted = format_column_stats(stats, DEFAULT_CURRENCY_HINTS)

    assert formatted["precio"] == FormattedColumnStats(count=1, min="$1.235", max="$1.235", avg="$1.235")
    assert formatted["stock"] == stats["stock"]
