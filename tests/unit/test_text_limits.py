import pytest

from sql_agent.utils.text_limits import InputValidator, truncate_cell, truncate_rows


def test_truncate_cell_keeps_head_and_tail():
    value = "a" * 100 + "xyz"
    truncated = truncate_cell(value, max_length=20)
    assert len(truncated) == 20
    assert truncated.endswith("...xyz")


def test_truncate_cell_leaves_short_and_non_string_values():
    assert truncate_cell("short", 20) == "short"
    assert truncate_cell(12345678901234567890, 5) == 12345678901234567890
    assert truncate_cell(None, 5) is None


def test_truncate_rows_limits_row_count():
    rows = [{"n": i, "s": "b" * 50} for i in range(5)]
    truncated = truncate_rows(rows, max_rows=2, max_cell_length=10)
    assert [row["n"] for row in truncated] == [0, 1]
    assert all(len(row["s"]) == 10 for row in truncated)


def test_validate_total_chars():
    InputValidator.validate_total_chars("a" * 5, "b" * 5, max_chars=10)
    with pytest.raises(ValueError, match="Total input too large"):
        InputValidator.validate_total_chars("a" * 6, "b" * 5, max_chars=10)
