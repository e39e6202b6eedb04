"""
Size limits for text sent to the completion service.

Result rows can carry arbitrarily long text cells, and prompts embed
both the schema and a sample of rows. These helpers keep cells short
and reject requests that would exceed the configured input size.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence


def truncate_cell(value: Any, max_length: int) -> Any:
    """
    Truncate a string cell that exceeds max_length.

    Non-string values are returned as-is. Long strings keep their
    beginning and last three characters around an ellipsis.

    Example:
        >>> truncate_cell("a" * 150, max_length=100)
        'aaaa...aaa'  # 94 chars + "..." + 3 chars
    """
    if not isinstance(value, str) or len(value) <= max_length:
        return value

    if max_length <= 10:
        return value[:max_length - 3] + "..."

    prefix_len = max_length - 6
    return value[:prefix_len] + "..." + value[-3:]


def truncate_rows(
    rows: Sequence[Mapping[str, Any]],
    max_rows: int,
    max_cell_length: int,
) -> List[Dict[str, Any]]:
    """Take the first max_rows rows with every string cell truncated."""
    return [
        {key: truncate_cell(value, max_cell_length) for key, value in row.items()}
        for row in rows[:max_rows]
    ]


class InputValidator:
    """
    Character-count checks against hard limits.
    """

    @staticmethod
    def validate_total_chars(
        prompt: str,
        system_prompt: Optional[str] = None,
        max_chars: int = 0
    ) -> None:
        """
        Validate total character count for a completion request.

        Raises:
            ValueError: If prompt plus system prompt exceeds max_chars
        """
        total_chars = len(prompt)
        if system_prompt:
            total_chars += len(system_prompt)

        if total_chars > max_chars:
            raise ValueError(
                f"Total input too large: {total_chars} characters, "
                f"maximum allowed: {max_chars}"
            )
