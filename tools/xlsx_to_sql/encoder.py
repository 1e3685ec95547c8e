"""Render spreadsheet cells as SQL literals."""

from typing import Optional

from .inference import NUMERIC_TYPES, TEMPORAL_PATTERNS, ColumnType, is_blank, matches_temporal

NULL = "NULL"


def escape_string(value: str) -> str:
    """Backslash-escape backslashes, single quotes and double quotes."""
    return value.replace("\\", "\\\\").replace("'", "\\'").replace('"', '\\"')


def quote(value: str) -> str:
    """Single-quoted, escaped string literal."""
    return f"'{escape_string(value)}'"


class ValueEncoder:
    """
    Encode one cell for an INSERT statement given its column type.

    Blank cells are always NULL. Numeric values are emitted as-is, temporal
    values are checked against their column pattern again and degrade to NULL
    when they do not match. Everything else is quoted.

    The escaping keeps generated scripts well-formed for MySQL/MariaDB; it is
    not a replacement for parameterized queries.
    """

    def encode(self, value: Optional[str], column_type: ColumnType) -> str:
        if is_blank(value):
            return NULL

        if column_type in NUMERIC_TYPES:
            return value.strip()

        if column_type in TEMPORAL_PATTERNS:
            stripped = value.strip()
            if matches_temporal(stripped, column_type):
                return quote(stripped)
            return NULL

        return quote(value)
