"""CREATE TABLE generation."""

from typing import List, Sequence

from shared.logger import get_logger

from .encoder import escape_string
from .inference import TEXT_TYPES, ColumnProfile
from .naming import identity_column

logger = get_logger(__name__)

ENGINE = "INNODB"
INDEX_PREFIX_LENGTH = 255


class SchemaError(ValueError):
    """The column list cannot produce a valid table definition."""


class SchemaBuilder:
    """
    Build MySQL table definitions from column profiles.

    Every table gets a synthetic ``<table>_id`` auto-increment key as its only
    primary key, nullable data columns commented with their original header,
    and one secondary index on the first data column. The index policy is
    fixed: it does not look at the data.
    """

    def __init__(self, engine: str = ENGINE):
        self.engine = engine

    def build(self, table_name: str, columns: Sequence[ColumnProfile]) -> str:
        """
        Generate the CREATE TABLE statement.

        Args:
            table_name: Sanitized table name
            columns: Column profiles in header order

        Returns:
            SQL CREATE TABLE statement

        Raises:
            SchemaError: If the table name is empty or identifiers collide
        """
        self._validate(table_name, columns)

        key = identity_column(table_name)
        definitions: List[str] = [f"{key} INT NOT NULL AUTO_INCREMENT COMMENT 'row ID'"]

        for col in columns:
            definitions.append(
                f"{col.name} {col.sql_type} DEFAULT NULL COMMENT '{escape_string(col.raw_header)}'"
            )

        definitions.append(f"PRIMARY KEY ({key})")

        if columns:
            definitions.append(self._index(columns[0]))

        lines = [f"CREATE TABLE {table_name} ("]
        lines.append(",\n".join(definitions))
        lines.append(f") ENGINE = {self.engine};")

        return "\n".join(lines)

    def _index(self, col: ColumnProfile) -> str:
        # MySQL requires a key length for BLOB/TEXT columns.
        target = col.name
        if col.column_type in TEXT_TYPES:
            target = f"{col.name}({INDEX_PREFIX_LENGTH})"
        return f"INDEX idx_{col.name} ({target})"

    def _validate(self, table_name: str, columns: Sequence[ColumnProfile]) -> None:
        if not table_name:
            raise SchemaError("Table name is empty after sanitization")

        seen = {identity_column(table_name)}
        for col in columns:
            if not col.name:
                raise SchemaError(f"Column {col.raw_header!r} has an empty identifier")
            if col.name in seen:
                raise SchemaError(f"Duplicate column identifier {col.name!r} in {table_name}")
            seen.add(col.name)
