"""Column type inference from untyped spreadsheet text.

Inference is a best-effort heuristic: a column gets the tightest type that
every non-blank value conforms to, checked in a fixed precedence order.
Temporal types are matched by shape only, so calendar-invalid values such as
``2020-02-30`` still count as dates.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from shared.logger import get_logger

from .naming import identity_column, unique_column_names

logger = get_logger(__name__)

INT_MAX = 2**31 - 1
INT_MAX_LENGTH = 10
BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1

FLOAT_MAX_LENGTH = 7
VARCHAR_MAX_LENGTH = 255
TEXT_MAX_LENGTH = 65535
MEDIUMTEXT_MAX_LENGTH = 16777215

BOOLEAN_TOKENS = frozenset({"true", "false", "1", "0"})


class ColumnType(str, Enum):
    """SQL column types."""

    BOOLEAN = "BOOLEAN"
    INT = "INT"
    BIGINT = "BIGINT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    DATE = "DATE"
    DATETIME = "DATETIME"
    TIMESTAMP = "TIMESTAMP"
    TIME = "TIME"
    YEAR = "YEAR"
    JSON = "JSON"
    UUID = "UUID"
    VARCHAR = "VARCHAR"
    TEXT = "TEXT"
    MEDIUMTEXT = "MEDIUMTEXT"
    LONGTEXT = "LONGTEXT"


NUMERIC_TYPES = frozenset(
    {ColumnType.BOOLEAN, ColumnType.INT, ColumnType.BIGINT, ColumnType.FLOAT, ColumnType.DOUBLE}
)

TEXT_TYPES = frozenset({ColumnType.TEXT, ColumnType.MEDIUMTEXT, ColumnType.LONGTEXT})

# Checked in this order when deciding a column type.
TEMPORAL_PATTERNS: Dict[ColumnType, "re.Pattern[str]"] = {
    ColumnType.DATE: re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII),
    ColumnType.DATETIME: re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", re.ASCII),
    ColumnType.TIMESTAMP: re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", re.ASCII),
    ColumnType.TIME: re.compile(r"\d{2}:\d{2}:\d{2}", re.ASCII),
    ColumnType.YEAR: re.compile(r"\d{4}", re.ASCII),
}

_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)
_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_JSON = re.compile(r"\{.*\}")
_UUID = re.compile(
    r"[a-fA-F0-9]{8}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{12}"
)


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty and whitespace-only cells."""
    return value is None or not value.strip()


def matches_temporal(value: str, column_type: ColumnType) -> bool:
    """Check a value against the pattern of a temporal column type."""
    pattern = TEMPORAL_PATTERNS.get(column_type)
    return pattern is not None and pattern.fullmatch(value) is not None


@dataclass(frozen=True)
class ColumnProfile:
    """Inferred definition of one spreadsheet column."""

    name: str
    raw_header: str
    column_type: ColumnType
    max_length: int = 0

    @property
    def sql_type(self) -> str:
        """Type as written in a column definition."""
        if self.column_type == ColumnType.VARCHAR:
            return f"VARCHAR({self.max_length})"
        return self.column_type.value


class TypeInferer:
    """
    Decide one SQL type per column from its raw string values.

    Rules, first match wins:
    BOOLEAN, INT/BIGINT, FLOAT/DOUBLE, DATE, DATETIME, TIMESTAMP, TIME,
    YEAR, JSON, UUID, then a string type sized by the longest value.
    """

    def infer(self, values: Sequence[Optional[str]]) -> ColumnType:
        """
        Infer the column type.

        Args:
            values: Every value of the column (blanks allowed)

        Returns:
            Decided ColumnType
        """
        non_blank = [v.strip() for v in values if not is_blank(v)]

        if not non_blank:
            return ColumnType.VARCHAR

        if all(v in BOOLEAN_TOKENS for v in non_blank):
            return ColumnType.BOOLEAN

        if all(self._is_integer(v) for v in non_blank):
            if any(self._needs_bigint(v) for v in non_blank):
                return ColumnType.BIGINT
            return ColumnType.INT

        if all(_DECIMAL.fullmatch(v) for v in non_blank):
            if max(len(v) for v in non_blank) <= FLOAT_MAX_LENGTH:
                return ColumnType.FLOAT
            return ColumnType.DOUBLE

        for column_type in TEMPORAL_PATTERNS:
            if all(matches_temporal(v, column_type) for v in non_blank):
                return column_type

        if all(_JSON.fullmatch(v) for v in non_blank):
            return ColumnType.JSON

        if all(_UUID.fullmatch(v) for v in non_blank):
            return ColumnType.UUID

        return self._string_type(self.max_length(values))

    def max_length(self, values: Sequence[Optional[str]]) -> int:
        """Longest non-blank value as written (surrounding spaces included)."""
        return max((len(v) for v in values if not is_blank(v)), default=0)

    def profile(self, name: str, raw_header: str, values: Sequence[Optional[str]]) -> ColumnProfile:
        """Build the profile of one column."""
        column_type = self.infer(values)
        max_length = self.max_length(values)

        if column_type == ColumnType.VARCHAR and max_length == 0:
            max_length = VARCHAR_MAX_LENGTH

        return ColumnProfile(
            name=name,
            raw_header=raw_header,
            column_type=column_type,
            max_length=max_length,
        )

    def _is_integer(self, value: str) -> bool:
        """Integer literal that fits a 64-bit signed column."""
        if not _INTEGER.fullmatch(value):
            return False
        return BIGINT_MIN <= int(value) <= BIGINT_MAX

    def _needs_bigint(self, value: str) -> bool:
        """More than 10 characters, or exactly 10 and above the INT maximum."""
        if len(value) > INT_MAX_LENGTH:
            return True
        return len(value) == INT_MAX_LENGTH and int(value) > INT_MAX

    def _string_type(self, length: int) -> ColumnType:
        if length <= VARCHAR_MAX_LENGTH:
            return ColumnType.VARCHAR
        if length <= TEXT_MAX_LENGTH:
            return ColumnType.TEXT
        if length <= MEDIUMTEXT_MAX_LENGTH:
            return ColumnType.MEDIUMTEXT
        return ColumnType.LONGTEXT


def column_values(data_rows: Sequence[Sequence[str]], index: int) -> List[str]:
    """Values of one column; short rows contribute a blank."""
    return [row[index] if index < len(row) else "" for row in data_rows]


def profile_columns(
    table_name: str,
    header: Sequence[str],
    data_rows: Sequence[Sequence[str]],
    inferer: Optional[TypeInferer] = None,
    suffix_duplicates: bool = True,
) -> List[ColumnProfile]:
    """
    Profile every header column over the full set of data rows.

    Args:
        table_name: Sanitized table name (reserves the identity column name)
        header: Raw header cells
        data_rows: All data rows
        inferer: TypeInferer to use
        suffix_duplicates: Suffix colliding identifiers instead of failing

    Returns:
        One ColumnProfile per header cell

    Raises:
        DuplicateIdentifierError: On identifier collision in strict mode
    """
    inferer = inferer or TypeInferer()
    names = unique_column_names(
        header,
        reserved=[identity_column(table_name)],
        suffix_duplicates=suffix_duplicates,
    )

    profiles = [
        inferer.profile(name, raw, column_values(data_rows, index))
        for index, (name, raw) in enumerate(zip(names, header))
    ]

    logger.debug(
        f"Profiled {len(profiles)} columns for {table_name}: "
        + ", ".join(f"{p.name} {p.sql_type}" for p in profiles)
    )
    return profiles
