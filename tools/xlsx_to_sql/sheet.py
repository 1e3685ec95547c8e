"""Workbook reading: first/active sheet as rows of text cells."""

import datetime
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple

from openpyxl import load_workbook

from shared.logger import get_logger

logger = get_logger(__name__)

WORKBOOK_SUFFIXES = (".xlsx", ".xlsm")
LOCK_FILE_PREFIX = "~$"


@dataclass(frozen=True)
class Sheet:
    """Tabular content of one worksheet: row 0 is the header."""

    name: str
    rows: Tuple[Tuple[str, ...], ...]

    @property
    def header(self) -> Tuple[str, ...]:
        return self.rows[0] if self.rows else ()

    @property
    def data_rows(self) -> Tuple[Tuple[str, ...], ...]:
        return self.rows[1:]


def is_workbook(path: Path) -> bool:
    """Spreadsheet file that openpyxl can read, excluding Office lock files."""
    return (
        path.is_file()
        and path.suffix.lower() in WORKBOOK_SUFFIXES
        and not path.name.startswith(LOCK_FILE_PREFIX)
    )


def cell_text(value: Any, number_format: Optional[str] = None) -> str:
    """
    Render a cell value as the text the type inference works on.

    Args:
        value: Cell value as returned by openpyxl
        number_format: Cell number format, used to tell dates from datetimes

    Returns:
        Text of the cell ("" for empty cells)
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime.datetime):
        if value.time() == datetime.time(0) and "h" not in (number_format or "").lower():
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, datetime.date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, datetime.time):
        return value.strftime("%H:%M:%S")
    return str(value)


def _trim(cells: List[str]) -> Tuple[str, ...]:
    while cells and not cells[-1]:
        cells.pop()
    return tuple(cells)


def list_sheets(path: Path) -> List[str]:
    """Names of the worksheets in a workbook, in workbook order."""
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        return list(workbook.sheetnames)
    finally:
        workbook.close()


def open_workbook(path: Path, sheet_name: Optional[str] = None) -> Sheet:
    """
    Read one worksheet as text rows.

    Trailing empty cells of each row and trailing empty rows are dropped.
    Formulas are read as their cached values.

    Args:
        path: Workbook path
        sheet_name: Worksheet to read (the active sheet if None)

    Returns:
        Sheet

    Raises:
        ValueError: If the requested sheet does not exist
    """
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        if sheet_name is None:
            worksheet = workbook.active
            if worksheet is None:
                worksheet = workbook.worksheets[0]
        elif sheet_name in workbook.sheetnames:
            worksheet = workbook[sheet_name]
        else:
            raise ValueError(f"Sheet '{sheet_name}' not found in {path.name}")

        rows: List[Tuple[str, ...]] = []
        for row in worksheet.iter_rows():
            rows.append(
                _trim([cell_text(cell.value, getattr(cell, "number_format", None)) for cell in row])
            )

        while rows and not rows[-1]:
            rows.pop()

        logger.debug(f"Read {len(rows)} rows from {path.name} [{worksheet.title}]")
        return Sheet(name=worksheet.title, rows=tuple(rows))
    finally:
        workbook.close()
