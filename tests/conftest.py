"""Shared fixtures."""

from pathlib import Path
from typing import Any, Iterable, Sequence

import pytest
from openpyxl import Workbook


@pytest.fixture
def write_workbook():
    """Factory writing rows to an .xlsx file."""

    def _write(path: Path, rows: Iterable[Sequence[Any]], title: str = "Sheet1") -> Path:
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = title
        for row in rows:
            worksheet.append(list(row))
        workbook.save(path)
        return path

    return _write
