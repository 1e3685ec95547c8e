"""Batched INSERT generation with a quarantine for malformed rows."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from shared.logger import get_logger

from .encoder import ValueEncoder, quote
from .inference import ColumnProfile, is_blank

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000


@dataclass
class InsertScripts:
    """Rendered data and quarantine scripts for one table."""

    data_sql: str
    quarantine_sql: str
    rows: int
    quarantined: int


class BatchInsertWriter:
    """
    Render data rows as multi-row INSERT statements.

    Rows shorter than the header are completed with NULLs. Blank cells past
    the last column are dropped; a row that still has more cells than the
    header is written verbatim to the quarantine script instead.
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE, encoder: Optional[ValueEncoder] = None):
        """
        Initialize the writer.

        Args:
            batch_size: Rows per INSERT statement
            encoder: Cell encoder
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self.encoder = encoder or ValueEncoder()

    def write(
        self,
        table_name: str,
        columns: Sequence[ColumnProfile],
        data_rows: Sequence[Sequence[str]],
    ) -> InsertScripts:
        """
        Generate INSERT statements.

        Args:
            table_name: Sanitized table name
            columns: Column profiles in header order
            data_rows: Data rows (header excluded)

        Returns:
            InsertScripts with the data and quarantine SQL
        """
        column_names = ", ".join(col.name for col in columns)
        prefix = f"INSERT INTO {table_name} ({column_names}) VALUES"

        statements: List[str] = []
        quarantine: List[str] = []
        current_batch: List[str] = []
        written = 0

        for number, row in enumerate(data_rows, start=1):
            values = self.encode_row(columns, row)

            if values is None:
                quarantine.append(f"-- row {number}: {len(row)} cells, expected {len(columns)}")
                quarantine.append(f"{prefix} ({', '.join(quote(cell) for cell in row)});")
                continue

            current_batch.append(f"({', '.join(values)})")
            written += 1

            # Flush batch
            if len(current_batch) >= self.batch_size:
                statements.append(prefix + "\n" + ",\n".join(current_batch) + ";")
                current_batch = []

        # Final batch
        if current_batch:
            statements.append(prefix + "\n" + ",\n".join(current_batch) + ";")

        quarantined = len(quarantine) // 2
        if quarantined:
            logger.warning(f"{table_name}: {quarantined} row(s) diverted to quarantine")
        logger.debug(f"{table_name}: {written} rows in {len(statements)} INSERT statement(s)")

        return InsertScripts(
            data_sql="\n".join(statements) + ("\n" if statements else ""),
            quarantine_sql="\n".join(quarantine) + ("\n" if quarantine else ""),
            rows=written,
            quarantined=quarantined,
        )

    def encode_row(self, columns: Sequence[ColumnProfile], row: Sequence[str]) -> Optional[List[str]]:
        """
        Encode a row to exactly one value per column.

        Returns:
            Encoded values, or None when the row is wider than the header
        """
        cells = list(row)
        while len(cells) > len(columns) and is_blank(cells[-1]):
            cells.pop()

        if len(cells) > len(columns):
            return None

        values = [self.encoder.encode(cell, col.column_type) for cell, col in zip(cells, columns)]
        # Missing trailing cells are absent values.
        values.extend(self.encoder.encode("", col.column_type) for col in columns[len(cells):])
        return values
