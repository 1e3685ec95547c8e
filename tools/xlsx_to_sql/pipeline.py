"""Concurrent conversion of a directory of workbooks into SQL scripts."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from shared.logger import get_logger

from .audit import AuditLog
from .config import DUPLICATE_SUFFIX, ConverterConfig
from .inference import TypeInferer, profile_columns
from .naming import table_name_for
from .schema import SchemaBuilder, SchemaError
from .sheet import Sheet, is_workbook, open_workbook
from .writer import BatchInsertWriter

logger = get_logger(__name__)

SheetReader = Callable[[Path, Optional[str]], Sheet]


class ConversionStatus(str, Enum):
    """Outcome of one file conversion."""

    SUCCESS = "success"
    ERROR = "error"
    EMPTY = "empty"


@dataclass(frozen=True)
class ConversionTask:
    """One workbook and the table it becomes."""

    path: Path
    table_name: str


@dataclass
class ConversionResult:
    """Outcome of converting one workbook."""

    path: Path
    table_name: str
    status: ConversionStatus
    duration_ms: float
    error: Optional[str] = None
    rows: int = 0
    quarantined: int = 0
    schema_path: Optional[Path] = None
    data_path: Optional[Path] = None
    quarantine_path: Optional[Path] = None


def schema_script_path(schema_dir: Path, table_name: str) -> Path:
    return schema_dir / f"{table_name}.sql"


def data_script_path(data_dir: Path, table_name: str) -> Path:
    return data_dir / f"data_{table_name}.sql"


def quarantine_script_path(data_dir: Path, table_name: str) -> Path:
    return data_dir / f"quarantine_{table_name}.sql"


def summarize(results: Sequence[ConversionResult]) -> Dict[ConversionStatus, int]:
    """Count results per status."""
    counts = {status: 0 for status in ConversionStatus}
    for result in results:
        counts[result.status] += 1
    return counts


def _elapsed_ms(start_time: datetime) -> float:
    return (datetime.now() - start_time).total_seconds() * 1000


def _write_scripts(scripts: Dict[Path, str]) -> None:
    """Write every script to a temp file first, then move them all into place."""
    staged: Dict[Path, Path] = {}
    try:
        for path, content in scripts.items():
            tmp_path = path.with_name(f".{path.name}.tmp")
            staged[path] = tmp_path
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(content)
        for path, tmp_path in staged.items():
            tmp_path.replace(path)
    finally:
        for tmp_path in staged.values():
            tmp_path.unlink(missing_ok=True)


def _remove(*paths: Path) -> None:
    for path in paths:
        if path.exists():
            logger.debug(f"Removing stale script {path}")
            path.unlink()


class ConversionPipeline:
    """
    Convert every workbook of the input directory into SQL scripts.

    Each file is an independent task on a bounded thread pool. A failing file
    becomes an ``error`` result and never affects the others. Results are
    gathered in completion order by the calling thread, which is also the only
    writer of the progress log, so no state is shared between tasks.
    """

    def __init__(
        self,
        config: ConverterConfig,
        reader: SheetReader = open_workbook,
        inferer: Optional[TypeInferer] = None,
        schema_builder: Optional[SchemaBuilder] = None,
        writer: Optional[BatchInsertWriter] = None,
        audit: Optional[AuditLog] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Directories and conversion settings
            reader: Workbook reader returning the sheet to convert
            inferer: Column type inferer
            schema_builder: CREATE TABLE builder
            writer: INSERT writer (defaults to config.batch_size batches)
            audit: Durable logs (defaults to config.log_dir)
        """
        config.validate()
        self.config = config
        self.reader = reader
        self.inferer = inferer or TypeInferer()
        self.schema_builder = schema_builder or SchemaBuilder()
        self.writer = writer or BatchInsertWriter(batch_size=config.batch_size)
        self.audit = audit or AuditLog(config.log_dir)

    def prepare(self) -> None:
        """
        Check the input directory and create the output directories.

        Raises:
            FileNotFoundError: If the input directory does not exist
            NotADirectoryError: If the input path is not a directory
        """
        input_dir = self.config.input_dir
        if not input_dir.exists():
            raise FileNotFoundError(f"Input directory not found: {input_dir}")
        if not input_dir.is_dir():
            raise NotADirectoryError(f"Input path is not a directory: {input_dir}")

        for directory in (self.config.schema_dir, self.config.data_dir, self.config.log_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def discover_files(self) -> List[Path]:
        """Workbooks directly inside the input directory, sorted by name."""
        return sorted(p for p in self.config.input_dir.iterdir() if is_workbook(p))

    def plan(self, files: Sequence[Path]) -> Tuple[List[ConversionTask], List[ConversionResult]]:
        """
        Assign table names to files.

        Files whose name sanitizes to nothing, or to a table name an earlier
        file already took, are rejected up front so no two tasks write the
        same scripts.

        Returns:
            Tuple of (tasks to run, error results for rejected files)
        """
        tasks: List[ConversionTask] = []
        rejected: List[ConversionResult] = []
        owners: Dict[str, Path] = {}

        for path in files:
            table_name = table_name_for(path.stem)

            if not table_name:
                message = f"File name {path.name!r} yields an empty table name"
            elif table_name in owners:
                message = f"Table name {table_name!r} already used by {owners[table_name].name}"
            else:
                owners[table_name] = path
                tasks.append(ConversionTask(path=path, table_name=table_name))
                continue

            logger.error(message)
            self.audit.record_error(message)
            rejected.append(
                ConversionResult(
                    path=path,
                    table_name=table_name,
                    status=ConversionStatus.ERROR,
                    duration_ms=0.0,
                    error=message,
                )
            )

        return tasks, rejected

    def output_paths(self, table_name: str) -> Tuple[Path, Path, Path]:
        """Schema, data and quarantine script paths of a table."""
        return (
            schema_script_path(self.config.schema_dir, table_name),
            data_script_path(self.config.data_dir, table_name),
            quarantine_script_path(self.config.data_dir, table_name),
        )

    def convert_file(self, task: ConversionTask) -> ConversionResult:
        """
        Convert one workbook and write its scripts.

        Scripts left by an earlier run of the same table are replaced, or
        removed when this run produces none.

        Args:
            task: Workbook and table name

        Returns:
            ConversionResult with status success or empty

        Raises:
            Exception: Whatever reading, rendering or writing raised
        """
        start_time = datetime.now()
        table_name = task.table_name

        sheet = self.reader(task.path, self.config.sheet)

        if len(sheet.rows) < 2:
            logger.info(f"{task.path.name}: no data rows, skipped")
            _remove(*self.output_paths(table_name))
            return ConversionResult(
                path=task.path,
                table_name=table_name,
                status=ConversionStatus.EMPTY,
                duration_ms=_elapsed_ms(start_time),
            )

        if not sheet.header:
            raise SchemaError(f"Header row of {task.path.name} is empty")

        columns = profile_columns(
            table_name,
            sheet.header,
            sheet.data_rows,
            inferer=self.inferer,
            suffix_duplicates=self.config.duplicate_columns == DUPLICATE_SUFFIX,
        )

        create_stmt = self.schema_builder.build(table_name, columns)
        scripts = self.writer.write(table_name, columns, sheet.data_rows)

        schema_path, data_path, quarantine_path = self.output_paths(table_name)
        outputs = {schema_path: create_stmt, data_path: scripts.data_sql}

        if scripts.quarantined:
            outputs[quarantine_path] = scripts.quarantine_sql
        else:
            _remove(quarantine_path)
            quarantine_path = None

        _write_scripts(outputs)

        logger.info(f"Converted {task.path.name} → {table_name} ({scripts.rows} rows)")

        return ConversionResult(
            path=task.path,
            table_name=table_name,
            status=ConversionStatus.SUCCESS,
            duration_ms=_elapsed_ms(start_time),
            rows=scripts.rows,
            quarantined=scripts.quarantined,
            schema_path=schema_path,
            data_path=data_path,
            quarantine_path=quarantine_path,
        )

    def _convert_safely(self, task: ConversionTask) -> ConversionResult:
        start_time = datetime.now()
        try:
            return self.convert_file(task)
        except Exception as e:
            logger.error(f"Failed to convert {task.path.name}: {e}")
            self.audit.record_error(f"Error converting {task.path}", e)
            try:
                _remove(*self.output_paths(task.table_name))
            except OSError as cleanup_error:
                logger.error(f"Failed to remove scripts of {task.table_name}: {cleanup_error}")
            return ConversionResult(
                path=task.path,
                table_name=task.table_name,
                status=ConversionStatus.ERROR,
                duration_ms=_elapsed_ms(start_time),
                error=str(e) or type(e).__name__,
            )

    def run(
        self,
        on_result: Optional[Callable[[ConversionResult, float], None]] = None,
    ) -> List[ConversionResult]:
        """
        Convert every workbook of the input directory.

        Args:
            on_result: Called with each result and the completion percentage,
                in completion order

        Returns:
            ConversionResults in completion order

        Raises:
            FileNotFoundError: If the input directory does not exist
            NotADirectoryError: If the input path is not a directory
        """
        self.prepare()

        files = self.discover_files()
        tasks, results = self.plan(files)
        total = len(files)

        logger.info(f"Found {total} workbook(s) in {self.config.input_dir}")
        self.audit.record_run(f"Started converting {total} workbook(s) from {self.config.input_dir}")

        collected: List[ConversionResult] = []

        def emit(result: ConversionResult) -> None:
            collected.append(result)
            percentage = len(collected) / total * 100
            self.audit.record_file(result.path, result.status.value, result.duration_ms, percentage)
            if on_result:
                on_result(result, percentage)

        for result in results:
            emit(result)

        if tasks:
            max_workers = min(self.config.max_workers, len(tasks))
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                futures = {pool.submit(self._convert_safely, task): task for task in tasks}
                for future in as_completed(futures):
                    emit(future.result())

        counts = summarize(collected)
        self.audit.record_run(
            "Finished converting workbooks: "
            + ", ".join(f"{counts[s]} {s.value}" for s in ConversionStatus)
        )
        return collected
