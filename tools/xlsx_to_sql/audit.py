"""Durable append-only logs of a converter run."""

from pathlib import Path
from typing import Optional

from shared.logger import close_file_logger, get_file_logger

READ_LOG = "read.log"
ERROR_LOG = "error.log"
RUN_LOG = "run.log"


class AuditLog:
    """
    The three text logs kept in the log directory.

    read.log: one line per converted file (status, duration, progress)
    error.log: error detail from conversion and script execution
    run.log: phase boundaries and executed scripts
    """

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        key = str(self.log_dir.resolve()).replace(".", "_")
        self.read = get_file_logger(f"{__name__}.read:{key}", self.log_dir / READ_LOG)
        self.errors = get_file_logger(f"{__name__}.error:{key}", self.log_dir / ERROR_LOG)
        self.run = get_file_logger(f"{__name__}.run:{key}", self.log_dir / RUN_LOG)

    def record_file(self, path: Path, status: str, duration_ms: float, percentage: float) -> None:
        """Append the processing line of one file."""
        self.read.info(f"{path} - {duration_ms:.0f}ms - {status} - {percentage:.2f}% complete")

    def record_error(self, message: str, exc: Optional[BaseException] = None) -> None:
        """Append an error line."""
        if exc is not None:
            message = f"{message}: {exc}"
        self.errors.error(message)

    def record_run(self, message: str) -> None:
        """Append a run line."""
        self.run.info(message)

    def close(self) -> None:
        for logger in (self.read, self.errors, self.run):
            close_file_logger(logger)
