"""Sequential execution of generated SQL scripts."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence

from shared.logger import get_logger

from .audit import AuditLog

logger = get_logger(__name__)

PREVIEW_LENGTH = 80


@dataclass
class ScriptOutcome:
    """Execution summary of one script file."""

    path: Path
    executed: int = 0
    failed: int = 0
    duration_ms: float = 0.0
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0


def _is_comment_only(statement: str) -> bool:
    return all(
        not line.strip() or line.strip().startswith("--") for line in statement.splitlines()
    )


def split_statements(sql: str) -> List[str]:
    """
    Split a script into statements on ``;``.

    Semicolons inside quoted literals (``'``, ``"``, backticks, with
    backslash escapes) and ``--`` line comments do not end a statement.
    Fragments holding only comments or whitespace are dropped.
    """
    statements: List[str] = []
    buffer: List[str] = []
    quote: Optional[str] = None
    escaped = False
    in_comment = False

    def flush() -> None:
        statement = "".join(buffer).strip()
        buffer.clear()
        if statement and not _is_comment_only(statement):
            statements.append(statement)

    for i, ch in enumerate(sql):
        if in_comment:
            buffer.append(ch)
            if ch == "\n":
                in_comment = False
        elif quote:
            buffer.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\" and quote != "`":
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
            buffer.append(ch)
        elif ch == "-" and sql.startswith("--", i) and (i + 2 == len(sql) or sql[i + 2].isspace()):
            in_comment = True
            buffer.append(ch)
        elif ch == ";":
            flush()
        else:
            buffer.append(ch)

    flush()
    return statements


def table_scripts(schema_dir: Path) -> List[Path]:
    """CREATE TABLE scripts, sorted by name."""
    return sorted(p for p in Path(schema_dir).glob("*.sql") if p.is_file())


def data_scripts(data_dir: Path) -> List[Path]:
    """INSERT scripts (quarantine scripts excluded), sorted by name."""
    return sorted(p for p in Path(data_dir).glob("data_*.sql") if p.is_file())


class ScriptRunner:
    """
    Run SQL scripts statement by statement against a database.

    A failing statement is logged and skipped; the remaining statements and
    scripts still run. Nothing is rolled back.
    """

    def __init__(self, executor: Any, audit: Optional[AuditLog] = None):
        """
        Initialize the runner.

        Args:
            executor: Object with an ``execute(statement)`` method that raises
                on failure (see DatabaseExecutor)
            audit: Durable logs for run and error lines
        """
        self.executor = executor
        self.audit = audit

    def execute(self, script_paths: Sequence[Path]) -> List[ScriptOutcome]:
        """
        Execute scripts in the given order.

        Args:
            script_paths: Script files

        Returns:
            One ScriptOutcome per script
        """
        return [self.execute_script(Path(path)) for path in script_paths]

    def execute_script(self, path: Path) -> ScriptOutcome:
        """Execute every statement of one script."""
        outcome = ScriptOutcome(path=path)
        start_time = datetime.now()
        self._run_line(f"Started processing {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            outcome.failed = 1
            outcome.errors.append(str(e))
            self._error(f"Failed to read {path}", e)
            return outcome

        for statement in split_statements(content):
            try:
                self.executor.execute(statement)
                outcome.executed += 1
            except Exception as e:
                outcome.failed += 1
                outcome.errors.append(str(e))
                preview = " ".join(statement.split())[:PREVIEW_LENGTH]
                self._error(f"Error executing statement in {path.name} [{preview}]", e)

        outcome.duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        self._run_line(
            f"Finished processing {path} in {outcome.duration_ms:.0f}ms "
            f"({outcome.executed} ok, {outcome.failed} failed)"
        )
        return outcome

    def _run_line(self, message: str) -> None:
        logger.debug(message)
        if self.audit:
            self.audit.record_run(message)

    def _error(self, message: str, exc: Exception) -> None:
        logger.error(f"{message}: {exc}")
        if self.audit:
            self.audit.record_error(message, exc)
