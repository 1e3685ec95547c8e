"""CLI interface for the xlsx to SQL converter."""

import sys
from pathlib import Path
from typing import List, Optional

import click
from sqlalchemy.exc import SQLAlchemyError

from shared.cli import create_table, error, handle_errors, info, print_table, success, warning
from shared.logger import setup_logger

from .audit import AuditLog
from .config import (
    DEFAULT_CONFIG_NAME,
    DUPLICATE_FAIL,
    DUPLICATE_SUFFIX,
    ConfigError,
    ConverterConfig,
    load_config,
    write_default_config,
)
from .database import DatabaseExecutor, connect
from .pipeline import ConversionPipeline, ConversionResult, ConversionStatus, summarize
from .runner import ScriptOutcome, ScriptRunner, data_scripts, table_scripts

STATUS_STYLES = {
    ConversionStatus.SUCCESS: "green",
    ConversionStatus.EMPTY: "yellow",
    ConversionStatus.ERROR: "red",
}


def resolve_config(
    base_dir: Path,
    config_path: Optional[Path],
    require_file: bool = False,
    **overrides,
) -> ConverterConfig:
    """
    Build the run configuration.

    The config file defaults to ``xlsx2sql.toml`` in the base directory.
    Without a file, the default directory layout under the base directory is
    used. Non-None overrides replace file values.

    Raises:
        FileNotFoundError: If require_file is set and the file is missing
    """
    path = config_path or base_dir / DEFAULT_CONFIG_NAME

    if path.exists():
        config = load_config(path)
    elif require_file or config_path:
        raise FileNotFoundError(f"Config file not found: {path}")
    else:
        config = ConverterConfig.rooted_at(base_dir)

    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    config.validate()
    return config


def report_progress(result: ConversionResult, percentage: float) -> None:
    """Print one progress line per converted file."""
    line = (
        f"File: {result.path.name}, Status: {result.status.value}, "
        f"{result.duration_ms:.0f}ms, {percentage:.2f}% complete"
    )
    if result.status == ConversionStatus.ERROR:
        error(f"{line} ({result.error})")
    else:
        info(line)


def display_results(results: List[ConversionResult]) -> None:
    """Display the per-file summary table."""
    if not results:
        warning("No workbooks found")
        return

    table = create_table(title="Conversion Results")
    table.add_column("File", style="cyan")
    table.add_column("Table", style="bold")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Quarantined", justify="right")
    table.add_column("Duration", justify="right", style="dim")

    for result in sorted(results, key=lambda r: r.path.name):
        style = STATUS_STYLES[result.status]
        table.add_row(
            result.path.name,
            result.table_name or "-",
            f"[{style}]{result.status.value}[/{style}]",
            f"{result.rows:,}",
            f"{result.quarantined:,}",
            f"{result.duration_ms:.0f}ms",
        )

    print_table(table)

    counts = summarize(results)
    info(
        f"{counts[ConversionStatus.SUCCESS]} converted, "
        f"{counts[ConversionStatus.EMPTY]} empty, "
        f"{counts[ConversionStatus.ERROR]} failed"
    )


def display_outcomes(outcomes: List[ScriptOutcome]) -> None:
    for outcome in outcomes:
        message = (
            f"Executed {outcome.path.name} in {outcome.duration_ms:.0f}ms "
            f"({outcome.executed} ok, {outcome.failed} failed)"
        )
        if outcome.ok:
            success(message)
        else:
            warning(message)


def run_conversion(config: ConverterConfig) -> List[ConversionResult]:
    """Convert the input directory and print the results."""
    pipeline = ConversionPipeline(config)
    info(f"Converting workbooks in {config.input_dir} ({config.max_workers} workers)")

    try:
        results = pipeline.run(on_result=report_progress)
    finally:
        pipeline.audit.close()

    display_results(results)
    return results


def load_scripts(config: ConverterConfig, tables: bool = True, data: bool = True) -> None:
    """Execute the generated scripts against the configured database."""
    config.database.validate()
    audit = AuditLog(config.log_dir)
    executor = None

    try:
        audit.record_run("Connecting to database")
        executor = DatabaseExecutor(connect(config.database))
        executor.ping()
        audit.record_run("Connected to database")

        runner = ScriptRunner(executor, audit=audit)

        if tables:
            info(f"Creating tables from {config.schema_dir}")
            display_outcomes(runner.execute(table_scripts(config.schema_dir)))
            success("Table creation finished")

        if data:
            info(f"Loading data from {config.data_dir}")
            display_outcomes(runner.execute(data_scripts(config.data_dir)))
            success("Data loading finished")
    finally:
        if executor:
            executor.close()
        audit.close()


conversion_options = [
    click.option(
        "--base-dir",
        type=click.Path(file_okay=False, path_type=Path),
        default=".",
        show_default=True,
        help="Directory holding the config file and default folders",
    ),
    click.option(
        "--config",
        "-c",
        "config_path",
        type=click.Path(dir_okay=False, path_type=Path),
        help=f"Config file (default: <base-dir>/{DEFAULT_CONFIG_NAME})",
    ),
    click.option("--input-dir", "-i", type=click.Path(path_type=Path), help="Workbook directory"),
    click.option("--schema-dir", type=click.Path(path_type=Path), help="CREATE TABLE output"),
    click.option("--data-dir", type=click.Path(path_type=Path), help="INSERT output"),
    click.option("--log-dir", type=click.Path(path_type=Path), help="Log directory"),
    click.option("--workers", "-w", type=click.IntRange(min=1), help="Concurrent conversions"),
    click.option("--batch-size", "-b", type=click.IntRange(min=1), help="Rows per INSERT"),
    click.option("--sheet", "-s", help="Worksheet name (default: active sheet)"),
    click.option(
        "--duplicate-columns",
        type=click.Choice([DUPLICATE_SUFFIX, DUPLICATE_FAIL]),
        help="Suffix or reject columns whose names collide after sanitizing",
    ),
]


def with_conversion_options(func):
    for option in reversed(conversion_options):
        func = option(func)
    return func


def _config_from_options(require_file: bool, **options) -> ConverterConfig:
    base_dir = options.pop("base_dir")
    config_path = options.pop("config_path")
    return resolve_config(base_dir, config_path, require_file=require_file, **options)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def main(verbose: bool):
    """
    xlsx to SQL - Turn a folder of Excel workbooks into MySQL tables.

    Each workbook's active sheet becomes one table: column types are
    inferred from the data (best effort), then a CREATE TABLE script and a
    batched INSERT script are written. Rows that do not fit the header go to
    a quarantine script for manual review.

    Examples:

        \b
        # Write a config template
        xlsx2sql init-config xlsx2sql.toml

        \b
        # Convert ./xlsx into ./SQLTable and ./SQLData
        xlsx2sql convert

        \b
        # Convert with 4 workers and 500 rows per INSERT
        xlsx2sql convert --input-dir data --workers 4 --batch-size 500

        \b
        # Execute previously generated scripts
        xlsx2sql load --config xlsx2sql.toml

        \b
        # Convert, then create tables and load data without prompting
        xlsx2sql run --yes
    """
    # Setup logging
    log_level = "DEBUG" if verbose else "WARNING"
    setup_logger("tools", level=log_level)


@main.command("init-config")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path), default=DEFAULT_CONFIG_NAME)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@handle_errors
def init_config(path: Path, force: bool):
    """Write a configuration template to PATH."""
    try:
        write_default_config(path, overwrite=force)
    except FileExistsError as e:
        error(f"{e} (use --force to overwrite)")
        sys.exit(1)

    success(f"Config template written to {path}")
    info("Fill in the [database] section before loading scripts")


@main.command()
@with_conversion_options
@handle_errors
def convert(**options):
    """Convert workbooks into CREATE TABLE and INSERT scripts."""
    try:
        config = _config_from_options(require_file=False, **options)
        results = run_conversion(config)
    except (FileNotFoundError, NotADirectoryError, ConfigError) as e:
        error(str(e))
        sys.exit(1)

    if results and all(r.status == ConversionStatus.ERROR for r in results):
        warning("No workbook was converted")

    success("Conversion completed!")
    sys.exit(0)


@main.command()
@with_conversion_options
@click.option("--tables/--no-tables", default=True, help="Execute CREATE TABLE scripts")
@click.option("--data/--no-data", default=True, help="Execute INSERT scripts")
@handle_errors
def load(tables: bool, data: bool, **options):
    """Execute generated scripts against the configured database."""
    try:
        config = _config_from_options(require_file=True, **options)
        load_scripts(config, tables=tables, data=data)
    except FileNotFoundError as e:
        error(str(e))
        info("Create one with: xlsx2sql init-config")
        sys.exit(1)
    except (ConfigError, SQLAlchemyError) as e:
        error(f"Database setup failed: {e}")
        sys.exit(1)

    success("Load completed!")
    sys.exit(0)


@main.command()
@with_conversion_options
@click.option("--yes", "-y", is_flag=True, help="Do not ask before touching the database")
@handle_errors
def run(yes: bool, **options):
    """Convert workbooks, then create tables and load data."""
    base_dir = options["base_dir"]
    config_path = options["config_path"] or base_dir / DEFAULT_CONFIG_NAME

    try:
        config = _config_from_options(require_file=False, **options)
        run_conversion(config)
    except (FileNotFoundError, NotADirectoryError, ConfigError) as e:
        error(str(e))
        sys.exit(1)

    success("Conversion completed!")

    if not yes and not click.confirm("Continue creating tables in the database?", default=True):
        info("Stopped")
        sys.exit(0)

    if not config_path.exists():
        write_default_config(config_path)
        warning(f"No database config found; template written to {config_path}")
        info("Fill in the [database] section and run: xlsx2sql load")
        sys.exit(1)

    try:
        config.database.validate()
        load_scripts(config, tables=True, data=False)

        if not yes and not click.confirm("Continue loading data into the database?", default=True):
            info("Stopped")
            sys.exit(0)

        load_scripts(config, tables=False, data=True)
    except (ConfigError, SQLAlchemyError) as e:
        error(f"Database setup failed: {e}")
        sys.exit(1)

    success("All done!")
    sys.exit(0)


if __name__ == "__main__":
    main()
