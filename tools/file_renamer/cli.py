"""CLI interface for File Renamer."""

import sys
from pathlib import Path

import click

from shared.cli import error, handle_errors, info, success, warning
from shared.logger import setup_logger

from .renamer import FileRenamer


@click.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("old")
@click.argument("new")
@click.option("--dry-run", "-n", is_flag=True, help="Show what would be renamed")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@handle_errors
def main(directory: Path, old: str, new: str, dry_run: bool, verbose: bool):
    """
    File Renamer - Replace OLD with NEW in every file name under DIRECTORY.

    Examples:

        \b
        # Rename report_2023_*.xlsx to report_2024_*.xlsx
        file-rename ./xlsx 2023 2024

        \b
        # Preview only
        file-rename ./xlsx " " "_" --dry-run
    """
    # Setup logging
    log_level = "DEBUG" if verbose else "WARNING"
    setup_logger("tools", level=log_level)

    try:
        results = FileRenamer().rename(directory, old, new, dry_run=dry_run)
    except ValueError as e:
        error(str(e))
        sys.exit(1)

    failed = 0
    for result in results:
        if result.error:
            failed += 1
            warning(f"Skipped {result.source}: {result.error}")
        else:
            verb = "Would rename" if dry_run else "Renamed"
            info(f"{verb}: {result.source.name} -> {result.target.name}")

    if not results:
        info(f"No file names contain {old!r}")
    else:
        success(f"{len(results) - failed} file(s) {'to rename' if dry_run else 'renamed'}")

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
