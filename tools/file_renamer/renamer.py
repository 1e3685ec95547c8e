"""Core bulk renaming logic."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from shared.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RenameResult:
    """One file rename (or attempted rename)."""

    source: Path
    target: Path
    renamed: bool
    error: Optional[str] = None


class FileRenamer:
    """Rename files whose name contains a substring, walking a directory tree."""

    def rename(
        self,
        directory: Path,
        old: str,
        new: str,
        dry_run: bool = False,
    ) -> List[RenameResult]:
        """
        Replace every occurrence of ``old`` with ``new`` in file names.

        Only files are renamed, never directories. A rename whose target
        already exists is skipped and reported as an error.

        Args:
            directory: Root directory
            old: Substring to replace
            new: Replacement
            dry_run: Report planned renames without touching the files

        Returns:
            List of RenameResult, in walk order

        Raises:
            FileNotFoundError: If the directory does not exist
            ValueError: If old is empty
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Directory not found: {directory}")
        if not old:
            raise ValueError("Substring to replace must not be empty")

        results: List[RenameResult] = []

        for root, _dirs, files in os.walk(directory):
            for name in sorted(files):
                if old not in name:
                    continue

                source = Path(root) / name
                target = source.with_name(name.replace(old, new))

                if target.exists():
                    message = f"Target already exists: {target}"
                    logger.warning(message)
                    results.append(RenameResult(source, target, renamed=False, error=message))
                    continue

                if not dry_run:
                    try:
                        source.rename(target)
                    except OSError as e:
                        logger.error(f"Failed to rename {source}: {e}")
                        results.append(RenameResult(source, target, renamed=False, error=str(e)))
                        continue

                logger.info(f"Renamed: {source.name} -> {target.name}")
                results.append(RenameResult(source, target, renamed=not dry_run))

        return results
