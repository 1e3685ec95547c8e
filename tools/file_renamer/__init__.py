"""File Renamer - Replace a substring in file names across a directory tree."""

from .renamer import FileRenamer, RenameResult

__all__ = ["FileRenamer", "RenameResult"]
