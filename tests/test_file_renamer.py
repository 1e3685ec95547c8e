"""Tests for File Renamer."""

import pytest
from click.testing import CliRunner

from tools.file_renamer.cli import main
from tools.file_renamer.renamer import FileRenamer


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "report_2023.xlsx").write_text("a")
    (tmp_path / "notes.txt").write_text("b")
    sub = tmp_path / "2023_archive"
    sub.mkdir()
    (sub / "2023_2023.csv").write_text("c")
    return tmp_path


class TestFileRenamer:
    """Test FileRenamer."""

    def test_rename_recursive(self, tree):
        """Test that every occurrence is replaced, files only."""
        results = FileRenamer().rename(tree, "2023", "2024")

        assert all(r.renamed for r in results)
        assert (tree / "report_2024.xlsx").exists()
        assert (tree / "2023_archive" / "2024_2024.csv").exists()
        assert (tree / "2023_archive").is_dir()
        assert (tree / "notes.txt").exists()
        assert len(results) == 2

    def test_dry_run(self, tree):
        """Test that a dry run changes nothing."""
        results = FileRenamer().rename(tree, "2023", "2024", dry_run=True)

        assert len(results) == 2
        assert not any(r.renamed for r in results)
        assert (tree / "report_2023.xlsx").exists()

    def test_existing_target_skipped(self, tree):
        """Test that renames never overwrite."""
        (tree / "report_2024.xlsx").write_text("keep")

        results = FileRenamer().rename(tree, "report_2023", "report_2024")

        assert len(results) == 1
        assert not results[0].renamed
        assert "already exists" in results[0].error
        assert (tree / "report_2024.xlsx").read_text() == "keep"

    def test_missing_directory(self, tmp_path):
        """Test a missing root."""
        with pytest.raises(FileNotFoundError):
            FileRenamer().rename(tmp_path / "nope", "a", "b")

    def test_empty_old(self, tree):
        """Test that an empty substring is rejected."""
        with pytest.raises(ValueError):
            FileRenamer().rename(tree, "", "x")


class TestCLI:
    """Test the file-rename command."""

    def test_cli_rename(self, tree):
        """Test a successful run."""
        result = CliRunner().invoke(main, [str(tree), "2023", "2024"])

        assert result.exit_code == 0
        assert (tree / "report_2024.xlsx").exists()

    def test_cli_conflict_exit_code(self, tree):
        """Test that skipped renames give exit code 1."""
        (tree / "report_2024.xlsx").write_text("keep")

        result = CliRunner().invoke(main, [str(tree), "report_2023", "report_2024"])

        assert result.exit_code == 1
