"""Tests for the conversion pipeline."""

import pytest

from tools.xlsx_to_sql.config import DUPLICATE_FAIL, ConverterConfig
from tools.xlsx_to_sql.pipeline import (
    ConversionPipeline,
    ConversionStatus,
    ConversionTask,
    summarize,
)
from tools.xlsx_to_sql.sheet import Sheet

SALES_ROWS = [
    ["Region", "Units", "Price", "Date"],
    ["North", "10", "2.5", "2020-01-01"],
    ["South", "7", "3.75", "2020-01-02"],
]


@pytest.fixture
def config(tmp_path):
    config = ConverterConfig.rooted_at(tmp_path, workers=2)
    config.input_dir.mkdir()
    return config


@pytest.fixture
def make_pipeline():
    pipelines = []

    def _make(config, **kwargs):
        pipeline = ConversionPipeline(config, **kwargs)
        pipelines.append(pipeline)
        return pipeline

    yield _make

    for pipeline in pipelines:
        pipeline.audit.close()


class TestDiscovery:
    """Test setup and file discovery."""

    def test_missing_input_dir(self, tmp_path, make_pipeline):
        """Test that a missing input directory is a setup error."""
        config = ConverterConfig.rooted_at(tmp_path)
        with pytest.raises(FileNotFoundError):
            make_pipeline(config).run()

    def test_input_path_is_file(self, tmp_path, make_pipeline):
        """Test that the input path must be a directory."""
        config = ConverterConfig.rooted_at(tmp_path)
        config.input_dir.write_text("not a dir")
        with pytest.raises(NotADirectoryError):
            make_pipeline(config).run()

    def test_discovery_is_non_recursive(self, config, write_workbook, make_pipeline):
        """Test that only top-level workbooks are found."""
        write_workbook(config.input_dir / "b.xlsx", SALES_ROWS)
        write_workbook(config.input_dir / "a.xlsx", SALES_ROWS)
        (config.input_dir / "notes.txt").write_text("x")
        (config.input_dir / "~$a.xlsx").write_bytes(b"lock")
        nested = config.input_dir / "nested"
        nested.mkdir()
        write_workbook(nested / "c.xlsx", SALES_ROWS)

        files = make_pipeline(config).discover_files()

        assert [f.name for f in files] == ["a.xlsx", "b.xlsx"]

    def test_plan_rejects_colliding_table_names(self, config, make_pipeline):
        """Test that two files cannot target one table."""
        files = [config.input_dir / "a-b.xlsx", config.input_dir / "ab.xlsx", config.input_dir / "__.xlsx"]

        tasks, rejected = make_pipeline(config).plan(files)

        assert tasks == [ConversionTask(files[0], "ab")]
        assert [r.path for r in rejected] == files[1:]
        assert all(r.status == ConversionStatus.ERROR for r in rejected)
        assert "already used" in rejected[0].error
        assert "empty table name" in rejected[1].error


class TestConversion:
    """Test converting workbooks."""

    def test_success_writes_scripts(self, config, write_workbook, make_pipeline):
        """Test the schema and data outputs of one file."""
        write_workbook(config.input_dir / "Sales 2020.xlsx", SALES_ROWS)

        results = make_pipeline(config).run()

        assert len(results) == 1
        result = results[0]
        assert result.status == ConversionStatus.SUCCESS
        assert result.table_name == "sales2020"
        assert result.rows == 2
        assert result.schema_path == config.schema_dir / "sales2020.sql"
        assert result.data_path == config.data_dir / "data_sales2020.sql"
        assert result.quarantine_path is None

        schema = result.schema_path.read_text()
        assert schema.startswith("CREATE TABLE sales2020 (")
        assert "units INT DEFAULT NULL COMMENT 'Units'" in schema
        assert "price FLOAT DEFAULT NULL" in schema
        assert "date DATE DEFAULT NULL" in schema

        data = result.data_path.read_text()
        assert data.startswith("INSERT INTO sales2020 (region, units, price, date) VALUES")
        assert "('North', 10, 2.5, '2020-01-01')" in data

    def test_header_only_is_empty(self, config, write_workbook, make_pipeline):
        """Test that a file without data rows writes nothing."""
        write_workbook(config.input_dir / "blank.xlsx", [["a", "b"]])

        results = make_pipeline(config).run()

        assert [r.status for r in results] == [ConversionStatus.EMPTY]
        assert not (config.schema_dir / "blank.sql").exists()
        assert not (config.data_dir / "data_blank.sql").exists()

    def test_one_bad_file_among_five(self, config, write_workbook, make_pipeline):
        """Test that a read error is isolated to its file."""
        for name in ("one", "two", "three", "four"):
            write_workbook(config.input_dir / f"{name}.xlsx", SALES_ROWS)
        (config.input_dir / "broken.xlsx").write_bytes(b"this is not a zip archive")

        results = make_pipeline(config).run()

        by_table = {r.table_name: r for r in results}
        assert len(results) == 5
        assert by_table["broken"].status == ConversionStatus.ERROR
        assert by_table["broken"].error
        for name in ("one", "two", "three", "four"):
            assert by_table[name].status == ConversionStatus.SUCCESS
            assert (config.schema_dir / f"{name}.sql").exists()
            assert (config.data_dir / f"data_{name}.sql").exists()

        counts = summarize(results)
        assert counts[ConversionStatus.SUCCESS] == 4
        assert counts[ConversionStatus.ERROR] == 1

    def test_reader_failure_is_isolated(self, config, write_workbook, make_pipeline):
        """Test an injected reader raising for one file."""
        write_workbook(config.input_dir / "good.xlsx", SALES_ROWS)
        write_workbook(config.input_dir / "bad.xlsx", SALES_ROWS)

        def reader(path, sheet_name):
            if path.stem == "bad":
                raise OSError("disk on fire")
            return Sheet(name="s", rows=tuple(tuple(r) for r in SALES_ROWS))

        results = make_pipeline(config, reader=reader).run()

        statuses = {r.table_name: r.status for r in results}
        assert statuses == {"bad": ConversionStatus.ERROR, "good": ConversionStatus.SUCCESS}

    def test_rerun_overwrites_outputs(self, config, write_workbook, make_pipeline):
        """Test that running twice does not append to existing scripts."""
        write_workbook(config.input_dir / "sales.xlsx", SALES_ROWS)

        make_pipeline(config).run()
        schema_first = (config.schema_dir / "sales.sql").read_text()
        data_first = (config.data_dir / "data_sales.sql").read_text()

        make_pipeline(config).run()

        assert (config.schema_dir / "sales.sql").read_text() == schema_first
        assert (config.data_dir / "data_sales.sql").read_text() == data_first
        assert data_first.count("INSERT INTO") == 1

    def test_quarantine_written_and_cleared(self, config, write_workbook, make_pipeline):
        """Test the quarantine script lifecycle across runs."""
        path = config.input_dir / "wide.xlsx"
        write_workbook(path, [["a", "b"], ["1", "x"], ["2", "y", "surplus"]])

        result = make_pipeline(config).run()[0]

        assert result.status == ConversionStatus.SUCCESS
        assert result.quarantined == 1
        quarantine = config.data_dir / "quarantine_wide.sql"
        assert result.quarantine_path == quarantine
        assert "'surplus'" in quarantine.read_text()

        write_workbook(path, [["a", "b"], ["1", "x"]])
        result = make_pipeline(config).run()[0]

        assert result.quarantined == 0
        assert not quarantine.exists()

    def test_rerun_after_file_becomes_empty(self, config, write_workbook, make_pipeline):
        """Test that scripts from an earlier run go away with the data."""
        path = config.input_dir / "sales.xlsx"
        write_workbook(path, SALES_ROWS + [["West", "1", "2.5", "2020-01-03", "extra"]])

        result = make_pipeline(config).run()[0]
        assert result.quarantined == 1

        write_workbook(path, SALES_ROWS[:1])
        result = make_pipeline(config).run()[0]

        assert result.status == ConversionStatus.EMPTY
        assert not (config.schema_dir / "sales.sql").exists()
        assert not (config.data_dir / "data_sales.sql").exists()
        assert not (config.data_dir / "quarantine_sales.sql").exists()

    def test_rerun_after_file_fails(self, config, write_workbook, make_pipeline):
        """Test that a failing file leaves no scripts from an earlier run."""
        path = config.input_dir / "sales.xlsx"
        write_workbook(path, SALES_ROWS)
        make_pipeline(config).run()

        path.write_bytes(b"this is not a zip archive")
        result = make_pipeline(config).run()[0]

        assert result.status == ConversionStatus.ERROR
        assert not (config.schema_dir / "sales.sql").exists()
        assert not (config.data_dir / "data_sales.sql").exists()

    def test_no_temporary_files_left(self, config, write_workbook, make_pipeline):
        """Test that only the final scripts remain after a run."""
        write_workbook(config.input_dir / "sales.xlsx", SALES_ROWS)

        make_pipeline(config).run()

        assert sorted(p.name for p in config.schema_dir.iterdir()) == ["sales.sql"]
        assert sorted(p.name for p in config.data_dir.iterdir()) == ["data_sales.sql"]

    def test_strict_duplicate_columns(self, config, write_workbook, make_pipeline):
        """Test that strict mode fails the file on colliding headers."""
        config.duplicate_columns = DUPLICATE_FAIL
        write_workbook(config.input_dir / "dup.xlsx", [["Name", "name"], ["a", "b"]])

        result = make_pipeline(config).run()[0]

        assert result.status == ConversionStatus.ERROR
        assert "already used" in result.error

    def test_duplicate_columns_suffixed_by_default(self, config, write_workbook, make_pipeline):
        """Test the default collision handling."""
        write_workbook(config.input_dir / "dup.xlsx", [["Name", "name"], ["a", "b"]])

        result = make_pipeline(config).run()[0]

        assert result.status == ConversionStatus.SUCCESS
        assert "INSERT INTO dup (name, name_2)" in result.data_path.read_text()


class TestProgress:
    """Test progress reporting and logs."""

    def test_progress_callback_and_logs(self, config, write_workbook, make_pipeline):
        """Test percentages and the durable logs."""
        write_workbook(config.input_dir / "a.xlsx", SALES_ROWS)
        write_workbook(config.input_dir / "b.xlsx", [["only", "header"]])
        (config.input_dir / "c.xlsx").write_bytes(b"garbage")

        seen = []
        pipeline = make_pipeline(config)
        results = pipeline.run(on_result=lambda result, pct: seen.append(pct))
        pipeline.audit.close()

        assert seen == pytest.approx([100 / 3, 200 / 3, 100.0])
        assert len(results) == 3

        read_log = (config.log_dir / "read.log").read_text().splitlines()
        assert len(read_log) == 3
        assert read_log[-1].endswith("100.00% complete")

        error_log = (config.log_dir / "error.log").read_text()
        assert "c.xlsx" in error_log

        run_log = (config.log_dir / "run.log").read_text()
        assert "Started converting 3 workbook(s)" in run_log
        assert "1 success, 1 error, 1 empty" in run_log

    def test_empty_directory(self, config, make_pipeline):
        """Test a directory without workbooks."""
        assert make_pipeline(config).run() == []
