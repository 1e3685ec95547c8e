"""Tests for identifier naming and CREATE TABLE generation."""

import pytest

from tools.xlsx_to_sql.inference import ColumnProfile, ColumnType
from tools.xlsx_to_sql.naming import (
    DuplicateIdentifierError,
    identity_column,
    sanitize_identifier,
    table_name_for,
    unique_column_names,
)
from tools.xlsx_to_sql.schema import SchemaBuilder, SchemaError


class TestNaming:
    """Test identifier sanitization."""

    def test_sanitize_strips_and_lowercases(self):
        """Test that every non-alphanumeric character is removed."""
        assert sanitize_identifier("Order Date (UTC)!") == "orderdateutc"
        assert sanitize_identifier("first_name") == "firstname"

    def test_sanitize_drops_non_ascii(self):
        """Test that accented letters are stripped."""
        assert sanitize_identifier("Año") == "ao"

    def test_table_name_for(self):
        """Test table names from file stems."""
        assert table_name_for("Sales Report 2023") == "salesreport2023"
        assert table_name_for("___") == ""

    def test_numeric_table_name_is_prefixed(self):
        """Test that a digits-only file stem still yields a valid identifier."""
        assert table_name_for("2020") == "tbl2020"
        assert table_name_for("2020-01") == "tbl202001"
        assert SchemaBuilder().build(table_name_for("2020"), []).startswith("CREATE TABLE tbl2020 (")

    def test_identity_column(self):
        """Test the synthetic key name."""
        assert identity_column("sales") == "sales_id"

    def test_unique_names_suffixes_collisions(self):
        """Test suffixing in header order."""
        assert unique_column_names(["a", "A", "a!", "a_2"]) == ["a", "a_2", "a_3", "a2"]

    def test_unique_names_blank_and_numeric_headers(self):
        """Test fallbacks for blank and all-digit headers."""
        assert unique_column_names(["id", "", "2020", "#"]) == ["id", "col2", "col2020", "col4"]

    def test_unique_names_respects_reserved(self):
        """Test that reserved names are never produced."""
        assert unique_column_names(["x"], reserved=["x"]) == ["x_2"]

    def test_unique_names_strict(self):
        """Test strict mode."""
        with pytest.raises(DuplicateIdentifierError, match="already used"):
            unique_column_names(["Name", "NAME"], suffix_duplicates=False)


class TestSchemaBuilder:
    """Test SchemaBuilder."""

    def test_build(self):
        """Test the full statement layout."""
        columns = [
            ColumnProfile("id", "ID", ColumnType.INT),
            ColumnProfile("customersname", "Customer's Name", ColumnType.VARCHAR, 12),
        ]

        sql = SchemaBuilder().build("sales", columns)

        assert sql == (
            "CREATE TABLE sales (\n"
            "sales_id INT NOT NULL AUTO_INCREMENT COMMENT 'row ID',\n"
            "id INT DEFAULT NULL COMMENT 'ID',\n"
            "customersname VARCHAR(12) DEFAULT NULL COMMENT 'Customer\\'s Name',\n"
            "PRIMARY KEY (sales_id),\n"
            "INDEX idx_id (id)\n"
            ") ENGINE = INNODB;"
        )

    def test_index_on_first_column_only(self):
        """Test that exactly one secondary index is declared."""
        columns = [
            ColumnProfile("b", "B", ColumnType.DATE),
            ColumnProfile("a", "A", ColumnType.INT),
        ]
        sql = SchemaBuilder().build("t", columns)
        assert sql.count("INDEX ") == 1
        assert "INDEX idx_b (b)" in sql

    def test_text_index_gets_prefix(self):
        """Test that TEXT-family index targets carry a key length."""
        columns = [ColumnProfile("body", "Body", ColumnType.MEDIUMTEXT, 70000)]
        sql = SchemaBuilder().build("posts", columns)
        assert "INDEX idx_body (body(255))" in sql

    def test_no_columns_no_index(self):
        """Test a table with only the identity column."""
        sql = SchemaBuilder().build("t", [])
        assert "INDEX" not in sql
        assert "PRIMARY KEY (t_id)" in sql

    def test_all_data_columns_nullable(self):
        """Test that only the identity column is NOT NULL."""
        columns = [ColumnProfile(c, c, ColumnType.INT) for c in ("a", "b", "c")]
        sql = SchemaBuilder().build("t", columns)
        assert sql.count("NOT NULL") == 1
        assert sql.count("DEFAULT NULL") == 3

    def test_custom_engine(self):
        """Test the engine clause."""
        sql = SchemaBuilder(engine="ARIA").build("t", [])
        assert sql.endswith(") ENGINE = ARIA;")

    def test_empty_table_name_rejected(self):
        """Test that an empty table name fails loudly."""
        with pytest.raises(SchemaError, match="empty"):
            SchemaBuilder().build("", [ColumnProfile("a", "A", ColumnType.INT)])

    def test_duplicate_columns_rejected(self):
        """Test that duplicate identifiers fail loudly."""
        columns = [ColumnProfile("a", "A", ColumnType.INT), ColumnProfile("a", "a", ColumnType.INT)]
        with pytest.raises(SchemaError, match="Duplicate"):
            SchemaBuilder().build("t", columns)

    def test_column_named_like_identity_rejected(self):
        """Test a collision with the identity column."""
        with pytest.raises(SchemaError):
            SchemaBuilder().build("t", [ColumnProfile("t_id", "t_id", ColumnType.INT)])
