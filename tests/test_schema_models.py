"""Tests for schema models and table name pluralization."""

import pytest
from pydantic import ValidationError

from dbtools.schema.models import (
    CheckResult,
    Column,
    ColumnDiff,
    Database,
    DefinitionError,
    SchemaValidationResult,
    Table,
    TableCheck,
    TypeMismatch,
    ValueKind,
    value_kind,
)
from dbtools.schema.naming import pluralize


class TestValueKind:
    """Verify declared type to value kind mapping."""

    @pytest.mark.parametrize(
        "column_type,kind",
        [
            ("INT", ValueKind.INTEGER),
            ("int", ValueKind.INTEGER),
            ("BIT", ValueKind.BOOLEAN),
            ("BLOB", ValueKind.BINARY),
            ("DATETIME", ValueKind.TIMESTAMP),
            ("FLOAT", ValueKind.SINGLE),
            ("DECIMAL(10,2)", ValueKind.DECIMAL),
            ("decimal", ValueKind.DECIMAL),
            ("VARCHAR(100)", ValueKind.TEXT),
            ("BIGINT", ValueKind.TEXT),
        ],
    )
    def test_mapping(self, column_type, kind) -> None:
        """Exact names and the DECIMAL prefix map to kinds; the rest is TEXT."""
        assert value_kind(column_type) is kind


class TestColumn:
    """Verify the column model."""

    def test_kind_derived_from_type(self) -> None:
        """Kind is filled in from the declared type."""
        assert Column(name="paid", column_type="bit").kind is ValueKind.BOOLEAN

    def test_defaults(self) -> None:
        """Columns default to nullable, non-identity, unindexed."""
        col = Column(name="x", column_type="INT")
        assert col.is_nullable is True
        assert col.is_identity is False
        assert col.is_index is False
        assert col.foreign_key is None

    def test_is_blob(self) -> None:
        """Only BLOB columns are blobs."""
        assert Column(name="b", column_type="BLOB").is_blob is True
        assert Column(name="v", column_type="VARCHAR(5)").is_blob is False

    def test_frozen(self) -> None:
        """Definition models cannot be mutated."""
        col = Column(name="x", column_type="INT")
        with pytest.raises(ValidationError):
            col.name = "y"


class TestTable:
    """Verify table helpers."""

    @pytest.fixture
    def table(self):
        return Table(
            name="customer",
            columns=(
                Column(name="id", column_type="INT", is_identity=True, is_nullable=False),
                Column(name="photo", column_type="BLOB"),
                Column(name="name", column_type="VARCHAR(50)"),
            ),
        )

    def test_identity_column(self, table) -> None:
        """The identity column is found."""
        assert table.has_identity_column is True
        assert table.identity_column.name == "id"

    def test_no_identity_column(self) -> None:
        """Tables may have no identity column."""
        table = Table(name="t", columns=(Column(name="a", column_type="INT"),))
        assert table.has_identity_column is False
        assert table.identity_column is None

    def test_selected_columns_skip_blobs(self, table) -> None:
        """BLOB columns are never selected."""
        assert [c.name for c in table.selected_columns] == ["id", "name"]

    def test_find_column_case_insensitive(self, table) -> None:
        """Column lookup ignores case."""
        assert table.find_column("NAME").name == "name"
        assert table.find_column("missing") is None


class TestDatabase:
    """Verify database helpers."""

    @pytest.fixture
    def database(self):
        return Database(
            name="shop",
            tables=(
                Table(name="category", columns=(Column(name="a", column_type="INT"),)),
                Table(name="orderLine", columns=(Column(name="b", column_type="INT"),)),
            ),
        )

    def test_find_table_by_name(self, database) -> None:
        """Tables are found by name, ignoring case."""
        assert database.find_table("CATEGORY").name == "category"

    def test_find_table_by_plural(self, database) -> None:
        """With a pluralizer, the plural name also matches."""
        assert database.find_table("categories", pluralize).name == "category"
        assert database.find_table("categories") is None


class TestDefinitionError:
    """Verify definition error formatting."""

    def test_str_with_line(self) -> None:
        """Line numbers are appended when known."""
        err = DefinitionError(kind="syntax", message="Bad", line_number=3)
        assert str(err) == "Bad (line 3)"

    def test_str_without_line(self) -> None:
        """Missing files have no line number."""
        assert str(DefinitionError(kind="file_missing", message="Gone")) == "Gone"

    def test_kind_is_restricted(self) -> None:
        """Only the three error kinds are accepted."""
        with pytest.raises(ValidationError):
            DefinitionError(kind="other", message="x")


class TestSchemaValidationResult:
    """Verify table-set validation reports."""

    def test_valid_report(self) -> None:
        """A valid result reports as such."""
        assert SchemaValidationResult(valid=True).format_report() == "Schema valid"

    def test_invalid_report_lists_tables(self) -> None:
        """Missing and extra tables are listed."""
        result = SchemaValidationResult(
            valid=False, missing_tables=["orders"], extra_tables=["audit"]
        )
        report = result.format_report()
        assert "Missing tables (1)" in report
        assert "- orders" in report
        assert "Tables not in definition (1)" in report
        assert "- audit" in report
        assert result.error_count == 2


class TestCheckResult:
    """Verify check result aggregation."""

    def test_clean_result(self) -> None:
        """No warnings means the database matches."""
        result = CheckResult(database="shop", tables=[TableCheck(table="t")])
        assert result.valid is True
        assert result.warnings == []
        assert result.summary().startswith("Everything looks OK.")

    def test_warning_order(self) -> None:
        """Extra columns, then type mismatches, then missing columns."""
        check = TableCheck(
            table="t",
            extra_columns=[ColumnDiff(table="t", column="x", message="extra x")],
            missing_columns=[ColumnDiff(table="t", column="y", message="missing y")],
            type_mismatches=[
                TypeMismatch(table="t", column="z", observed="TEXT", declared="INT")
            ],
        )
        result = CheckResult(database="shop", tables=[check])
        assert result.valid is False
        assert result.warnings == [
            "extra x",
            "Table: t, Column: z, Database Type: TEXT, Definition: INT",
            "missing y",
        ]
        assert result.summary() == "Warnings issued. Database does not match definition."

    def test_skipped_tables_are_notices(self) -> None:
        """Empty tables produce a notice, not a warning."""
        result = CheckResult(
            database="shop", tables=[TableCheck(table="audit", skipped=True)]
        )
        assert result.valid is True
        assert result.notices == ["Cannot check table audit because it is empty."]


class TestPluralize:
    """Verify backup wrapper element naming."""

    @pytest.mark.parametrize(
        "name,plural",
        [
            ("customer", "customers"),
            ("category", "categories"),
            ("day", "days"),
            ("box", "boxes"),
            ("address", "addresses"),
            ("batch", "batches"),
            ("wish", "wishes"),
            ("person", "people"),
            ("child", "children"),
            ("Person", "People"),
            ("news", "news"),
            ("t", "ts"),
            ("orderLine", "orderLines"),
        ],
    )
    def test_plurals(self, name, plural) -> None:
        """Regular, irregular and uncountable nouns."""
        assert pluralize(name) == plural

    def test_empty(self) -> None:
        """Empty names are returned unchanged."""
        assert pluralize("") == ""
