"""Pydantic models for database definitions and verification.

This module contains schema-domain models:
- Definition models: ValueKind, Column, Table, Database
- Load result models: DefinitionError, DefinitionLoadResult
- Verification models: ColumnDiff, TypeMismatch, SchemaValidationResult,
  TableCheck, CheckResult

The definition models are frozen.  A ``Database`` is built once by
``dbtools.schema.parser`` and only read afterwards.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Definition Models
# ============================================================================


class ValueKind(str, Enum):
    """Semantic value kind derived from a column's declared type."""

    INTEGER = "integer"
    BOOLEAN = "boolean"
    BINARY = "binary"
    TIMESTAMP = "timestamp"
    SINGLE = "single"
    DECIMAL = "decimal"
    TEXT = "text"


_EXACT_KINDS: dict[str, ValueKind] = {
    "INT": ValueKind.INTEGER,
    "BIT": ValueKind.BOOLEAN,
    "BLOB": ValueKind.BINARY,
    "DATETIME": ValueKind.TIMESTAMP,
    "FLOAT": ValueKind.SINGLE,
}


def value_kind(column_type: str) -> ValueKind:
    """Map a declared column type to its semantic value kind.

    Examples:
        >>> value_kind("int")
        <ValueKind.INTEGER: 'integer'>
        >>> value_kind("DECIMAL(10,2)")
        <ValueKind.DECIMAL: 'decimal'>
        >>> value_kind("VARCHAR(100)")
        <ValueKind.TEXT: 'text'>
    """
    upper = column_type.upper()
    if upper in _EXACT_KINDS:
        return _EXACT_KINDS[upper]
    if upper.startswith("DECIMAL"):
        return ValueKind.DECIMAL
    return ValueKind.TEXT


class Column(BaseModel):
    """A column definition.

    ``kind`` is derived from ``column_type`` when not given explicitly.

    Example:
        >>> col = Column(name="id", column_type="INT", is_identity=True, is_nullable=False)
        >>> col.kind
        <ValueKind.INTEGER: 'integer'>
    """

    model_config = ConfigDict(frozen=True)

    name: str
    column_type: str
    kind: ValueKind
    is_identity: bool = False
    is_nullable: bool = True
    is_index: bool = False
    foreign_key: str | None = None  # copied verbatim into REFERENCES

    @model_validator(mode="before")
    @classmethod
    def _derive_kind(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("kind") is None:
            data = {**data, "kind": value_kind(data.get("column_type", ""))}
        return data

    @property
    def is_blob(self) -> bool:
        """True for BLOB columns, which are never created, backed up or restored."""
        return self.kind is ValueKind.BINARY


class Table(BaseModel):
    """A table definition with columns in declaration order."""

    model_config = ConfigDict(frozen=True)

    name: str
    columns: tuple[Column, ...] = ()

    @property
    def has_identity_column(self) -> bool:
        """True if any column is the identity column."""
        return any(c.is_identity for c in self.columns)

    @property
    def identity_column(self) -> Column | None:
        for c in self.columns:
            if c.is_identity:
                return c
        return None

    @property
    def selected_columns(self) -> list[Column]:
        """Non-BLOB columns in declaration order."""
        return [c for c in self.columns if not c.is_blob]

    def find_column(self, name: str) -> Column | None:
        """Find a column by name (case-insensitive)."""
        lowered = name.lower()
        for c in self.columns:
            if c.name.lower() == lowered:
                return c
        return None


class Database(BaseModel):
    """A database definition with tables in declaration order."""

    model_config = ConfigDict(frozen=True)

    name: str
    tables: tuple[Table, ...] = ()

    def find_table(
        self,
        name: str,
        pluralize: Callable[[str], str] | None = None,
    ) -> Table | None:
        """Find a table by its name or, when *pluralize* is given, its plural.

        Matching is case-insensitive.
        """
        lowered = name.lower()
        for t in self.tables:
            if t.name.lower() == lowered:
                return t
            if pluralize is not None and pluralize(t.name).lower() == lowered:
                return t
        return None


# ============================================================================
# Load Result Models
# ============================================================================


class DefinitionError(BaseModel):
    """Why a database definition could not be loaded.

    Example:
        >>> err = DefinitionError(kind="syntax", message="Missing DATABASE statement")
        >>> err.line_number is None
        True
    """

    kind: Literal["file_missing", "syntax", "invariant"]
    message: str
    line_number: int | None = None
    statement: str | None = None

    def __str__(self) -> str:
        where = f" (line {self.line_number})" if self.line_number else ""
        return f"{self.message}{where}"


class DefinitionLoadResult(BaseModel):
    """Result of loading a definition: a database or an error, never both."""

    success: bool
    database: Database | None = None
    error: DefinitionError | None = None


# ============================================================================
# Verification Models
# ============================================================================


class ColumnDiff(BaseModel):
    """A column present on one side only."""

    table: str
    column: str
    message: str = ""


class TypeMismatch(BaseModel):
    """A live column whose runtime type does not match its definition."""

    table: str
    column: str
    observed: str
    declared: str

    @property
    def message(self) -> str:
        return (
            f"Table: {self.table}, Column: {self.column}, "
            f"Database Type: {self.observed}, Definition: {self.declared}"
        )


class SchemaValidationResult(BaseModel):
    """Result of comparing live table names against a definition.

    Example:
        >>> result = SchemaValidationResult(valid=True)
        >>> result.error_count
        0
        >>> result.format_report()
        'Schema valid'
    """

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    extra_tables: list[str] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        """Count of mismatched tables (missing + extra)."""
        return len(self.missing_tables) + len(self.extra_tables)

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        if self.valid:
            return "Schema valid"

        lines = ["Database does not match its definition:"]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            for table in self.missing_tables:
                lines.append(f"    - {table}")

        if self.extra_tables:
            lines.append(f"\n  Tables not in definition ({len(self.extra_tables)}):")
            for table in self.extra_tables:
                lines.append(f"    - {table}")

        return "\n".join(lines)


class TableCheck(BaseModel):
    """Structural check of one table against its definition."""

    table: str
    skipped: bool = False
    extra_columns: list[ColumnDiff] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)
    type_mismatches: list[TypeMismatch] = Field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.extra_columns or self.missing_columns or self.type_mismatches)

    def warnings(self) -> list[str]:
        """Warning lines in the order they were detected."""
        lines = [d.message for d in self.extra_columns]
        lines += [m.message for m in self.type_mismatches]
        lines += [d.message for d in self.missing_columns]
        return lines


class CheckResult(BaseModel):
    """Result of checking a whole database.  Warnings never make it fatal."""

    database: str
    tables: list[TableCheck] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not any(t.has_warnings for t in self.tables)

    @property
    def warnings(self) -> list[str]:
        return [w for t in self.tables for w in t.warnings()]

    @property
    def notices(self) -> list[str]:
        return [
            f"Cannot check table {t.table} because it is empty."
            for t in self.tables
            if t.skipped
        ]

    def summary(self) -> str:
        """The single pass/fail summary line."""
        if self.valid:
            return "Everything looks OK. As far as I can tell database and definition match."
        return "Warnings issued. Database does not match definition."
