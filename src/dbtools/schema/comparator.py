"""Structural comparison of a live database against its definition.

Two checks:

- ``validate_tables``: pure set comparison of live table names against
  the definition.  Run before every action that reads or writes rows.
- ``check_table`` / ``check_database``: sample one row per table and
  compare its columns and runtime value types with the definition.
  Findings are warnings only; nothing here is fatal.

Usage:
    from dbtools.schema.comparator import check_database, validate_tables

    result = validate_tables(await client.list_tables(), database)
    if not result.valid:
        print(result.format_report())

    check = await check_database(client, database)
    for line in check.warnings:
        print(line)
    print(check.summary())
"""

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from dbtools.adapters.base import Cell, RowSource
from dbtools.schema.models import (
    CheckResult,
    ColumnDiff,
    Database,
    SchemaValidationResult,
    Table,
    TableCheck,
    TypeMismatch,
    ValueKind,
)

# Drivers that cannot tell these apart: MySQL returns BIT columns as
# packed bytes and MSSQL returns FLOAT columns as doubles.
_EXEMPT: frozenset[tuple[ValueKind, str]] = frozenset({
    (ValueKind.BOOLEAN, "UINT64"),
    (ValueKind.SINGLE, "DOUBLE"),
})


def validate_tables(
    actual_tables: Iterable[str],
    database: Database,
) -> SchemaValidationResult:
    """Compare live table names with the definition's tables.

    Names are compared case-insensitively.  Both missing and extra tables
    make the result invalid.

    Examples:
        >>> from dbtools.schema.models import Column
        >>> db = Database(name="d", tables=(
        ...     Table(name="customer", columns=(Column(name="id", column_type="INT"),)),
        ... ))
        >>> validate_tables(["Customer"], db).valid
        True
        >>> result = validate_tables(["customer", "audit"], db)
        >>> result.extra_tables
        ['audit']
    """
    actual = {name.lower(): name for name in actual_tables}
    expected = {t.name.lower(): t.name for t in database.tables}

    missing_tables: list[str] = sorted(expected[k] for k in expected.keys() - actual.keys())
    extra_tables: list[str] = sorted(actual[k] for k in actual.keys() - expected.keys())

    return SchemaValidationResult(
        valid=not missing_tables and not extra_tables,
        missing_tables=missing_tables,
        extra_tables=extra_tables,
    )


def observed_type(value: Any) -> str:
    """Name of the runtime type of a live, non-null value.

    Examples:
        >>> observed_type(True), observed_type(3), observed_type(1.5)
        ('BOOLEAN', 'INTEGER', 'DOUBLE')
        >>> observed_type(b"\\x01")
        'UINT64'
    """
    if isinstance(value, bool):
        return "BOOLEAN"
    if isinstance(value, int):
        return "INTEGER"
    if isinstance(value, float):
        return "DOUBLE"
    if isinstance(value, Decimal):
        return "DECIMAL"
    if isinstance(value, (datetime, date)):
        return "TIMESTAMP"
    if isinstance(value, (bytes, bytearray, memoryview)):
        # Up to 64 bits is a BIT(n) field, anything longer is binary data
        return "UINT64" if len(value) <= 8 else "BINARY"
    return "TEXT"


def check_table(table: Table, sample: list[Cell] | None) -> TableCheck:
    """Compare one sampled row with the table definition.

    Args:
        table: Table definition.
        sample: Every live column of one row, or ``None`` for an empty
            table.

    Returns:
        ``TableCheck`` listing extra live columns, definition columns
        missing from the sample, and runtime type mismatches.  BLOB
        columns are never created, so they are not expected live.
    """
    if not sample:
        return TableCheck(table=table.name, skipped=True)

    result = TableCheck(table=table.name)
    seen: set[str] = set()

    for cell in sample:
        column = table.find_column(cell.name)
        if column is None:
            result.extra_columns.append(
                ColumnDiff(
                    table=table.name,
                    column=cell.name,
                    message=f"Database table {table.name} has additional column {cell.name}",
                )
            )
            continue

        seen.add(column.name)
        if cell.is_null or cell.value is None:
            continue

        observed = observed_type(cell.value)
        if observed == column.kind.name or (column.kind, observed) in _EXEMPT:
            continue
        result.type_mismatches.append(
            TypeMismatch(
                table=table.name,
                column=cell.name,
                observed=observed,
                declared=column.column_type,
            )
        )

    for column in table.selected_columns:
        if column.name not in seen:
            result.missing_columns.append(
                ColumnDiff(
                    table=table.name,
                    column=column.name,
                    message=f"Column {column.name} is missing from {table.name}",
                )
            )

    return result


async def check_database(source: RowSource, database: Database) -> CheckResult:
    """Sample one row of every table and check it against the definition."""
    result = CheckResult(database=database.name)
    for table in database.tables:
        sample: list[Cell] | None = None
        async for row in source.fetch_rows(table.name, None, limit=1):
            sample = row
        result.tables.append(check_table(table, sample))
    return result
