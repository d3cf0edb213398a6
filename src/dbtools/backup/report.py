"""Row counts and content digests for live tables.

The digest is the upper-case MD5 of every non-null value of the table's
non-BLOB columns, in row order and then column order, each in its
canonical escaped form (see ``dbtools.backup.codec.report_value``).  Two
databases with the same content report the same digest, whichever
dialect or machine they live on.
"""

import hashlib
from collections.abc import Iterable

from dbtools.adapters.base import Cell, RowSource
from dbtools.backup.codec import report_value
from dbtools.backup.models import TableReport
from dbtools.schema.models import Database, Table


class _TableDigest:
    """Running row count and MD5 of one table."""

    def __init__(self, table: Table) -> None:
        self.table = table
        self.rows = 0
        self._md5 = hashlib.md5()

    def add(self, row: list[Cell]) -> None:
        self.rows += 1
        for cell in row:
            if cell.is_null or cell.value is None:
                continue
            column = self.table.find_column(cell.name)
            if column is None:
                raise ValueError(
                    f"Row source returned column {cell.name} "
                    f"not defined in table {self.table.name}"
                )
            # Escaped text is pure ASCII
            self._md5.update(report_value(cell.value, column.kind).encode("ascii"))

    def result(self) -> TableReport:
        if self.rows == 0:
            return TableReport(table=self.table.name)
        return TableReport(
            table=self.table.name,
            rows=self.rows,
            digest=self._md5.hexdigest().upper(),
        )


def table_digest(table: Table, rows: Iterable[list[Cell]]) -> TableReport:
    """Count *rows* and hash their content.

    Example:
        >>> from dbtools.schema.models import Column
        >>> t = Table(name="t", columns=(Column(name="id", column_type="INT"),))
        >>> table_digest(t, []).digest is None
        True
    """
    digest = _TableDigest(table)
    for row in rows:
        digest.add(row)
    return digest.result()


async def report_database(source: RowSource, database: Database) -> list[TableReport]:
    """Report every table of *database*, in declaration order."""
    reports: list[TableReport] = []
    for table in database.tables:
        digest = _TableDigest(table)
        columns = [c.name for c in table.selected_columns]
        async for row in source.fetch_rows(table.name, columns):
            digest.add(row)
        reports.append(digest.result())
    return reports
