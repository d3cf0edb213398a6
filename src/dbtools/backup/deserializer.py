"""Restore deserializer: backup XML -> one INSERT per row.

The document is read forward-only with ``xml.etree.ElementTree.iterparse``
and rows are released as soon as they are converted, so a backup never
has to fit in memory.  The accepted shape is::

    <database>
      <plural-table>              (wrapper, as written by backup)
        <table><col>v</col>...</table>
      </plural-table>
      <table>...</table>          (bare row directly under the database)
    </database>

Anything else raises ``BackupFormatError``: an unknown table or column,
a misplaced or nested element, a repeated cell, stray text.

Usage:
    from dbtools.backup.deserializer import insert_statement, read_backup

    for row in read_backup("repository/shop-2024-03-01.xml", database):
        await executor.execute(insert_statement(row, Dialect.MYSQL))
"""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import IO

from dbtools.backup.codec import UnsupportedValueError, sql_literal
from dbtools.backup.models import RowInsert
from dbtools.schema.ddl import Dialect
from dbtools.schema.models import Column, Database, Table
from dbtools.schema.naming import pluralize as default_pluralize

logger = logging.getLogger(__name__)


class BackupFormatError(ValueError):
    """Raised when a backup document does not have the expected shape."""


@dataclass
class _Frame:
    element: ET.Element
    role: str  # "database", "wrapper", "row" or "cell"
    table: Table | None = None
    column: Column | None = None
    cells: dict[str, str | None] = field(default_factory=dict)
    last_child: ET.Element | None = None


def _reject_text(text: str | None, where: str) -> None:
    if text and text.strip():
        raise BackupFormatError(f"Unexpected text {text.strip()!r} in {where}")


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def _frame_table(frame: _Frame) -> Table:
    if frame.table is None:
        raise BackupFormatError(f"<{frame.element.tag}> does not belong to a table")
    return frame.table


def _top_level(
    tag: str, database: Database, pluralize: Callable[[str], str]
) -> tuple[str, Table]:
    # A plural name wins over a singular one
    for table in database.tables:
        if _same(pluralize(table.name), tag):
            return "wrapper", table
    table = database.find_table(tag)
    if table is None:
        raise BackupFormatError(f"Could not find table: {tag}")
    return "row", table


def _open(
    element: ET.Element,
    parent: _Frame | None,
    database: Database,
    pluralize: Callable[[str], str],
) -> _Frame:
    tag = element.tag

    if parent is None:
        if not _same(tag, database.name):
            raise BackupFormatError(
                f"Expected database element <{database.name}>, found <{tag}>"
            )
        return _Frame(element, "database")

    if parent.role == "database":
        role, table = _top_level(tag, database, pluralize)
        if role == "wrapper":
            logger.info(f"Starting to restore table {table.name}")
        return _Frame(element, role, table=table)

    table = _frame_table(parent)

    if parent.role == "wrapper":
        if not _same(tag, table.name):
            raise BackupFormatError(
                f"Expected <{table.name}> row in <{parent.element.tag}>, found <{tag}>"
            )
        return _Frame(element, "row", table=table)

    if parent.role == "row":
        column = table.find_column(tag)
        if column is None:
            raise BackupFormatError(f"Table {table.name} has no column {tag}")
        if column.is_blob:
            raise UnsupportedValueError(
                f"Could not restore column {tag}: BLOB values are not restorable"
            )
        if column.name in parent.cells:
            raise BackupFormatError(
                f"Column {column.name} appears twice in a {table.name} row"
            )
        return _Frame(element, "cell", table=table, column=column)

    raise BackupFormatError(
        f"Unexpected element <{tag}> inside column <{parent.element.tag}>"
    )


def _row_insert(frame: _Frame, local_tz: tzinfo | None) -> RowInsert:
    table = _frame_table(frame)

    pairs: list[tuple[str, str]] = []
    for column in table.selected_columns:
        if column.name not in frame.cells:
            if not column.is_nullable:
                raise BackupFormatError(
                    f"Row of table {table.name} has no value for "
                    f"non-nullable column {column.name}"
                )
            continue
        raw = frame.cells[column.name]
        pairs.append((column.name, sql_literal(column, raw, local_tz)))

    if not pairs:
        # Every column was null when backed up
        pairs = [(column.name, "null") for column in table.selected_columns]
    if not pairs:
        raise BackupFormatError(f"Table {table.name} has no restorable columns")
    return RowInsert(
        table=table.name,
        pairs=tuple(pairs),
        has_identity=table.has_identity_column,
    )


def read_backup(
    source: str | Path | IO[bytes],
    database: Database,
    pluralize: Callable[[str], str] = default_pluralize,
    local_tz: tzinfo | None = None,
) -> Iterator[RowInsert]:
    """Read a backup document and yield one ``RowInsert`` per row.

    Column/value pairs follow the definition's column order, not the
    order of the elements in the row.  Columns absent from a row are left
    out of its INSERT; a row with no cells at all inserts ``null`` into
    every selected column.

    Args:
        source: Path or binary file object of the backup XML.
        database: Database definition the backup belongs to.
        pluralize: Table wrapper naming; must match the one used on backup.
        local_tz: Time zone restored timestamps are expressed in
            (default: system local).

    Yields:
        ``RowInsert`` for each row, in document order.

    Raises:
        BackupFormatError: If the document is malformed or has an
            unexpected shape, or a non-nullable column is missing.
        UnsupportedValueError: If a row carries a BLOB column.
        ValueError: If a timestamp cannot be parsed.
    """
    stack: list[_Frame] = []
    seen_root = False

    try:
        for event, element in ET.iterparse(source, events=("start", "end")):
            if event == "start":
                parent = stack[-1] if stack else None
                if parent is None and seen_root:
                    raise BackupFormatError(
                        f"Unexpected element <{element.tag}> after database element"
                    )
                if parent is not None:
                    where = f"<{parent.element.tag}>"
                    if parent.last_child is None:
                        _reject_text(parent.element.text, where)
                    else:
                        _reject_text(parent.last_child.tail, where)
                stack.append(_open(element, parent, database, pluralize))
                seen_root = True
                continue

            frame = stack.pop()
            parent = stack[-1] if stack else None

            if frame.role == "cell":
                if frame.column is None or parent is None:
                    raise BackupFormatError(f"Column <{element.tag}> outside a row")
                parent.cells[frame.column.name] = element.text
            else:
                where = f"<{element.tag}>"
                if frame.last_child is None:
                    _reject_text(element.text, where)
                else:
                    _reject_text(frame.last_child.tail, where)

            if frame.role == "row":
                yield _row_insert(frame, local_tz)

            if parent is not None:
                parent.last_child = element
                # Processed subtrees are not needed again
                parent.element.remove(element)
    except ET.ParseError as exc:
        raise BackupFormatError(f"Malformed backup XML: {exc}") from exc

    if not seen_root:
        raise BackupFormatError("Backup document has no database element")


def insert_statement(row: RowInsert, dialect: Dialect) -> str:
    """SQL to execute for one restored row.

    When the dialect needs ``IDENTITY_INSERT`` to accept explicit identity
    values and the row's table has an identity column, the INSERT is wrapped in
    the override for this row only.

    Example:
        >>> row = RowInsert(table="t", pairs=(("id", "1"),))
        >>> insert_statement(row, Dialect.MYSQL)
        'INSERT INTO t (id) VALUES (1);'
    """
    sql = row.to_sql()
    if dialect.supports_identity_insert and row.has_identity:
        return (
            f"SET IDENTITY_INSERT {row.table} ON; "
            f"{sql} "
            f"SET IDENTITY_INSERT {row.table} OFF;"
        )
    return sql
