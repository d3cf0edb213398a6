"""Backup serializer: live rows -> line-oriented XML.

The backup document has one element per database, one wrapper per table
named with the table's plural, and one single-line element per row named
with the table's singular name::

    <?xml version="1.0"?>
    <shop>
      <customers>
        <customer><id>1</id><name>Acme</name></customer>
      </customers>
    </shop>

Null cells are omitted entirely; restore relies on that to rebuild SQL
``null``.  Output is produced one line at a time so tables of any size
can be written without holding them in memory.
"""

from collections.abc import AsyncIterable, AsyncIterator, Callable
from datetime import tzinfo

from dbtools.adapters.base import Cell, RowSource
from dbtools.backup.codec import format_value
from dbtools.schema.models import Database, Table
from dbtools.schema.naming import pluralize as default_pluralize

XML_DECLARATION = '<?xml version="1.0"?>'


def row_line(table: Table, row: list[Cell], local_tz: tzinfo | None = None) -> str:
    """Serialize one row as a single ``<table>...</table>`` line.

    Example:
        >>> from dbtools.schema.models import Column
        >>> t = Table(name="customer", columns=(
        ...     Column(name="id", column_type="INT"),
        ...     Column(name="name", column_type="VARCHAR(50)"),
        ... ))
        >>> row_line(t, [Cell("id", 1, False), Cell("name", None, True)])
        '    <customer><id>1</id></customer>'
    """
    parts: list[str] = []
    for cell in row:
        if cell.is_null or cell.value is None:
            continue
        column = table.find_column(cell.name)
        if column is None:
            raise ValueError(
                f"Row source returned column {cell.name} not defined in table {table.name}"
            )
        text = format_value(cell.value, column.kind, local_tz)
        parts.append(f"<{column.name}>{text}</{column.name}>")
    return f"    <{table.name}>{''.join(parts)}</{table.name}>"


async def table_lines(
    table: Table,
    rows: AsyncIterable[list[Cell]],
    pluralize: Callable[[str], str] = default_pluralize,
    local_tz: tzinfo | None = None,
) -> AsyncIterator[str]:
    """Yield the wrapper open line, one line per row, and the wrapper close line."""
    wrapper = pluralize(table.name)
    yield f"  <{wrapper}>"
    async for row in rows:
        yield row_line(table, row, local_tz)
    yield f"  </{wrapper}>"


async def backup_lines(
    source: RowSource,
    database: Database,
    pluralize: Callable[[str], str] = default_pluralize,
    local_tz: tzinfo | None = None,
) -> AsyncIterator[str]:
    """Yield every line of a backup document for *database*.

    Tables are read in declaration order; for each, only the non-BLOB
    columns are selected.

    Args:
        source: Row source for the live database.
        database: Database definition.
        pluralize: Table wrapper naming; must match the one used on restore.
        local_tz: Time zone of naive timestamps (default: system local).

    Yields:
        Output lines without trailing newlines.
    """
    yield XML_DECLARATION
    yield f"<{database.name}>"

    for table in database.tables:
        columns = [c.name for c in table.selected_columns]
        rows = source.fetch_rows(table.name, columns)
        async for line in table_lines(table, rows, pluralize, local_tz):
            yield line

    yield f"</{database.name}>"
