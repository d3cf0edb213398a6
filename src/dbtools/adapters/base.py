"""Database capability protocols.

The backup/restore core never reaches for a global connection.  Each
entry point borrows one of these capabilities for the duration of a call:

- ``RowSource``: streams rows of a table as ordered ``Cell`` lists.
- ``StatementExecutor``: executes one SQL string, raising on failure.
- ``DatabaseClient``: both of the above plus the catalog queries the CLI
  needs.  ``AsyncSqlAdapter`` implements it.

Usage:
    from dbtools.adapters.base import Cell, DatabaseClient

    async def count_rows(source: RowSource, table: str) -> int:
        n = 0
        async for _ in source.fetch_rows(table, ["id"]):
            n += 1
        return n
"""

from collections.abc import AsyncIterator
from typing import Any, NamedTuple, Protocol


class Cell(NamedTuple):
    """One column value of a fetched row."""

    name: str
    value: Any
    is_null: bool


class RowSource(Protocol):
    """Anything that can stream the rows of a table."""

    def fetch_rows(
        self,
        table: str,
        columns: list[str] | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[list[Cell]]:
        """Yield each selected row as a list of cells.

        Args:
            table: Table name.
            columns: Column names to select, in order.  ``None`` selects
                every live column (``SELECT *``).
            limit: Optional maximum number of rows.

        Yields:
            One list of ``Cell`` per row, in the order of *columns*.

        Example:
            async for row in source.fetch_rows("customer", ["id", "name"]):
                for cell in row:
                    print(cell.name, cell.value)
        """
        ...


class StatementExecutor(Protocol):
    """Anything that can execute a SQL statement."""

    async def execute(self, sql: str) -> None:
        """Execute a SQL statement (DDL, INSERT, batches).

        Raises:
            Exception: If the database rejects the statement.
        """
        ...


class DatabaseClient(RowSource, StatementExecutor, Protocol):
    """Row source and statement executor with catalog queries."""

    async def list_databases(self) -> list[str]:
        """Names of user databases on the server (system databases excluded)."""
        ...

    async def list_tables(self) -> list[str]:
        """Names of base tables in the connected database."""
        ...

    async def has_content(self, table: str) -> bool:
        """True if the table holds at least one row."""
        ...

    async def close(self) -> None:
        """Close the connection and release pooled resources."""
        ...
