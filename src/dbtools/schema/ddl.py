"""DDL generation from a database definition.

Compiles a ``Database`` into dialect-specific CREATE TABLE, constraint,
and index statements.  BLOB columns are never created.

Two dialects are supported:

- ``Dialect.MYSQL``: ``AUTO_INCREMENT`` identity, inline foreign keys,
  and a ``DROP TABLE IF EXISTS`` before each table.
- ``Dialect.AZURE`` (MSSQL): ``IDENTITY(1,1)``, clustered primary key with
  storage options, foreign keys as ``ALTER TABLE ... WITH CHECK`` /
  ``CHECK CONSTRAINT`` pairs.  No drop: creating an existing table fails.

Usage:
    from dbtools.schema.ddl import Dialect, ddl_statements, generate_ddl

    script = generate_ddl(database, Dialect.from_name("azure"))
    for sql in ddl_statements(database, Dialect.MYSQL):
        await client.execute(sql)
"""

from dataclasses import dataclass
from enum import Enum

from dbtools.schema.models import Column, Database, Table


class Dialect(str, Enum):
    """Target SQL dialect."""

    MYSQL = "mysql"
    AZURE = "azure"

    @classmethod
    def from_name(cls, name: str | None) -> "Dialect":
        """``AZURE`` (any case) selects Azure/MSSQL; anything else is MySQL.

        Example:
            >>> Dialect.from_name("Azure")
            <Dialect.AZURE: 'azure'>
            >>> Dialect.from_name("postgres")
            <Dialect.MYSQL: 'mysql'>
        """
        if name is not None and name.upper() == "AZURE":
            return cls.AZURE
        return cls.MYSQL

    @property
    def supports_identity_insert(self) -> bool:
        """True if explicit identity values need ``SET IDENTITY_INSERT``."""
        return self is Dialect.AZURE

    @property
    def default_database(self) -> str:
        """Database to connect to when no specific database is in use."""
        return "mysql" if self is Dialect.MYSQL else "master"


_MSSQL_PK_OPTIONS = (
    "    WITH (PAD_INDEX  = OFF, STATISTICS_NORECOMPUTE  = OFF,\n"
    "    IGNORE_DUP_KEY = OFF, ALLOW_ROW_LOCKS  = ON, ALLOW_PAGE_LOCKS  = ON) ON [PRIMARY]"
)

_MSSQL_INDEX_OPTIONS = (
    "       WITH (PAD_INDEX  = OFF, STATISTICS_NORECOMPUTE  = OFF, SORT_IN_TEMPDB = OFF,\n"
    "       IGNORE_DUP_KEY = OFF, DROP_EXISTING = OFF, ONLINE = OFF, ALLOW_ROW_LOCKS  = ON,\n"
    "       ALLOW_PAGE_LOCKS  = ON) ON [PRIMARY]"
)


@dataclass
class TableDdl:
    """Statements for one table, in execution order.

    Example:
        ddl = TableDdl(table="t", create_sql="CREATE TABLE t (...);")
        ddl.statements()
        # ['CREATE TABLE t (...);']
    """

    table: str
    create_sql: str
    drop_sql: str | None = None
    constraint_sql: list[str] | None = None
    index_sql: list[str] | None = None

    def statements(self) -> list[str]:
        result: list[str] = []
        if self.drop_sql:
            result.append(self.drop_sql)
        result.append(self.create_sql)
        result.extend(self.constraint_sql or [])
        result.extend(self.index_sql or [])
        return result


def _column_clause(column: Column, dialect: Dialect) -> str:
    clause = f"{column.name} {column.column_type}"
    clause += " NULL" if column.is_nullable else " NOT NULL"
    if column.is_identity:
        clause += " AUTO_INCREMENT" if dialect is Dialect.MYSQL else " IDENTITY(1,1)"
    return clause


def _storable_columns(table: Table) -> list[Column]:
    columns = table.selected_columns
    if not columns:
        raise ValueError(
            f"Table {table.name} has no columns that can be created (all BLOB)"
        )
    return columns


def _mysql_table(table: Table) -> TableDdl:
    lines = [_column_clause(c, Dialect.MYSQL) for c in _storable_columns(table)]

    identity = table.identity_column
    if identity is not None:
        lines.append(f"CONSTRAINT PK_{table.name} PRIMARY KEY ({identity.name})")

    for c in table.selected_columns:
        if c.foreign_key is not None:
            lines.append(
                f"CONSTRAINT FK_{table.name}_{c.name} FOREIGN KEY ({c.name}) "
                f"REFERENCES {c.foreign_key}"
            )

    create_sql = f"CREATE TABLE {table.name} (\n" + ",\n".join(lines) + ");"

    index_sql = [
        f"CREATE INDEX IX_{table.name}_{c.name} ON {table.name}({c.name});"
        for c in table.selected_columns
        if c.is_index
    ]

    return TableDdl(
        table=table.name,
        drop_sql=f"DROP TABLE IF EXISTS {table.name};",
        create_sql=create_sql,
        index_sql=index_sql,
    )


def _mssql_table(table: Table) -> TableDdl:
    lines = [_column_clause(c, Dialect.AZURE) for c in _storable_columns(table)]

    identity = table.identity_column
    if identity is not None:
        lines.append(
            f"CONSTRAINT [PK_{table.name}] PRIMARY KEY CLUSTERED ( [{identity.name}] ASC )\n"
            + _MSSQL_PK_OPTIONS
        )

    create_sql = (
        f"CREATE TABLE [dbo].[{table.name}](\n"
        + ",\n".join(lines)
        + "\n) ON [PRIMARY];"
    )

    constraint_sql: list[str] = []
    for c in table.selected_columns:
        if c.foreign_key is not None:
            constraint = f"FK_{table.name}_{c.name}"
            constraint_sql.append(
                f"ALTER TABLE [dbo].[{table.name}] WITH CHECK\n"
                f"ADD CONSTRAINT [{constraint}]\n"
                f"FOREIGN KEY ([{c.name}]) REFERENCES {c.foreign_key};"
            )
            constraint_sql.append(
                f"ALTER TABLE [dbo].[{table.name}] CHECK\n"
                f"CONSTRAINT [{constraint}];"
            )

    # The primary key already owns the clustered index
    index_sql = [
        f"CREATE NONCLUSTERED INDEX [IX_{table.name}_{c.name}]\n"
        f"       ON [dbo].[{table.name}]({c.name} ASC)\n"
        + _MSSQL_INDEX_OPTIONS
        + ";"
        for c in table.selected_columns
        if c.is_index
    ]

    return TableDdl(
        table=table.name,
        create_sql=create_sql,
        constraint_sql=constraint_sql,
        index_sql=index_sql,
    )


def table_ddl(table: Table, dialect: Dialect) -> TableDdl:
    """Build the DDL for a single table."""
    if dialect is Dialect.AZURE:
        return _mssql_table(table)
    return _mysql_table(table)


def ddl_statements(database: Database, dialect: Dialect) -> list[str]:
    """Executable statements for every table, in declaration order.

    Unlike ``generate_ddl``, no ``USE`` statement is included; the
    connection is expected to target the database already.
    """
    statements: list[str] = []
    for table in database.tables:
        statements.extend(table_ddl(table, dialect).statements())
    return statements


def generate_ddl(database: Database, dialect: Dialect | str) -> str:
    """Compile a database definition into a single SQL script.

    Args:
        database: Parsed database definition.
        dialect: ``Dialect`` or a dialect name (``"azure"`` selects
            MSSQL, anything else MySQL).

    Returns:
        SQL script starting with ``USE <database>;``.

    Example:
        >>> from dbtools.schema.parser import parse_definition
        >>> db = parse_definition("DATABASE d\\nTABLE t\\n id INT IDENTITY\\nEND").database
        >>> print(generate_ddl(db, "mysql"))  # doctest: +NORMALIZE_WHITESPACE
        USE d;
        DROP TABLE IF EXISTS t;
        CREATE TABLE t (
        id INT NOT NULL AUTO_INCREMENT,
        CONSTRAINT PK_t PRIMARY KEY (id));
    """
    if not isinstance(dialect, Dialect):
        dialect = Dialect.from_name(dialect)

    parts = [f"USE {database.name};\n"]
    for table in database.tables:
        ddl = table_ddl(table, dialect)
        if ddl.drop_sql:
            parts.append(ddl.drop_sql + "\n")
        parts.append(ddl.create_sql)
        parts.extend(ddl.constraint_sql or [])
        if ddl.index_sql:
            parts.append("\n".join(ddl.index_sql))
        parts.append("")
    return "\n".join(parts)
