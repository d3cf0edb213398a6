"""Database adapters package.

Provides the capability protocols the backup/restore core depends on and
``AsyncSqlAdapter``, the SQLAlchemy implementation for MySQL and
Azure/MSSQL.

The database drivers are optional extras: ``aiomysql`` (``mysql``) and
``aioodbc`` (``mssql``).  They are only needed once an adapter connects.

Usage:
    from dbtools.adapters import AsyncSqlAdapter, DatabaseClient
"""

from dbtools.adapters.base import Cell, DatabaseClient, RowSource, StatementExecutor
from dbtools.adapters.sql import AsyncSqlAdapter

__all__ = [
    "Cell",
    "DatabaseClient",
    "RowSource",
    "StatementExecutor",
    "AsyncSqlAdapter",
]
