"""dbtools: database definitions, DDL, and XML backup/restore.

Compiles ``.dbd`` database definitions into MySQL or Azure/MSSQL DDL, and
backs up and restores live databases through a type-aware XML format.

Usage:
    from dbtools import load_definition, generate_ddl, Dialect
    from dbtools import backup_database, restore_database, get_adapter
    from dbtools import load_config, ServerProfile, ToolsConfig
"""

__version__ = "0.1.0"

# Adapters
from dbtools.adapters.base import DatabaseClient
from dbtools.adapters.sql import AsyncSqlAdapter

# Config
from dbtools.config.loader import load_config
from dbtools.config.models import ServerProfile, ToolsConfig

# Factory
from dbtools.factory import ServerNotFoundError, get_adapter, resolve_url

# Schema
from dbtools.schema.comparator import check_database, validate_tables
from dbtools.schema.ddl import Dialect, generate_ddl
from dbtools.schema.models import Database
from dbtools.schema.parser import load_definition, parse_definition

# Backup
from dbtools.backup.backup_restore import backup_database, restore_database

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncSqlAdapter",
    # Config
    "load_config",
    "ServerProfile",
    "ToolsConfig",
    # Factory
    "get_adapter",
    "ServerNotFoundError",
    "resolve_url",
    # Schema
    "load_definition",
    "parse_definition",
    "Database",
    "Dialect",
    "generate_ddl",
    "validate_tables",
    "check_database",
    # Backup
    "backup_database",
    "restore_database",
]
