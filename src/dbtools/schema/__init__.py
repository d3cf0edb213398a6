"""Database definitions: parsing, model, DDL, and structural checks.

Usage:
    from dbtools.schema import load_definition, generate_ddl, Dialect
    from dbtools.schema import validate_tables, check_database
"""

from dbtools.schema.comparator import check_database, check_table, validate_tables
from dbtools.schema.ddl import Dialect, ddl_statements, generate_ddl
from dbtools.schema.models import (
    CheckResult,
    Column,
    Database,
    DefinitionError,
    DefinitionLoadResult,
    SchemaValidationResult,
    Table,
    ValueKind,
)
from dbtools.schema.naming import pluralize
from dbtools.schema.parser import load_definition, parse_definition

__all__ = [
    "load_definition",
    "parse_definition",
    "Database",
    "Table",
    "Column",
    "ValueKind",
    "DefinitionError",
    "DefinitionLoadResult",
    "Dialect",
    "ddl_statements",
    "generate_ddl",
    "pluralize",
    "validate_tables",
    "check_table",
    "check_database",
    "SchemaValidationResult",
    "CheckResult",
]
