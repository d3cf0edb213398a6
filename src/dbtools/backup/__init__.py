"""XML backup and restore driven by a database definition.

Usage:
    from dbtools.backup import backup_database, restore_database
    from dbtools.backup import read_backup, backup_lines, report_database
"""

from dbtools.backup.backup_restore import (
    TablesNotEmptyError,
    backup_database,
    restore_database,
)
from dbtools.backup.codec import UnsupportedValueError, escape_xml
from dbtools.backup.deserializer import BackupFormatError, insert_statement, read_backup
from dbtools.backup.models import RestoreSummary, RowInsert, TableReport
from dbtools.backup.report import report_database, table_digest
from dbtools.backup.serializer import backup_lines, table_lines

__all__ = [
    "backup_database",
    "restore_database",
    "TablesNotEmptyError",
    "backup_lines",
    "table_lines",
    "read_backup",
    "insert_statement",
    "BackupFormatError",
    "UnsupportedValueError",
    "escape_xml",
    "report_database",
    "table_digest",
    "RowInsert",
    "RestoreSummary",
    "TableReport",
]
