"""Backup and restore of a whole database, driven by its definition.

Backups are XML documents written line by line from the live tables (see
``dbtools.backup.serializer``) and zipped into the repository directory.
Restore reads a backup back (see ``dbtools.backup.deserializer``) and
executes one INSERT per row into a database whose tables are all empty.

There is no surrounding transaction: a failed restore leaves the rows
inserted so far in place, and the pass stops at the first error.

Usage:
    from dbtools.backup.backup_restore import backup_database, restore_database

    # Backup
    archive = await backup_database(client, database, "repository")

    # Restore from the latest archive
    summary = await restore_database(client, database, "repository")

    # Restore from a specific archive
    summary = await restore_database(
        client, database, "repository", backup="shop-2024-03-01.zip",
        dialect=Dialect.AZURE,
    )
"""

import logging
from collections.abc import Callable
from datetime import date, tzinfo
from pathlib import Path

from dbtools.adapters.base import DatabaseClient, RowSource
from dbtools.backup.archive import (
    archive_backup,
    backup_file_name,
    extract_backup,
    find_latest_archive,
)
from dbtools.backup.deserializer import insert_statement, read_backup
from dbtools.backup.models import RestoreSummary
from dbtools.backup.serializer import backup_lines
from dbtools.schema.ddl import Dialect
from dbtools.schema.models import Database
from dbtools.schema.naming import pluralize as default_pluralize

logger = logging.getLogger(__name__)


class TablesNotEmptyError(RuntimeError):
    """Raised when restoring into a database whose tables hold rows."""


async def backup_database(
    source: RowSource,
    database: Database,
    repository: str | Path,
    today: date | None = None,
    archive: bool = True,
    pluralize: Callable[[str], str] = default_pluralize,
    local_tz: tzinfo | None = None,
) -> str:
    """Write a backup of every table in *database* to the repository.

    Args:
        source: Row source connected to the database.
        database: Database definition; tables are backed up in its order.
        repository: Directory receiving the backup.
        today: Date used in the file name (default: today).
        archive: When ``True``, zip the XML and remove it.
        pluralize: Table wrapper naming.
        local_tz: Time zone of naive timestamps (default: system local).

    Returns:
        Path of the archive, or of the XML when *archive* is ``False``.

    Example:
        path = await backup_database(client, database, "repository")
        # 'repository/shop-2024-03-01.zip'
    """
    repo = Path(repository)
    repo.mkdir(parents=True, exist_ok=True)
    xml_path = repo / backup_file_name(database.name, today or date.today())

    logger.info(f"Backing up database {database.name} to {xml_path}")
    try:
        with open(xml_path, "w", encoding="utf-8", newline="\n") as f:
            async for line in backup_lines(source, database, pluralize, local_tz):
                f.write(line + "\n")
    except Exception:
        # Never leave a truncated backup behind
        xml_path.unlink(missing_ok=True)
        raise

    if not archive:
        return str(xml_path)
    return str(archive_backup(xml_path))


async def _non_empty_tables(client: DatabaseClient, database: Database) -> list[str]:
    names: list[str] = []
    for table in database.tables:
        if await client.has_content(table.name):
            names.append(table.name)
    return names


def _resolve_backup(
    repository: Path, database: Database, backup: str | Path | None
) -> Path:
    if backup is None:
        latest = find_latest_archive(repository, database.name)
        if latest is None:
            raise FileNotFoundError(
                f"No backup archive for database {database.name} in {repository}"
            )
        return latest

    path = Path(backup)
    if not path.is_absolute() and not path.exists():
        path = repository / path
    if path.suffix.lower() not in (".zip", ".xml"):
        raise ValueError(
            f"Cannot restore database {database.name} from {backup} - "
            "it must be a zip or xml file"
        )
    if not path.is_file():
        raise FileNotFoundError(
            f"Cannot restore database {database.name} from {path} - it isn't there!"
        )
    return path


async def restore_database(
    client: DatabaseClient,
    database: Database,
    repository: str | Path,
    backup: str | Path | None = None,
    dialect: Dialect = Dialect.MYSQL,
    pluralize: Callable[[str], str] = default_pluralize,
    local_tz: tzinfo | None = None,
) -> RestoreSummary:
    """Restore *database* from a backup in the repository.

    Every table must be empty; restore never merges with existing rows.
    A ``.zip`` archive is extracted into the repository, read, and the
    extracted XML removed afterwards.  A plain ``.xml`` backup is read in
    place and kept.

    Args:
        client: Connected database client.
        database: Database definition the backup belongs to.
        repository: Directory holding the backups.
        backup: Archive or XML to restore from, absolute or relative to
            the repository.  ``None`` picks the latest dated archive.
        dialect: Dialect of the target server.
        pluralize: Table wrapper naming; must match the one used on backup.
        local_tz: Time zone restored timestamps are expressed in
            (default: system local).

    Returns:
        ``RestoreSummary`` with per-table inserted row counts.

    Raises:
        TablesNotEmptyError: If any table already holds rows.
        FileNotFoundError: If no usable backup exists.
        FileExistsError: If the archive's XML is already in the repository.
        BackupFormatError: If the backup has an unexpected shape.
        UnsupportedValueError: If the backup carries a BLOB column.
    """
    repo = Path(repository)

    non_empty = await _non_empty_tables(client, database)
    if non_empty:
        raise TablesNotEmptyError(
            f"Cannot restore database {database.name}, some of its tables have "
            f"content: {', '.join(non_empty)}"
        )

    backup_path = _resolve_backup(repo, database, backup)
    logger.info(f"Using {backup_path}")

    extracted: Path | None = None
    if backup_path.suffix.lower() == ".zip":
        extracted = extract_backup(backup_path, repo)
        xml_path = extracted
    else:
        xml_path = backup_path

    summary = RestoreSummary(
        database=database.name,
        backup_path=str(backup_path),
        inserted={t.name: 0 for t in database.tables},
    )

    try:
        with open(xml_path, "rb") as f:
            for row in read_backup(f, database, pluralize, local_tz):
                await client.execute(insert_statement(row, dialect))
                summary.inserted[row.table] += 1
    finally:
        if extracted is not None:
            extracted.unlink(missing_ok=True)

    for table, count in summary.inserted.items():
        logger.info(f"Restored {count} rows into {table}")
    return summary
