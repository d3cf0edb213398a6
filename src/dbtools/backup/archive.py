"""Backup files in the repository directory.

A backup of database ``shop`` taken on 2024-03-01 is written as
``shop-2024-03-01.xml`` and then zipped to ``shop-2024-03-01.zip`` next to
it; the XML is removed once the archive exists.  Restore extracts the XML
back into the repository, reads it, and removes it again.

Usage:
    from dbtools.backup.archive import find_latest_archive, extract_backup

    archive = find_latest_archive("repository", "shop")
    xml_path = extract_backup(archive, "repository")
"""

import logging
import re
import zipfile
from datetime import date
from pathlib import Path

logger = logging.getLogger(__name__)

_DATED_NAME = r"-(\d{4}-\d{2}-\d{2})\.zip"


def backup_file_name(database: str, day: date) -> str:
    """Name of the XML backup of *database* taken on *day*.

    Example:
        >>> backup_file_name("shop", date(2024, 3, 1))
        'shop-2024-03-01.xml'
    """
    return f"{database}-{day.strftime('%Y-%m-%d')}.xml"


def archive_backup(xml_path: str | Path) -> Path:
    """Zip *xml_path* into a sibling ``.zip`` and remove the XML.

    Returns:
        Path of the created archive.
    """
    xml_path = Path(xml_path)
    archive_path = xml_path.with_suffix(".zip")

    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.write(xml_path, arcname=xml_path.name)

    xml_path.unlink()
    logger.debug(f"Archived {xml_path.name} to {archive_path}")
    return archive_path


def extract_backup(archive_path: str | Path, repository: str | Path) -> Path:
    """Extract the XML backup held in *archive_path* into *repository*.

    Raises:
        FileNotFoundError: If the archive does not exist or does not hold
            the expected XML member.
        FileExistsError: If the XML is already present in the repository.
    """
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise FileNotFoundError(f"Backup archive not found: {archive_path}")

    member = archive_path.with_suffix(".xml").name
    target = Path(repository) / member
    if target.exists():
        raise FileExistsError(
            f"Cannot restore from {archive_path} - {member} is also in the repository"
        )

    with zipfile.ZipFile(archive_path) as zf:
        if member not in zf.namelist():
            raise FileNotFoundError(f"Backup {member} not in {archive_path}")
        zf.extract(member, path=repository)

    return target


def find_latest_archive(repository: str | Path, database: str) -> Path | None:
    """Most recent ``<database>-YYYY-MM-DD.zip`` in *repository*, if any.

    Only names that match the dated pattern exactly are considered, so
    ``shop-old-2024-01-01.zip`` is never picked up as a backup of ``shop``.
    """
    repo = Path(repository)
    if not repo.is_dir():
        return None

    pattern = re.compile(re.escape(database) + _DATED_NAME)
    dated: list[tuple[date, Path]] = []
    for path in repo.iterdir():
        match = pattern.fullmatch(path.name)
        if match is None or not path.is_file():
            continue
        try:
            day = date.fromisoformat(match.group(1))
        except ValueError:
            continue
        dated.append((day, path))

    if not dated:
        return None
    return max(dated)[1]
