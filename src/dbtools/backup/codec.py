"""Type-aware value codec for the XML backup format.

Three conversions, all driven by a column's ``ValueKind``:

- ``format_value``: live database value -> backup element text.
- ``sql_literal``: backup element text -> SQL literal for INSERT.
- ``report_value``: live database value -> canonical text for content
  hashing.

Pure logic, no I/O.

Usage:
    >>> from dbtools.schema.models import Column, ValueKind
    >>> format_value("A & B  ", ValueKind.TEXT)
    'A &amp; B'
    >>> sql_literal(Column(name="name", column_type="VARCHAR(50)"), "O'Neil")
    "'O''Neil'"
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Any

from dbtools.schema.models import Column, ValueKind

BLOB_MARKER = "BLOB value not exported"

BACKUP_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
RESTORE_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Characters written to the backup unchanged
_PASS_THROUGH: frozenset[str] = frozenset(
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "0123456789"
    " !#$%()*+,-./:;=?[]^_{}|~"
)

_ENTITIES: dict[str, str] = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    "'": "&apos;",
    "\\": "&#x5C;",
    '"': "&quot;",
}

# Code points that are silently dropped instead of written as character
# references.  This is a fixed list, not a general validity rule.
# U+F0079 is the surrogate pair 0xDBC0 0xDC79 seen as a single code point.
DROPPED_CODE_POINTS: frozenset[int] = frozenset({
    0x01,
    0x02,
    0x0A,
    0x0B,
    0x0C,
    0x1F,
    0xDBC0,
    0xDC79,
    0xF0079,
})


class UnsupportedValueError(ValueError):
    """Raised when a value cannot be restored (BLOB columns)."""


def escape_xml(text: str) -> str:
    """Escape text for the body of a backup element.

    Examples:
        >>> escape_xml("Tom & Jerry's <show>")
        'Tom &amp; Jerry&apos;s &lt;show&gt;'
        >>> escape_xml("caf\\u00e9")
        'caf&#xE9;'
        >>> escape_xml("line1\\nline2")
        'line1line2'
    """
    out: list[str] = []
    for ch in text:
        if ch in _PASS_THROUGH:
            out.append(ch)
        elif ch in _ENTITIES:
            out.append(_ENTITIES[ch])
        else:
            code = ord(ch)
            if code not in DROPPED_CODE_POINTS:
                out.append(f"&#x{code:X};")
    return "".join(out)


def _as_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (bytes, bytearray)):
        # MySQL BIT columns arrive as packed bytes
        return int.from_bytes(value, "big") != 0
    return str(value).strip().lower() in ("1", "true")


def _to_utc(value: datetime, local_tz: tzinfo | None) -> datetime:
    if value.tzinfo is None and local_tz is not None:
        value = value.replace(tzinfo=local_tz)
    # Naive values without local_tz are taken as system local time
    return value.astimezone(timezone.utc)


def format_value(value: Any, kind: ValueKind, local_tz: tzinfo | None = None) -> str:
    """Format a live, non-null database value as backup element text.

    Args:
        value: Value as returned by the driver.
        kind: Semantic kind of the column.
        local_tz: Time zone of naive timestamps (default: system local).

    Returns:
        Text content for the column's element, already escaped.

    Examples:
        >>> format_value(True, ValueKind.BOOLEAN)
        'true'
        >>> format_value("1", ValueKind.BOOLEAN)
        'true'
        >>> format_value(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc), ValueKind.TIMESTAMP)
        '2024-03-01T09:30:00Z'
        >>> format_value(b"\\x89PNG", ValueKind.BINARY)
        'BLOB value not exported'
    """
    if kind is ValueKind.BINARY:
        return BLOB_MARKER

    if kind is ValueKind.BOOLEAN:
        return "true" if _as_boolean(value) else "false"

    if kind is ValueKind.TIMESTAMP and isinstance(value, datetime):
        return _to_utc(value, local_tz).strftime(BACKUP_TIMESTAMP_FORMAT)

    if kind is ValueKind.TEXT or isinstance(value, str):
        return escape_xml(str(value).rstrip())

    return str(value)


def escape_slash_quote(text: str) -> str:
    """Double backslashes and single quotes for a SQL string literal.

    Example:
        >>> escape_slash_quote("it's a\\\\b")
        "it''s a\\\\\\\\b"
    """
    return text.replace("\\", "\\\\").replace("'", "''")


def parse_backup_timestamp(text: str) -> datetime:
    """Parse a backup timestamp; values without an offset are taken as UTC."""
    cleaned = text.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    parsed = datetime.fromisoformat(cleaned)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sql_literal(column: Column, raw: str | None, local_tz: tzinfo | None = None) -> str:
    """Convert backup element text into a SQL literal for *column*.

    Args:
        column: Column definition the value belongs to.
        raw: Unescaped element text, or ``None`` when absent.
        local_tz: Time zone restored timestamps are expressed in
            (default: system local).

    Returns:
        SQL literal text (quoted where the kind needs it).

    Raises:
        UnsupportedValueError: For BLOB columns.
        ValueError: If a timestamp value cannot be parsed.

    Examples:
        >>> col = Column(name="flag", column_type="BIT", is_nullable=False)
        >>> sql_literal(col, "true"), sql_literal(col, "yes")
        ('1', '0')
        >>> sql_literal(Column(name="qty", column_type="INT"), "")
        'null'
    """
    if column.is_blob:
        raise UnsupportedValueError(
            f"Could not restore column {column.name}: BLOB values are not restorable"
        )

    if not raw and column.is_nullable:
        return "null"

    text = raw or ""

    if column.kind is ValueKind.TEXT:
        return "'" + escape_slash_quote(text).replace("\n", "") + "'"

    if column.kind is ValueKind.TIMESTAMP:
        local = parse_backup_timestamp(text).astimezone(local_tz)
        return "'" + local.strftime(RESTORE_TIMESTAMP_FORMAT) + "'"

    if column.kind is ValueKind.BOOLEAN:
        return "1" if text == "true" else "0"

    return text


def report_value(value: Any, kind: ValueKind) -> str:
    """Canonical escaped text of a live value for content hashing.

    Timestamps contribute their date only, so the digest does not depend
    on the time zone of the machine running the report.
    """
    if kind is ValueKind.BOOLEAN:
        text = "true" if _as_boolean(value) else "false"
    elif kind is ValueKind.TIMESTAMP and isinstance(value, (datetime, date)):
        text = value.strftime("%Y-%m-%d")
    else:
        text = str(value).rstrip()
    return escape_xml(text)
