"""Tests for the backup value codec.

Covers XML escaping, backup formatting of live values, SQL literal
conversion on restore, and canonical report values.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from dbtools.backup.codec import (
    BLOB_MARKER,
    UnsupportedValueError,
    escape_slash_quote,
    escape_xml,
    format_value,
    parse_backup_timestamp,
    report_value,
    sql_literal,
)
from dbtools.schema.models import Column, ValueKind

PLUS_TWO = timezone(timedelta(hours=2))


def _col(column_type: str, nullable: bool = True) -> Column:
    return Column(name="c", column_type=column_type, is_nullable=nullable)


class TestEscapeXml:
    """Verify element text escaping."""

    def test_plain_text_unchanged(self) -> None:
        """Letters, digits and common punctuation pass through."""
        assert escape_xml("Order #42: 10% off (today) [a-z] {x|y} ~ok!") == (
            "Order #42: 10% off (today) [a-z] {x|y} ~ok!"
        )

    def test_named_entities(self) -> None:
        """Markup characters become entities."""
        assert escape_xml("Tom & Jerry's <show>") == "Tom &amp; Jerry&apos;s &lt;show&gt;"
        assert escape_xml('say "hi"') == "say &quot;hi&quot;"

    def test_backslash(self) -> None:
        """Backslash becomes a character reference."""
        assert escape_xml("a\\b") == "a&#x5C;b"

    def test_other_characters_as_references(self) -> None:
        """Characters outside the safe set become upper-case hex references."""
        assert escape_xml("café") == "caf&#xE9;"
        assert escape_xml("a@b") == "a&#x40;b"
        assert escape_xml("\t") == "&#x9;"
        assert escape_xml("\r") == "&#xD;"

    def test_astral_code_point(self) -> None:
        """Code points beyond the BMP are written as one reference."""
        assert escape_xml("\U0001F600") == "&#x1F600;"

    @pytest.mark.parametrize("code", [0x01, 0x02, 0x0A, 0x0B, 0x0C, 0x1F, 0xF0079])
    def test_dropped_code_points(self, code) -> None:
        """A fixed set of code points is silently dropped."""
        assert escape_xml(f"a{chr(code)}b") == "ab"

    def test_other_control_characters_kept(self) -> None:
        """Control characters outside the dropped set are referenced."""
        assert escape_xml("\x03") == "&#x3;"


class TestFormatValue:
    """Verify live values are formatted for the backup."""

    def test_text_trailing_space_trimmed(self) -> None:
        """Trailing whitespace is trimmed before escaping."""
        assert format_value("Acme & Co   ", ValueKind.TEXT) == "Acme &amp; Co"

    def test_text_leading_space_kept(self) -> None:
        """Only trailing whitespace is trimmed."""
        assert format_value("  x", ValueKind.TEXT) == "  x"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (True, "true"),
            (False, "false"),
            (1, "true"),
            (0, "false"),
            ("1", "true"),
            ("true", "true"),
            ("0", "false"),
            (b"\x01", "true"),
            (b"\x00", "false"),
        ],
    )
    def test_boolean(self, value, expected) -> None:
        """Booleans are written as true/false whatever the driver returns."""
        assert format_value(value, ValueKind.BOOLEAN) == expected

    def test_aware_timestamp_converted_to_utc(self) -> None:
        """Timestamps are written in UTC with a Z suffix."""
        value = datetime(2024, 3, 1, 12, 0, tzinfo=PLUS_TWO)
        assert format_value(value, ValueKind.TIMESTAMP) == "2024-03-01T10:00:00Z"

    def test_naive_timestamp_uses_local_tz(self) -> None:
        """Naive timestamps are interpreted in the given local zone."""
        value = datetime(2024, 3, 1, 12, 0)
        assert format_value(value, ValueKind.TIMESTAMP, PLUS_TWO) == "2024-03-01T10:00:00Z"

    def test_numbers(self) -> None:
        """Numbers are written with their natural text form."""
        assert format_value(42, ValueKind.INTEGER) == "42"
        assert format_value(Decimal("10.50"), ValueKind.DECIMAL) == "10.50"
        assert format_value(1.5, ValueKind.SINGLE) == "1.5"

    def test_string_value_of_other_kind_is_escaped(self) -> None:
        """String values are escaped whatever the column kind."""
        assert format_value("1<2", ValueKind.INTEGER) == "1&lt;2"

    def test_binary_marker(self) -> None:
        """BLOB values are never exported."""
        assert format_value(b"\x89PNG", ValueKind.BINARY) == BLOB_MARKER


class TestSqlLiteral:
    """Verify restore-side SQL literals."""

    def test_text_quoted(self) -> None:
        """Text is single-quoted."""
        assert sql_literal(_col("VARCHAR(50)"), "A & B") == "'A & B'"

    def test_text_quote_and_backslash_doubled(self) -> None:
        """Single quotes and backslashes are doubled."""
        assert sql_literal(_col("VARCHAR(50)"), "O'Neil\\x") == "'O''Neil\\\\x'"

    def test_text_newlines_removed(self) -> None:
        """Newlines are stripped from text literals."""
        assert sql_literal(_col("TEXT"), "a\nb") == "'ab'"

    def test_absent_nullable_is_null(self) -> None:
        """Absent or empty values of nullable columns are null."""
        assert sql_literal(_col("VARCHAR(5)"), None) == "null"
        assert sql_literal(_col("INT"), "") == "null"

    def test_empty_non_nullable_text(self) -> None:
        """Empty text in a non-nullable column is an empty string."""
        assert sql_literal(_col("VARCHAR(5)", nullable=False), "") == "''"

    def test_boolean(self) -> None:
        """Only the exact text 'true' restores as 1."""
        col = _col("BIT", nullable=False)
        assert sql_literal(col, "true") == "1"
        assert sql_literal(col, "false") == "0"
        assert sql_literal(col, "TRUE") == "0"

    def test_numbers_unquoted(self) -> None:
        """Numeric kinds are emitted as-is."""
        assert sql_literal(_col("INT"), "42") == "42"
        assert sql_literal(_col("DECIMAL(10,2)"), "10.50") == "10.50"

    def test_timestamp_to_local_time(self) -> None:
        """UTC timestamps are restored in local time without a suffix."""
        assert (
            sql_literal(_col("DATETIME"), "2024-03-01T10:00:00Z", PLUS_TWO)
            == "'2024-03-01T12:00:00'"
        )

    def test_bad_timestamp(self) -> None:
        """Unparseable timestamps are rejected."""
        with pytest.raises(ValueError):
            sql_literal(_col("DATETIME"), "yesterday")

    def test_blob_unsupported(self) -> None:
        """BLOB values cannot be restored."""
        with pytest.raises(UnsupportedValueError):
            sql_literal(_col("BLOB"), "BLOB value not exported")


class TestHelpers:
    """Verify small codec helpers."""

    def test_escape_slash_quote(self) -> None:
        """Backslashes are doubled before quotes."""
        assert escape_slash_quote("it's a\\b") == "it''s a\\\\b"

    def test_parse_backup_timestamp_z(self) -> None:
        """The Z suffix means UTC."""
        parsed = parse_backup_timestamp("2024-03-01T10:00:00Z")
        assert parsed == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_parse_backup_timestamp_without_offset(self) -> None:
        """Timestamps without an offset are taken as UTC."""
        parsed = parse_backup_timestamp("2024-03-01T10:00:00")
        assert parsed.tzinfo is timezone.utc


class TestReportValue:
    """Verify canonical report values."""

    def test_timestamp_date_only(self) -> None:
        """Timestamps contribute only their date."""
        assert report_value(datetime(2024, 3, 1, 23, 59), ValueKind.TIMESTAMP) == "2024-03-01"
        assert report_value(date(2024, 3, 1), ValueKind.TIMESTAMP) == "2024-03-01"

    def test_boolean(self) -> None:
        """Booleans contribute true/false."""
        assert report_value(b"\x01", ValueKind.BOOLEAN) == "true"
        assert report_value(0, ValueKind.BOOLEAN) == "false"

    def test_text_escaped(self) -> None:
        """Text is trimmed and escaped."""
        assert report_value("A & B ", ValueKind.TEXT) == "A &amp; B"
