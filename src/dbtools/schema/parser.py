"""Database definition (``.dbd``) parser.

A definition is a line-oriented text file, one statement per line:

    DATABASE shop
    TABLE customer
      id        INT           IDENTITY
      name      VARCHAR(100)  NOT NULL
      managerId INT           FKEY employee(id) NULL
    END

Keywords and column modifiers are case-insensitive and blank lines are
ignored.  Parsing is fail-fast: the first error is logged with the
offending statement and the whole load fails.  Callers receive a
``DefinitionLoadResult`` that holds either a complete ``Database`` or a
``DefinitionError``, never a partially built model.

Usage:
    from dbtools.schema.parser import load_definition, parse_definition

    result = load_definition("repository/shop.dbd")
    if result.success:
        database = result.database
    else:
        print(result.error)
"""

import logging
from enum import Enum
from pathlib import Path

from dbtools.schema.models import (
    Column,
    Database,
    DefinitionError,
    DefinitionLoadResult,
    Table,
    ValueKind,
    value_kind,
)

logger = logging.getLogger(__name__)

DEFINITION_SUFFIX = ".dbd"


class DefinitionSyntaxError(Exception):
    """Raised inside the parser for the first fatal error in a definition."""

    def __init__(self, error: DefinitionError) -> None:
        super().__init__(error.message)
        self.error = error


class ParserState(Enum):
    EXPECT_DATABASE = "expect_database"
    EXPECT_TABLE_OR_END = "expect_table_or_end"
    IN_TABLE = "in_table"


def tokenize(line: str) -> list[str]:
    """Split a definition line into whitespace-delimited words.

    Example:
        >>> tokenize("  name VARCHAR(100)   NOT NULL ")
        ['name', 'VARCHAR(100)', 'NOT', 'NULL']
    """
    return line.split()


class DefinitionParser:
    """State machine that turns definition lines into a ``Database``.

    States move ``EXPECT_DATABASE -> EXPECT_TABLE_OR_END -> IN_TABLE`` and
    back to ``EXPECT_TABLE_OR_END`` on each table's ``END``.
    """

    def __init__(self, source: str = "<definition>") -> None:
        self._source = source
        self._state = ParserState.EXPECT_DATABASE
        self._database_name: str | None = None
        self._tables: list[Table] = []
        self._table_name: str | None = None
        self._columns: list[Column] = []
        self._line_number = 0
        self._statement = ""

    def parse(self, text: str) -> Database:
        """Parse a complete definition.

        Raises:
            DefinitionSyntaxError: On the first syntax or invariant error.
        """
        for line_number, line in enumerate(text.splitlines(), start=1):
            self.feed(line, line_number)
        return self.finish()

    def feed(self, line: str, line_number: int) -> None:
        """Consume one line of the definition."""
        words = tokenize(line)
        if not words:
            return

        self._line_number = line_number
        self._statement = line.strip()

        if self._state is ParserState.EXPECT_DATABASE:
            self._parse_database(words)
        elif self._state is ParserState.EXPECT_TABLE_OR_END:
            self._parse_table(words)
        else:
            self._parse_table_body(words)

    def finish(self) -> Database:
        """Close the parse and return the database definition."""
        if self._state is ParserState.EXPECT_DATABASE:
            self._fail("syntax", f"Missing DATABASE statement in {self._source}")
        if self._state is ParserState.IN_TABLE:
            self._fail(
                "syntax",
                f"TABLE {self._table_name} in {self._source} has no END statement",
            )
        return Database(name=self._database_name, tables=tuple(self._tables))

    # ------------------------------------------------------------------
    # Statement handlers
    # ------------------------------------------------------------------

    def _parse_database(self, words: list[str]) -> None:
        if words[0].upper() != "DATABASE":
            self._fail(
                "syntax",
                f"Missing DATABASE statement in first line of {self._source}",
            )
        if len(words) != 2:
            self._fail(
                "syntax",
                f"DATABASE statement in {self._source} either missing database "
                f"name or has too many values",
            )
        self._database_name = words[1]
        self._state = ParserState.EXPECT_TABLE_OR_END

    def _parse_table(self, words: list[str]) -> None:
        if words[0].upper() != "TABLE":
            self._fail("syntax", f"Missing TABLE statement in {self._source}")
        if len(words) != 2:
            self._fail(
                "syntax",
                f"TABLE statement in {self._source} either missing table name "
                f"or has too many values",
            )
        name = words[1]
        if any(t.name.lower() == name.lower() for t in self._tables):
            self._fail("invariant", f"Duplicate table {name} in {self._source}")

        self._table_name = name
        self._columns = []
        self._state = ParserState.IN_TABLE

    def _parse_table_body(self, words: list[str]) -> None:
        if len(words) == 1:
            if words[0].upper() != "END":
                self._fail(
                    "syntax",
                    f"Table definition entry with just one word, and it isn't "
                    f"END, in {self._source}",
                )
            self._close_table()
            return

        column = self._parse_column(words)

        if any(c.name.lower() == column.name.lower() for c in self._columns):
            self._fail(
                "invariant",
                f"Duplicate column {column.name} in table {self._table_name} "
                f"in {self._source}",
            )
        if column.is_identity and any(c.is_identity for c in self._columns):
            self._fail(
                "invariant",
                f"Table {self._table_name} has more than one identity column "
                f"in {self._source}",
            )
        self._columns.append(column)

    def _close_table(self) -> None:
        if not self._columns:
            self._fail(
                "syntax",
                f"TABLE {self._table_name} in {self._source} has no columns",
            )
        self._tables.append(Table(name=self._table_name, columns=tuple(self._columns)))
        self._table_name = None
        self._columns = []
        self._state = ParserState.EXPECT_TABLE_OR_END

    def _parse_column(self, words: list[str]) -> Column:
        """Parse ``<name> <type> [modifiers]*`` into a ``Column``."""
        name, column_type = words[0], words[1]
        is_identity = False
        is_nullable = True
        is_index = False
        foreign_key: str | None = None

        i = 2
        while i < len(words):
            modifier = words[i].upper()
            if modifier == "IDENTITY":
                is_identity = True
                is_nullable = False
            elif modifier == "INDEX":
                is_index = True
            elif modifier == "NULL":
                is_nullable = True
            elif modifier == "NOT":
                if i + 1 >= len(words) or words[i + 1].upper() != "NULL":
                    self._fail(
                        "syntax",
                        f"NOT on its own without NULL in {self._source}",
                    )
                is_nullable = False
                i += 1
            elif modifier == "FKEY":
                if i + 1 >= len(words):
                    self._fail(
                        "syntax",
                        f"Missing foreign key after FKEY in {self._source}",
                    )
                i += 1
                foreign_key = words[i]
            else:
                self._fail(
                    "syntax",
                    f"Illegal column modifier {words[i]} in {self._source}",
                )
            i += 1

        if is_identity and is_index:
            self._fail(
                "invariant",
                f"Identity column cannot also be an Index in {self._source}",
            )
        if is_identity and is_nullable:
            self._fail(
                "invariant",
                f"Identity column cannot be nullable in {self._source}",
            )
        if is_identity and foreign_key is not None:
            self._fail(
                "invariant",
                f"Identity column cannot also be a foreign key in {self._source}",
            )
        if value_kind(column_type) is ValueKind.BINARY and (
            is_identity or is_index or foreign_key is not None
        ):
            self._fail(
                "invariant",
                f"BLOB column {name} cannot be a key or an index in {self._source}",
            )

        return Column(
            name=name,
            column_type=column_type,
            is_identity=is_identity,
            is_nullable=is_nullable,
            is_index=is_index,
            foreign_key=foreign_key,
        )

    def _fail(self, kind: str, message: str) -> None:
        statement = self._statement or None
        if statement:
            logger.error(f"{message}. Statement is: {statement}")
        else:
            logger.error(message)
        raise DefinitionSyntaxError(
            DefinitionError(
                kind=kind,
                message=message,
                line_number=self._line_number or None,
                statement=statement,
            )
        )


def parse_definition(text: str, source: str = "<definition>") -> DefinitionLoadResult:
    """Parse definition text into a load result.

    Args:
        text: Full definition text.
        source: Name used in error messages (usually the file name).

    Returns:
        ``DefinitionLoadResult`` with ``database`` on success, or ``error``
        describing the first fatal problem.

    Example:
        >>> result = parse_definition("DATABASE d\\nTABLE t\\n id INT IDENTITY\\nEND")
        >>> result.success, result.database.tables[0].name
        (True, 't')
    """
    parser = DefinitionParser(source)
    try:
        database = parser.parse(text)
    except DefinitionSyntaxError as e:
        return DefinitionLoadResult(success=False, error=e.error)
    return DefinitionLoadResult(success=True, database=database)


def load_definition(path: str | Path) -> DefinitionLoadResult:
    """Load a definition file.

    A missing file is reported as a ``file_missing`` error rather than
    raised, so callers can tell it apart from a broken definition.
    """
    definition = Path(path)
    if not definition.is_file():
        message = f"Definition file not found: {definition}"
        logger.error(message)
        return DefinitionLoadResult(
            success=False,
            error=DefinitionError(kind="file_missing", message=message),
        )

    text = definition.read_text(encoding="utf-8")
    return parse_definition(text, source=definition.name)


def definition_path(repository: str | Path, database: str) -> Path:
    """Path of a database's definition inside the repository."""
    return Path(repository) / f"{database}{DEFINITION_SUFFIX}"
