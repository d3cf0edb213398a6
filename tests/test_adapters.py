"""Tests for the async SQL adapter.

The SQLAlchemy engine is replaced with an in-file fake, so no database
or driver is needed.
"""

from contextlib import asynccontextmanager
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from dbtools.adapters import sql
from dbtools.adapters.base import Cell
from dbtools.adapters.sql import AsyncSqlAdapter, create_async_engine_pooled, normalize_url
from dbtools.schema.ddl import Dialect


class _FakeConnection:
    def __init__(self, engine: "_FakeEngine") -> None:
        self.engine = engine

    async def exec_driver_sql(self, statement: str) -> None:
        self.engine.statements.append(statement)

    async def execute(self, query):
        return _ScalarResult(1)


class _ScalarResult:
    def __init__(self, value) -> None:
        self.value = value

    def scalar(self):
        return self.value


class _FakeEngine:
    def __init__(self) -> None:
        self.statements: list[str] = []
        self.disposed = False
        self.connect_errors: list[Exception] = []
        self.connects = 0

    @asynccontextmanager
    async def begin(self):
        yield _FakeConnection(self)

    @asynccontextmanager
    async def connect(self):
        self.connects += 1
        if self.connect_errors:
            raise self.connect_errors.pop(0)
        yield _FakeConnection(self)

    async def dispose(self) -> None:
        self.disposed = True


@pytest.fixture
def engine(monkeypatch: pytest.MonkeyPatch) -> _FakeEngine:
    fake = _FakeEngine()
    monkeypatch.setattr(sql, "create_async_engine_pooled", lambda url, **kw: fake)
    return fake


class TestNormalizeUrl:
    """Test driver selection from URL schemes."""

    def test_mysql(self) -> None:
        """mysql:// uses aiomysql."""
        assert normalize_url("mysql://u:p@h:3306/db") == "mysql+aiomysql://u:p@h:3306/db"

    def test_mssql(self) -> None:
        """mssql:// uses aioodbc."""
        assert normalize_url("mssql://u:p@h/db") == "mssql+aioodbc://u:p@h/db"

    def test_explicit_driver_kept(self) -> None:
        """URLs that already name a driver are unchanged."""
        assert normalize_url("mysql+asyncmy://h/db") == "mysql+asyncmy://h/db"


class TestCreateAsyncEnginePooled:
    """Test engine pool defaults."""

    def test_defaults_and_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Pool defaults are applied and caller kwargs win."""
        captured: dict[str, Any] = {}

        def fake_create(url: str, **kwargs: Any) -> str:
            captured["url"] = url
            captured.update(kwargs)
            return "engine"

        monkeypatch.setattr(sql, "create_async_engine", fake_create)

        assert create_async_engine_pooled("mysql+aiomysql://h/db", pool_size=2) == "engine"
        assert captured["url"] == "mysql+aiomysql://h/db"
        assert captured["pool_size"] == 2
        assert captured["max_overflow"] == 10
        assert captured["pool_pre_ping"] is True
        assert captured["pool_recycle"] == 300


class TestSelectSql:
    """Test row query construction per dialect."""

    def test_all_columns(self, engine: _FakeEngine) -> None:
        """No column list selects everything."""
        adapter = AsyncSqlAdapter("mysql://h/db", Dialect.MYSQL)
        assert adapter._select_sql("customer", None, None) == "SELECT * FROM customer;"

    def test_column_list(self, engine: _FakeEngine) -> None:
        """Columns are selected in the given order."""
        adapter = AsyncSqlAdapter("mysql://h/db", Dialect.MYSQL)
        assert adapter._select_sql("customer", ["id", "name"], None) == (
            "SELECT id, name FROM customer;"
        )

    def test_mysql_limit(self, engine: _FakeEngine) -> None:
        """MySQL limits with LIMIT."""
        adapter = AsyncSqlAdapter("mysql://h/db", Dialect.MYSQL)
        assert adapter._select_sql("t", None, 1) == "SELECT * FROM t LIMIT 1;"

    def test_azure_top(self, engine: _FakeEngine) -> None:
        """Azure limits with TOP."""
        adapter = AsyncSqlAdapter("mssql://h/db", Dialect.AZURE)
        assert adapter._select_sql("t", ["id"], 1) == "SELECT TOP 1 id FROM t;"


class TestExecute:
    """Test statement execution."""

    async def test_semicolon_appended(self, engine: _FakeEngine) -> None:
        """A missing terminator is added."""
        adapter = AsyncSqlAdapter("mysql://h/db")
        await adapter.execute("  CREATE DATABASE shop  ")
        assert engine.statements == ["CREATE DATABASE shop;"]

    async def test_statement_passed_verbatim(self, engine: _FakeEngine) -> None:
        """Literals with colons are not treated as bind parameters."""
        adapter = AsyncSqlAdapter("mysql://h/db")
        await adapter.execute("INSERT INTO t (at) VALUES ('10:20:30');")
        assert engine.statements == ["INSERT INTO t (at) VALUES ('10:20:30');"]

    async def test_close_disposes_engine(self, engine: _FakeEngine) -> None:
        """close() releases the pool."""
        adapter = AsyncSqlAdapter("mysql://h/db")
        await adapter.close()
        assert engine.disposed is True


class TestHasContent:
    """Test the non-empty table check."""

    async def test_non_empty(self, engine: _FakeEngine) -> None:
        """One row is enough."""
        adapter = AsyncSqlAdapter("mysql://h/db")
        calls = []

        async def fetch_rows(table, columns=None, limit=None):
            calls.append((table, limit))
            yield [Cell("id", 1, False)]
            yield [Cell("id", 2, False)]

        adapter.fetch_rows = fetch_rows
        assert await adapter.has_content("customer") is True
        assert calls == [("customer", 1)]

    async def test_empty(self, engine: _FakeEngine) -> None:
        """No rows means no content."""
        adapter = AsyncSqlAdapter("mysql://h/db")

        async def fetch_rows(table, columns=None, limit=None):
            for row in []:
                yield row

        adapter.fetch_rows = fetch_rows
        assert await adapter.has_content("customer") is False


def _timeout() -> OperationalError:
    return OperationalError(
        "SELECT 1", None, Exception("[HYT00] Connection Timeout Expired")
    )


class TestWaitUntilAvailable:
    """Test retrying a paused database."""

    async def test_connects_first_time(self, engine: _FakeEngine) -> None:
        """A live database needs one attempt."""
        adapter = AsyncSqlAdapter("mssql://h/db", Dialect.AZURE)
        await adapter.wait_until_available(delay=0)
        assert engine.connects == 1

    async def test_retries_timeouts(
        self, engine: _FakeEngine, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Timeouts are retried with a growing wait."""
        engine.connect_errors = [_timeout(), _timeout()]
        adapter = AsyncSqlAdapter("mssql://h/db", Dialect.AZURE)

        with caplog.at_level("WARNING", logger="dbtools.adapters.sql"):
            await adapter.wait_until_available(attempts=3, delay=0.01)

        assert engine.connects == 3
        messages = [r.getMessage() for r in caplog.records]
        assert len(messages) == 2
        assert "retry in 0.01 seconds" in messages[0]
        assert "retry in 0.02 seconds" in messages[1]

    async def test_gives_up_after_last_attempt(self, engine: _FakeEngine) -> None:
        """The last timeout is raised."""
        engine.connect_errors = [_timeout(), _timeout(), _timeout()]
        adapter = AsyncSqlAdapter("mssql://h/db", Dialect.AZURE)

        with pytest.raises(OperationalError, match="Connection Timeout Expired"):
            await adapter.wait_until_available(attempts=3, delay=0)
        assert engine.connects == 3

    async def test_other_errors_not_retried(self, engine: _FakeEngine) -> None:
        """Errors other than a timeout fail at once."""
        engine.connect_errors = [
            OperationalError("SELECT 1", None, Exception("Login failed for user"))
        ]
        adapter = AsyncSqlAdapter("mssql://h/db", Dialect.AZURE)

        with pytest.raises(OperationalError, match="Login failed"):
            await adapter.wait_until_available(delay=0)
        assert engine.connects == 1
