"""Backup/restore result models.

Usage:
    from dbtools.backup.models import RowInsert, TableReport, RestoreSummary

    row = RowInsert(table="customer", pairs=(("id", "1"), ("name", "'Acme'")))
    row.to_sql()
    # "INSERT INTO customer (id,name) VALUES (1,'Acme');"
"""

from pydantic import BaseModel, ConfigDict, Field


class RowInsert(BaseModel):
    """One restored row as ordered (column, SQL literal) pairs."""

    model_config = ConfigDict(frozen=True)

    table: str
    pairs: tuple[tuple[str, str], ...]
    has_identity: bool = False  # table has an identity column

    def columns(self) -> str:
        return ",".join(name for name, _ in self.pairs)

    def values(self) -> str:
        return ",".join(literal for _, literal in self.pairs)

    def to_sql(self) -> str:
        return f"INSERT INTO {self.table} ({self.columns()}) VALUES ({self.values()});"


class TableReport(BaseModel):
    """Row count and content digest of one table."""

    table: str
    rows: int = 0
    digest: str | None = None  # None for an empty table


class RestoreSummary(BaseModel):
    """What a restore pass inserted, per table in declaration order."""

    database: str
    backup_path: str
    inserted: dict[str, int] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.inserted.values())
