"""Pydantic models for the dbtools configuration file."""

from pydantic import BaseModel, Field

from dbtools.schema.ddl import Dialect


class ServerProfile(BaseModel):
    """Database server from dbtools.toml."""

    url: str  # server URL; the database part is filled in per action
    dialect: str = "mysql"  # "azure" selects MSSQL, anything else MySQL
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution

    @property
    def sql_dialect(self) -> Dialect:
        return Dialect.from_name(self.dialect)


class ToolsConfig(BaseModel):
    """Complete configuration from dbtools.toml."""

    servers: dict[str, ServerProfile] = Field(default_factory=dict)
    repository: str = "repository"  # directory holding .dbd definitions and backups
