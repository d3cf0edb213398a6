"""Database client factory.

Builds connection URLs from configured server profiles and returns
``AsyncSqlAdapter`` instances bound to one database on that server.

Usage:
    from dbtools.factory import get_adapter

    adapter = get_adapter("local", "shop")
    try:
        tables = await adapter.list_tables()
    finally:
        await adapter.close()
"""

import logging
from urllib.parse import quote

from sqlalchemy.engine import make_url

from dbtools.adapters.sql import AsyncSqlAdapter
from dbtools.config import load_config
from dbtools.config.models import ServerProfile, ToolsConfig

logger = logging.getLogger(__name__)

ALL_DATABASES = "all"


class ServerNotFoundError(Exception):
    """Raised when a server name is not in the configuration."""

    pass


def get_server(name: str, config: ToolsConfig | None = None) -> ServerProfile:
    """Look up a configured server.

    Raises:
        ServerNotFoundError: If *name* is not configured.
    """
    if config is None:
        config = load_config()

    if name not in config.servers:
        available = ", ".join(config.servers.keys()) or "(none)"
        raise ServerNotFoundError(
            f"Server '{name}' not found in config. Available: {available}"
        )
    return config.servers[name]


def resolve_url(profile: ServerProfile, database: str | None = None) -> str:
    """Connection URL for *database* on the profile's server.

    The ``[YOUR-PASSWORD]`` placeholder is replaced with the profile's
    ``db_password``.  With no database, or ``"all"``, the dialect's
    default database (``mysql`` / ``master``) is used.

    Example:
        >>> p = ServerProfile(url="mysql://root:[YOUR-PASSWORD]@db:3306", db_password="p@ss")
        >>> resolve_url(p, "shop")
        'mysql://root:p%40ss@db:3306/shop'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))

    if database is None or database.lower() == ALL_DATABASES:
        database = profile.sql_dialect.default_database

    return make_url(url).set(database=database).render_as_string(hide_password=False)


def get_adapter(
    server: str,
    database: str | None = None,
    config: ToolsConfig | None = None,
) -> AsyncSqlAdapter:
    """Create an adapter connected to *database* on *server*.

    Args:
        server: Server name from the configuration.
        database: Database name; ``None`` or ``"all"`` connects to the
            server's default database.
        config: Loaded configuration (default: ``load_config()``).

    Returns:
        ``AsyncSqlAdapter`` for the server's dialect.

    Raises:
        ServerNotFoundError: If *server* is not configured.
        FileNotFoundError: If no configuration file exists.
    """
    profile = get_server(server, config)
    url = resolve_url(profile, database)
    logger.debug(f"Connecting to {server} database {database or '(default)'}")
    return AsyncSqlAdapter(url, dialect=profile.sql_dialect)
