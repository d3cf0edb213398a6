"""CLI for database definitions, DDL, backup and restore.

Usage:
    dbtools ddl repository/shop.dbd --dialect azure
    dbtools servers
    dbtools list local
    dbtools create local shop
    dbtools backup local shop
    dbtools backup local all
    dbtools restore local shop
    dbtools restore local shop shop-2024-03-01.zip
    dbtools report local shop
    dbtools check local shop
    dbtools drop local shop

Commands:
    ddl      - Print the DDL for a definition file (no database needed)
    servers  - List configured servers
    list     - List the databases on a server
    create   - Create a database and its tables from its definition
    backup   - Back up every table to a dated zip in the repository
    restore  - Restore a backup into a database with empty tables
    report   - Row count and content hash of every table
    check    - Compare live tables with the definition
    drop     - Drop a database (MySQL only)

``DATABASE`` may be ``all`` to act on every database on the server; a
failure on one database does not stop the others.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dbtools.backup.backup_restore import backup_database, restore_database
from dbtools.backup.models import TableReport
from dbtools.backup.report import report_database
from dbtools.config import load_config
from dbtools.config.models import ToolsConfig
from dbtools.factory import ALL_DATABASES, ServerNotFoundError, get_adapter, get_server
from dbtools.schema.comparator import check_database, validate_tables
from dbtools.schema.ddl import Dialect, ddl_statements, generate_ddl
from dbtools.schema.models import Database
from dbtools.schema.parser import definition_path, load_definition

logger = logging.getLogger(__name__)

console = Console()

ACTIONS = ("create", "backup", "restore", "report", "check", "drop")


# ============================================================================
# Helpers
# ============================================================================


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
        force=True,
    )


def _load_database(repository: str, database: str, action: str) -> Database | None:
    """Load ``<repository>/<database>.dbd``, printing why when it fails."""
    result = load_definition(definition_path(repository, database))
    if not result.success:
        console.print(
            f"[red]Cannot do {action} on database {database}: {result.error}[/red]"
        )
        return None
    return result.database


# ============================================================================
# Per-database actions
# ============================================================================


async def _create(config: ToolsConfig, server: str, database: Database) -> bool:
    dialect = get_server(server, config).sql_dialect

    if dialect is Dialect.MYSQL:
        admin = get_adapter(server, None, config)
        try:
            if database.name in await admin.list_databases():
                console.print(
                    f"[red]Cannot create database {database.name} - "
                    f"it is already there![/red]"
                )
                return False
            await admin.execute(f"CREATE DATABASE {database.name}")
        finally:
            await admin.close()

    # On Azure the database must already exist
    adapter = get_adapter(server, database.name, config)
    try:
        for sql in ddl_statements(database, dialect):
            await adapter.execute(sql)
    finally:
        await adapter.close()

    console.print(
        f"[bold green]v[/bold green] Created database [cyan]{database.name}[/cyan] "
        f"with {len(database.tables)} tables"
    )
    return True


async def _drop(config: ToolsConfig, server: str, database: Database) -> bool:
    if get_server(server, config).sql_dialect is not Dialect.MYSQL:
        console.print("[red]Can only use drop action on MySQL databases![/red]")
        return False

    admin = get_adapter(server, None, config)
    try:
        await admin.execute(f"DROP DATABASE {database.name}")
    finally:
        await admin.close()

    console.print(f"[bold green]v[/bold green] Dropped database [cyan]{database.name}[/cyan]")
    return True


def _print_reports(database: Database, reports: list[TableReport]) -> None:
    table = Table(
        title=f"Report for database {database.name}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Table", style="dim")
    table.add_column("Rows", justify="right")
    table.add_column("Hash")

    for report in reports:
        table.add_row(
            report.table,
            str(report.rows),
            report.digest or "[dim]empty[/dim]",
        )

    console.print(table)


async def _validated_action(
    action: str,
    config: ToolsConfig,
    server: str,
    database: Database,
    backup: str | None,
) -> bool:
    """Run an action that needs the live tables to match the definition."""
    dialect = get_server(server, config).sql_dialect
    adapter = get_adapter(server, database.name, config)
    try:
        if dialect is Dialect.AZURE:
            await adapter.wait_until_available()

        tables = await adapter.list_tables()
        if not tables:
            console.print(
                f"[red]Database {database.name} does not exist or has no tables.[/red]"
            )
            return False

        validation = validate_tables(tables, database)
        if not validation.valid:
            console.print(f"[red]{validation.format_report()}[/red]")
            return False

        if action == "backup":
            path = await backup_database(adapter, database, config.repository)
            console.print(
                f"[bold green]v[/bold green] Backed up [cyan]{database.name}[/cyan] to {path}"
            )
            return True

        if action == "restore":
            summary = await restore_database(
                adapter, database, config.repository, backup=backup, dialect=dialect
            )
            console.print(
                f"[bold green]v[/bold green] Restored {summary.total} rows into "
                f"[cyan]{database.name}[/cyan] from {summary.backup_path}"
            )
            return True

        if action == "report":
            _print_reports(database, await report_database(adapter, database))
            return True

        # check
        console.print(f"Checking database [cyan]{database.name}[/cyan]")
        result = await check_database(adapter, database)
        for notice in result.notices:
            console.print(f"[dim]{notice}[/dim]")
        for warning in result.warnings:
            console.print(f"[yellow]{warning}[/yellow]")
        style = "green" if result.valid else "yellow"
        console.print(f"[{style}]{result.summary()}[/{style}]")
        return True
    finally:
        await adapter.close()


async def _run_action(
    action: str,
    config: ToolsConfig,
    server: str,
    database_name: str,
    backup: str | None = None,
) -> bool:
    """Run *action* against one database.  Returns ``True`` on success."""
    database = _load_database(config.repository, database_name, action)
    if database is None:
        return False

    try:
        if action == "create":
            return await _create(config, server, database)
        if action == "drop":
            return await _drop(config, server, database)
        return await _validated_action(action, config, server, database, backup)
    except Exception as e:
        logger.debug(f"{action} failed for {database.name}", exc_info=True)
        console.print(
            f"[bold red]x[/bold red] {action} failed for database "
            f"[cyan]{database.name}[/cyan]: {e}"
        )
        return False


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_list(args: argparse.Namespace) -> int:
    """Async implementation for list command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = load_config(args.config)
        adapter = get_adapter(args.server, None, config)
    except (FileNotFoundError, ValueError, ServerNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        names = await adapter.list_databases()
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] Connection failed: {e}")
        return 1
    finally:
        await adapter.close()

    for name in names:
        console.print(name, highlight=False)
    return 0


async def _async_action(args: argparse.Namespace) -> int:
    """Async implementation for the per-database actions.

    Args:
        args: Parsed arguments with command, server, database, backup
            and config.

    Returns:
        0 when every database succeeded, 1 otherwise.
    """
    try:
        config = load_config(args.config)
        get_server(args.server, config)
    except (FileNotFoundError, ValueError, ServerNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if args.database.lower() != ALL_DATABASES:
        ok = await _run_action(
            args.command, config, args.server, args.database, args.backup
        )
        return 0 if ok else 1

    admin = get_adapter(args.server, None, config)
    try:
        databases = await admin.list_databases()
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] Connection failed: {e}")
        return 1
    finally:
        await admin.close()

    failures = 0
    for name in databases:
        if not definition_path(config.repository, name).exists():
            console.print(f"[dim]Skipping {name}: no definition in repository[/dim]")
            continue
        if not await _run_action(args.command, config, args.server, name):
            failures += 1

    if failures:
        console.print(
            f"\n[yellow]{args.command} failed for {failures} of "
            f"{len(databases)} databases[/yellow]"
        )
        return 1
    return 0


# ============================================================================
# Sync command wrappers (cmd_ddl, cmd_servers read local files only)
# ============================================================================


def cmd_ddl(args: argparse.Namespace) -> int:
    """Print the DDL script for a definition file.

    Reads only the local definition and makes no database calls.

    Returns:
        0 on success, 1 if the definition cannot be loaded.
    """
    result = load_definition(Path(args.file))
    if not result.success:
        console.print(f"[red]Error: {result.error}[/red]")
        return 1

    try:
        script = generate_ddl(result.database, args.dialect)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(script, markup=False, highlight=False, soft_wrap=True)
    return 0


def cmd_servers(args: argparse.Namespace) -> int:
    """List configured servers.

    Reads only the local TOML config and makes no database calls.

    Returns:
        0 on success, 1 if the config file is missing or invalid.
    """
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Database Servers", show_header=True, header_style="bold")
    table.add_column("Server")
    table.add_column("Dialect")
    table.add_column("Description")

    for name, profile in config.servers.items():
        table.add_row(name, profile.sql_dialect.value, profile.description or "")

    console.print(table)
    console.print(f"[dim]Repository:[/dim] {config.repository}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List the databases on a server.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_list(args))


def cmd_action(args: argparse.Namespace) -> int:
    """Run create/backup/restore/report/check/drop.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_action(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbtools",
        description="Database definitions, DDL, backup and restore",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to dbtools.toml (default: $DBTOOLS_CONFIG or ./dbtools.toml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # ddl command
    p_ddl = subparsers.add_parser("ddl", help="Print the DDL for a definition file")
    p_ddl.add_argument("file", help="Definition file (.dbd)")
    p_ddl.add_argument(
        "--dialect",
        default="mysql",
        help="Target dialect: azure, anything else means mysql (default: mysql)",
    )
    p_ddl.set_defaults(func=cmd_ddl)

    # servers command
    p_servers = subparsers.add_parser("servers", help="List configured servers")
    p_servers.set_defaults(func=cmd_servers)

    # list command
    p_list = subparsers.add_parser("list", help="List the databases on a server")
    p_list.add_argument("server", help="Server name from the config")
    p_list.set_defaults(func=cmd_list)

    # per-database actions
    helps = {
        "create": "Create a database and its tables from its definition",
        "backup": "Back up a database to the repository",
        "restore": "Restore a database from a backup",
        "report": "Row count and content hash of every table",
        "check": "Compare live tables with the definition",
        "drop": "Drop a database (MySQL only)",
    }
    for action in ACTIONS:
        p_action = subparsers.add_parser(action, help=helps[action])
        p_action.add_argument("server", help="Server name from the config")
        p_action.add_argument("database", help="Database name, or 'all'")
        if action == "restore":
            p_action.add_argument(
                "backup",
                nargs="?",
                default=None,
                help="Backup archive in the repository (default: latest)",
            )
        else:
            p_action.set_defaults(backup=None)
        p_action.set_defaults(func=cmd_action)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
