"""
Command-line interface for schemaguard.
"""

import sys
from functools import wraps
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .access.gate import Caller
from .config import SchemaGuardConfig, SettingsStoreConfig, configure_logging
from .exceptions import ConfigurationError, SchemaGuardError
from .manager import SchemaManager


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SchemaGuardError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {e}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


def _load_config(path: Optional[str]) -> SchemaGuardConfig:
    if path:
        return SchemaGuardConfig.from_yaml(path)
    return SchemaGuardConfig()


def _open_manager(ctx: click.Context) -> SchemaManager:
    config = _load_config(ctx.obj.get("config"))
    if ctx.obj.get("debug"):
        config.logging.level = "DEBUG"
    configure_logging(config.logging)
    return SchemaManager.from_config(config)


def _caller(ctx: click.Context) -> Caller:
    # The operator running the CLI is an administrator; --as picks the whitelisted identity
    return Caller(email=ctx.obj.get("as_email"), is_admin=True)


def _yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "no"


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="SCHEMAGUARD_CONFIG",
    help="Configuration file path (defaults to SCHEMAGUARD_* environment variables)",
)
@click.option(
    "--as",
    "as_email",
    envvar="SCHEMAGUARD_AS",
    help="Email to act as; checked against the viewer whitelist",
)
@click.pass_context
def main(ctx, debug, config, as_email):
    """schemaguard: Guarded MySQL schema management."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config"] = config
    ctx.obj["as_email"] = as_email


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="schemaguard.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new schemaguard configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    config = _create_default_config()
    config.to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Set SCHEMAGUARD_DATABASE_URL or edit the database section")
    console.print(f"2. Run: schemaguard -c {output} validate-config")
    console.print(f"3. Run: schemaguard -c {output} settings initialize")
    console.print(f"4. Run: schemaguard -c {output} settings add-email you@example.com")


@main.command()
@click.pass_context
@handle_errors
def validate_config(ctx):
    """Validate the configuration."""
    path = ctx.obj.get("config")
    console.print(f"Validating configuration: {path or 'environment'}")

    try:
        config = _load_config(path)
        config.validate_config()
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        sys.exit(1)

    console.print("[green]✓[/green] Configuration is valid")
    _display_config_summary(config)


@main.command()
@click.pass_context
@handle_errors
def tables(ctx):
    """List tables with their lock and core flags."""
    with _open_manager(ctx) as manager:
        summaries = manager.bind(_caller(ctx)).tables.list().unwrap()

    table = Table(title="Tables")
    table.add_column("Name", style="cyan")
    table.add_column("Columns", justify="right")
    table.add_column("Rows", justify="right")
    table.add_column("Locked")
    table.add_column("Core")
    for summary in summaries:
        table.add_row(
            summary.name,
            str(summary.columns),
            f"{summary.rows:,}",
            _yes_no(summary.is_locked),
            _yes_no(summary.is_core),
        )
    console.print(table)


@main.command()
@click.argument("table_name")
@click.pass_context
@handle_errors
def describe(ctx, table_name: str):
    """Show the column structure of a table."""
    with _open_manager(ctx) as manager:
        detail = manager.bind(_caller(ctx)).tables.get(table_name).unwrap()

    console.print(
        f"[bold]{detail.name}[/bold]: {detail.columns} columns, {detail.rows:,} rows"
        f"{' [yellow](locked)[/yellow]' if detail.is_locked else ''}"
        f"{' [magenta](core)[/magenta]' if detail.is_core else ''}"
    )
    table = Table()
    table.add_column("Column", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Null")
    table.add_column("Key")
    table.add_column("Default")
    table.add_column("Extra")
    for column in detail.structure:
        table.add_row(
            column.name,
            column.type,
            "YES" if column.nullable else "NO",
            column.key,
            "" if column.default is None else str(column.default),
            column.extra,
        )
    console.print(table)


@main.command()
@click.argument("table_name")
@click.pass_context
@handle_errors
def indexes(ctx, table_name: str):
    """List the indexes of a table."""
    with _open_manager(ctx) as manager:
        result = manager.bind(_caller(ctx)).indexes.list(table_name).unwrap()

    table = Table(title=f"Indexes on {table_name}")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Columns", style="green")
    for index in result:
        table.add_row(index.name, index.kind.value, ", ".join(index.columns))
    console.print(table)


@main.command()
@click.argument("table_name")
@click.pass_context
@handle_errors
def relations(ctx, table_name: str):
    """List the foreign keys of a table."""
    with _open_manager(ctx) as manager:
        result = manager.bind(_caller(ctx)).relations.list(table_name).unwrap()

    table = Table(title=f"Foreign keys on {table_name}")
    table.add_column("Name", style="cyan")
    table.add_column("Column", style="green")
    table.add_column("References", style="magenta")
    table.add_column("On delete")
    table.add_column("On update")
    for key in result:
        table.add_row(
            key.name,
            key.column,
            f"{key.referenced_table}.{key.referenced_column}",
            key.on_delete.value,
            key.on_update.value,
        )
    console.print(table)


@main.command()
@click.argument("table_name")
@click.option("--limit", "-n", type=int, default=None, help="Rows per page")
@click.option("--offset", type=int, default=0, help="Rows to skip")
@click.pass_context
@handle_errors
def preview(ctx, table_name: str, limit: Optional[int], offset: int):
    """Show a page of rows from a table."""
    with _open_manager(ctx) as manager:
        page = manager.bind(_caller(ctx)).data.preview(table_name, limit, offset).unwrap()

    table = Table(title=f"{table_name} ({page.total:,} rows)")
    for column in page.columns:
        table.add_column(column)
    for row in page.rows:
        table.add_row(*["NULL" if row.get(c) is None else str(row.get(c)) for c in page.columns])
    console.print(table)


@main.command()
@click.argument("table_name")
@click.pass_context
@handle_errors
def lock(ctx, table_name: str):
    """Lock a table against schema changes."""
    with _open_manager(ctx) as manager:
        manager.bind(_caller(ctx)).tables.lock(table_name).unwrap()
    console.print(f"[green]✓[/green] Locked {table_name}")


@main.command()
@click.argument("table_name")
@click.pass_context
@handle_errors
def unlock(ctx, table_name: str):
    """Unlock a table."""
    with _open_manager(ctx) as manager:
        manager.bind(_caller(ctx)).tables.unlock(table_name).unwrap()
    console.print(f"[green]✓[/green] Unlocked {table_name}")


@main.group()
def settings():
    """Manage access settings."""


@settings.command("show")
@click.pass_context
@handle_errors
def settings_show(ctx):
    """Show the current access settings."""
    with _open_manager(ctx) as manager:
        current = manager.bind(_caller(ctx)).settings.get().unwrap()
    _display_settings(current)


@settings.command("activate")
@click.pass_context
@handle_errors
def settings_activate(ctx):
    """Enable table browsing and changes."""
    with _open_manager(ctx) as manager:
        manager.bind(_caller(ctx)).settings.activate().unwrap()
    console.print("[green]✓[/green] DB Manager activated")


@settings.command("deactivate")
@click.pass_context
@handle_errors
def settings_deactivate(ctx):
    """Disable table browsing and changes."""
    with _open_manager(ctx) as manager:
        manager.bind(_caller(ctx)).settings.deactivate().unwrap()
    console.print("[yellow]DB Manager deactivated[/yellow]")


@settings.command("add-email")
@click.argument("email")
@click.pass_context
@handle_errors
def settings_add_email(ctx, email: str):
    """Add an email to the viewer whitelist."""
    with _open_manager(ctx) as manager:
        current = manager.bind(_caller(ctx)).settings.add_viewer_email(email).unwrap()
    console.print(f"[green]✓[/green] Whitelist: {', '.join(current.viewer_emails)}")


@settings.command("remove-email")
@click.argument("email")
@click.pass_context
@handle_errors
def settings_remove_email(ctx, email: str):
    """Remove an email from the viewer whitelist."""
    with _open_manager(ctx) as manager:
        current = manager.bind(_caller(ctx)).settings.remove_viewer_email(email).unwrap()
    remaining = ", ".join(current.viewer_emails) or "(empty, nobody can browse tables)"
    console.print(f"[green]✓[/green] Whitelist: {remaining}")


@settings.command("initialize")
@click.pass_context
@handle_errors
def settings_initialize(ctx):
    """Create the settings record, locking every existing table."""
    with _open_manager(ctx) as manager:
        current = manager.initialize()
    console.print(f"[green]✓[/green] Settings initialized ({len(current.locked_tables)} tables locked)")


@settings.command("reset")
@click.confirmation_option(prompt="Delete the stored settings record?")
@click.pass_context
@handle_errors
def settings_reset(ctx):
    """Delete the stored settings record."""
    with _open_manager(ctx) as manager:
        manager.bind(_caller(ctx)).settings.reset().unwrap()
    console.print("[yellow]Settings record deleted[/yellow]")


def _create_default_config() -> SchemaGuardConfig:
    """Create a default configuration with examples."""
    return SchemaGuardConfig(
        database_url="${SCHEMAGUARD_DATABASE_URL}",
        settings_store=SettingsStoreConfig(backend="file", path="~/.schemaguard/settings.yaml"),
    )


def _display_config_summary(config: SchemaGuardConfig):
    """Display a summary of the configuration."""
    console.print("\n[blue]Configuration Summary[/blue]")

    connection = config.get_connection_config()
    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Database", f"{connection.user}@{connection.host}:{connection.port}/{connection.database}")
    table.add_row("Settings store", config.settings_store.backend)
    if config.settings_store.backend == "file":
        table.add_row("Settings file", config.settings_store.path)
    else:
        table.add_row("Settings table", config.settings_store.table)
    table.add_row("Table prefix", config.table_prefix or "(none)")
    table.add_row("Core tables", str(len(config.get_core_tables())))
    table.add_row("Preview limit", f"{config.preview.default_limit} (max {config.preview.max_limit})")
    table.add_row("Operation mode", config.operation_mode)
    console.print(table)


def _display_settings(current) -> None:
    table = Table(title="Access Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Enabled", _yes_no(current.enabled))
    table.add_row("Viewer emails", "\n".join(current.viewer_emails) or "(none, nobody can browse tables)")
    table.add_row("Locked tables", "\n".join(current.locked_tables) or "(none)")
    console.print(table)


if __name__ == "__main__":
    main()
