"""Command line tools for inspecting and editing stored settings."""

from __future__ import annotations

import json
import re
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import BaseConfig
from .exceptions import SettingsError
from .logging_config import get_logger, setup_logging
from .services.registry import SettingsRegistry
from .setting_types import SettingType

logger = get_logger("cli")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def cast_argument(raw: str, setting_type: SettingType | str) -> Any:
    """Convert a command-line string to the value stored for ``setting_type``."""

    kind = SettingType.parse(setting_type)
    if kind is SettingType.BOOLEAN:
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if kind is SettingType.INTEGER:
        match = _LEADING_INT.match(raw)
        return int(match.group(1)) if match else 0
    if kind is SettingType.ARRAY:
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = None
        return decoded if isinstance(decoded, (list, dict)) else [raw]
    return raw


def _truncate(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _format_value(value: Any, setting_type: SettingType) -> str:
    if value is None:
        return "null"
    if setting_type is SettingType.ARRAY:
        return json.dumps(value, ensure_ascii=False)
    if setting_type is SettingType.BOOLEAN:
        return "true" if value else "false"
    return str(value)


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Print a one-line error and exit 1 for anything raised inside."""
    try:
        yield
    except (click.exceptions.Exit, click.Abort, click.ClickException):
        raise
    except SettingsError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)
    except Exception as exc:
        logger.debug("Command failed", exc_info=True)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.option("--database-url", default=None, help="Override SETTINGS_DATABASE_URL.")
@click.pass_context
def cli(ctx: click.Context, database_url: Optional[str]) -> None:
    """Inspect and edit stored settings."""

    if ctx.obj is not None:
        return
    with _reported_errors():
        config = BaseConfig()
        if database_url:
            config.DATABASE_URL = database_url
        setup_logging(config)
        ctx.obj = SettingsRegistry.from_config(config)


@cli.command("list")
@click.option("--scope", default=None, help="Only show settings with this scope.")
@click.pass_obj
def list_settings(registry: SettingsRegistry, scope: Optional[str]) -> None:
    """List settings as a table."""

    with _reported_errors():
        records = registry.list_settings(scope)

    if not records:
        click.echo("No settings found.")
        return

    table = Table()
    for header in ("Key", "Value", "Type", "Scope", "Editable", "Description"):
        table.add_column(header)
    for record in records:
        table.add_row(
            Text(record.key),
            Text(_format_value(record.value, record.type)),
            Text(record.type.value),
            Text(record.scope or "-"),
            "Yes" if record.editable else "No",
            Text(_truncate(record.description or "-")),
        )
    Console(highlight=False, width=None if sys.stdout.isatty() else 200).print(table)


@cli.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--type", "type_name", default="string", show_default=True, help="Type for new settings.")
@click.option("--scope", default=None)
@click.option("--rules", default=None, help="Validation rules, e.g. 'nullable|integer'.")
@click.option("--description", default=None)
@click.pass_obj
def set_setting(
    registry: SettingsRegistry,
    key: str,
    value: str,
    type_name: str,
    scope: Optional[str],
    rules: Optional[str],
    description: Optional[str],
) -> None:
    """Create KEY or update its VALUE."""

    with _reported_errors():
        existing = registry.all_settings().get(key)
        if existing is not None:
            registry.set_value(key, cast_argument(value, existing.type))
            click.echo(f"Setting '{key}' updated successfully.")
            return
        registry.create(
            key,
            cast_argument(value, type_name),
            type=type_name,
            scope=scope,
            rules=rules,
            description=description,
        )
        click.echo(f"Setting '{key}' created successfully.")


@cli.command("remove")
@click.argument("key")
@click.option("--force", is_flag=True, default=False, help="Skip confirmation.")
@click.pass_obj
def remove_setting(registry: SettingsRegistry, key: str, force: bool) -> None:
    """Remove KEY."""

    with _reported_errors():
        if not registry.has(key):
            click.echo(f"Error: Setting '{key}' does not exist.", err=True)
            sys.exit(1)
        if not force and not click.confirm(f"Are you sure you want to remove setting '{key}'?"):
            click.echo("Operation cancelled.")
            return
        registry.remove(key)
        click.echo(f"Setting '{key}' removed successfully.")


@cli.command("cache:flush")
@click.pass_obj
def flush_cache(registry: SettingsRegistry) -> None:
    """Flush the settings cache."""

    with _reported_errors():
        registry.flush_cache()
        click.echo("Settings cache flushed successfully.")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
