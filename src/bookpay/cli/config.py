"""CLI: bookpay config show|set"""

from typing import NoReturn

import click
from rich.console import Console
from rich.table import Table

from bookpay.config import Settings
from bookpay.errors import BookPayError, ConfigError

console = Console()

SECRET_KEYS = {"psp_secret_key"}


def _load_config() -> dict:
    from bookpay.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from bookpay.cli.main import _save_config
    _save_config(cfg)


def _load_settings() -> Settings:
    from bookpay.cli.main import _load_settings
    return _load_settings()


def _fail(e: BookPayError) -> NoReturn:
    from bookpay.cli.main import _fail
    _fail(e)


def _mask(value: str) -> str:
    return value[:7] + "…" if len(value) > 7 else "…"


@click.group()
def config():
    """Settings commands."""


@config.command("show")
def config_show():
    """Show the effective settings (defaults, config file and BOOKPAY_* env)."""
    try:
        settings = _load_settings()
    except BookPayError as e:
        _fail(e)

    table = Table(title="bookpay settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings.model_dump(mode="json").items():
        if value is None:
            shown = "[dim]unset[/dim]"
        elif key in SECRET_KEYS:
            shown = _mask(str(value))
        else:
            shown = str(value)
        table.add_row(key, shown)
    console.print(table)


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Persist KEY=VALUE to the config file."""
    if key not in Settings.model_fields:
        _fail(ConfigError(f"Unknown setting: {key}"))
    try:
        cfg = _load_config()
        cfg[key] = value
        checked = Settings(**cfg)
    except BookPayError as e:
        _fail(e)
    except ValueError as e:
        _fail(ConfigError(f"Invalid value for {key}: {e}"))
    cfg[key] = checked.model_dump(mode="json")[key]
    _save_config(cfg)
    shown = _mask(value) if key in SECRET_KEYS else cfg[key]
    console.print(f"[green]{key} = {shown}[/green]")
