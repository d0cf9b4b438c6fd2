"""
bookpay CLI — `bookpay` command.

Commands:
  bookpay quote <price>          Price breakdown for a service on one rail
  bookpay fee <amount>           Processing fee for a charge basis
  bookpay config show            Effective settings
  bookpay config set <key> <v>   Persist a setting to ~/.bookpay/config.json
"""

import logging
from typing import Any, NoReturn

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install bookpay[cli]")

import bookpay.config as bookpay_config
from bookpay.errors import BookPayError

console = Console()


def _load_config() -> dict:
    return bookpay_config.load_config_file(bookpay_config.CONFIG_FILE)


def _save_config(cfg: dict) -> None:
    bookpay_config.save_config_file(cfg, bookpay_config.CONFIG_FILE)


def _load_settings(**overrides: Any) -> bookpay_config.Settings:
    return bookpay_config.Settings.load(bookpay_config.CONFIG_FILE, **overrides)


def _fail(e: BookPayError) -> NoReturn:
    console.print(f"[red]{e.message}[/red]")
    raise SystemExit(1)


@click.group()
@click.version_option("0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Log pricing and PSP activity to stderr")
def main(verbose: bool):
    """bookpay CLI — quote bookings and inspect payment settings."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands from separate modules
from bookpay.cli.quote import fee_cmd, quote_cmd
from bookpay.cli.config import config

main.add_command(quote_cmd)
main.add_command(fee_cmd)
main.add_command(config)


if __name__ == "__main__":
    main()
