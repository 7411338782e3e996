"""CLI entry point for prwatch.

Commands:
  project  — add, remove and list watched Azure DevOps projects
  poll     — run one poll cycle now and report what changed
  watch    — poll on an interval until interrupted
  status   — show the open PRs from the last poll
  history  — show recently seen and merged PRs
  ack      — acknowledge merges so the celebration indicator clears
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prwatch_cli.commands.ack import ack_cmd
from prwatch_cli.commands.history import history_cmd
from prwatch_cli.commands.poll import poll_cmd
from prwatch_cli.commands.project import project_cmd
from prwatch_cli.commands.status import status_cmd
from prwatch_cli.commands.watch import watch_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured poll-state store from .prwatch.yml settings.

    Store selection hierarchy:
      store: sqlite → SQLiteStore   (store_path, default .prwatch.db)
      store: json   → JsonFileStore (store_path, default .prwatch.json)
      store: memory → MemoryStore   (nothing persisted between runs)

    This factory lives in cli.py so neither prwatch_core nor prwatch_store
    know about the CLI config format.
    """
    store_type = config.get("store", "sqlite")

    if store_type == "memory":
        from prwatch_store.memory import MemoryStore

        return MemoryStore()

    if store_type == "json":
        from prwatch_store.json_file import JsonFileStore

        path = config.get("store_path") or ".prwatch.json"
        if path.endswith(".db"):
            path = path[: -len(".db")] + ".json"
        return JsonFileStore(path=path)

    if store_type != "sqlite":
        console.print(f"[yellow]Unknown store {store_type!r}. Falling back to sqlite.[/yellow]")

    from prwatch_store.sqlite import SQLiteStore

    return SQLiteStore(db_path=config.get("store_path") or ".prwatch.db")


def _build_notifier(config: dict):
    """Pick the notification consumer: desktop (notify-send) or console (default)."""
    from prwatch_core.notify import ConsoleNotifier, DesktopNotifier

    if config.get("notifier") == "desktop":
        return DesktopNotifier()
    return ConsoleNotifier(console)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    # httpx logs every request at INFO; keep it quiet unless debugging.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("prwatch"),
    prog_name="prwatch",
)
@click.option(
    "--config",
    "config_path",
    default=".prwatch.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRWATCH_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Watch your Azure DevOps pull requests and get told when something changes."""
    from prwatch_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.obj["notifier"] = _build_notifier(config)
    ctx.call_on_close(store.close)


main.add_command(project_cmd)
main.add_command(poll_cmd)
main.add_command(watch_cmd)
main.add_command(status_cmd)
main.add_command(history_cmd)
main.add_command(ack_cmd)
