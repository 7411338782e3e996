"""watch command — poll on an interval until interrupted."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path

import click
from rich.console import Console

from prwatch_core.ado.fetcher import AdoFetcher
from prwatch_core.badge import ConsoleIndicator
from prwatch_core.config import load_settings
from prwatch_core.poller import Poller
from prwatch_core.scheduler import PollScheduler

console = Console()
logger = logging.getLogger(__name__)

CONFIG_CHECK_SECONDS = 5.0


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


async def watch_config(config_path: str, scheduler: PollScheduler, check_every: float = CONFIG_CHECK_SECONDS) -> None:
    """Reschedule the poll timer whenever the config file changes on disk."""
    path = Path(config_path)
    last = _mtime(path)
    while True:
        await asyncio.sleep(check_every)
        current = _mtime(path)
        if current == last:
            continue
        last = current
        try:
            settings = load_settings(config_path)
        except Exception as e:
            logger.warning("Ignoring unreadable config %s (%s): %s", config_path, type(e).__name__, e)
            continue
        console.print(f"[dim]Configuration changed; polling every {settings.poll_interval_minutes} minute(s).[/dim]")
        scheduler.reschedule(settings.poll_interval_minutes)


def _retrieve(future: asyncio.Future) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.debug("On-demand poll failed: %s", future.exception())


async def _watch(config_path: str, store, notifier) -> None:
    settings = load_settings(config_path)
    fetcher = AdoFetcher(timeout=settings.request_timeout)
    poller = Poller(
        store,
        fetcher,
        load_settings=lambda: load_settings(config_path),
        notifier=notifier,
        indicator=ConsoleIndicator(console),
    )
    scheduler = PollScheduler(poller, interval_minutes=settings.poll_interval_minutes)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGUSR1, lambda: scheduler.poll_now().add_done_callback(_retrieve))
    except (NotImplementedError, AttributeError, RuntimeError):
        logger.debug("SIGUSR1 poll-now trigger unavailable on this platform.")

    config_task = asyncio.create_task(watch_config(config_path, scheduler))
    try:
        await scheduler.run()
    finally:
        config_task.cancel()
        await fetcher.aclose()


@click.command("watch")
@click.pass_context
def watch_cmd(ctx):
    """Poll on the configured interval and notify on changes.

    Edits to the config file are picked up automatically. Send SIGUSR1 to the
    process to poll immediately.
    """
    config_path = ctx.obj["config_path"]
    settings = load_settings(config_path)
    if not settings.projects:
        console.print("[yellow]No projects configured yet — add one with `prwatch project add`.[/yellow]")

    console.print(f"[bold cyan]Watching[/bold cyan] every {settings.poll_interval_minutes} minute(s). Ctrl-C to stop.")
    try:
        asyncio.run(_watch(config_path, ctx.obj["store"], ctx.obj.get("notifier")))
    except KeyboardInterrupt:
        console.print("\nStopped.")
