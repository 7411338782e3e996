"""poll command — run one poll cycle now."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console

from prwatch_core.ado.fetcher import AdoFetcher
from prwatch_core.badge import ConsoleIndicator
from prwatch_core.config import Settings, load_settings
from prwatch_core.poller import AUTH_EXPIRED, CycleResult, Poller
from prwatch_store.locking import LockTimeout

console = Console()


async def _poll_once(settings: Settings, config_path: str, store, notifier) -> CycleResult | None:
    fetcher = AdoFetcher(timeout=settings.request_timeout)
    try:
        poller = Poller(
            store,
            fetcher,
            load_settings=lambda: load_settings(config_path),
            notifier=notifier,
            indicator=ConsoleIndicator(console),
        )
        return await poller.poll()
    finally:
        await fetcher.aclose()


def print_failures(result: CycleResult) -> None:
    for f in result.failures:
        if f.category == AUTH_EXPIRED:
            console.print(f"[red]{f.organization}/{f.project}: authentication failed, the PAT may have expired.[/red]")
        else:
            console.print(f"[yellow]{f.organization}/{f.project}: {f.category} — {f.message}[/yellow]")
    if result.retry_after:
        console.print(f"[yellow]Rate limited; wait {result.retry_after:.0f}s before polling again.[/yellow]")


@click.command("poll")
@click.pass_context
def poll_cmd(ctx):
    """Poll every configured project once and report changes since the last poll.

    The first poll only records a baseline; changes are reported from the
    second poll onwards.
    """
    config_path = ctx.obj["config_path"]
    settings = load_settings(config_path)
    if not settings.projects:
        raise click.UsageError("No projects configured. Run `prwatch project add` first.")

    try:
        result = asyncio.run(_poll_once(settings, config_path, ctx.obj["store"], ctx.obj.get("notifier")))
    except LockTimeout as e:
        raise click.ClickException(f"Another prwatch process is still polling: {e}")
    if result is None:
        return

    print_failures(result)
    if not result.events:
        console.print("[dim]No changes since the last poll.[/dim]")
    elif not settings.notifications_enabled:
        console.print(f"{len(result.events)} change(s) detected (notifications are off).")
