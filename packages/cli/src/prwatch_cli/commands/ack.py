"""ack command — acknowledge merges so the celebration indicator clears."""

from __future__ import annotations

from datetime import datetime, timezone

import click
from rich.console import Console

from prwatch_core.history import has_unseen_merges
from prwatch_store.locking import LockTimeout

console = Console()


@click.command("ack")
@click.pass_context
def ack_cmd(ctx):
    """Mark every merge seen so far as acknowledged."""
    store = ctx.obj["store"]
    # Waits for a running poll cycle so the acknowledgment covers its merges.
    try:
        with store.lock():
            state = store.load_state()
            if not has_unseen_merges(state.seen_prs, state.merge_ack_at):
                console.print("[dim]No new merges to acknowledge.[/dim]")
                return
            store.set_merge_ack_at(datetime.now(timezone.utc))
    except LockTimeout as e:
        raise click.ClickException(f"Another prwatch process is still polling: {e}")
    console.print("[green]Merges acknowledged.[/green]")
