"""history command — display recently seen PRs from the store."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prwatch_core.history import recently_merged
from prwatch_core.models import LAST_KNOWN_MERGED

console = Console()


@click.command("history")
@click.option("--merged", "merged_only", is_flag=True, help="Only show PRs confirmed merged.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def history_cmd(ctx, merged_only: bool, limit: int):
    """Show PRs seen during the last 7 days and their last known state."""
    store = ctx.obj["store"]
    state = store.load_state()

    if merged_only:
        records = recently_merged(state.seen_prs)
    else:
        records = sorted(state.seen_prs, key=lambda r: r.last_seen_at, reverse=True)

    if not records:
        console.print("[yellow]No PRs seen in the last 7 days.[/yellow]")
        return

    # Most recent first, capped at --limit.
    records = records[:limit]

    ack_at = state.merge_ack_at
    table = Table(title="Recently seen pull requests", show_header=True, header_style="bold cyan")
    table.add_column("PR", style="bold", width=8)
    table.add_column("Title", max_width=40)
    table.add_column("Project", max_width=30)
    table.add_column("Repo", max_width=20)
    table.add_column("State", width=10)
    table.add_column("Last Seen", width=20)

    for r in records:
        if r.last_known_state == LAST_KNOWN_MERGED:
            unseen = ack_at is None or r.last_seen_at > ack_at
            state_cell = "[magenta]merged 🎉[/magenta]" if unseen else "[green]merged[/green]"
        else:
            state_cell = r.last_known_state
        table.add_row(
            f"#{r.pull_request_id}",
            r.title[:40] if r.title else "",
            f"{r.organization}/{r.project}",
            r.repository_name,
            state_cell,
            r.last_seen_at.isoformat()[:19].replace("T", " "),
        )

    console.print(table)
