"""status command — show the open PRs recorded by the last poll."""

from __future__ import annotations

from datetime import datetime, timezone

import click
from rich.console import Console
from rich.table import Table

from prwatch_core.badge import compute_badge, needs_attention
from prwatch_core.history import has_unseen_merges
from prwatch_core.models import FAILED_STATES, MERGE_CONFLICTS, STATE_PENDING, STATE_SUCCEEDED, PRSnapshot

console = Console()


def format_last_poll(last_poll_at: datetime | None, now: datetime | None = None) -> str:
    if last_poll_at is None:
        return "Never polled"
    now = now or datetime.now(timezone.utc)
    minutes = round((now - last_poll_at).total_seconds() / 60)
    return "Just now" if minutes < 1 else f"{minutes}m ago"


def shorten_ref(ref: str) -> str:
    return ref.removeprefix("refs/heads/")


def _checks_summary(s: PRSnapshot) -> str:
    states = list(s.status_checks.values())
    if not states:
        return "[dim]—[/dim]"
    if any(v in FAILED_STATES for v in states):
        return "[red]failed[/red]"
    if any(v == STATE_PENDING for v in states):
        return "[yellow]pending[/yellow]"
    if all(v == STATE_SUCCEEDED for v in states):
        return "[green]passed[/green]"
    return "[dim]mixed[/dim]"


def sort_for_display(snapshots: list[PRSnapshot]) -> list[PRSnapshot]:
    """Attention-needed first, then newest first."""
    newest_first = sorted(snapshots, key=lambda s: s.creation_date, reverse=True)
    return sorted(newest_first, key=lambda s: 0 if needs_attention(s) else 1)


@click.command("status")
@click.pass_context
def status_cmd(ctx):
    """Show open PRs from the last poll, the ones needing attention first."""
    store = ctx.obj["store"]
    state = store.load_state()

    console.print(f"[dim]Last updated: {format_last_poll(state.last_poll_at)}[/dim]")
    if not state.snapshots:
        console.print("[yellow]No open pull requests.[/yellow]")
        return

    badge = compute_badge(state.snapshots, show_celebration=has_unseen_merges(state.seen_prs, state.merge_ack_at))

    table = Table(title=f"Open pull requests ({badge.count})", show_header=True, header_style="bold cyan")
    table.add_column("", width=1)
    table.add_column("PR", style="bold", width=8)
    table.add_column("Title", max_width=40)
    table.add_column("Repo", max_width=20)
    table.add_column("Author", max_width=20)
    table.add_column("Branch", max_width=30)
    table.add_column("Checks", width=8)
    table.add_column("Role", width=8)

    for s in sort_for_display(state.snapshots):
        marker = "[red]●[/red]" if needs_attention(s) else ""
        title = s.title
        if s.is_draft:
            title = f"[dim]Draft[/dim] {title}"
        if s.merge_status == MERGE_CONFLICTS:
            title += " [red](conflicts)[/red]"
        table.add_row(
            marker,
            f"#{s.pull_request_id}",
            title,
            s.repository_name,
            s.created_by_name,
            f"{shorten_ref(s.source_ref_name)} → {shorten_ref(s.target_ref_name)}",
            _checks_summary(s),
            "author" if s.is_author else "reviewer",
        )

    console.print(table)
    if badge.attention:
        console.print(f"[red]{badge.attention} PR(s) need your attention.[/red]")
    if badge.celebrate:
        console.print("🎉 [magenta]New merges; see `prwatch history --merged`, then `prwatch ack`.[/magenta]")
