"""Summary indicator: PR count, attention colour, merge celebration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.console import Console

from prwatch_core.models import FAILED_STATES, MERGE_CONFLICTS, PRSnapshot

logger = logging.getLogger(__name__)

ATTENTION_COLOR = "#E53935"  # red
OK_COLOR = "#43A047"  # green


def needs_attention(snapshot: PRSnapshot) -> bool:
    """Author PRs with conflicts or a failing check, and PRs waiting on the user's review."""
    if snapshot.is_author and snapshot.merge_status == MERGE_CONFLICTS:
        return True
    if snapshot.is_author and any(v in FAILED_STATES for v in snapshot.status_checks.values()):
        return True
    if snapshot.is_reviewer and not snapshot.is_author:
        return True
    return False


def count_attention_needed(snapshots: list[PRSnapshot]) -> int:
    return sum(1 for s in snapshots if needs_attention(s))


@dataclass
class BadgeState:
    text: str
    color: str | None
    count: int
    attention: int
    celebrate: bool = False


def compute_badge(snapshots: list[PRSnapshot], show_celebration: bool = False) -> BadgeState:
    total = len(snapshots)
    attention = count_attention_needed(snapshots)
    if total == 0:
        return BadgeState(text="", color=None, count=0, attention=0, celebrate=show_celebration)
    color = ATTENTION_COLOR if attention > 0 else OK_COLOR
    return BadgeState(text=str(total), color=color, count=total, attention=attention, celebrate=show_celebration)


class ConsoleIndicator:
    """Renders the summary indicator as one status line."""

    def __init__(self, console: Console | None = None):
        self._console = console or Console()

    def update(self, snapshots: list[PRSnapshot], has_unseen_merges: bool) -> BadgeState:
        badge = compute_badge(snapshots, show_celebration=has_unseen_merges)
        if badge.count == 0:
            line = "[dim]No open pull requests.[/dim]"
        else:
            style = "red" if badge.attention else "green"
            line = f"[bold {style}]{badge.count}[/bold {style}] open PR(s), {badge.attention} need attention"
        if badge.celebrate:
            line += "  🎉 [magenta]new merges — run `prwatch ack` to dismiss[/magenta]"
        self._console.print(line)
        logger.debug("Indicator updated: %s", badge)
        return badge
