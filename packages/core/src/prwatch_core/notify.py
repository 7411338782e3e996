"""Notification consumers.

Each ChangeEvent becomes one Notification. The notification carries the PR's
full identity, repository included, so its link always opens the exact PR
rather than a project-level list.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

from rich.console import Console

from prwatch_core.models import ChangeEvent, PRKey, Severity
from prwatch_core.urls import pr_url, project_pr_list_url

logger = logging.getLogger(__name__)

_SEVERITY_STYLE = {Severity.HIGH: "red", Severity.MEDIUM: "yellow", Severity.LOW: "green"}


@dataclass
class Notification:
    key: PRKey
    repository_name: str
    title: str
    message: str
    url: str
    priority: int  # 2 for high severity, 1 otherwise
    require_interaction: bool
    severity: Severity


def build_notification(event: ChangeEvent) -> Notification:
    snap = event.snapshot
    is_high = event.severity == Severity.HIGH
    if snap.repository_name:
        url = pr_url(snap.organization, snap.project, snap.repository_name, snap.pull_request_id)
    else:
        url = project_pr_list_url(snap.organization, snap.project)
    return Notification(
        key=snap.key,
        repository_name=snap.repository_name,
        title=event.description,
        message=event.details or "",
        url=url,
        priority=2 if is_high else 1,
        require_interaction=is_high,
        severity=event.severity,
    )


class ConsoleNotifier:
    """Prints one line per event to the terminal."""

    def __init__(self, console: Console | None = None):
        self._console = console or Console()

    def notify(self, events: list[ChangeEvent]) -> list[Notification]:
        notifications = [build_notification(e) for e in events]
        for n in notifications:
            style = _SEVERITY_STYLE.get(n.severity, "white")
            marker = "!" if n.require_interaction else "•"
            self._console.print(f"[{style}]{marker} {n.title}[/{style}]  {n.message}")
            self._console.print(f"  [dim]{n.url}[/dim]")
        return notifications


class DesktopNotifier:
    """Sends OS notifications through notify-send (libnotify).

    High-severity events use critical urgency, which keeps them on screen until
    dismissed. When notify-send is missing, events are logged instead.
    """

    def __init__(self, command: str = "notify-send", app_name: str = "prwatch"):
        self._command = command
        self._app_name = app_name

    def notify(self, events: list[ChangeEvent]) -> list[Notification]:
        notifications = [build_notification(e) for e in events]
        for n in notifications:
            urgency = "critical" if n.require_interaction else "normal"
            body = f"{n.message}\n{n.url}" if n.message else n.url
            try:
                result = subprocess.run(
                    [self._command, "--app-name", self._app_name, "--urgency", urgency, n.title, body],
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=5,
                )
            except (FileNotFoundError, subprocess.TimeoutExpired) as e:
                logger.info("Desktop notification unavailable (%s): %s: %s", type(e).__name__, n.title, n.message)
                continue
            if result.returncode != 0:
                logger.warning(
                    "%s failed (exit %d): %s", self._command, result.returncode, (result.stderr or "").strip()
                )
        return notifications
