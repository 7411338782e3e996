"""Poll orchestration.

run_cycle() is the whole poll algorithm as a function of its inputs:

    (settings, previous PollState, fetcher, now) → CycleResult(events, new PollState)

Poller wraps it with the side effects — loading and saving through the store,
dispatching notifications, updating the summary indicator — and guarantees
that only one cycle runs at a time. The store is only ever written from
Poller._run_once().
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from prwatch_core.ado.client import RateLimitedError, TransportError, UnauthorizedError
from prwatch_core.ado.pull_request import latest_status_by_context
from prwatch_core.config import ProjectConfig, Settings
from prwatch_core.diff import diff_snapshots
from prwatch_core.history import has_unseen_merges, update_seen_history
from prwatch_core.merges import resolve_disappearances
from prwatch_core.models import ChangeEvent, PollState, PRSnapshot
from prwatch_core.snapshot import build_snapshot

logger = logging.getLogger(__name__)

# Failure categories reported per project.
AUTH_EXPIRED = "auth_expired"
RATE_LIMITED = "rate_limited"
TIMEOUT = "timeout"
ERROR = "error"

# A project may make several round trips (PR search, one status call per PR),
# so its overall deadline is a multiple of the per-call timeout.
PROJECT_TIMEOUT_FACTOR = 4
_STATUS_CONCURRENCY = 8


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProjectFailure:
    organization: str
    project: str
    category: str  # AUTH_EXPIRED | RATE_LIMITED | TIMEOUT | ERROR
    message: str
    retry_after: float | None = None


@dataclass
class CycleResult:
    events: list[ChangeEvent]
    state: PollState
    has_unseen_merges: bool
    failures: list[ProjectFailure] = field(default_factory=list)

    @property
    def retry_after(self) -> float | None:
        """Largest rate-limit hint any project returned this cycle, in seconds."""
        hints = [f.retry_after for f in self.failures if f.retry_after is not None]
        return max(hints) if hints else None


async def poll_project(fetcher, project: ProjectConfig, seen_at: datetime) -> list[PRSnapshot]:
    """Fetch one project's active PRs and their status checks as snapshots."""
    prs = await fetcher.fetch_active_prs(project, project.user_id)
    semaphore = asyncio.Semaphore(_STATUS_CONCURRENCY)

    async def statuses_for(pr: dict) -> list[dict]:
        async with semaphore:
            return await fetcher.fetch_statuses(project, pr["repository"]["id"], pr["pullRequestId"])

    all_statuses = await asyncio.gather(*(statuses_for(pr) for pr in prs))
    return [
        build_snapshot(
            pr,
            project.organization,
            project.project,
            project.user_id,
            latest_status_by_context(statuses),
            seen_at,
        )
        for pr, statuses in zip(prs, all_statuses)
    ]


def _classify_failure(project: ProjectConfig, exc: BaseException) -> ProjectFailure:
    if isinstance(exc, UnauthorizedError):
        logger.warning("Auth failed for %s — PAT may be expired", project.slug)
        return ProjectFailure(project.organization, project.project, AUTH_EXPIRED, str(exc))
    if isinstance(exc, RateLimitedError):
        logger.warning("Rate limited polling %s (retry after %ss)", project.slug, exc.retry_after)
        return ProjectFailure(project.organization, project.project, RATE_LIMITED, str(exc), exc.retry_after)
    if isinstance(exc, (asyncio.TimeoutError, TransportError)):
        logger.error("Poll timed out or lost connection for %s: %s", project.slug, exc)
        return ProjectFailure(project.organization, project.project, TIMEOUT, str(exc) or "timed out")
    logger.error("Poll failed for %s (%s): %s", project.slug, type(exc).__name__, exc)
    return ProjectFailure(project.organization, project.project, ERROR, str(exc))


async def poll_projects(
    fetcher, projects: list[ProjectConfig], seen_at: datetime, timeout: float
) -> tuple[list[PRSnapshot], list[ProjectFailure]]:
    """Poll every connected project concurrently; a failing project contributes nothing.

    Projects without a resolved user id are skipped before any network call.
    Snapshots keep the configured project order.
    """
    connected = [p for p in projects if p.is_connected]
    deadline = timeout * PROJECT_TIMEOUT_FACTOR
    results = await asyncio.gather(
        *(asyncio.wait_for(poll_project(fetcher, p, seen_at), timeout=deadline) for p in connected),
        return_exceptions=True,
    )

    snapshots: list[PRSnapshot] = []
    failures: list[ProjectFailure] = []
    for project, result in zip(connected, results):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            failures.append(_classify_failure(project, result))
            continue
        snapshots.extend(result)
    return snapshots, failures


async def run_cycle(settings: Settings, state: PollState, fetcher, now: datetime | None = None) -> CycleResult:
    """Run one poll cycle against ``state`` and return the events plus the state to persist.

    Does not touch storage, notifications, or the indicator.
    """
    now = now or _utcnow()
    timeout = settings.request_timeout

    snapshots, failures = await poll_projects(fetcher, settings.projects, now, timeout)

    events = diff_snapshots(state.snapshots, snapshots)
    merged = await resolve_disappearances(state.snapshots, snapshots, settings.projects, fetcher, timeout=timeout)
    events.extend(merged)

    seen_prs = update_seen_history(state.seen_prs, snapshots, merged, now)
    new_state = PollState(
        snapshots=snapshots,
        seen_prs=seen_prs,
        last_poll_at=now,
        merge_ack_at=state.merge_ack_at,
    )
    return CycleResult(
        events=events,
        state=new_state,
        has_unseen_merges=has_unseen_merges(seen_prs, state.merge_ack_at),
        failures=failures,
    )


class Poller:
    """Single-flight poll cycle runner.

    poll() starts a cycle unless one is already running, in which case the
    caller waits for the running cycle and gets its result. Two cycles never
    interleave their load and save steps.
    """

    def __init__(
        self,
        store,
        fetcher,
        load_settings: Callable[[], Settings],
        notifier=None,
        indicator=None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._fetcher = fetcher
        self._load_settings = load_settings
        self._notifier = notifier
        self._indicator = indicator
        self._clock = clock
        self._inflight: asyncio.Future | None = None

    @property
    def is_running(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def poll(self) -> CycleResult | None:
        if not self.is_running:
            task = asyncio.ensure_future(self._run_once())
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        # shield: a cancelled caller must not cancel a cycle others are waiting on.
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _run_once(self) -> CycleResult | None:
        settings = self._load_settings()
        if not settings.projects:
            logger.debug("No projects configured; skipping poll.")
            return None

        # Held from load to save; other processes share the store.
        async with self._store.lock():
            state = self._store.load_state()
            result = await run_cycle(settings, state, self._fetcher, now=self._clock())
            result.state.last_poll_at = self._clock()
            self._store.save_state(result.state.snapshots, result.state.seen_prs, result.state.last_poll_at)

        if settings.notifications_enabled and result.events and self._notifier is not None:
            try:
                # notify-send blocks; keep it off the event loop.
                await asyncio.to_thread(self._notifier.notify, result.events)
            except Exception as e:
                logger.warning("Notification dispatch failed (%s): %s", type(e).__name__, e)

        if self._indicator is not None:
            try:
                self._indicator.update(result.state.snapshots, result.has_unseen_merges)
            except Exception as e:
                logger.warning("Indicator update failed (%s): %s", type(e).__name__, e)

        logger.info(
            "Poll complete: %d PR(s), %d event(s), %d project failure(s)",
            len(result.state.snapshots),
            len(result.events),
            len(result.failures),
        )
        return result
