"""Seen-history tracker.

Keeps a rolling record of every PR observed in the last SEEN_PR_RETENTION,
with its last known lifecycle state. The "recently merged" view and the merge
celebration indicator are both answered from these records.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from prwatch_core.models import (
    LAST_KNOWN_ACTIVE,
    LAST_KNOWN_MERGED,
    ChangeEvent,
    ChangeType,
    PRKey,
    PRSnapshot,
    SeenPRRecord,
)

SEEN_PR_RETENTION = timedelta(days=7)


def _record_for(snapshot: PRSnapshot, state: str, now: datetime) -> SeenPRRecord:
    return SeenPRRecord(
        organization=snapshot.organization,
        project=snapshot.project,
        repository_name=snapshot.repository_name,
        pull_request_id=snapshot.pull_request_id,
        title=snapshot.title,
        last_known_state=state,
        last_seen_at=now,
    )


def update_seen_history(
    previous: list[SeenPRRecord],
    snapshots: list[PRSnapshot],
    events: list[ChangeEvent],
    now: datetime,
) -> list[SeenPRRecord]:
    """Refresh history with this cycle's observations and prune expired records.

    Every current snapshot is upserted as active; every pr_merged event is then
    upserted as merged, so a merge always wins for the same identity. Records
    last seen exactly SEEN_PR_RETENTION ago are kept; anything older is dropped.
    """
    seen: dict[PRKey, SeenPRRecord] = {r.key: r for r in previous}

    for snapshot in snapshots:
        seen[snapshot.key] = _record_for(snapshot, LAST_KNOWN_ACTIVE, now)

    for event in events:
        if event.type != ChangeType.PR_MERGED:
            continue
        seen[event.snapshot.key] = _record_for(event.snapshot, LAST_KNOWN_MERGED, now)

    cutoff = now - SEEN_PR_RETENTION
    return [r for r in seen.values() if r.last_seen_at >= cutoff]


def has_unseen_merges(records: list[SeenPRRecord], ack_at: datetime | None) -> bool:
    """True when a merge was confirmed after the user last acknowledged merges."""
    for r in records:
        if r.last_known_state != LAST_KNOWN_MERGED:
            continue
        if ack_at is None or r.last_seen_at > ack_at:
            return True
    return False


def recently_merged(records: list[SeenPRRecord]) -> list[SeenPRRecord]:
    return sorted(
        (r for r in records if r.last_known_state == LAST_KNOWN_MERGED),
        key=lambda r: r.last_seen_at,
        reverse=True,
    )
