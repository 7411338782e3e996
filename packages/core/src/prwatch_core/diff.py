"""Diff engine: classify what changed between two polls.

Only PRs present in both snapshot sets are compared. A PR seen for the first
time establishes a baseline and produces nothing; a PR that disappeared is the
merge resolver's business (see prwatch_core.merges).

Per PR the events come out in a fixed order:
    pipeline transitions → new push → vote changes → merge conflict
"""

from __future__ import annotations

from prwatch_core.models import (
    FAILED_STATES,
    MERGE_CONFLICTS,
    STATE_SUCCEEDED,
    ChangeEvent,
    ChangeType,
    PRSnapshot,
    Severity,
    Vote,
    vote_label,
)


def diff_snapshots(previous: list[PRSnapshot], current: list[PRSnapshot]) -> list[ChangeEvent]:
    """Compare two snapshot sets and return the transitions worth surfacing."""
    prev_map = {s.key: s for s in previous}
    events: list[ChangeEvent] = []

    for cur in current:
        prev = prev_map.get(cur.key)
        if prev is None:
            continue  # first observation, baseline only

        _detect_pipeline_changes(prev, cur, events)

        if (
            prev.last_merge_source_commit_id
            and cur.last_merge_source_commit_id
            and prev.last_merge_source_commit_id != cur.last_merge_source_commit_id
        ):
            events.append(
                ChangeEvent(
                    type=ChangeType.NEW_PUSH,
                    severity=Severity.MEDIUM,
                    snapshot=cur,
                    description=f"New push to PR #{cur.pull_request_id}",
                    details=f'Source commit changed in "{cur.title}"',
                )
            )

        _detect_vote_changes(prev, cur, events)

        if prev.merge_status != MERGE_CONFLICTS and cur.merge_status == MERGE_CONFLICTS:
            events.append(
                ChangeEvent(
                    type=ChangeType.MERGE_CONFLICT,
                    severity=Severity.HIGH,
                    snapshot=cur,
                    description=f"Merge conflict in PR #{cur.pull_request_id}",
                    details=f'"{cur.title}" now has merge conflicts',
                )
            )

    return events


def _detect_pipeline_changes(prev: PRSnapshot, cur: PRSnapshot, events: list[ChangeEvent]) -> None:
    for context, state in cur.status_checks.items():
        prev_state = prev.status_checks.get(context)
        if not prev_state:
            continue  # nothing to compare against

        if prev_state not in FAILED_STATES and state in FAILED_STATES:
            events.append(
                ChangeEvent(
                    type=ChangeType.PIPELINE_FAILED,
                    severity=Severity.HIGH,
                    snapshot=cur,
                    description=f"Pipeline failed on PR #{cur.pull_request_id}",
                    details=f"{context} → {state}",
                )
            )
        elif prev_state in FAILED_STATES and state == STATE_SUCCEEDED:
            events.append(
                ChangeEvent(
                    type=ChangeType.PIPELINE_RECOVERED,
                    severity=Severity.MEDIUM,
                    snapshot=cur,
                    description=f"Pipeline recovered on PR #{cur.pull_request_id}",
                    details=f"{context} → {STATE_SUCCEEDED}",
                )
            )


def _detect_vote_changes(prev: PRSnapshot, cur: PRSnapshot, events: list[ChangeEvent]) -> None:
    for reviewer_id, vote in cur.reviewer_votes.items():
        # 0 is a real prior vote ("No vote"); only a missing entry is skipped.
        prev_vote = prev.reviewer_votes.get(reviewer_id)
        if prev_vote is None or prev_vote == vote:
            continue

        reviewer_name = cur.reviewer_names.get(reviewer_id) or "A reviewer"
        severity = Severity.HIGH if vote == Vote.REJECTED else Severity.MEDIUM
        events.append(
            ChangeEvent(
                type=ChangeType.VOTE_CHANGED,
                severity=severity,
                snapshot=cur,
                description=f"Vote changed on PR #{cur.pull_request_id}",
                details=f"{reviewer_name}: {vote_label(vote)}",
            )
        )
