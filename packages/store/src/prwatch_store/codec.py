"""Plain-dict (de)serialisation of poll state for the file-based stores.

Timestamps are stored as ISO-8601 strings; naive values read back are assumed
to be UTC. Missing keys fall back to empty values so older files still load.
"""

from __future__ import annotations

from datetime import datetime, timezone

from prwatch_core.models import PRSnapshot, SeenPRRecord


def dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def str_to_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def snapshot_to_dict(s: PRSnapshot) -> dict:
    return {
        "organization": s.organization,
        "project": s.project,
        "repository_id": s.repository_id,
        "repository_name": s.repository_name,
        "pull_request_id": s.pull_request_id,
        "title": s.title,
        "created_by_name": s.created_by_name,
        "created_by_image_url": s.created_by_image_url,
        "creation_date": s.creation_date,
        "source_ref_name": s.source_ref_name,
        "target_ref_name": s.target_ref_name,
        "is_draft": s.is_draft,
        "merge_status": s.merge_status,
        "last_merge_source_commit_id": s.last_merge_source_commit_id,
        "reviewer_votes": dict(s.reviewer_votes),
        "reviewer_names": dict(s.reviewer_names),
        "status_checks": dict(s.status_checks),
        "is_author": s.is_author,
        "is_reviewer": s.is_reviewer,
        "last_seen_at": dt_to_str(s.last_seen_at),
    }


def snapshot_from_dict(d: dict) -> PRSnapshot:
    return PRSnapshot(
        organization=d.get("organization", ""),
        project=d.get("project", ""),
        repository_id=d.get("repository_id", ""),
        repository_name=d.get("repository_name", ""),
        pull_request_id=int(d.get("pull_request_id", 0)),
        title=d.get("title", ""),
        created_by_name=d.get("created_by_name", ""),
        created_by_image_url=d.get("created_by_image_url"),
        creation_date=d.get("creation_date", ""),
        source_ref_name=d.get("source_ref_name", ""),
        target_ref_name=d.get("target_ref_name", ""),
        is_draft=bool(d.get("is_draft", False)),
        merge_status=d.get("merge_status"),
        last_merge_source_commit_id=d.get("last_merge_source_commit_id"),
        reviewer_votes={k: int(v) for k, v in (d.get("reviewer_votes") or {}).items()},
        reviewer_names=dict(d.get("reviewer_names") or {}),
        status_checks=dict(d.get("status_checks") or {}),
        is_author=bool(d.get("is_author", False)),
        is_reviewer=bool(d.get("is_reviewer", False)),
        last_seen_at=str_to_dt(d.get("last_seen_at")) or datetime.fromtimestamp(0, timezone.utc),
    )


def seen_to_dict(r: SeenPRRecord) -> dict:
    return {
        "organization": r.organization,
        "project": r.project,
        "repository_name": r.repository_name,
        "pull_request_id": r.pull_request_id,
        "title": r.title,
        "last_known_state": r.last_known_state,
        "last_seen_at": dt_to_str(r.last_seen_at),
    }


def seen_from_dict(d: dict) -> SeenPRRecord:
    return SeenPRRecord(
        organization=d.get("organization", ""),
        project=d.get("project", ""),
        repository_name=d.get("repository_name", ""),
        pull_request_id=int(d.get("pull_request_id", 0)),
        title=d.get("title", ""),
        last_known_state=d.get("last_known_state", "active"),
        last_seen_at=str_to_dt(d.get("last_seen_at")) or datetime.fromtimestamp(0, timezone.utc),
    )
