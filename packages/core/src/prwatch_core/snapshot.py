"""Project raw Azure DevOps pull request records into PRSnapshot."""

from __future__ import annotations

from datetime import datetime

from prwatch_core.models import PRSnapshot


def build_snapshot(
    pr: dict,
    organization: str,
    project: str,
    user_id: str,
    status_checks: dict[str, str],
    seen_at: datetime,
) -> PRSnapshot:
    """Normalise one raw PR plus its reduced status checks.

    ``status_checks`` is the context → state map from latest_status_by_context.
    Reviewers listed twice keep their last entry.
    """
    reviewer_votes: dict[str, int] = {}
    reviewer_names: dict[str, str] = {}
    reviewers = pr.get("reviewers") or []
    for r in reviewers:
        reviewer_votes[r["id"]] = int(r.get("vote", 0))
        reviewer_names[r["id"]] = r.get("displayName", "")

    created_by = pr.get("createdBy") or {}
    repository = pr.get("repository") or {}
    source_commit = pr.get("lastMergeSourceCommit") or {}

    return PRSnapshot(
        organization=organization,
        project=project,
        repository_id=repository.get("id", ""),
        repository_name=repository.get("name", ""),
        pull_request_id=int(pr["pullRequestId"]),
        title=pr.get("title", ""),
        created_by_name=created_by.get("displayName", ""),
        created_by_image_url=created_by.get("imageUrl"),
        creation_date=pr.get("creationDate", ""),
        source_ref_name=pr.get("sourceRefName", ""),
        target_ref_name=pr.get("targetRefName", ""),
        is_draft=bool(pr.get("isDraft", False)),
        merge_status=pr.get("mergeStatus"),
        last_merge_source_commit_id=source_commit.get("commitId"),
        reviewer_votes=reviewer_votes,
        reviewer_names=reviewer_names,
        status_checks=dict(status_checks),
        is_author=created_by.get("id") == user_id,
        is_reviewer=any(r["id"] == user_id for r in reviewers),
        last_seen_at=seen_at,
    )
