from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from urllib.parse import quote

from prwatch_core.ado.client import AzureDevOpsClient


async def _search_active(client: AzureDevOpsClient, project: str, criterion: str, user_id: str) -> list[dict]:
    response = await client.get_json(
        f"{quote(project)}/_apis/git/pullrequests",
        params={"searchCriteria.status": "active", f"searchCriteria.{criterion}": user_id},
    )
    return response.get("value", [])


async def fetch_active_prs(client: AzureDevOpsClient, project: str, user_id: str) -> list[dict]:
    """Return active PRs the user created or is reviewing, created ones first, without duplicates."""
    created, reviewing = await asyncio.gather(
        _search_active(client, project, "creatorId", user_id),
        _search_active(client, project, "reviewerId", user_id),
    )

    seen: set[int] = set()
    result = []
    for pr in [*created, *reviewing]:
        pr_id = pr["pullRequestId"]
        if pr_id not in seen:
            seen.add(pr_id)
            result.append(pr)
    return result


async def fetch_pr_by_id(client: AzureDevOpsClient, project: str, repository_name: str, pr_id: int) -> dict:
    """Look up one PR directly; raises NotFoundError when it no longer exists."""
    return await client.get_json(
        f"{quote(project)}/_apis/git/repositories/{quote(repository_name, safe='')}/pullRequests/{pr_id}"
    )


async def fetch_pr_statuses(client: AzureDevOpsClient, project: str, repository_id: str, pr_id: int) -> list[dict]:
    response = await client.get_json(
        f"{quote(project)}/_apis/git/repositories/{repository_id}/pullRequests/{pr_id}/statuses"
    )
    return response.get("value", [])


def _parse_date(value: str) -> datetime | None:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Offset-less timestamps are UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _is_newer(candidate: str, existing: str) -> bool:
    a, b = _parse_date(candidate), _parse_date(existing)
    if a is not None and b is not None:
        return a > b
    return candidate > existing


def status_context_key(status: dict) -> str:
    context = status.get("context") or {}
    name = context.get("name", "")
    genre = context.get("genre")
    return f"{genre}/{name}" if genre else name


def latest_status_by_context(statuses: list[dict]) -> dict[str, str]:
    """Reduce a status list to the latest state per context.

    Pipeline re-runs post a new status for the same context, so several records
    can share one key. The record with the latest updatedDate (creationDate when
    never updated) wins; on an exact tie the first one seen is kept.
    """
    result: dict[str, str] = {}
    latest_date: dict[str, str] = {}

    for s in statuses:
        key = status_context_key(s)
        date = s.get("updatedDate") or s.get("creationDate") or ""
        existing = latest_date.get(key)
        if existing is None or _is_newer(date, existing):
            latest_date[key] = date
            result[key] = s.get("state", "notSet")

    return result
