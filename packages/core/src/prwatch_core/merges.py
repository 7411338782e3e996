"""Disappearance resolver: tell a merged PR apart from one that merely vanished.

A PR that drops out of the active set may have been merged, abandoned,
deleted, or moved out of reach (repo renamed, reviewer removed). Only a direct
lookup reporting status "completed" counts as a merge; everything else is
ignored. Merges are only celebrated for the user's own PRs.
"""

from __future__ import annotations

import asyncio
import logging

from prwatch_core.ado.client import NotFoundError
from prwatch_core.config import ProjectConfig
from prwatch_core.models import ChangeEvent, ChangeType, PRSnapshot, Severity

logger = logging.getLogger(__name__)

_COMPLETED = "completed"


async def _check_merged(fetcher, project: ProjectConfig, prev: PRSnapshot, timeout: float) -> ChangeEvent | None:
    try:
        pr = await asyncio.wait_for(
            fetcher.fetch_by_id(project, prev.repository_name, prev.pull_request_id), timeout=timeout
        )
    except NotFoundError:
        # Deleted or out of reach; cannot confirm a merge.
        return None
    except asyncio.TimeoutError:
        logger.warning("Timed out verifying merge status for PR #%d in %s", prev.pull_request_id, project.slug)
        return None
    except Exception as e:
        logger.warning(
            "Could not verify merge status for PR #%d in %s (%s): %s",
            prev.pull_request_id,
            project.slug,
            type(e).__name__,
            e,
        )
        return None

    if pr.get("status") != _COMPLETED:
        return None
    return ChangeEvent(
        type=ChangeType.PR_MERGED,
        severity=Severity.LOW,
        snapshot=prev,
        description=f"🎉 PR #{prev.pull_request_id} merged!",
        details=prev.title,
    )


async def resolve_disappearances(
    previous: list[PRSnapshot],
    current: list[PRSnapshot],
    projects: list[ProjectConfig],
    fetcher,
    timeout: float = 30.0,
) -> list[ChangeEvent]:
    """Return a pr_merged event for every authored PR that vanished and was confirmed merged.

    Lookups run concurrently, one per candidate. Events keep the order of
    ``previous``.
    """
    current_keys = {s.key for s in current}
    project_by_slug = {(p.organization, p.project): p for p in projects}

    checks = []
    for prev in previous:
        if prev.key in current_keys:
            continue  # still active
        if not prev.is_author:
            continue
        project = project_by_slug.get((prev.organization, prev.project))
        if project is None:
            continue
        checks.append(_check_merged(fetcher, project, prev, timeout))

    if not checks:
        return []
    results = await asyncio.gather(*checks)
    return [event for event in results if event is not None]
