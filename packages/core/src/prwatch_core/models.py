"""Pull request state data models.

Shared by every layer: the snapshot builder produces PRSnapshot, the diff
engine and merge resolver produce ChangeEvent, the history tracker maintains
SeenPRRecord, and the store persists PollState. Nothing here talks to the
network or to disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum

# Azure DevOps merge status values (absent on freshly created PRs → None).
MERGE_NOT_SET = "notSet"
MERGE_QUEUED = "queued"
MERGE_SUCCEEDED = "succeeded"
MERGE_CONFLICTS = "conflicts"
MERGE_FAILURE = "failure"
MERGE_REJECTED_BY_POLICY = "rejectedByPolicy"

# Status check states.
STATE_ERROR = "error"
STATE_FAILED = "failed"
STATE_NOT_APPLICABLE = "notApplicable"
STATE_NOT_SET = "notSet"
STATE_PENDING = "pending"
STATE_SUCCEEDED = "succeeded"

FAILED_STATES = frozenset({STATE_FAILED, STATE_ERROR})

LAST_KNOWN_ACTIVE = "active"
LAST_KNOWN_MERGED = "merged"


class Vote(IntEnum):
    REJECTED = -10
    WAITING_FOR_AUTHOR = -5
    NO_VOTE = 0
    APPROVED_WITH_SUGGESTIONS = 5
    APPROVED = 10


_VOTE_LABELS = {
    Vote.APPROVED: "Approved",
    Vote.APPROVED_WITH_SUGGESTIONS: "Approved with suggestions",
    Vote.WAITING_FOR_AUTHOR: "Waiting for author",
    Vote.REJECTED: "Rejected",
}


def vote_label(vote: int) -> str:
    """Human label for a reviewer vote; anything unrecognised reads as "No vote"."""
    return _VOTE_LABELS.get(vote, "No vote")


class ChangeType(str, Enum):
    PIPELINE_FAILED = "pipeline_failed"
    PIPELINE_RECOVERED = "pipeline_recovered"
    NEW_PUSH = "new_push"
    VOTE_CHANGED = "vote_changed"
    MERGE_CONFLICT = "merge_conflict"
    PR_MERGED = "pr_merged"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class PRKey:
    """Identity of a pull request across polls: organization, project and numeric id."""

    organization: str
    project: str
    pull_request_id: int

    def __str__(self) -> str:
        return f"{self.organization}/{self.project}/{self.pull_request_id}"


@dataclass
class PRSnapshot:
    """One pull request as observed at a poll instant."""

    organization: str
    project: str
    repository_id: str
    repository_name: str
    pull_request_id: int
    title: str
    created_by_name: str
    creation_date: str  # ISO-8601, as returned by Azure DevOps
    source_ref_name: str
    target_ref_name: str
    is_draft: bool
    last_seen_at: datetime
    merge_status: str | None = None
    last_merge_source_commit_id: str | None = None
    created_by_image_url: str | None = None
    reviewer_votes: dict[str, int] = field(default_factory=dict)
    reviewer_names: dict[str, str] = field(default_factory=dict)
    status_checks: dict[str, str] = field(default_factory=dict)
    is_author: bool = False
    is_reviewer: bool = False

    @property
    def key(self) -> PRKey:
        return PRKey(self.organization, self.project, self.pull_request_id)


@dataclass
class ChangeEvent:
    """A detected transition worth telling the user about. Never persisted."""

    type: ChangeType
    severity: Severity
    snapshot: PRSnapshot  # current snapshot, or the last known one for merges
    description: str
    details: str | None = None


@dataclass
class SeenPRRecord:
    """Rolling history entry for a PR observed within the retention window."""

    organization: str
    project: str
    repository_name: str
    pull_request_id: int
    title: str
    last_known_state: str  # LAST_KNOWN_ACTIVE | LAST_KNOWN_MERGED
    last_seen_at: datetime

    @property
    def key(self) -> PRKey:
        return PRKey(self.organization, self.project, self.pull_request_id)


@dataclass
class PollState:
    """Everything a poll cycle reads from, and hands back to, the store."""

    snapshots: list[PRSnapshot] = field(default_factory=list)
    seen_prs: list[SeenPRRecord] = field(default_factory=list)
    last_poll_at: datetime | None = None
    merge_ack_at: datetime | None = None
