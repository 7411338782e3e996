"""Tests for the snapshot diff engine."""

from datetime import datetime, timezone

from prwatch_core.diff import diff_snapshots
from prwatch_core.models import ChangeType, PRSnapshot, Severity


def _make_snapshot(**overrides) -> PRSnapshot:
    fields = dict(
        organization="org",
        project="proj",
        repository_id="repo-id",
        repository_name="repo",
        pull_request_id=1,
        title="Test PR",
        created_by_name="Alice",
        creation_date="2024-01-01T00:00:00Z",
        source_ref_name="refs/heads/feature",
        target_ref_name="refs/heads/main",
        is_draft=False,
        merge_status="succeeded",
        last_merge_source_commit_id="abc123",
        is_author=True,
        last_seen_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return PRSnapshot(**fields)


class TestNewPRs:
    def test_first_observation_produces_no_events(self):
        current = [_make_snapshot(status_checks={"CI": "failed"}, merge_status="conflicts")]
        assert diff_snapshots([], current) == []

    def test_new_pr_next_to_existing_one_is_baseline_only(self):
        previous = [_make_snapshot(pull_request_id=1)]
        current = [
            _make_snapshot(pull_request_id=1),
            _make_snapshot(pull_request_id=2, status_checks={"CI": "failed"}, merge_status="conflicts"),
        ]
        assert diff_snapshots(previous, current) == []

    def test_disappeared_pr_is_not_handled_here(self):
        assert diff_snapshots([_make_snapshot()], []) == []

    def test_same_id_in_another_project_is_a_different_pr(self):
        previous = [_make_snapshot(project="other", merge_status="succeeded")]
        current = [_make_snapshot(project="proj", merge_status="conflicts")]
        assert diff_snapshots(previous, current) == []


class TestPipelineChanges:
    def test_pending_to_failed_emits_pipeline_failed(self):
        previous = [_make_snapshot(status_checks={"CI": "pending"})]
        current = [_make_snapshot(status_checks={"CI": "failed"})]

        events = diff_snapshots(previous, current)

        assert len(events) == 1
        assert events[0].type == ChangeType.PIPELINE_FAILED
        assert events[0].severity == Severity.HIGH
        assert "CI" in events[0].details
        assert events[0].details == "CI → failed"

    def test_succeeded_to_error_emits_pipeline_failed(self):
        previous = [_make_snapshot(status_checks={"Build/CI": "succeeded"})]
        current = [_make_snapshot(status_checks={"Build/CI": "error"})]

        events = diff_snapshots(previous, current)

        assert [e.type for e in events] == [ChangeType.PIPELINE_FAILED]

    def test_failed_to_succeeded_emits_pipeline_recovered(self):
        previous = [_make_snapshot(status_checks={"Build/CI": "failed"})]
        current = [_make_snapshot(status_checks={"Build/CI": "succeeded"})]

        events = diff_snapshots(previous, current)

        assert len(events) == 1
        assert events[0].type == ChangeType.PIPELINE_RECOVERED
        assert events[0].severity == Severity.MEDIUM

    def test_error_to_succeeded_emits_pipeline_recovered(self):
        previous = [_make_snapshot(status_checks={"CI": "error"})]
        current = [_make_snapshot(status_checks={"CI": "succeeded"})]

        assert [e.type for e in diff_snapshots(previous, current)] == [ChangeType.PIPELINE_RECOVERED]

    def test_failed_to_error_is_not_a_new_failure(self):
        previous = [_make_snapshot(status_checks={"CI": "failed"})]
        current = [_make_snapshot(status_checks={"CI": "error"})]
        assert diff_snapshots(previous, current) == []

    def test_failed_to_pending_is_silent(self):
        previous = [_make_snapshot(status_checks={"CI": "failed"})]
        current = [_make_snapshot(status_checks={"CI": "pending"})]
        assert diff_snapshots(previous, current) == []

    def test_pending_to_succeeded_is_silent(self):
        previous = [_make_snapshot(status_checks={"CI": "pending"})]
        current = [_make_snapshot(status_checks={"CI": "succeeded"})]
        assert diff_snapshots(previous, current) == []

    def test_context_without_prior_entry_is_skipped(self):
        previous = [_make_snapshot(status_checks={})]
        current = [_make_snapshot(status_checks={"CI": "failed"})]
        assert diff_snapshots(previous, current) == []

    def test_every_context_is_checked(self):
        previous = [_make_snapshot(status_checks={"Build": "pending", "Tests": "failed", "Lint": "succeeded"})]
        current = [_make_snapshot(status_checks={"Build": "failed", "Tests": "succeeded", "Lint": "succeeded"})]

        events = diff_snapshots(previous, current)

        assert [(e.type, e.details) for e in events] == [
            (ChangeType.PIPELINE_FAILED, "Build → failed"),
            (ChangeType.PIPELINE_RECOVERED, "Tests → succeeded"),
        ]


class TestNewPush:
    def test_changed_commit_emits_new_push(self):
        previous = [_make_snapshot(last_merge_source_commit_id="abc123")]
        current = [_make_snapshot(last_merge_source_commit_id="def456")]

        events = diff_snapshots(previous, current)

        assert len(events) == 1
        assert events[0].type == ChangeType.NEW_PUSH
        assert events[0].severity == Severity.MEDIUM

    def test_same_commit_is_silent(self):
        previous = [_make_snapshot(last_merge_source_commit_id="abc123")]
        current = [_make_snapshot(last_merge_source_commit_id="abc123")]
        assert diff_snapshots(previous, current) == []

    def test_missing_commit_on_either_side_is_silent(self):
        assert diff_snapshots(
            [_make_snapshot(last_merge_source_commit_id=None)],
            [_make_snapshot(last_merge_source_commit_id="def456")],
        ) == []
        assert diff_snapshots(
            [_make_snapshot(last_merge_source_commit_id="abc123")],
            [_make_snapshot(last_merge_source_commit_id="")],
        ) == []


class TestVoteChanges:
    def test_no_vote_to_approved_is_medium(self):
        previous = [_make_snapshot(reviewer_votes={"user-1": 0}, reviewer_names={"user-1": "Bob"})]
        current = [_make_snapshot(reviewer_votes={"user-1": 10}, reviewer_names={"user-1": "Bob"})]

        events = diff_snapshots(previous, current)

        assert len(events) == 1
        assert events[0].type == ChangeType.VOTE_CHANGED
        assert events[0].severity == Severity.MEDIUM
        assert "Bob" in events[0].details
        assert "Approved" in events[0].details

    def test_approved_to_rejected_is_high(self):
        previous = [_make_snapshot(reviewer_votes={"user-1": 10}, reviewer_names={"user-1": "Bob"})]
        current = [_make_snapshot(reviewer_votes={"user-1": -10}, reviewer_names={"user-1": "Bob"})]

        events = diff_snapshots(previous, current)

        assert len(events) == 1
        assert events[0].severity == Severity.HIGH
        assert "Rejected" in events[0].details

    def test_waiting_for_author_label(self):
        previous = [_make_snapshot(reviewer_votes={"user-1": 5}, reviewer_names={"user-1": "Bob"})]
        current = [_make_snapshot(reviewer_votes={"user-1": -5}, reviewer_names={"user-1": "Bob"})]

        events = diff_snapshots(previous, current)

        assert events[0].details == "Bob: Waiting for author"
        assert events[0].severity == Severity.MEDIUM

    def test_reset_to_zero_reads_no_vote(self):
        previous = [_make_snapshot(reviewer_votes={"user-1": 10}, reviewer_names={"user-1": "Bob"})]
        current = [_make_snapshot(reviewer_votes={"user-1": 0}, reviewer_names={"user-1": "Bob"})]

        assert diff_snapshots(previous, current)[0].details == "Bob: No vote"

    def test_unknown_reviewer_name_falls_back(self):
        previous = [_make_snapshot(reviewer_votes={"user-1": 0})]
        current = [_make_snapshot(reviewer_votes={"user-1": 5})]

        events = diff_snapshots(previous, current)

        assert events[0].details == "A reviewer: Approved with suggestions"

    def test_newly_added_reviewer_is_skipped(self):
        previous = [_make_snapshot(reviewer_votes={})]
        current = [_make_snapshot(reviewer_votes={"user-2": 10}, reviewer_names={"user-2": "Carol"})]
        assert diff_snapshots(previous, current) == []

    def test_unchanged_vote_is_silent(self):
        previous = [_make_snapshot(reviewer_votes={"user-1": 10})]
        current = [_make_snapshot(reviewer_votes={"user-1": 10})]
        assert diff_snapshots(previous, current) == []


class TestMergeConflicts:
    def test_transition_into_conflicts_emits_event(self):
        previous = [_make_snapshot(merge_status="succeeded")]
        current = [_make_snapshot(merge_status="conflicts")]

        events = diff_snapshots(previous, current)

        assert len(events) == 1
        assert events[0].type == ChangeType.MERGE_CONFLICT
        assert events[0].severity == Severity.HIGH

    def test_still_conflicted_is_silent(self):
        previous = [_make_snapshot(merge_status="conflicts")]
        current = [_make_snapshot(merge_status="conflicts")]
        assert diff_snapshots(previous, current) == []

    def test_unset_to_conflicts_emits_event(self):
        previous = [_make_snapshot(merge_status=None)]
        current = [_make_snapshot(merge_status="conflicts")]
        assert [e.type for e in diff_snapshots(previous, current)] == [ChangeType.MERGE_CONFLICT]


class TestMultipleChanges:
    def test_pipeline_failure_and_conflict_on_same_pr(self):
        previous = [_make_snapshot(status_checks={"Build/CI": "succeeded"}, merge_status="succeeded")]
        current = [_make_snapshot(status_checks={"Build/CI": "failed"}, merge_status="conflicts")]

        events = diff_snapshots(previous, current)

        assert len(events) == 2
        assert {e.type for e in events} == {ChangeType.PIPELINE_FAILED, ChangeType.MERGE_CONFLICT}

    def test_events_within_a_pr_follow_fixed_order(self):
        previous = [
            _make_snapshot(
                status_checks={"CI": "pending"},
                last_merge_source_commit_id="abc",
                reviewer_votes={"u": 0},
                merge_status="succeeded",
            )
        ]
        current = [
            _make_snapshot(
                status_checks={"CI": "failed"},
                last_merge_source_commit_id="def",
                reviewer_votes={"u": -10},
                merge_status="conflicts",
            )
        ]

        events = diff_snapshots(previous, current)

        assert [e.type for e in events] == [
            ChangeType.PIPELINE_FAILED,
            ChangeType.NEW_PUSH,
            ChangeType.VOTE_CHANGED,
            ChangeType.MERGE_CONFLICT,
        ]

    def test_events_reference_current_snapshot(self):
        previous = [_make_snapshot(title="Old title", merge_status="succeeded")]
        current = [_make_snapshot(title="New title", merge_status="conflicts")]

        events = diff_snapshots(previous, current)

        assert events[0].snapshot is current[0]
        assert "New title" in events[0].details
