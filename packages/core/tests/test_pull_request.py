import asyncio

import httpx

from prwatch_core.ado.client import AzureDevOpsClient
from prwatch_core.ado.pull_request import (
    fetch_active_prs,
    fetch_pr_by_id,
    fetch_pr_statuses,
    latest_status_by_context,
    status_context_key,
)


def _status(name, state, updated=None, created="2024-01-01T00:00:00Z", genre=None):
    s = {"state": state, "context": {"name": name}, "creationDate": created}
    if genre:
        s["context"]["genre"] = genre
    if updated:
        s["updatedDate"] = updated
    return s


class TestStatusContextKey:
    def test_name_only(self):
        assert status_context_key(_status("CI", "pending")) == "CI"

    def test_genre_and_name(self):
        assert status_context_key(_status("CI", "pending", genre="Build")) == "Build/CI"


class TestLatestStatusByContext:
    def test_empty(self):
        assert latest_status_by_context([]) == {}

    def test_latest_wins_regardless_of_order(self):
        statuses = [
            _status("CI", "failed", updated="2024-01-01T10:00:00Z"),
            _status("CI", "succeeded", updated="2024-01-01T12:00:00Z"),
            _status("CI", "pending", updated="2024-01-01T11:00:00Z"),
        ]
        assert latest_status_by_context(statuses) == {"CI": "succeeded"}

    def test_falls_back_to_creation_date(self):
        statuses = [
            _status("CI", "succeeded", created="2024-01-02T00:00:00Z"),
            _status("CI", "failed", created="2024-01-01T00:00:00Z"),
        ]
        assert latest_status_by_context(statuses) == {"CI": "succeeded"}

    def test_updated_date_preferred_over_creation_date(self):
        statuses = [
            _status("CI", "failed", created="2024-01-03T00:00:00Z"),
            _status("CI", "succeeded", created="2024-01-01T00:00:00Z", updated="2024-01-04T00:00:00Z"),
        ]
        assert latest_status_by_context(statuses) == {"CI": "succeeded"}

    def test_tie_keeps_first_seen(self):
        statuses = [
            _status("CI", "failed", updated="2024-01-01T10:00:00Z"),
            _status("CI", "succeeded", updated="2024-01-01T10:00:00Z"),
        ]
        assert latest_status_by_context(statuses) == {"CI": "failed"}

    def test_offsets_are_compared_as_instants(self):
        statuses = [
            _status("CI", "failed", updated="2024-01-01T12:00:00+02:00"),
            _status("CI", "succeeded", updated="2024-01-01T11:00:00Z"),
        ]
        assert latest_status_by_context(statuses) == {"CI": "succeeded"}

    def test_timestamp_without_offset_read_as_utc(self):
        statuses = [
            _status("CI", "failed", updated="2024-01-01T10:00:00Z"),
            _status("CI", "succeeded", updated="2024-01-01T11:00:00"),
            _status("Lint", "succeeded", updated="2024-01-01T11:00:00"),
            _status("Lint", "failed", updated="2024-01-01T10:00:00Z"),
        ]
        assert latest_status_by_context(statuses) == {"CI": "succeeded", "Lint": "succeeded"}

    def test_genre_separates_contexts(self):
        statuses = [
            _status("CI", "failed", genre="Build"),
            _status("CI", "succeeded", genre="Release"),
            _status("Lint", "pending"),
        ]
        assert latest_status_by_context(statuses) == {
            "Build/CI": "failed",
            "Release/CI": "succeeded",
            "Lint": "pending",
        }


def _client_with(handler) -> AzureDevOpsClient:
    return AzureDevOpsClient("myorg", "pat", transport=httpx.MockTransport(handler))


class TestFetchActivePrs:
    def test_merges_created_and_reviewing_without_duplicates(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            params = request.url.params
            assert params["searchCriteria.status"] == "active"
            if "searchCriteria.creatorId" in params:
                return httpx.Response(200, json={"value": [{"pullRequestId": 1}, {"pullRequestId": 2}]})
            return httpx.Response(200, json={"value": [{"pullRequestId": 2}, {"pullRequestId": 3}]})

        async def run():
            async with _client_with(handler) as client:
                return await fetch_active_prs(client, "My Project", "user-1")

        prs = asyncio.run(run())

        assert [pr["pullRequestId"] for pr in prs] == [1, 2, 3]
        assert len(requests) == 2
        assert all(r.url.path == "/myorg/My Project/_apis/git/pullrequests" for r in requests)
        assert {r.url.params.get("searchCriteria.creatorId") for r in requests} == {"user-1", None}

    def test_empty_results(self):
        def handler(request):
            return httpx.Response(200, json={"value": []})

        async def run():
            async with _client_with(handler) as client:
                return await fetch_active_prs(client, "proj", "user-1")

        assert asyncio.run(run()) == []


class TestFetchStatusesAndById:
    def test_statuses_path(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, json={"value": [_status("CI", "pending")]})

        async def run():
            async with _client_with(handler) as client:
                return await fetch_pr_statuses(client, "proj", "repo-id", 7)

        statuses = asyncio.run(run())

        assert seen["path"] == "/myorg/proj/_apis/git/repositories/repo-id/pullRequests/7/statuses"
        assert statuses[0]["state"] == "pending"

    def test_pr_by_id_uses_repository_name(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, json={"pullRequestId": 7, "status": "completed"})

        async def run():
            async with _client_with(handler) as client:
                return await fetch_pr_by_id(client, "proj", "backend", 7)

        pr = asyncio.run(run())

        assert seen["path"] == "/myorg/proj/_apis/git/repositories/backend/pullRequests/7"
        assert pr["status"] == "completed"
