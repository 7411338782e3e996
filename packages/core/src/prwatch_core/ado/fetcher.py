"""Fetcher boundary used by the poll orchestrator.

Resolves a ProjectConfig into an authenticated client and exposes the three
calls a poll cycle needs. Any object with the same three coroutine methods can
stand in for AdoFetcher (tests use an in-memory fake).
"""

from __future__ import annotations

import httpx

from prwatch_core.ado.client import DEFAULT_TIMEOUT, AzureDevOpsClient, UnauthorizedError
from prwatch_core.ado.pull_request import fetch_active_prs, fetch_pr_by_id, fetch_pr_statuses
from prwatch_core.config import ProjectConfig


class AdoFetcher:
    def __init__(self, timeout: float = DEFAULT_TIMEOUT, transport: httpx.AsyncBaseTransport | None = None):
        self._timeout = timeout
        self._transport = transport
        self._clients: dict[tuple[str, str], AzureDevOpsClient] = {}

    def _client(self, project: ProjectConfig) -> AzureDevOpsClient:
        if not project.pat:
            raise UnauthorizedError(f"No PAT configured for {project.slug}", status=401)
        key = (project.organization, project.pat)
        client = self._clients.get(key)
        if client is None:
            client = AzureDevOpsClient(
                project.organization, project.pat, timeout=self._timeout, transport=self._transport
            )
            self._clients[key] = client
        return client

    async def fetch_active_prs(self, project: ProjectConfig, user_id: str) -> list[dict]:
        return await fetch_active_prs(self._client(project), project.project, user_id)

    async def fetch_statuses(self, project: ProjectConfig, repository_id: str, pr_id: int) -> list[dict]:
        return await fetch_pr_statuses(self._client(project), project.project, repository_id, pr_id)

    async def fetch_by_id(self, project: ProjectConfig, repository_name: str, pr_id: int) -> dict:
        return await fetch_pr_by_id(self._client(project), project.project, repository_name, pr_id)

    async def aclose(self) -> None:
        clients, self._clients = list(self._clients.values()), {}
        for client in clients:
            await client.aclose()
