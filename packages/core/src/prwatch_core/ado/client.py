"""Azure DevOps REST client with PAT authentication and categorised errors.

Every failure surfaces as an ApiError subclass so callers can tell an expired
token from a missing PR from a flaky network without inspecting status codes:

  UnauthorizedError  — credential rejected (401, or the 203 sign-in page
                       Azure DevOps serves for an invalid PAT)
  RateLimitedError   — 429, carries retry_after seconds from Retry-After
  NotFoundError      — 404
  TransportError     — timeout or connection failure, no HTTP status
"""

from __future__ import annotations

import base64
import logging

import httpx

logger = logging.getLogger(__name__)

AZURE_DEVOPS_BASE_URL = "https://dev.azure.com"
DEFAULT_API_VERSION = "7.0"
DEFAULT_TIMEOUT = 30.0


class ApiError(Exception):
    """Error from the Azure DevOps API."""

    def __init__(self, message: str, status: int | None = None, retry_after: float | None = None):
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class UnauthorizedError(ApiError):
    pass


class RateLimitedError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class TransportError(ApiError):
    pass


def create_auth_header(pat: str) -> str:
    token = base64.b64encode(f":{pat}".encode()).decode("ascii")
    return f"Basic {token}"


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class AzureDevOpsClient:
    """Thin async wrapper over one organization's REST API.

    One instance holds one connection pool; close it with aclose() or use it
    as an async context manager.
    """

    def __init__(
        self,
        organization: str,
        pat: str,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = AZURE_DEVOPS_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.organization = organization
        self._http = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/{organization}/",
            headers={
                "Authorization": create_auth_header(pat),
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> AzureDevOpsClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_json(self, path: str, params: dict | None = None, api_version: str = DEFAULT_API_VERSION):
        """GET ``path`` relative to the organization and return the decoded JSON body."""
        query = {**(params or {}), "api-version": api_version}
        try:
            response = await self._http.get(path, params=query)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {path} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {path} failed: {e}") from e

        # An invalid PAT gets a 203 with the HTML sign-in page instead of a 401.
        if response.status_code == 203:
            raise UnauthorizedError(f"API 203: sign-in page returned for {path}", status=401)

        if response.is_error:
            status = response.status_code
            message = f"API {status}: {response.reason_phrase} — {response.text[:500]}"
            if status == 401:
                raise UnauthorizedError(message, status=status)
            if status == 404:
                raise NotFoundError(message, status=status)
            if status == 429:
                retry_after = _parse_retry_after(response.headers.get("Retry-After"))
                raise RateLimitedError(message, status=status, retry_after=retry_after)
            raise ApiError(message, status=status)

        logger.debug("GET %s → %d", path, response.status_code)
        return response.json()
