from __future__ import annotations

from dataclasses import dataclass

from prwatch_core.ado.client import AzureDevOpsClient


@dataclass
class UserIdentity:
    id: str
    display_name: str


async def get_current_user(client: AzureDevOpsClient) -> UserIdentity:
    """Discover who the PAT belongs to within the client's organization."""
    data = await client.get_json("_apis/connectionData", api_version="7.0-preview")
    user = data["authenticatedUser"]
    return UserIdentity(id=user["id"], display_name=user.get("providerDisplayName", ""))
