from __future__ import annotations

from urllib.parse import quote

BASE = "https://dev.azure.com"


def project_url(org: str, project: str) -> str:
    return f"{BASE}/{quote(org)}/{quote(project)}"


def repo_url(org: str, project: str, repo_name: str) -> str:
    return f"{project_url(org, project)}/_git/{quote(repo_name)}"


def pr_url(org: str, project: str, repo_name: str, pr_id: int) -> str:
    return f"{repo_url(org, project, repo_name)}/pullrequest/{pr_id}"


def project_pr_list_url(org: str, project: str) -> str:
    """Project-wide PR list, for when the repository is not known."""
    return f"{project_url(org, project)}/_git/pullrequests"
