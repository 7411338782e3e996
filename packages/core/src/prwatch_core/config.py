import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "poll_interval_minutes": 2,
    "notifications_enabled": True,
    "request_timeout": 30,  # seconds, applied to every Azure DevOps call
    "store": "sqlite",
    "store_path": ".prwatch.db",
    "notifier": "console",  # "console" | "desktop"
    "projects": [],
}

MIN_POLL_INTERVAL_MINUTES = 1
PAT_ENV_VAR = "AZURE_DEVOPS_EXT_PAT"


@dataclass
class ProjectConfig:
    """One Azure DevOps project to watch."""

    organization: str
    project: str
    pat: Optional[str] = None
    user_id: Optional[str] = None  # filled in after the first successful connection
    user_display_name: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return bool(self.user_id)

    @property
    def slug(self) -> str:
        return f"{self.organization}/{self.project}"


@dataclass
class Settings:
    projects: list[ProjectConfig] = field(default_factory=list)
    poll_interval_minutes: int = DEFAULT_CONFIG["poll_interval_minutes"]
    notifications_enabled: bool = DEFAULT_CONFIG["notifications_enabled"]
    request_timeout: float = DEFAULT_CONFIG["request_timeout"]

    def find_project(self, organization: str, project: str) -> Optional[ProjectConfig]:
        for p in self.projects:
            if p.organization == organization and p.project == project:
                return p
        return None


def load_config(config_path: str = ".prwatch.yml") -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prwatch.yml in the current directory
    """
    config = {**DEFAULT_CONFIG, "projects": list(DEFAULT_CONFIG["projects"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    config["projects"] = list(config.get("projects") or [])
    return config


def settings_from_config(config: dict) -> Settings:
    """Build typed Settings from a merged config dict.

    Projects without a ``pat`` fall back to the AZURE_DEVOPS_EXT_PAT environment
    variable (the same one the az devops extension reads).
    """
    env_pat = os.environ.get(PAT_ENV_VAR)
    projects = []
    for entry in config.get("projects") or []:
        if not entry.get("organization") or not entry.get("project"):
            continue
        projects.append(
            ProjectConfig(
                organization=str(entry["organization"]),
                project=str(entry["project"]),
                pat=entry.get("pat") or env_pat,
                user_id=entry.get("user_id"),
                user_display_name=entry.get("user_display_name"),
            )
        )

    interval = int(config.get("poll_interval_minutes") or DEFAULT_CONFIG["poll_interval_minutes"])
    return Settings(
        projects=projects,
        poll_interval_minutes=max(interval, MIN_POLL_INTERVAL_MINUTES),
        notifications_enabled=bool(config.get("notifications_enabled", True)),
        request_timeout=float(config.get("request_timeout") or DEFAULT_CONFIG["request_timeout"]),
    )


def load_settings(config_path: str = ".prwatch.yml") -> Settings:
    return settings_from_config(load_config(config_path))


def save_projects(config_path: str, projects: list[ProjectConfig]) -> None:
    """Write the project list back to the config file, preserving any other keys.

    A pat that only came from the environment is not written to disk.
    """
    path = Path(config_path)
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}

    env_pat = os.environ.get(PAT_ENV_VAR)
    entries = []
    for p in projects:
        entry: dict = {"organization": p.organization, "project": p.project}
        if p.pat and p.pat != env_pat:
            entry["pat"] = p.pat
        if p.user_id:
            entry["user_id"] = p.user_id
        if p.user_display_name:
            entry["user_display_name"] = p.user_display_name
        entries.append(entry)

    existing["projects"] = entries
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
