"""project commands — manage the list of watched Azure DevOps projects."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.table import Table

from prwatch_core.ado.client import ApiError, AzureDevOpsClient, UnauthorizedError
from prwatch_core.ado.identity import UserIdentity, get_current_user
from prwatch_core.config import ProjectConfig, load_settings, save_projects

console = Console()


async def _discover_user(organization: str, pat: str) -> UserIdentity:
    async with AzureDevOpsClient(organization, pat) as client:
        return await get_current_user(client)


@click.group("project")
def project_cmd():
    """Add, remove, or list watched projects."""


@project_cmd.command("add")
@click.option("--org", "organization", required=True, help="Azure DevOps organization name.")
@click.option("--project", "project", required=True, help="Project name within the organization.")
@click.option(
    "--pat",
    default=None,
    help="Personal access token with Code (read) scope. Defaults to $AZURE_DEVOPS_EXT_PAT.",
)
@click.pass_context
def project_add_cmd(ctx, organization: str, project: str, pat: str | None):
    """Verify the connection and start watching a project."""
    from prwatch_cli.auth import resolve_pat

    config_path = ctx.obj["config_path"]
    settings = load_settings(config_path)
    if settings.find_project(organization, project) is not None:
        raise click.UsageError(f"{organization}/{project} is already configured.")

    token = resolve_pat(pat)
    if not token:
        raise click.UsageError("No PAT found. Pass --pat or set AZURE_DEVOPS_EXT_PAT.")

    console.print("[dim]Verifying connection...[/dim]")
    try:
        user = asyncio.run(_discover_user(organization, token))
    except UnauthorizedError:
        raise click.UsageError(f"The PAT was rejected by {organization}. Check that it has Code (read) scope.")
    except ApiError as e:
        raise click.ClickException(f"Could not connect to {organization}: {e}")

    settings.projects.append(
        ProjectConfig(
            organization=organization,
            project=project,
            pat=token,
            user_id=user.id,
            user_display_name=user.display_name,
        )
    )
    save_projects(config_path, settings.projects)
    console.print(f"[green]Watching {organization}/{project} as {user.display_name}[/green]")


@project_cmd.command("remove")
@click.option("--org", "organization", required=True, help="Azure DevOps organization name.")
@click.option("--project", "project", required=True, help="Project name within the organization.")
@click.pass_context
def project_remove_cmd(ctx, organization: str, project: str):
    """Stop watching a project."""
    config_path = ctx.obj["config_path"]
    settings = load_settings(config_path)
    existing = settings.find_project(organization, project)
    if existing is None:
        raise click.UsageError(f"{organization}/{project} is not configured.")

    settings.projects.remove(existing)
    save_projects(config_path, settings.projects)
    console.print(f"[green]Removed {organization}/{project}[/green]")


@project_cmd.command("list")
@click.pass_context
def project_list_cmd(ctx):
    """Show configured projects and their connection state."""
    settings = load_settings(ctx.obj["config_path"])
    if not settings.projects:
        console.print("[yellow]No projects configured yet.[/yellow]")
        return

    table = Table(title="Watched projects", show_header=True, header_style="bold cyan")
    table.add_column("Organization / Project", style="bold")
    table.add_column("User")
    for p in settings.projects:
        user = f"Connected as {p.user_display_name or p.user_id}" if p.is_connected else "[red]Not connected[/red]"
        table.add_row(p.slug, user)
    console.print(table)
    console.print(
        f"Polling every {settings.poll_interval_minutes} minute(s); notifications "
        + ("on." if settings.notifications_enabled else "off.")
    )
