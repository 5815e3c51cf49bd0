"""kirei CLI: all commands."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint
from rich import print_json
from rich.markup import escape
from rich.table import Table

from kirei.credentials import resolve_token
from kirei.errors import ConfigurationError, KireiError, MissingCredentialError
from kirei.logging import setup_logging
from kirei.models import (
    ProviderId,
    UnifiedCreateParams,
    UnifiedCreateProjectParams,
    UnifiedCreateTaskParams,
    UnifiedIssue,
    UnifiedListQuery,
    UnifiedProjectQuery,
    UnifiedTaskQuery,
)
from kirei.oauth import DEFAULT_TIMEOUT, GitHubOAuthFlow
from kirei.providers.base import ProviderClient
from kirei.providers.factory import build_client
from kirei.settings import CONFIG_PATH, get_settings, save_token, set_default_provider

app = typer.Typer(help="kirei: list and create issues on GitHub, Linear, Trello and Jira", no_args_is_help=True)
auth_app = typer.Typer(help="Store provider credentials", no_args_is_help=True)
app.add_typer(auth_app, name="auth")

ProviderOpt = Annotated[
    str | None,
    typer.Option("--provider", "-p", help="github, linear, trello or jira (defaults to default_provider)"),
]
RepoOpt = Annotated[str | None, typer.Option("--repo", "-r", help="GitHub owner/repo")]
WorkspaceOpt = Annotated[
    str | None,
    typer.Option("--workspace", "-w", help="Linear team id, Trello board id or Jira project key"),
]
RawOpt = Annotated[bool, typer.Option("--raw", help="Dump the raw provider payload")]


@app.callback()
def main(
    verbose: Annotated[int, typer.Option("--verbose", "-v", count=True, help="-v for INFO, -vv for DEBUG")] = 0,
    log_file: Annotated[Path | None, typer.Option("--log-file", help="Also write logs to this file")] = None,
) -> None:
    setup_logging(verbose, log_file)


# ---------------------------------------------------------------------------
# Provider factory
# ---------------------------------------------------------------------------


def get_provider(provider: str | None = None) -> ProviderClient:
    settings = get_settings()
    provider_id = ProviderId.parse(provider) if provider else settings.default_provider
    token = resolve_token(provider_id, settings)
    return build_client(provider_id, token, settings.scope_defaults())


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except KireiError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc


def _print_issue(issue: UnifiedIssue, raw: bool) -> None:
    rprint(f"[green]✓[/green] {escape(issue.display_summary())}")
    if raw:
        print_json(data=issue.raw_payload)


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


@app.command("list")
def list_cmd(
    provider: ProviderOpt = None,
    repo: RepoOpt = None,
    workspace: WorkspaceOpt = None,
    search: Annotated[str | None, typer.Option("--search", "-s", help="Only titles containing this text")] = None,
    raw: RawOpt = False,
) -> None:
    """List open issues."""
    with _reporting_errors():
        with get_provider(provider) as client:
            issues = client.list(UnifiedListQuery(workspace=workspace, repo=repo, search=search))

    if not issues:
        rprint("No issues returned.")
        return

    if raw:
        for issue in issues:
            print_json(data=issue.raw_payload)
        return

    table = Table(title=f"{issues[0].provider.display_name} Issues")
    table.add_column("ID", style="cyan")
    table.add_column("State")
    table.add_column("Title")
    table.add_column("URL", style="dim")

    for issue in issues:
        state = issue.state
        if "list_name" in issue.context:
            state = f"{state} · {issue.context['list_name']}"
        table.add_row(issue.id, state, issue.title, issue.url or "—")

    rprint(table)


@app.command("create")
def create_cmd(
    title: Annotated[str | None, typer.Option("--title", "-t", help="Issue title")] = None,
    body: Annotated[str | None, typer.Option("--body", "-b", help="Issue body")] = None,
    provider: ProviderOpt = None,
    repo: RepoOpt = None,
    workspace: WorkspaceOpt = None,
    raw: RawOpt = False,
) -> None:
    """Create a new issue."""
    if title is None:
        title = typer.prompt("Issue title").strip()
    with _reporting_errors():
        with get_provider(provider) as client:
            issue = client.create(UnifiedCreateParams(workspace=workspace, repo=repo, title=title, body=body))
    _print_issue(issue, raw)


# ---------------------------------------------------------------------------
# Projects and tasks
# ---------------------------------------------------------------------------


@app.command("projects")
def projects_cmd(
    provider: ProviderOpt = None,
    workspace: WorkspaceOpt = None,
    search: Annotated[str | None, typer.Option("--search", "-s", help="Only names containing this text")] = None,
    raw: RawOpt = False,
) -> None:
    """List projects (GitHub repos, Linear projects, Trello boards, Jira projects)."""
    with _reporting_errors():
        with get_provider(provider) as client:
            projects = client.list_projects(UnifiedProjectQuery(workspace=workspace, search=search))

    if raw:
        for project in projects:
            print_json(data=project.raw)
        return

    table = Table(title="Projects")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Description", style="dim")

    for p in projects:
        table.add_row(p.id, p.name, p.description or "—")

    rprint(table)


@app.command("create-project")
def create_project_cmd(
    name: Annotated[str, typer.Option("--name", "-n", help="Project name")],
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    provider: ProviderOpt = None,
    workspace: WorkspaceOpt = None,
) -> None:
    """Create a project."""
    with _reporting_errors():
        with get_provider(provider) as client:
            project = client.create_project(
                UnifiedCreateProjectParams(workspace=workspace, name=name, description=description)
            )
    rprint(f"[green]✓[/green] [bold]{escape(project.id)}[/bold] {escape(project.name)}")


@app.command("tasks")
def tasks_cmd(
    provider: ProviderOpt = None,
    project: Annotated[str | None, typer.Option("--project", help="Project / board id")] = None,
    status: Annotated[str | None, typer.Option("--status", help="Only tasks with this status")] = None,
) -> None:
    """List tasks in a project."""
    with _reporting_errors():
        with get_provider(provider) as client:
            tasks = client.list_tasks(UnifiedTaskQuery(project_id=project, status=status))

    table = Table(title="Tasks")
    table.add_column("ID", style="cyan")
    table.add_column("Status")
    table.add_column("Title")

    for t in tasks:
        table.add_row(t.id, t.status, t.title)

    rprint(table)


@app.command("create-task")
def create_task_cmd(
    project: Annotated[str, typer.Option("--project", help="Project / board id")],
    title: Annotated[str, typer.Option("--title", "-t", help="Task title")],
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    status: Annotated[str | None, typer.Option("--status", help="Target status / list name")] = None,
    provider: ProviderOpt = None,
) -> None:
    """Create a task in a project."""
    with _reporting_errors():
        with get_provider(provider) as client:
            task = client.create_task(
                UnifiedCreateTaskParams(project_id=project, title=title, description=description, status=status)
            )
    rprint(f"[green]✓[/green] {escape(f'{task.id} [{task.status}] {task.title}')}")


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@auth_app.command("token")
def auth_token(
    provider: Annotated[str, typer.Argument(help="github, linear, trello or jira")],
    token: Annotated[str | None, typer.Option("--token", help="Token value (prompted when omitted)")] = None,
) -> None:
    """Store a personal access token for a provider."""
    with _reporting_errors():
        provider_id = ProviderId.parse(provider)
    value = token or typer.prompt(f"Paste {provider_id.display_name} token", hide_input=True)
    if not value.strip():
        rprint("[red]Token cannot be empty.[/red]")
        raise typer.Exit(1)
    path = save_token(provider_id, value)
    rprint(f"[green]✓[/green] {provider_id.display_name} token saved to {path}")


@auth_app.command("github")
def auth_github(
    client_id: Annotated[str | None, typer.Option("--client-id", help="OAuth app client id")] = None,
    client_secret: Annotated[str | None, typer.Option("--client-secret", help="OAuth app client secret")] = None,
    timeout: Annotated[float, typer.Option("--timeout", help="Seconds to wait for the redirect")] = DEFAULT_TIMEOUT,
    no_browser: Annotated[bool, typer.Option("--no-browser", help="Print the URL without opening it")] = False,
) -> None:
    """Authorize with GitHub in the browser and store the resulting token."""
    settings = get_settings()
    cid = client_id or settings.github_client_id
    secret = client_secret or (
        settings.github_client_secret.get_secret_value() if settings.github_client_secret else None
    )

    def show_url(url: str) -> None:
        rprint("Open this URL to authorize kirei:")
        typer.echo(url)
        if not no_browser:
            typer.launch(url)
        rprint(f"[dim]Waiting up to {timeout:g}s for the redirect...[/dim]")

    with _reporting_errors():
        if not cid or not secret:
            raise ConfigurationError(
                "client id and secret are required. Pass --client-id/--client-secret or set "
                "KIREI_GITHUB_CLIENT_ID and KIREI_GITHUB_CLIENT_SECRET.",
                ProviderId.GITHUB,
            )
        flow = GitHubOAuthFlow(cid, secret, timeout=timeout)
        try:
            token = flow.authorize(on_url=show_url)
        finally:
            flow.close()

    path = save_token(ProviderId.GITHUB, token)
    rprint(f"[green]✓[/green] GitHub token saved to {path}")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@app.command("set-default")
def set_default(
    provider: Annotated[str, typer.Argument(help="Provider to use when --provider is omitted")],
) -> None:
    """Set default_provider in ~/.config/kirei/config.toml."""
    with _reporting_errors():
        provider_id = ProviderId.parse(provider)
    path = set_default_provider(provider_id)
    rprint(f'[green]✓[/green] Default provider set to "{provider_id.value}" in {path}')


@app.command("config-path")
def config_path() -> None:
    """Print the path to the config file."""
    typer.echo(str(CONFIG_PATH))


@app.command("config-show")
def config_show() -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings()

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    def optional(val: str | None) -> str:
        return escape(val) if val else "[dim](not set)[/dim]"

    table = Table(title="kirei Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_provider", settings.default_provider.value)
    table.add_row("default_repo", optional(settings.default_repo))
    table.add_row("default_workspace", optional(settings.default_workspace))
    table.add_row("default_board", optional(settings.default_board))
    table.add_row("default_project", optional(settings.default_project))
    table.add_row("jira_server_url", optional(settings.jira_server_url))
    table.add_row("jira_email", optional(settings.jira_email))
    table.add_row(
        "trello_api_key",
        mask(settings.trello_api_key.get_secret_value() if settings.trello_api_key else None),
    )
    table.add_row("github_client_id", optional(settings.github_client_id))

    for provider_id in ProviderId:
        try:
            token = resolve_token(provider_id, settings)
        except MissingCredentialError:
            token = None
        table.add_row(f"token ({provider_id.value})", mask(token))

    rprint(table)
