"""
GitHub Agent CLI - command-line interface for server and maintenance tasks.

Minimal CLI for automation (cron jobs, setup scripts) and server
management. For interactive features, use the dashboard.
"""

import logging

import typer
from rich.console import Console
from rich.table import Table

from github_agent.logging_config import setup_logging

app = typer.Typer(
    name="github-agent",
    help="GitHub Agent - AI assistant for your GitHub repositories",
    no_args_is_help=True,
)

console = Console()


def _setup_cli_logging() -> None:
    # Fall back to console logging if the log directory is not writable
    try:
        setup_logging(context="cli")
    except PermissionError:
        logging.basicConfig(level=logging.INFO)


@app.command()
def serve(
    host: str = typer.Option(None, help="Host to bind to (default: API_HOST)"),
    port: int = typer.Option(None, help="Port to bind to (default: API_PORT)"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Serves the dashboard API under /api and the public API under /api/v1.
    """
    import uvicorn

    from github_agent.config import settings

    host = host or settings.api_host
    port = port or settings.api_port

    console.print("[bold green]Starting GitHub Agent API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "github_agent.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command("init-db")
def init_db_command() -> None:
    """
    Create all tables and the single user.

    Intended for SQLite and local development; use `alembic upgrade head`
    for PostgreSQL deployments.
    """
    from github_agent.db.connection import db_session, init_db
    from github_agent.single_user import ensure_single_user

    _setup_cli_logging()
    init_db()
    with db_session() as session:
        user = ensure_single_user(session)
        console.print(f"[green]✓ Database initialized[/green] (user: {user.email})")


@app.command("import-repos")
def import_repos() -> None:
    """Import every repository visible to GITHUB_TOKEN."""
    from github_agent.config import settings
    from github_agent.db.connection import db_session
    from github_agent.exceptions import GitHubAPIError
    from github_agent.integrations.github import GitHubClient
    from github_agent.services.importer import import_repositories

    _setup_cli_logging()
    if not settings.github_token:
        console.print("[bold red]Error:[/bold red] GITHUB_TOKEN not set in environment")
        raise typer.Exit(1)

    try:
        with db_session() as session, GitHubClient() as github:
            result = import_repositories(session, github)
    except GitHubAPIError as e:
        console.print(f"[bold red]GitHub error:[/bold red] {e}")
        raise typer.Exit(1)

    summary = result["summary"]
    console.print(f"[green]✓ {result['message']}[/green]")
    console.print(f"  Found: {summary['total_found']}")
    console.print(f"  Imported: {summary['imported']}")
    console.print(f"  Skipped: {summary['skipped']}")
    console.print(f"  Errors: {summary['errors']}")
    for error in result["errors"]:
        console.print(f"  [red]✗[/red] {error['repo']}: {error['error']}")

    if summary["errors"]:
        raise typer.Exit(1)


@app.command()
def recap(
    repository: str = typer.Argument(..., help="Repository id, owner/name or name"),
    time_range: str = typer.Option(
        "week", "--range", help="Recap window: week, month or quarter"
    ),
) -> None:
    """Generate a recap for one repository and print it."""
    from github_agent.db.connection import db_session
    from github_agent.db.repositories import RepositoryRepository
    from github_agent.recaps.generator import TIME_RANGES, RecapGenerator

    _setup_cli_logging()
    if time_range not in TIME_RANGES:
        console.print(
            f"[bold red]Error:[/bold red] --range must be one of: {', '.join(TIME_RANGES)}"
        )
        raise typer.Exit(1)

    with db_session() as session:
        repo = RepositoryRepository(session).resolve(repository)
        if repo is None:
            console.print(f"[bold red]Error:[/bold red] Repository not found: {repository}")
            raise typer.Exit(1)

        result = RecapGenerator(session).generate(repo, time_range)
        console.print(f"[bold blue]{result.title}[/bold blue]\n")
        console.print(result.summary)
        if result.key_updates:
            console.print("\n[bold]Key updates:[/bold]")
            for update in result.key_updates:
                console.print(f"  • {update}")
        if result.action_items:
            console.print("\n[bold]Action items:[/bold]")
            for item in result.action_items:
                console.print(f"  • {item}")


@app.command()
def report(
    repository: str = typer.Argument(..., help="Repository id, owner/name or name"),
    days: int = typer.Option(7, help="Report period in days, ending now"),
    email: list[str] = typer.Option(
        None, "--email", help="Email the report to this address (repeatable)"
    ),
) -> None:
    """Generate a repository report and optionally email it."""
    from datetime import datetime, timedelta, timezone

    from github_agent.db.connection import db_session
    from github_agent.db.repositories import RepositoryRepository
    from github_agent.exceptions import (
        CredentialEncryptionError,
        EmailDeliveryError,
        EmailNotConfiguredError,
    )
    from github_agent.reports import ReportGenerator, email_report

    _setup_cli_logging()
    end = datetime.now(timezone.utc)
    start = end - timedelta(days=days)

    with db_session() as session:
        repo = RepositoryRepository(session).resolve(repository)
        if repo is None:
            console.print(f"[bold red]Error:[/bold red] Repository not found: {repository}")
            raise typer.Exit(1)

        result = ReportGenerator(session).generate(str(repo.id), start, end)
        console.print(f"[bold blue]{result.title}[/bold blue]\n")
        console.print(result.summary or "")

        table = Table(title="Activity")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        totals = result.commit_summary.get("totalStats", {})
        table.add_row("Commits", str(totals.get("total_commits", 0)))
        table.add_row("Lines changed", str(totals.get("total_lines_changed", 0)))
        table.add_row("Open issues", str(result.issue_summary.get("open_issues", 0)))
        table.add_row("Closed issues", str(result.issue_summary.get("closed_issues", 0)))
        table.add_row("Merged PRs", str(result.pull_request_summary.get("merged_prs", 0)))
        console.print(table)

        if email:
            try:
                message_id = email_report(session, result, email)
            except (EmailNotConfiguredError, CredentialEncryptionError, EmailDeliveryError) as e:
                console.print(f"[bold red]Email failed:[/bold red] {e}")
                raise typer.Exit(1)
            console.print(f"[green]✓ Emailed to {', '.join(email)}[/green] ({message_id})")


@app.command("process-email-queue")
def process_email_queue() -> None:
    """Send due emails from the outbound queue (run from cron)."""
    from github_agent.db.connection import db_session
    from github_agent.db.repositories import EmailSettingsRepository
    from github_agent.exceptions import CredentialEncryptionError
    from github_agent.mail.queue import EmailQueue
    from github_agent.mail.sender import EmailSender
    from github_agent.single_user import get_single_user_id

    _setup_cli_logging()
    with db_session() as session:
        email_settings = EmailSettingsRepository(session).get_for_user(get_single_user_id())
        if email_settings is None:
            console.print("[bold red]Error:[/bold red] Email settings not configured")
            raise typer.Exit(1)
        try:
            sender = EmailSender.from_settings(email_settings)
        except CredentialEncryptionError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)

        result = EmailQueue(session).process_queue(sender)

    console.print(
        f"[green]✓ Processed email queue[/green]: "
        f"{result['processed']} sent, {result['errors']} errors"
    )


@app.command("create-api-key")
def create_api_key(
    name: str = typer.Argument(..., help="Label for the key"),
) -> None:
    """Create an /api/v1 key. The key is printed once and never stored."""
    from github_agent.db.connection import db_session
    from github_agent.db.repositories import ApiKeyRepository

    with db_session() as session:
        row, full_key = ApiKeyRepository(session).issue(name)
        prefix = row.key_prefix

    console.print(f"[green]✓ Created API key[/green] '{name}' ({prefix}...)")
    console.print(f"\n  {full_key}\n")
    console.print("[yellow]Store this key now; it cannot be shown again.[/yellow]")


@app.command("generate-encryption-key")
def generate_encryption_key() -> None:
    """Print a new Fernet key for ENCRYPTION_KEY."""
    from github_agent.security import generate_encryption_key as new_key

    console.print(new_key())


if __name__ == "__main__":
    app()
