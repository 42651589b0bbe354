"""CLI entry point for the kicktipp tool.

This module is the composition root of the application.  It is the only
place that imports concrete implementations (KicktippClient,
KicktippCredentialSource).  All other layers depend solely on abstractions.
"""

import logging
import os
import sys
from pathlib import Path

# Ensure UTF-8 output on Windows where stdout may default to cp1252.
# reconfigure() is a no-op when encoding is already utf-8.
if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
if hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import requests
import typer
from rich.console import Console
from rich.logging import RichHandler

from kicktipp.auth import credentials as creds_store
from kicktipp.auth.interfaces import Credentials
from kicktipp.core.exceptions import (
    InvalidCredentialsError,
    KicktippError,
    LoginFormMissingError,
    LoginPageUnreachableError,
    LoginRejectedError,
)
from kicktipp.core.models import LoginSite
from kicktipp.providers.kicktipp.auth import KicktippCredentialSource
from kicktipp.providers.kicktipp.client import KicktippClient
from kicktipp.services.snapshot_service import SnapshotService

app = typer.Typer()
auth_app = typer.Typer(help="Manage Kicktipp credentials.")
snapshots_app = typer.Typer(help="Capture HTML snapshots of a community.")

app.add_typer(auth_app, name="auth")
app.add_typer(snapshots_app, name="snapshots")

console = Console(legacy_windows=False)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _site() -> LoginSite:
    """Return the login site, honouring ``KICKTIPP_BASE_URL``."""
    base_url = os.getenv("KICKTIPP_BASE_URL", "").strip()
    return LoginSite(base_url=base_url) if base_url else LoginSite()


def _get_client(credentials: Credentials | None = None) -> KicktippClient:
    """Build a KicktippClient for the configured account.

    Args:
        credentials: Explicit credentials.  Resolved from the environment
            or the credentials file when ``None``.

    Returns:
        A :class:`~kicktipp.providers.kicktipp.client.KicktippClient`.

    Raises:
        InvalidCredentialsError: If no credentials are configured.
    """
    if credentials is None:
        credentials = KicktippCredentialSource().get_credentials()
    return KicktippClient(credentials, site=_site())


def _describe(error: Exception) -> str:
    """Return a one-line, cause-specific message for *error*."""
    if isinstance(error, InvalidCredentialsError):
        return f"Credentials missing: {error}"
    if isinstance(error, LoginRejectedError):
        return f"Bad credentials: {error}"
    if isinstance(error, LoginFormMissingError):
        return f"Site layout changed: {error}"
    if isinstance(error, (LoginPageUnreachableError, requests.RequestException)):
        return f"Network unreachable: {error}"
    return str(error)


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
):
    """Automate kicktipp.de with a transparently managed login session."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# auth commands
# ---------------------------------------------------------------------------


@auth_app.command()
def setup():
    """Configure and save Kicktipp credentials locally."""
    console.print("\n[bold]Kicktipp credentials setup[/bold]\n")
    username = typer.prompt("Kicktipp username (e-mail)")
    password = typer.prompt("Kicktipp password", hide_input=True)

    console.print("\n[dim]Validating credentials...[/dim]")
    try:
        _get_client(Credentials(username=username, password=password)).login()
    except (KicktippError, requests.RequestException) as e:
        console.print(f"[red]Failed to validate credentials:[/red] {_describe(e)}")
        raise typer.Exit(1)

    creds_store.save(username, password)
    console.print(
        f"[green]✓ Credentials saved to:[/green] {creds_store.credentials_path()}"
    )


@auth_app.command()
def status():
    """Show where credentials come from and check that they work."""
    source = KicktippCredentialSource()
    if not source.is_configured():
        console.print("[yellow]No credentials configured.[/yellow]")
        console.print(
            "Set [bold]KICKTIPP_USERNAME[/bold] and [bold]KICKTIPP_PASSWORD[/bold] "
            "or run [bold]kicktipp auth setup[/bold]."
        )
        raise typer.Exit(1)

    console.print(f"[green]✓ Credentials[/green]  {source.credential_source()}")
    console.print("[dim]Validating with Kicktipp...[/dim]")
    try:
        _get_client(source.get_credentials()).login()
    except (KicktippError, requests.RequestException) as e:
        console.print(f"[red]✗ {_describe(e)}[/red]", highlight=False)
        raise typer.Exit(1)
    console.print("[green]✓ Login successful.[/green]")


@auth_app.command()
def clear():
    """Remove locally saved credentials."""
    if creds_store.clear():
        console.print("[green]✓ Credentials removed.[/green]")
    else:
        console.print("[yellow]No saved credentials found.[/yellow]")


# ---------------------------------------------------------------------------
# snapshots commands
# ---------------------------------------------------------------------------


@snapshots_app.command()
def fetch(
    community: str,
    output: Path = typer.Option(
        Path("snapshots"), "--output", "-o", help="Directory to write pages to."
    ),
    workers: int = typer.Option(
        4, "--workers", "-w", min=1, help="Pages fetched in parallel."
    ),
):
    """Fetch HTML snapshots of a community's pages."""
    console.print(f"[blue]Community:[/] [yellow]{community}[/]")
    console.print(f"[blue]Output directory:[/] [yellow]{output}[/]")
    try:
        service = SnapshotService(_get_client(), max_workers=workers)
        with console.status("Fetching snapshots..."):
            saved = service.fetch_snapshots(community, output)
    except (KicktippError, requests.RequestException) as e:
        console.print(f"[red]Error:[/red] {_describe(e)}", highlight=False)
        raise typer.Exit(1)

    for path in saved:
        console.print(f"[green]✓[/green] Saved {path.name}")
    console.print(
        f"\n[green]Done![/green] Saved {len(saved)} snapshot(s) to "
        f"[yellow]{output.resolve()}[/yellow]"
    )
