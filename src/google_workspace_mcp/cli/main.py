"""Command-line interface for google-workspace-mcp."""

import asyncio
import logging
import sys
from datetime import datetime, timezone

import click

from google_workspace_mcp.__version__ import __version__
from google_workspace_mcp.auth.config import AuthFlow, get_log_level

FLOW_CHOICES = [flow.value for flow in AuthFlow]


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Google Workspace MCP Server - Connect MCP clients to Google Workspace APIs.

    This tool provides 45 tools across:
    - Gmail (search, read, send, organize)
    - Calendar (events, availability)
    - Drive (files, folders, sharing)
    - Docs, Sheets and Slides (read, create, edit)
    - Contacts (list, search, create)
    """
    logging.basicConfig(level=get_log_level())


@main.command()
@click.option(
    "--flow",
    type=click.Choice(FLOW_CHOICES, case_sensitive=False),
    default=None,
    help="Authorization flow (default: GOOGLE_WORKSPACE_MCP_AUTH_FLOW or auto)",
)
@click.option("--no-browser", is_flag=True, help="Print the consent URL instead of opening it")
def setup(flow: str | None, no_browser: bool) -> None:
    """Set up Google Workspace OAuth authentication.

    This will:
    1. Check for credentials.json in the config directory
    2. Authorize through the browser or a device code
    3. Store the token at ~/.google-workspace-mcp/token.json
    """
    from google_workspace_mcp.auth import AuthConfig, OAuthManager, TokenStatus, WorkspaceAuthError

    config = AuthConfig.from_env(
        flow=AuthFlow.parse(flow) if flow else None,
        open_browser=False if no_browser else None,
    )
    manager = OAuthManager(config=config)

    reauthenticate = False
    status, _ = manager.get_status()
    if status == TokenStatus.VALID:
        click.echo("✓ Already authenticated!")
        click.echo(f"Token stored at: {manager.token_path}")
        click.echo("")

        if not click.confirm("Re-authenticate?"):
            return
        reauthenticate = True

    click.echo(f"Starting OAuth authentication ({config.flow.value} flow)...")
    click.echo("")

    try:
        if reauthenticate:
            asyncio.run(manager.authenticate())
        else:
            asyncio.run(manager.acquire_session())
    except WorkspaceAuthError as e:
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)

    click.echo("✓ Authentication successful!")
    click.echo(f"Token stored at: {manager.token_path}")
    click.echo("")
    click.echo("Run 'workspace doctor' to verify setup.")


@main.command()
def mcp() -> None:
    """Start the MCP server for MCP client integration.

    Starts the stdio MCP server that provides 45 tools across:
    - Gmail (11 tools): Search, send, reply, drafts, labels
    - Calendar (8 tools): Events, calendars, availability
    - Drive (11 tools): Files, folders, sharing, export
    - Docs (4 tools), Sheets (4 tools), Slides (3 tools)
    - People (4 tools): Contacts

    Authenticates first, interactively if no usable token is stored.
    This command is typically invoked by an MCP client over stdio.
    """
    from google_workspace_mcp.server import main as server_main

    # stdout belongs to the MCP protocol
    try:
        click.echo("Starting Google Workspace MCP server...", err=True)
        server_main()
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)


@main.command()
def doctor() -> None:
    """Check installation and authentication status.

    Verifies:
    1. Python dependencies installed
    2. OAuth client registration present and readable
    3. Token validity
    """
    from google_workspace_mcp.auth import ConfigurationError, OAuthManager, TokenStatus

    click.echo("Google Workspace MCP Status:")
    click.echo("")

    # Check dependencies
    click.echo("Dependencies:")
    try:
        import google.auth  # noqa: F401
        import google_auth_oauthlib  # noqa: F401
        import httpx  # noqa: F401
        import mcp  # noqa: F401

        click.echo("  ✓ google-auth installed")
        click.echo("  ✓ google-auth-oauthlib installed")
        click.echo("  ✓ httpx installed")
        click.echo("  ✓ mcp installed")
    except ImportError as e:
        click.echo(f"  ❌ Missing dependency: {e}")
        sys.exit(1)

    click.echo("")

    manager = OAuthManager()

    # Check client registration
    click.echo("Client registration:")
    click.echo(f"  Credentials file: {manager.storage.credentials_path}")
    try:
        registration = manager.storage.load_registration()
    except ConfigurationError as e:
        click.echo(f"  ❌ {e}")
        click.echo("")
        click.echo("Run 'workspace setup' for setup instructions.")
        sys.exit(1)
    click.echo(f"  ✓ {registration.client_type} client configured")

    click.echo("")

    # Check authentication
    status, record = manager.get_status()

    click.echo("Authentication:")
    click.echo(f"  Token file: {manager.token_path}")

    if status == TokenStatus.MISSING:
        click.echo("  ❌ Not authenticated")
        click.echo("")
        click.echo("Run 'workspace setup' to authenticate.")
        sys.exit(1)
    elif status == TokenStatus.INVALID:
        click.echo("  ❌ Token file corrupted")
        click.echo("")
        click.echo("Run 'workspace setup' to re-authenticate.")
        sys.exit(1)
    elif status == TokenStatus.EXPIRED:
        if record and record.refresh_token:
            click.echo("  ⚠️  Token expired (will refresh automatically on use)")
        else:
            click.echo("  ❌ Token expired and cannot be refreshed")
            click.echo("")
            click.echo("Run 'workspace setup' to re-authenticate.")
            sys.exit(1)
    elif status == TokenStatus.VALID:
        click.echo("  ✓ Authenticated")
        if record and record.expiry_date is not None:
            expires_at = datetime.fromtimestamp(record.expiry_date / 1000, tz=timezone.utc)
            click.echo(f"  Token expires: {expires_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        if record:
            click.echo(f"  Scopes: {len(record.scopes)} granted")

    click.echo("")
    click.echo("✓ Ready to use!")


if __name__ == "__main__":
    main()
