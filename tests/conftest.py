"""Shared pytest fixtures for google-workspace-mcp tests.

This module provides reusable fixtures for testing OAuth configuration,
token storage, the interactive flows and the session manager.
"""

import json
import socket
from pathlib import Path
from typing import Any

import pytest

from google_workspace_mcp.auth.clock import Clock
from google_workspace_mcp.auth.config import AuthConfig, AuthFlow
from google_workspace_mcp.auth.models import ClientRegistration, TokenRecord
from google_workspace_mcp.auth.token_storage import TokenStorage

# Fixed wall-clock origin for deterministic expiry math (2023-11-14T22:13:20Z)
FIXED_NOW_MS = 1_700_000_000_000

CLIENT_SECRETS: dict[str, Any] = {
    "installed": {
        "client_id": "test-client-id.apps.googleusercontent.com",
        "client_secret": "test-client-secret",  # pragma: allowlist secret
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "redirect_uris": ["http://localhost"],
    }
}


# =============================================================================
# Clock Fixtures
# =============================================================================


class FakeClock(Clock):
    """Clock whose sleep advances time instantly and records each wait."""

    def __init__(self, now_ms: int = FIXED_NOW_MS) -> None:
        self._now_ms = now_ms
        self.sleeps: list[float] = []

    def now_ms(self) -> int:
        return self._now_ms

    def monotonic(self) -> float:
        return self._now_ms / 1000

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._now_ms += int(seconds * 1000)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Create a fake clock pinned to FIXED_NOW_MS."""
    return FakeClock()


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def free_port() -> int:
    """Find a loopback port that is currently unused."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Create a temporary configuration directory."""
    directory = tmp_path / ".google-workspace-mcp"
    directory.mkdir(mode=0o700)
    return directory


@pytest.fixture
def auth_config(config_dir: Path, free_port: int) -> AuthConfig:
    """Create an AuthConfig rooted in a temporary directory.

    The browser is never launched and the callback listener uses a free
    IPv4 loopback port.
    """
    return AuthConfig(
        config_dir=config_dir,
        flow=AuthFlow.AUTO,
        redirect_host="127.0.0.1",
        redirect_port=free_port,
        open_browser=False,
    )


@pytest.fixture
def registration_file(auth_config: AuthConfig) -> Path:
    """Write a valid credentials.json into the config directory."""
    auth_config.credentials_path.write_text(json.dumps(CLIENT_SECRETS))
    return auth_config.credentials_path


@pytest.fixture
def registration() -> ClientRegistration:
    """Create the client registration matching CLIENT_SECRETS."""
    return ClientRegistration.from_client_secrets(CLIENT_SECRETS)


# =============================================================================
# Token Fixtures
# =============================================================================


@pytest.fixture
def valid_record() -> TokenRecord:
    """Create a refreshable token record valid for an hour past FIXED_NOW_MS."""
    return TokenRecord(
        access_token="ya29.test_access_token_abc123",
        refresh_token="1//test_refresh_token_xyz789",
        scope=(
            "https://www.googleapis.com/auth/gmail.modify "
            "https://www.googleapis.com/auth/calendar"
        ),
        token_type="Bearer",
        expiry_date=FIXED_NOW_MS + 3600 * 1000,
    )


@pytest.fixture
def expired_record() -> TokenRecord:
    """Create a refreshable token record that expired an hour before FIXED_NOW_MS."""
    return TokenRecord(
        access_token="ya29.expired_access_token",
        refresh_token="1//test_refresh_token",
        scope="https://www.googleapis.com/auth/calendar",
        token_type="Bearer",
        expiry_date=FIXED_NOW_MS - 3600 * 1000,
    )


@pytest.fixture
def token_response() -> dict[str, Any]:
    """Create a Google token endpoint success response."""
    return {
        "access_token": "ya29.granted_access_token",
        "refresh_token": "1//granted_refresh_token",
        "scope": "https://www.googleapis.com/auth/drive https://www.googleapis.com/auth/gmail.modify",
        "token_type": "Bearer",
        "expires_in": 3599,
    }


# =============================================================================
# Token Storage Fixtures
# =============================================================================


@pytest.fixture
def token_storage(auth_config: AuthConfig) -> TokenStorage:
    """Create a TokenStorage instance with temporary storage."""
    return TokenStorage(
        token_path=auth_config.token_path,
        credentials_path=auth_config.credentials_path,
    )


# =============================================================================
# OAuth Manager Fixtures
# =============================================================================


@pytest.fixture
def oauth_manager(auth_config: AuthConfig, token_storage: TokenStorage, fake_clock: FakeClock):
    """Create an OAuthManager with temporary storage and a fake clock."""
    from google_workspace_mcp.auth.oauth_manager import OAuthManager

    return OAuthManager(config=auth_config, storage=token_storage, clock=fake_clock)


# =============================================================================
# CLI Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


# =============================================================================
# Constants as Fixtures
# =============================================================================


@pytest.fixture
def now_ms() -> int:
    """Wall-clock time the fake clock starts at, in epoch milliseconds."""
    return FIXED_NOW_MS


@pytest.fixture
def client_secrets() -> dict[str, Any]:
    """Create a credentials.json document for an installed client."""
    return json.loads(json.dumps(CLIENT_SECRETS))
