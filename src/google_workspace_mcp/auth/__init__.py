"""OAuth authentication for Google Workspace MCP.

This package owns the OAuth2 credential lifecycle for Google Workspace
services (Gmail, Calendar, Drive, Docs, Sheets, Slides, People): loading the
client registration, refreshing or acquiring tokens through a browser or
device-code flow, and persisting them.

Quick Start:
    ```python
    from google_workspace_mcp.auth import OAuthManager

    manager = OAuthManager()

    # Refresh the stored token or authorize interactively
    session = await manager.acquire_session()

    # Bearer token for API use
    token = await session.get_access_token()
    ```
"""

from google_workspace_mcp.auth.config import GOOGLE_WORKSPACE_SCOPES, AuthConfig, AuthFlow
from google_workspace_mcp.auth.errors import (
    AuthenticationFailed,
    AuthorizationFlowError,
    ConfigurationError,
    InvalidRegistration,
    MissingRegistration,
    SessionExpired,
    WorkspaceAuthError,
)
from google_workspace_mcp.auth.models import ClientRegistration, TokenRecord, TokenStatus
from google_workspace_mcp.auth.oauth_manager import OAuthManager
from google_workspace_mcp.auth.session import AuthenticatedSession
from google_workspace_mcp.auth.token_storage import TokenStorage

__all__ = [
    "OAuthManager",
    "AuthenticatedSession",
    "AuthConfig",
    "AuthFlow",
    "TokenStorage",
    "TokenRecord",
    "TokenStatus",
    "ClientRegistration",
    "GOOGLE_WORKSPACE_SCOPES",
    "WorkspaceAuthError",
    "ConfigurationError",
    "MissingRegistration",
    "InvalidRegistration",
    "AuthorizationFlowError",
    "AuthenticationFailed",
    "SessionExpired",
]
