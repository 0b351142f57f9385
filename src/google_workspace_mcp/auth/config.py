"""Authentication configuration for Google Workspace MCP.

Environment Variables:
    GOOGLE_WORKSPACE_MCP_AUTH_FLOW: Interactive flow to use when no usable
        token exists: ``browser``, ``device`` or ``auto`` (default).
    GOOGLE_WORKSPACE_MCP_CONFIG_DIR: Directory holding credentials.json and
        token.json (default: ~/.google-workspace-mcp).
    GOOGLE_WORKSPACE_MCP_LOG_LEVEL: Logging level for entry points (default: INFO).
"""

import logging
import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

AUTH_FLOW_ENV = "GOOGLE_WORKSPACE_MCP_AUTH_FLOW"
CONFIG_DIR_ENV = "GOOGLE_WORKSPACE_MCP_CONFIG_DIR"
LOG_LEVEL_ENV = "GOOGLE_WORKSPACE_MCP_LOG_LEVEL"

# Google Workspace OAuth scopes
GOOGLE_WORKSPACE_SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/presentations",
    "https://www.googleapis.com/auth/contacts",
]

# Google OAuth endpoints
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint
GOOGLE_DEVICE_CODE_URI = "https://oauth2.googleapis.com/device/code"
GOOGLE_DEVICE_VERIFICATION_URL = "https://www.google.com/device"

# OAuth callback defaults
DEFAULT_OAUTH_HOST = "localhost"
DEFAULT_OAUTH_PORT = 4100
DEFAULT_CALLBACK_PATH = "/callback"
DEFAULT_CONFIG_DIR = Path.home() / ".google-workspace-mcp"


class AuthFlow(str, Enum):
    """Interactive authorization flow selector."""

    BROWSER = "browser"
    DEVICE = "device"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: str | None) -> "AuthFlow":
        """Parse a flow name, treating unknown values as AUTO."""
        if not value:
            return cls.AUTO
        try:
            return cls(value.strip().lower())
        except ValueError:
            logger.warning(f"Unknown auth flow '{value}', using 'auto'")
            return cls.AUTO


class AuthConfig(BaseModel):
    """Settings for the credential and session manager.

    Defaults come from the module constants above. Tests build instances
    directly to point the manager at temporary directories and fake endpoints.

    Attributes:
        config_dir: Directory holding credentials.json and token.json.
        scopes: OAuth scopes requested for every authorization.
        flow: Interactive flow policy.
        redirect_host: Loopback host for the browser-redirect callback.
        redirect_port: Loopback port for the browser-redirect callback.
        callback_path: Path the provider redirects to.
        browser_timeout_seconds: Hard deadline for the browser callback.
        default_poll_interval_seconds: Device poll interval when the
            provider declares none.
        slow_down_increment_seconds: Added to the poll interval on each
            ``slow_down`` response.
        open_browser: Whether to launch the system browser.
    """

    config_dir: Path = Field(default_factory=lambda: DEFAULT_CONFIG_DIR)
    scopes: list[str] = Field(default_factory=lambda: list(GOOGLE_WORKSPACE_SCOPES))
    flow: AuthFlow = AuthFlow.AUTO
    redirect_host: str = DEFAULT_OAUTH_HOST
    redirect_port: int = DEFAULT_OAUTH_PORT
    callback_path: str = DEFAULT_CALLBACK_PATH
    browser_timeout_seconds: float = 300.0
    default_poll_interval_seconds: int = 5
    slow_down_increment_seconds: int = 5
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI
    device_code_uri: str = GOOGLE_DEVICE_CODE_URI
    open_browser: bool = True

    @classmethod
    def from_env(cls, **overrides) -> "AuthConfig":
        """Build configuration from environment variables.

        Args:
            **overrides: Explicit field values that win over the environment.

        Returns:
            AuthConfig instance.
        """
        values: dict = {"flow": AuthFlow.parse(os.environ.get(AUTH_FLOW_ENV))}
        config_dir = os.environ.get(CONFIG_DIR_ENV)
        if config_dir:
            values["config_dir"] = Path(config_dir).expanduser()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def credentials_path(self) -> Path:
        """Path to the operator-supplied client registration."""
        return self.config_dir / "credentials.json"

    @property
    def token_path(self) -> Path:
        """Path to the persisted token record."""
        return self.config_dir / "token.json"

    @property
    def redirect_uri(self) -> str:
        """Full loopback redirect URI registered with the provider."""
        return f"http://{self.redirect_host}:{self.redirect_port}{self.callback_path}"


def get_log_level() -> int:
    """Resolve the logging level from the environment."""
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO
