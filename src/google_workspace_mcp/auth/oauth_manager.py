"""OAuth credential and session manager for Google Workspace.

Startup sequence:

1. Load the client registration from credentials.json (fatal if missing).
2. Silently refresh a persisted token when it carries a refresh token.
3. Otherwise run an interactive flow chosen by GOOGLE_WORKSPACE_MCP_AUTH_FLOW:
   ``browser``, ``device``, or ``auto`` (browser, then device on failure).
4. Persist the token and hand back an AuthenticatedSession.
"""

import logging
import sys

import httpx

from google_workspace_mcp.auth.browser_flow import BrowserRedirectFlow
from google_workspace_mcp.auth.clock import Clock, SystemClock
from google_workspace_mcp.auth.config import AuthConfig, AuthFlow
from google_workspace_mcp.auth.device_flow import DeviceCodeFlow
from google_workspace_mcp.auth.errors import (
    AuthenticationFailed,
    MissingRegistration,
    WorkspaceAuthError,
)
from google_workspace_mcp.auth.models import ClientRegistration, TokenRecord, TokenStatus
from google_workspace_mcp.auth.session import (
    AuthenticatedSession,
    credentials_to_record,
    record_to_credentials,
    refresh_credentials,
)
from google_workspace_mcp.auth.token_storage import TokenStorage

logger = logging.getLogger(__name__)


class OAuthManager:
    """OAuth authentication manager for Google Workspace.

    Owns the on-disk credential state and produces an authenticated session
    exactly once per process.

    Attributes:
        config: Authentication configuration.
        storage: Token storage instance for persisting credentials.
        clock: Time source for expiry and deadlines.

    Example:
        ```python
        manager = OAuthManager()
        session = await manager.acquire_session()
        token = await session.get_access_token()
        ```
    """

    def __init__(
        self,
        config: AuthConfig | None = None,
        storage: TokenStorage | None = None,
        clock: Clock | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize OAuth manager.

        Args:
            config: Authentication configuration. Read from the environment
                if not provided.
            storage: Token storage instance. Creates one at the configured
                paths if not provided.
            clock: Time source. Defaults to the system clock.
            http_client: HTTP client for the device flow.
        """
        self.config = config or AuthConfig.from_env()
        self.storage = storage or TokenStorage(
            token_path=self.config.token_path,
            credentials_path=self.config.credentials_path,
        )
        self.clock = clock or SystemClock()
        self._http_client = http_client

    @property
    def token_path(self):
        """Path to the persisted token file."""
        return self.storage.token_path

    def get_status(self) -> tuple[TokenStatus, TokenRecord | None]:
        """Get the status of the persisted token.

        Returns:
            Tuple of (TokenStatus, TokenRecord or None).
        """
        status = self.storage.get_status(self.clock.now_ms())
        record = self.storage.load() if status != TokenStatus.MISSING else None
        return (status, record)

    def load_registration(self) -> ClientRegistration:
        """Load the client registration, printing setup help when absent.

        Raises:
            MissingRegistration: If credentials.json does not exist.
            InvalidRegistration: If credentials.json is unusable.
        """
        try:
            return self.storage.load_registration()
        except MissingRegistration:
            # Give the operator a place to drop the file
            self.storage.ensure_credentials_dir()
            self._print_setup_instructions()
            raise

    def _print_setup_instructions(self) -> None:
        credentials_path = self.storage.credentials_path
        lines = [
            "",
            "=== Google Workspace MCP Setup ===",
            "",
            f"No credentials found at: {credentials_path}",
            "",
            "To set up authentication:",
            "1. Go to https://console.cloud.google.com/",
            "2. Create a project (or select existing)",
            "3. Enable the Gmail, Calendar, Drive, Docs, Sheets, Slides and People APIs",
            "4. Create OAuth 2.0 credentials (Desktop app type)",
            "5. Download the JSON and save it as:",
            f"   {credentials_path}",
            "",
            "Then run this command again.",
        ]
        print("\n".join(lines), file=sys.stderr)

    async def acquire_session(self) -> AuthenticatedSession:
        """Produce an authenticated session, authorizing if needed.

        Returns:
            AuthenticatedSession ready for API calls.

        Raises:
            ConfigurationError: If the client registration is missing or invalid.
            AuthorizationFlowError: If the selected single flow failed.
            AuthenticationFailed: If both flows failed in auto mode.
        """
        registration = self.load_registration()

        record = await self._use_stored_token(registration)
        if record is None:
            record = await self._authorize_interactively(registration)

        return self._build_session(record, registration)

    async def authenticate(self) -> AuthenticatedSession:
        """Run interactive authorization even if a usable token exists.

        Returns:
            AuthenticatedSession for the new authorization.
        """
        registration = self.load_registration()
        record = await self._authorize_interactively(registration)
        return self._build_session(record, registration)

    async def _use_stored_token(self, registration: ClientRegistration) -> TokenRecord | None:
        """Return a usable persisted token, refreshing it when possible.

        Returns:
            TokenRecord, or None if interactive authorization is required.
        """
        record = self.storage.load()
        if record is None:
            logger.info("No stored token, interactive authorization required")
            return None

        if not record.refresh_token:
            if record.is_expired(self.clock.now_ms()):
                logger.info("Stored token expired and has no refresh token")
                return None
            return record

        credentials = record_to_credentials(record, registration, self.config.scopes)
        try:
            await refresh_credentials(credentials)
        except Exception as e:
            logger.warning(f"Token refresh failed, re-authenticating... ({e})")
            return None

        refreshed = credentials_to_record(credentials, record)
        self.storage.save(refreshed)
        logger.info("Refreshed stored token")
        return refreshed

    async def _authorize_interactively(self, registration: ClientRegistration) -> TokenRecord:
        """Run the configured interactive flow policy."""
        flow = self.config.flow

        if flow is AuthFlow.DEVICE:
            return await self._run_device_flow(registration)

        if flow is AuthFlow.BROWSER:
            return await self._run_browser_flow(registration)

        try:
            return await self._run_browser_flow(registration)
        except Exception as browser_error:
            logger.warning(f"Browser auth failed ({browser_error}), falling back to device flow...")
            try:
                return await self._run_device_flow(registration)
            except WorkspaceAuthError as device_error:
                raise AuthenticationFailed(
                    f"Browser authorization failed ({browser_error}) "
                    f"and device authorization failed ({device_error})"
                ) from device_error

    async def _run_browser_flow(self, registration: ClientRegistration) -> TokenRecord:
        flow = BrowserRedirectFlow(self.config, registration, self.storage, clock=self.clock)
        # The flow persists the token before answering the callback
        return await flow.run()

    async def _run_device_flow(self, registration: ClientRegistration) -> TokenRecord:
        flow = DeviceCodeFlow(
            self.config, registration, clock=self.clock, http_client=self._http_client
        )
        record = await flow.run()
        self.storage.save(record)
        return record

    def _build_session(
        self, record: TokenRecord, registration: ClientRegistration
    ) -> AuthenticatedSession:
        credentials = record_to_credentials(record, registration, self.config.scopes)
        return AuthenticatedSession(credentials, record, self.storage)
