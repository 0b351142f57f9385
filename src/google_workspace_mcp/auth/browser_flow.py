"""Loopback browser-redirect OAuth flow for Google.

Opens the consent page in the user's browser and waits for Google to
redirect back to a one-shot HTTP listener on the fixed loopback port.
"""

import asyncio
import logging
import secrets
import sys
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlparse

from google_auth_oauthlib.flow import Flow

from google_workspace_mcp.auth.clock import Clock, SystemClock
from google_workspace_mcp.auth.config import AuthConfig
from google_workspace_mcp.auth.errors import (
    AuthorizationDenied,
    BrowserFlowError,
    BrowserFlowTimedOut,
    CallbackExchangeFailed,
    CallbackStateMismatch,
    NoAuthorizationCode,
    PortInUse,
)
from google_workspace_mcp.auth.models import ClientRegistration, TokenRecord
from google_workspace_mcp.auth.token_storage import TokenStorage

logger = logging.getLogger(__name__)

SUCCESS_PAGE = (
    b"<html><body><h1>Authentication successful!</h1>"
    b"<p>You can close this window and return to the terminal.</p></body></html>"
)
NO_CODE_PAGE = (
    b"<html><body><h1>Authentication failed</h1>"
    b"<p>No authorization code received.</p></body></html>"
)
DENIED_PAGE = (
    b"<html><body><h1>Authentication failed</h1>"
    b"<p>Please close this window and try again.</p></body></html>"
)
ERROR_PAGE = b"<html><body><h1>Authentication error</h1></body></html>"

# Upper bound on how long one connection may take to send its request
CALLBACK_READ_TIMEOUT_SECONDS = 10.0


class _CallbackOutcome:
    """Result slot shared between the request handler and the serve loop."""

    def __init__(self) -> None:
        self.record: TokenRecord | None = None
        self.error: BrowserFlowError | None = None

    @property
    def resolved(self) -> bool:
        return self.record is not None or self.error is not None


class BrowserRedirectFlow:
    """Authorization-code flow with a loopback redirect.

    Attributes:
        config: Authentication configuration.
        registration: OAuth client registration.
        storage: Token storage the exchanged token is persisted to.
        clock: Time source for the callback deadline.
    """

    def __init__(
        self,
        config: AuthConfig,
        registration: ClientRegistration,
        storage: TokenStorage,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.registration = registration
        self.storage = storage
        self.clock = clock or SystemClock()

    def _create_flow(self) -> Flow:
        """Create the google-auth-oauthlib flow for this registration."""
        return Flow.from_client_config(
            self.registration.to_client_config(self.config.redirect_uri),
            scopes=self.config.scopes,
            redirect_uri=self.config.redirect_uri,
        )

    async def run(self) -> TokenRecord:
        """Run the browser flow to completion.

        The token is persisted before the browser is shown the success page.

        Returns:
            TokenRecord for the granted authorization.

        Raises:
            PortInUse: If the callback port cannot be bound.
            BrowserFlowError: If the callback fails or never arrives.
        """
        flow = self._create_flow()

        # Generate state for CSRF protection
        state = secrets.token_urlsafe(32)
        auth_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=state,
        )

        outcome = _CallbackOutcome()
        server = self._bind(self._make_handler(flow, state, outcome))

        print("Opening browser for authentication...", file=sys.stderr)
        print(f"If browser doesn't open, visit: {auth_url}", file=sys.stderr)

        # Serving is blocking, keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._serve, server, outcome, auth_url)

    def _bind(self, handler_class: type[BaseHTTPRequestHandler]) -> HTTPServer:
        host = self.config.redirect_host
        port = self.config.redirect_port
        try:
            return HTTPServer((host, port), handler_class)
        except OSError as e:
            raise PortInUse(host, port, e) from e

    def _serve(self, server: HTTPServer, outcome: _CallbackOutcome, auth_url: str) -> TokenRecord:
        """Handle requests until one callback resolves the flow or time runs out."""
        try:
            self._launch_browser(auth_url)

            deadline = self.clock.monotonic() + self.config.browser_timeout_seconds
            while not outcome.resolved:
                remaining = deadline - self.clock.monotonic()
                if remaining <= 0:
                    raise BrowserFlowTimedOut(
                        f"No OAuth callback within {self.config.browser_timeout_seconds:g} seconds"
                    )
                server.timeout = remaining
                # An idle connection must not hold the listener past the deadline
                server.RequestHandlerClass.timeout = min(remaining, CALLBACK_READ_TIMEOUT_SECONDS)
                server.handle_request()
        finally:
            server.server_close()

        if outcome.error is not None:
            raise outcome.error
        assert outcome.record is not None
        return outcome.record

    def _launch_browser(self, auth_url: str) -> None:
        if not self.config.open_browser:
            return
        try:
            if not webbrowser.open(auth_url):
                logger.info("No browser available; open the URL above manually")
        except webbrowser.Error as e:
            logger.info(f"Could not open browser: {e}")

    def _exchange_code(self, flow: Flow, code: str) -> TokenRecord:
        """Exchange the authorization code and persist the resulting token."""
        token = flow.fetch_token(code=code)
        record = TokenRecord.from_token_response(dict(token), now_ms=self.clock.now_ms())
        self.storage.save(record)
        return record

    def _make_handler(
        self, flow: Flow, expected_state: str, outcome: _CallbackOutcome
    ) -> type[BaseHTTPRequestHandler]:
        callback_path = self.config.callback_path
        exchange = self._exchange_code

        class OAuthCallbackHandler(BaseHTTPRequestHandler):
            """HTTP handler for the OAuth redirect."""

            timeout = CALLBACK_READ_TIMEOUT_SECONDS

            def log_message(self, format: str, *args) -> None:
                logger.debug("callback listener: " + format, *args)

            def _respond(self, status: int, page: bytes) -> None:
                self.send_response(status)
                self.send_header("Content-Type", "text/html")
                self.send_header("Content-Length", str(len(page)))
                self.end_headers()
                self.wfile.write(page)

            def do_GET(self) -> None:
                request_parsed = urlparse(self.path)

                # Browsers also ask for /favicon.ico and the like
                if request_parsed.path != callback_path or outcome.resolved:
                    self._respond(404, b"Not Found")
                    return

                query_params = parse_qs(request_parsed.query)

                if "error" in query_params:
                    outcome.error = AuthorizationDenied(
                        f"OAuth authentication failed: {query_params['error'][0]}"
                    )
                    self._respond(400, DENIED_PAGE)
                    return

                code = query_params.get("code", [""])[0]
                if not code:
                    outcome.error = NoAuthorizationCode("No authorization code received")
                    self._respond(400, NO_CODE_PAGE)
                    return

                if query_params.get("state", [""])[0] != expected_state:
                    outcome.error = CallbackStateMismatch("OAuth state parameter mismatch")
                    self._respond(400, DENIED_PAGE)
                    return

                try:
                    outcome.record = exchange(flow, code)
                except Exception as e:
                    logger.exception("Authorization code exchange failed")
                    outcome.error = CallbackExchangeFailed(f"Token exchange failed: {e}")
                    self._respond(500, ERROR_PAGE)
                    return

                self._respond(200, SUCCESS_PAGE)

        return OAuthCallbackHandler
