"""OAuth2 device authorization grant (RFC 8628) for Google.

Used when no browser can reach the loopback callback, e.g. over SSH or in a
container. The user opens the verification URL on any device and enters the
short code while this process polls the token endpoint.
"""

import logging
import sys
from typing import Any

import httpx

from google_workspace_mcp.auth.clock import Clock, SystemClock
from google_workspace_mcp.auth.config import AuthConfig
from google_workspace_mcp.auth.errors import (
    DeviceFlowRejected,
    DeviceFlowStartFailed,
    DeviceFlowTimedOut,
)
from google_workspace_mcp.auth.models import ClientRegistration, DeviceAuthorization, TokenRecord

logger = logging.getLogger(__name__)

DEVICE_CODE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"


class DeviceCodeFlow:
    """Device-code authorization against Google's OAuth endpoints.

    Attributes:
        config: Authentication configuration.
        registration: OAuth client registration.
        clock: Time source for expiry and poll waits.
    """

    def __init__(
        self,
        config: AuthConfig,
        registration: ClientRegistration,
        clock: Clock | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the device flow.

        Args:
            config: Authentication configuration.
            registration: OAuth client registration.
            clock: Time source. Defaults to the system clock.
            http_client: HTTP client to use. A short-lived client is created
                per run when not provided.
        """
        self.config = config
        self.registration = registration
        self.clock = clock or SystemClock()
        self._http_client = http_client

    async def run(self) -> TokenRecord:
        """Run the device flow to completion.

        Returns:
            TokenRecord for the granted authorization.

        Raises:
            DeviceFlowStartFailed: If no device code could be obtained.
            DeviceFlowRejected: If the provider returned a terminal error.
            DeviceFlowTimedOut: If the device code expired first.
        """
        if self._http_client is not None:
            return await self._run(self._http_client)

        async with httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0)) as client:
            return await self._run(client)

    async def _run(self, client: httpx.AsyncClient) -> TokenRecord:
        authorization = await self._request_device_code(client)
        self._show_instructions(authorization)
        return await self._poll_for_token(client, authorization)

    async def _request_device_code(self, client: httpx.AsyncClient) -> DeviceAuthorization:
        """Ask the provider for a device/user code pair."""
        try:
            response = await client.post(
                self.config.device_code_uri,
                data={
                    "client_id": self.registration.client_id,
                    "scope": " ".join(self.config.scopes),
                },
            )
        except httpx.HTTPError as e:
            raise DeviceFlowStartFailed(f"Failed to start device auth flow: {e}") from e

        if response.is_error:
            raise DeviceFlowStartFailed(f"Failed to start device auth flow: {response.text}")

        try:
            return DeviceAuthorization.from_response(
                response.json(),
                now_ms=self.clock.now_ms(),
                default_interval=self.config.default_poll_interval_seconds,
            )
        except (ValueError, KeyError) as e:
            raise DeviceFlowStartFailed(f"Malformed device code response: {e}") from e

    def _show_instructions(self, authorization: DeviceAuthorization) -> None:
        """Tell the operator where to go and what to type."""
        print("\n=== Google Workspace Device Authentication ===", file=sys.stderr)
        print("Open this URL in any browser and complete sign-in:", file=sys.stderr)
        print(authorization.verification_url, file=sys.stderr)
        print(f"If prompted, enter code: {authorization.user_code}", file=sys.stderr)
        print("Waiting for authorization...", file=sys.stderr)

    async def _poll_for_token(
        self, client: httpx.AsyncClient, authorization: DeviceAuthorization
    ) -> TokenRecord:
        """Poll the token endpoint until granted, rejected or expired."""
        interval = authorization.interval

        while self.clock.now_ms() < authorization.expires_at_ms:
            await self.clock.sleep(interval)

            try:
                response = await client.post(
                    self.config.token_uri,
                    data={
                        "client_id": self.registration.client_id,
                        "client_secret": self.registration.client_secret,
                        "device_code": authorization.device_code,
                        "grant_type": DEVICE_CODE_GRANT_TYPE,
                    },
                )
            except httpx.HTTPError as e:
                # Network hiccup; the device code is still valid
                logger.warning(f"Device token poll failed: {e}")
                continue

            payload = self._decode(response)

            if response.is_success and payload.get("access_token"):
                logger.info("Device authorization granted")
                return TokenRecord.from_token_response(payload, now_ms=self.clock.now_ms())

            error = payload.get("error")
            if not error or error == "authorization_pending":
                continue

            if error == "slow_down":
                interval += self.config.slow_down_increment_seconds
                logger.debug(f"Provider asked to slow down, polling every {interval}s")
                continue

            raise DeviceFlowRejected(error, payload.get("error_description"))

        raise DeviceFlowTimedOut("Device authentication timed out")

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
