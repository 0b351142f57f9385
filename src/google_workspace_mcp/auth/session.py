"""Authenticated session handle passed to the tool handlers."""

import asyncio
import logging
from datetime import datetime, timezone

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from google_workspace_mcp.auth.errors import SessionExpired
from google_workspace_mcp.auth.models import ClientRegistration, TokenRecord
from google_workspace_mcp.auth.token_storage import TokenStorage

logger = logging.getLogger(__name__)


def record_to_credentials(
    record: TokenRecord, registration: ClientRegistration, scopes: list[str]
) -> Credentials:
    """Convert a TokenRecord to google-auth Credentials.

    Args:
        record: Persisted token record.
        registration: Client registration, needed for refresh.
        scopes: Scopes to attach when the record does not list any.

    Returns:
        Google OAuth2 credentials.
    """
    expiry = None
    if record.expiry_date is not None:
        # google-auth compares against naive UTC datetimes
        expiry = datetime.fromtimestamp(record.expiry_date / 1000, tz=timezone.utc).replace(
            tzinfo=None
        )

    return Credentials(
        token=record.access_token,
        refresh_token=record.refresh_token,
        token_uri=registration.token_uri,
        client_id=registration.client_id,
        client_secret=registration.client_secret,
        scopes=record.scopes or scopes,
        expiry=expiry,
    )


def credentials_to_record(credentials: Credentials, previous: TokenRecord) -> TokenRecord:
    """Convert refreshed google-auth Credentials back to a TokenRecord.

    Fields the refresh response does not carry are kept from ``previous``.

    Args:
        credentials: Freshly refreshed credentials.
        previous: Record the credentials were built from.

    Returns:
        Updated TokenRecord.
    """
    data = previous.to_json_dict()
    data["access_token"] = credentials.token
    data["refresh_token"] = credentials.refresh_token or previous.refresh_token
    data["token_type"] = previous.token_type or "Bearer"

    if credentials.expiry:
        expires_at = credentials.expiry
        # Ensure timezone-aware
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        data["expiry_date"] = int(expires_at.timestamp() * 1000)

    granted = getattr(credentials, "granted_scopes", None)
    if granted:
        data["scope"] = " ".join(granted)

    return TokenRecord.model_validate({k: v for k, v in data.items() if v is not None})


async def refresh_credentials(credentials: Credentials) -> None:
    """Refresh credentials in the default executor (the transport blocks)."""
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, credentials.refresh, Request())


class AuthenticatedSession:
    """Ready-to-use Google credentials with lazy refresh.

    Tool handlers ask the session for a bearer token on every call; the
    session refreshes and re-persists the token when it has expired.

    Attributes:
        credentials: Underlying google-auth credentials.
        record: Token record the credentials currently reflect.
    """

    def __init__(
        self,
        credentials: Credentials,
        record: TokenRecord,
        storage: TokenStorage,
    ) -> None:
        self.credentials = credentials
        self.record = record
        self.storage = storage
        self._lock = asyncio.Lock()

    async def get_access_token(self) -> str:
        """Get a valid access token, refreshing if necessary.

        Returns:
            Valid access token string.

        Raises:
            SessionExpired: If the token expired and cannot be refreshed.
        """
        async with self._lock:
            if self.credentials.valid:
                return self.credentials.token

            if not self.credentials.refresh_token:
                raise SessionExpired(
                    "Access token expired and no refresh token is available. "
                    "Re-authenticate using: workspace setup"
                )

            logger.info("Access token expired, refreshing...")
            try:
                await refresh_credentials(self.credentials)
            except RefreshError as e:
                raise SessionExpired(
                    f"Token refresh failed ({e}). Re-authenticate using: workspace setup"
                ) from e

            self.record = credentials_to_record(self.credentials, self.record)
            self.storage.save(self.record)
            return self.credentials.token

    async def authorization_header(self) -> dict[str, str]:
        """Build the Authorization header for an API request."""
        return {"Authorization": f"Bearer {await self.get_access_token()}"}
