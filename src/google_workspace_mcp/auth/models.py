"""Data models for Google Workspace OAuth state.

The token record mirrors the flat ``token.json`` layout written by the
googleapis client libraries, so files written by other tools keep working:

    {"access_token": ..., "refresh_token": ..., "scope": ...,
     "token_type": ..., "expiry_date": <epoch milliseconds>}
"""

import time
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from google_workspace_mcp.auth.config import (
    GOOGLE_AUTH_URI,
    GOOGLE_DEVICE_VERIFICATION_URL,
    GOOGLE_TOKEN_URI,
)

# Token response fields recomputed into expiry_date rather than stored
_TRANSIENT_TOKEN_FIELDS = ("expires_in", "expires_at")


def _now_ms() -> int:
    return int(time.time() * 1000)


class TokenStatus(str, Enum):
    """Status of the persisted token."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


class ClientRegistration(BaseModel):
    """OAuth client identity loaded from credentials.json.

    Attributes:
        client_type: Which section of the file was used ("installed" or "web").
        client_id: OAuth client ID.
        client_secret: OAuth client secret.
        redirect_uris: Redirect URIs registered in the Cloud console.
        auth_uri: Authorization endpoint.
        token_uri: Token endpoint.
    """

    client_type: Literal["installed", "web"]
    client_id: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)
    redirect_uris: list[str] = Field(default_factory=list)
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI

    @classmethod
    def from_client_secrets(cls, data: Any) -> "ClientRegistration":
        """Parse a Google client secrets document.

        Args:
            data: Decoded credentials.json content.

        Returns:
            ClientRegistration for the first of "installed" or "web" present.

        Raises:
            ValueError: If neither section is present or a section is incomplete.
        """
        if isinstance(data, dict):
            for client_type in ("installed", "web"):
                section = data.get(client_type)
                if isinstance(section, dict):
                    return cls.model_validate({**section, "client_type": client_type})
        raise ValueError("expected an 'installed' or 'web' client section")

    def to_client_config(self, redirect_uri: str) -> dict[str, Any]:
        """Build a client config dict for google-auth-oauthlib.

        Args:
            redirect_uri: Redirect URI to use for this authorization.

        Returns:
            Client config keyed by client type.
        """
        return {
            self.client_type: {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
                "redirect_uris": [redirect_uri],
            }
        }


class TokenRecord(BaseModel):
    """Persisted OAuth token.

    Unknown provider fields (``id_token`` and the like) are kept so that a
    load/save cycle never drops data.

    Attributes:
        access_token: Bearer token for API calls.
        refresh_token: Long-lived refresh credential, if issued.
        scope: Space-separated granted scopes as returned by the provider.
        token_type: Token type, normally "Bearer".
        expiry_date: Absolute expiry in epoch milliseconds.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: str | None = None
    scope: str | None = None
    token_type: str | None = None
    expiry_date: int | None = None

    @classmethod
    def from_token_response(cls, payload: dict[str, Any], now_ms: int) -> "TokenRecord":
        """Build a record from a token endpoint response.

        Args:
            payload: Token response (raw JSON or an oauthlib token dict).
            now_ms: Current time in epoch milliseconds.

        Returns:
            TokenRecord with an absolute expiry when expires_in was given.
        """
        data = {
            key: value
            for key, value in payload.items()
            if value is not None and key not in _TRANSIENT_TOKEN_FIELDS
        }
        # oauthlib hands scopes back as a list
        if isinstance(data.get("scope"), list):
            data["scope"] = " ".join(data["scope"])

        expires_in = payload.get("expires_in")
        if expires_in is not None:
            data["expiry_date"] = now_ms + int(expires_in) * 1000

        return cls.model_validate(data)

    @property
    def scopes(self) -> list[str]:
        """Granted scopes as a list."""
        return self.scope.split() if self.scope else []

    def is_expired(self, now_ms: int | None = None, buffer_seconds: int = 60) -> bool:
        """Check whether the access token is expired or about to expire.

        Args:
            now_ms: Current time in epoch milliseconds. Defaults to wall clock.
            buffer_seconds: Treat tokens expiring within this window as expired.

        Returns:
            True if expired. Records without an expiry never expire.
        """
        if self.expiry_date is None:
            return False
        if now_ms is None:
            now_ms = _now_ms()
        return now_ms + buffer_seconds * 1000 >= self.expiry_date

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize to the token.json layout, omitting empty fields."""
        return self.model_dump(mode="json", exclude_none=True)


class DeviceAuthorization(BaseModel):
    """A pending device-code authorization.

    Attributes:
        device_code: Provider code used when polling.
        user_code: Short code the user types on the verification page.
        verification_url: Page where the user approves access.
        expires_at_ms: Absolute expiry of the device code (epoch ms).
        interval: Seconds to wait between polls.
    """

    device_code: str
    user_code: str
    verification_url: str
    expires_at_ms: int
    interval: int

    @classmethod
    def from_response(
        cls, payload: dict[str, Any], now_ms: int, default_interval: int
    ) -> "DeviceAuthorization":
        """Build from a device code endpoint response.

        Args:
            payload: Decoded device code response.
            now_ms: Current time in epoch milliseconds.
            default_interval: Interval to use when the provider gives none.

        Returns:
            DeviceAuthorization instance.
        """
        verification_url = (
            payload.get("verification_uri_complete")
            or payload.get("verification_url")
            or payload.get("verification_uri")
            or GOOGLE_DEVICE_VERIFICATION_URL
        )
        return cls(
            device_code=payload["device_code"],
            user_code=payload["user_code"],
            verification_url=verification_url,
            expires_at_ms=now_ms + int(payload["expires_in"]) * 1000,
            interval=int(payload.get("interval") or default_interval),
        )
