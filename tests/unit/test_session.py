"""Unit tests for AuthenticatedSession and the credential converters."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError

from google_workspace_mcp.auth.errors import SessionExpired
from google_workspace_mcp.auth.models import ClientRegistration, TokenRecord
from google_workspace_mcp.auth.session import (
    AuthenticatedSession,
    credentials_to_record,
    record_to_credentials,
)
from google_workspace_mcp.auth.token_storage import TokenStorage


def _utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@pytest.fixture
def mock_google_credentials() -> MagicMock:
    """Create a mock Google OAuth2 Credentials object."""
    mock_creds = MagicMock()
    mock_creds.token = "mock_access_token"
    mock_creds.refresh_token = "mock_refresh_token"
    mock_creds.expiry = _utcnow_naive() + timedelta(hours=1)
    mock_creds.valid = True
    mock_creds.granted_scopes = None
    return mock_creds


@pytest.mark.unit
class TestCredentialConversion:
    """Tests for converting between TokenRecord and google-auth Credentials."""

    def test_should_build_credentials_from_record(
        self, valid_record: TokenRecord, registration: ClientRegistration
    ) -> None:
        """Verify tokens, client identity and expiry carry over."""
        creds = record_to_credentials(valid_record, registration, ["fallback.scope"])

        assert creds.token == valid_record.access_token
        assert creds.refresh_token == valid_record.refresh_token
        assert creds.client_id == registration.client_id
        assert creds.client_secret == registration.client_secret
        assert creds.token_uri == registration.token_uri
        assert creds.scopes == valid_record.scopes
        assert creds.expiry.tzinfo is None
        assert int(creds.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000) == (
            valid_record.expiry_date
        )

    def test_should_fall_back_to_configured_scopes(
        self, registration: ClientRegistration
    ) -> None:
        """Verify configured scopes are used when the record lists none."""
        record = TokenRecord(access_token="a", refresh_token="r")

        creds = record_to_credentials(record, registration, ["fallback.scope"])

        assert creds.scopes == ["fallback.scope"]
        assert creds.expiry is None

    def test_should_keep_previous_fields_after_refresh(
        self, valid_record: TokenRecord, mock_google_credentials: MagicMock
    ) -> None:
        """Verify refresh results merge into the previous record."""
        previous = TokenRecord.model_validate({**valid_record.to_json_dict(), "id_token": "eyJ.x.y"})
        mock_google_credentials.token = "ya29.refreshed"
        mock_google_credentials.refresh_token = None

        record = credentials_to_record(mock_google_credentials, previous)

        assert record.access_token == "ya29.refreshed"
        assert record.refresh_token == valid_record.refresh_token
        assert record.scope == valid_record.scope
        assert record.to_json_dict()["id_token"] == "eyJ.x.y"
        expected_ms = int(
            mock_google_credentials.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000
        )
        assert record.expiry_date == expected_ms

    def test_should_take_granted_scopes_when_present(
        self, valid_record: TokenRecord, mock_google_credentials: MagicMock
    ) -> None:
        """Verify scopes granted on refresh replace the stored ones."""
        mock_google_credentials.granted_scopes = ["scope.a", "scope.b"]

        record = credentials_to_record(mock_google_credentials, valid_record)

        assert record.scope == "scope.a scope.b"


@pytest.mark.unit
class TestAuthenticatedSession:
    """Tests for AuthenticatedSession.get_access_token()."""

    @pytest.mark.asyncio
    async def test_should_return_valid_token_without_refresh(
        self,
        valid_record: TokenRecord,
        token_storage: TokenStorage,
        mock_google_credentials: MagicMock,
    ) -> None:
        """Verify a valid token is returned as is."""
        session = AuthenticatedSession(mock_google_credentials, valid_record, token_storage)

        with patch(
            "google_workspace_mcp.auth.session.refresh_credentials", new_callable=AsyncMock
        ) as mock_refresh:
            token = await session.get_access_token()

        assert token == "mock_access_token"
        mock_refresh.assert_not_called()
        assert token_storage.load() is None

    @pytest.mark.asyncio
    async def test_should_refresh_and_persist_expired_token(
        self,
        expired_record: TokenRecord,
        token_storage: TokenStorage,
        mock_google_credentials: MagicMock,
    ) -> None:
        """Verify an expired token is refreshed and written back to disk."""
        mock_google_credentials.valid = False

        async def fake_refresh(credentials) -> None:
            credentials.token = "ya29.refreshed"
            credentials.valid = True

        session = AuthenticatedSession(mock_google_credentials, expired_record, token_storage)

        with patch(
            "google_workspace_mcp.auth.session.refresh_credentials", side_effect=fake_refresh
        ):
            token = await session.get_access_token()

        assert token == "ya29.refreshed"
        stored = token_storage.load()
        assert stored is not None
        assert stored.access_token == "ya29.refreshed"
        assert stored.refresh_token == "mock_refresh_token"
        assert stored.expiry_date is not None

    @pytest.mark.asyncio
    async def test_should_raise_session_expired_without_refresh_token(
        self,
        token_storage: TokenStorage,
        mock_google_credentials: MagicMock,
    ) -> None:
        """Verify an expired token with no refresh token cannot be used."""
        mock_google_credentials.valid = False
        mock_google_credentials.refresh_token = None
        session = AuthenticatedSession(
            mock_google_credentials, TokenRecord(access_token="old"), token_storage
        )

        with pytest.raises(SessionExpired):
            await session.get_access_token()

    @pytest.mark.asyncio
    async def test_should_raise_session_expired_when_refresh_rejected(
        self,
        expired_record: TokenRecord,
        token_storage: TokenStorage,
        mock_google_credentials: MagicMock,
    ) -> None:
        """Verify a revoked refresh token surfaces as SessionExpired."""
        mock_google_credentials.valid = False
        session = AuthenticatedSession(mock_google_credentials, expired_record, token_storage)

        with patch(
            "google_workspace_mcp.auth.session.refresh_credentials",
            side_effect=RefreshError("invalid_grant: Token has been expired or revoked."),
        ):
            with pytest.raises(SessionExpired, match="invalid_grant"):
                await session.get_access_token()

    @pytest.mark.asyncio
    async def test_should_build_bearer_header(
        self,
        valid_record: TokenRecord,
        token_storage: TokenStorage,
        mock_google_credentials: MagicMock,
    ) -> None:
        """Verify the Authorization header uses the bearer scheme."""
        session = AuthenticatedSession(mock_google_credentials, valid_record, token_storage)

        assert await session.authorization_header() == {
            "Authorization": "Bearer mock_access_token"
        }
