"""Unit tests for OAuth data models."""

import pytest
from pydantic import ValidationError

from google_workspace_mcp.auth.config import GOOGLE_DEVICE_VERIFICATION_URL, GOOGLE_TOKEN_URI
from google_workspace_mcp.auth.models import (
    ClientRegistration,
    DeviceAuthorization,
    TokenRecord,
    TokenStatus,
)


@pytest.mark.unit
class TestTokenRecord:
    """Tests for TokenRecord model."""

    def test_should_create_valid_record(self, valid_record: TokenRecord) -> None:
        """Verify record creation with valid data."""
        assert valid_record.access_token == "ya29.test_access_token_abc123"
        assert valid_record.refresh_token == "1//test_refresh_token_xyz789"
        assert valid_record.token_type == "Bearer"
        assert len(valid_record.scopes) == 2

    def test_should_detect_non_expired_record(self, valid_record: TokenRecord, now_ms: int) -> None:
        """Verify is_expired returns False before the expiry."""
        assert valid_record.is_expired(now_ms) is False

    def test_should_detect_expired_record(self, expired_record: TokenRecord, now_ms: int) -> None:
        """Verify is_expired returns True after the expiry."""
        assert expired_record.is_expired(now_ms) is True

    def test_should_respect_buffer_seconds(self, now_ms: int) -> None:
        """Verify is_expired respects buffer_seconds parameter."""
        # Record expires in 30 seconds
        record = TokenRecord(access_token="test", expiry_date=now_ms + 30_000)

        assert record.is_expired(now_ms, buffer_seconds=60) is True
        assert record.is_expired(now_ms, buffer_seconds=10) is False

    def test_should_never_expire_without_expiry_date(self, now_ms: int) -> None:
        """Verify a record without expiry_date is treated as valid."""
        record = TokenRecord(access_token="test")
        assert record.is_expired(now_ms) is False

    def test_should_compute_expiry_from_expires_in(self, token_response: dict, now_ms: int) -> None:
        """Verify expires_in becomes an absolute expiry_date in milliseconds."""
        record = TokenRecord.from_token_response(token_response, now_ms=now_ms)

        assert record.expiry_date == now_ms + 3599 * 1000
        assert "expires_in" not in record.to_json_dict()

    def test_should_join_list_scope(self, now_ms: int) -> None:
        """Verify scopes returned as a list by oauthlib are stored space-separated."""
        record = TokenRecord.from_token_response(
            {"access_token": "a", "scope": ["scope.one", "scope.two"], "expires_at": 1.5},
            now_ms=now_ms,
        )

        assert record.scope == "scope.one scope.two"
        assert record.scopes == ["scope.one", "scope.two"]
        assert "expires_at" not in record.to_json_dict()

    def test_should_keep_unknown_fields(self) -> None:
        """Verify extra provider fields survive serialization."""
        record = TokenRecord.model_validate({"access_token": "a", "id_token": "eyJ.header.sig"})

        assert record.to_json_dict() == {"access_token": "a", "id_token": "eyJ.header.sig"}

    def test_should_omit_missing_fields(self) -> None:
        """Verify None fields are not written to token.json."""
        record = TokenRecord(access_token="a")
        assert record.to_json_dict() == {"access_token": "a"}

    def test_should_require_access_token(self) -> None:
        """Verify validation fails without an access token."""
        with pytest.raises(ValidationError):
            TokenRecord.model_validate({"refresh_token": "r"})


@pytest.mark.unit
class TestClientRegistration:
    """Tests for ClientRegistration model."""

    def test_should_parse_installed_client(self, client_secrets: dict) -> None:
        """Verify the installed section is used."""
        registration = ClientRegistration.from_client_secrets(client_secrets)

        assert registration.client_type == "installed"
        assert registration.client_id == "test-client-id.apps.googleusercontent.com"
        assert registration.token_uri == GOOGLE_TOKEN_URI

    def test_should_parse_web_client(self) -> None:
        """Verify the web section is used when installed is absent."""
        registration = ClientRegistration.from_client_secrets(
            {"web": {"client_id": "web-id", "client_secret": "web-secret"}}
        )

        assert registration.client_type == "web"
        assert registration.client_id == "web-id"

    def test_should_prefer_installed_over_web(self) -> None:
        """Verify installed wins when both sections are present."""
        data = {
            "installed": {"client_id": "installed-id", "client_secret": "s1"},
            "web": {"client_id": "web-id", "client_secret": "s2"},
        }
        assert ClientRegistration.from_client_secrets(data).client_id == "installed-id"

    def test_should_reject_document_without_client_section(self) -> None:
        """Verify a document with neither section is rejected."""
        with pytest.raises(ValueError):
            ClientRegistration.from_client_secrets({"other": {}})

    def test_should_reject_empty_client_id(self) -> None:
        """Verify an empty client id is rejected."""
        with pytest.raises(ValidationError):
            ClientRegistration.from_client_secrets(
                {"installed": {"client_id": "", "client_secret": "s"}}
            )

    def test_should_build_client_config_with_redirect(
        self, registration: ClientRegistration
    ) -> None:
        """Verify the oauthlib client config carries the given redirect URI."""
        config = registration.to_client_config("http://localhost:4100/callback")

        assert config["installed"]["redirect_uris"] == ["http://localhost:4100/callback"]
        assert config["installed"]["client_secret"] == "test-client-secret"


@pytest.mark.unit
class TestDeviceAuthorization:
    """Tests for DeviceAuthorization model."""

    def test_should_compute_absolute_expiry(self, now_ms: int) -> None:
        """Verify expires_in becomes an absolute deadline."""
        authorization = DeviceAuthorization.from_response(
            {
                "device_code": "dev-123",
                "user_code": "ABCD-EFGH",
                "verification_url": "https://www.google.com/device",
                "expires_in": 600,
                "interval": 5,
            },
            now_ms=now_ms,
            default_interval=5,
        )

        assert authorization.expires_at_ms == now_ms + 600_000
        assert authorization.interval == 5

    def test_should_prefer_complete_verification_uri(self, now_ms: int) -> None:
        """Verify verification_uri_complete wins over the plain URL."""
        authorization = DeviceAuthorization.from_response(
            {
                "device_code": "d",
                "user_code": "u",
                "verification_uri": "https://example.com/device",
                "verification_uri_complete": "https://example.com/device?code=u",
                "expires_in": 60,
            },
            now_ms=now_ms,
            default_interval=5,
        )

        assert authorization.verification_url == "https://example.com/device?code=u"

    def test_should_apply_defaults_when_fields_missing(self, now_ms: int) -> None:
        """Verify default interval and verification URL are used."""
        authorization = DeviceAuthorization.from_response(
            {"device_code": "d", "user_code": "u", "expires_in": 60},
            now_ms=now_ms,
            default_interval=7,
        )

        assert authorization.interval == 7
        assert authorization.verification_url == GOOGLE_DEVICE_VERIFICATION_URL


@pytest.mark.unit
class TestTokenStatus:
    """Tests for TokenStatus enum."""

    def test_should_have_all_status_values(self) -> None:
        """Verify all expected status values exist."""
        assert TokenStatus.VALID.value == "valid"
        assert TokenStatus.EXPIRED.value == "expired"
        assert TokenStatus.MISSING.value == "missing"
        assert TokenStatus.INVALID.value == "invalid"
