"""Unit tests for TokenStorage class.

Tests cover registration loading, token persistence, status and error handling.
"""

import json
from pathlib import Path

import pytest

from google_workspace_mcp.auth.config import DEFAULT_CONFIG_DIR
from google_workspace_mcp.auth.errors import InvalidRegistration, MissingRegistration
from google_workspace_mcp.auth.models import TokenRecord, TokenStatus
from google_workspace_mcp.auth.token_storage import TokenStorage


@pytest.mark.unit
class TestTokenStorageInit:
    """Tests for TokenStorage initialization."""

    def test_should_create_storage_with_default_paths(self) -> None:
        """Verify storage uses the default directory when no paths are given."""
        storage = TokenStorage()

        assert storage.token_path == DEFAULT_CONFIG_DIR / "token.json"
        assert storage.credentials_path == DEFAULT_CONFIG_DIR / "credentials.json"

    def test_should_not_touch_disk_on_creation(self, tmp_path: Path) -> None:
        """Verify creating storage does not create directories."""
        TokenStorage(token_path=tmp_path / "missing" / "token.json")

        assert not (tmp_path / "missing").exists()

    def test_should_create_directory_when_missing(self, tmp_path: Path) -> None:
        """Verify ensure_credentials_dir creates an owner-only directory."""
        storage = TokenStorage(token_path=tmp_path / "new_dir" / "token.json")

        storage.ensure_credentials_dir()

        assert (tmp_path / "new_dir").exists()
        assert (tmp_path / "new_dir").stat().st_mode & 0o777 == 0o700

    def test_should_fix_directory_permissions(self, tmp_path: Path) -> None:
        """Verify ensure_credentials_dir corrects insecure directory permissions."""
        creds_dir = tmp_path / "creds"
        creds_dir.mkdir(mode=0o755)
        storage = TokenStorage(token_path=creds_dir / "token.json")

        storage.ensure_credentials_dir()

        assert creds_dir.stat().st_mode & 0o777 == 0o700


@pytest.mark.unit
class TestTokenStorageRegistration:
    """Tests for loading credentials.json."""

    def test_should_load_registration(
        self, token_storage: TokenStorage, registration_file: Path
    ) -> None:
        """Verify a valid credentials.json is parsed."""
        registration = token_storage.load_registration()

        assert registration.client_id == "test-client-id.apps.googleusercontent.com"
        assert token_storage.has_registration() is True

    def test_should_raise_missing_registration(self, token_storage: TokenStorage) -> None:
        """Verify a missing file raises MissingRegistration carrying the path."""
        with pytest.raises(MissingRegistration) as exc_info:
            token_storage.load_registration()

        assert exc_info.value.credentials_path == token_storage.credentials_path
        assert token_storage.has_registration() is False

    def test_should_raise_invalid_registration_for_bad_json(
        self, token_storage: TokenStorage
    ) -> None:
        """Verify unparseable JSON raises InvalidRegistration."""
        token_storage.credentials_path.write_text("not valid json {{{")

        with pytest.raises(InvalidRegistration):
            token_storage.load_registration()

    def test_should_raise_invalid_registration_without_client_section(
        self, token_storage: TokenStorage
    ) -> None:
        """Verify a document with neither installed nor web is rejected."""
        token_storage.credentials_path.write_text(json.dumps({"type": "service_account"}))

        with pytest.raises(InvalidRegistration):
            token_storage.load_registration()

    def test_should_raise_invalid_registration_for_incomplete_client(
        self, token_storage: TokenStorage
    ) -> None:
        """Verify a client section without a secret is rejected."""
        token_storage.credentials_path.write_text(
            json.dumps({"installed": {"client_id": "only-an-id"}})
        )

        with pytest.raises(InvalidRegistration):
            token_storage.load_registration()


@pytest.mark.unit
class TestTokenStorageSaveLoad:
    """Tests for token persistence."""

    def test_should_round_trip_token_fields(
        self, token_storage: TokenStorage, valid_record: TokenRecord
    ) -> None:
        """Verify access token, refresh token and scope come back unchanged."""
        token_storage.save(valid_record)
        loaded = token_storage.load()

        assert loaded is not None
        assert loaded.access_token == valid_record.access_token
        assert loaded.refresh_token == valid_record.refresh_token
        assert loaded.scope == valid_record.scope
        assert loaded.expiry_date == valid_record.expiry_date

    def test_should_write_flat_token_json(
        self, token_storage: TokenStorage, valid_record: TokenRecord
    ) -> None:
        """Verify the file uses the flat token.json layout."""
        token_storage.save(valid_record)

        data = json.loads(token_storage.token_path.read_text())

        assert data == {
            "access_token": "ya29.test_access_token_abc123",
            "refresh_token": "1//test_refresh_token_xyz789",
            "scope": valid_record.scope,
            "token_type": "Bearer",
            "expiry_date": valid_record.expiry_date,
        }

    def test_should_set_secure_file_permissions(
        self, token_storage: TokenStorage, valid_record: TokenRecord
    ) -> None:
        """Verify token file is owner read/write only."""
        token_storage.save(valid_record)

        assert token_storage.token_path.stat().st_mode & 0o777 == 0o600

    def test_should_replace_previous_token(
        self, token_storage: TokenStorage, valid_record: TokenRecord
    ) -> None:
        """Verify saving twice keeps only the latest record and no temp files."""
        token_storage.save(valid_record)
        token_storage.save(valid_record.model_copy(update={"access_token": "ya29.second"}))

        loaded = token_storage.load()
        assert loaded is not None
        assert loaded.access_token == "ya29.second"
        leftovers = [p for p in token_storage.credentials_dir.iterdir() if p.name.startswith(".")]
        assert leftovers == []

    def test_should_preserve_unknown_fields(self, token_storage: TokenStorage) -> None:
        """Verify fields written by other tools survive a save/load cycle."""
        token_storage.token_path.write_text(
            json.dumps({"access_token": "a", "id_token": "eyJ.x.y", "refresh_token_expires_in": 9})
        )

        record = token_storage.load()
        assert record is not None
        token_storage.save(record)

        data = json.loads(token_storage.token_path.read_text())
        assert data["id_token"] == "eyJ.x.y"
        assert data["refresh_token_expires_in"] == 9

    def test_should_return_none_when_missing(self, token_storage: TokenStorage) -> None:
        """Verify None returned when no token file exists."""
        assert token_storage.load() is None

    def test_should_return_none_for_corrupted_file(self, token_storage: TokenStorage) -> None:
        """Verify None returned for an unparseable token file."""
        token_storage.token_path.write_text("not valid json {{{")

        assert token_storage.load() is None

    def test_should_return_none_without_access_token(self, token_storage: TokenStorage) -> None:
        """Verify None returned when the record lacks an access token."""
        token_storage.token_path.write_text(json.dumps({"refresh_token": "r"}))

        assert token_storage.load() is None


@pytest.mark.unit
class TestTokenStorageStatus:
    """Tests for TokenStorage.get_status() method."""

    def test_should_return_missing_when_no_token(
        self, token_storage: TokenStorage, now_ms: int
    ) -> None:
        """Verify MISSING status when no token file exists."""
        assert token_storage.get_status(now_ms) == TokenStatus.MISSING

    def test_should_return_valid_for_unexpired_token(
        self, token_storage: TokenStorage, valid_record: TokenRecord, now_ms: int
    ) -> None:
        """Verify VALID status for a non-expired token."""
        token_storage.save(valid_record)

        assert token_storage.get_status(now_ms) == TokenStatus.VALID

    def test_should_return_expired_for_expired_token(
        self, token_storage: TokenStorage, expired_record: TokenRecord, now_ms: int
    ) -> None:
        """Verify EXPIRED status for an expired token."""
        token_storage.save(expired_record)

        assert token_storage.get_status(now_ms) == TokenStatus.EXPIRED

    def test_should_return_invalid_for_corrupted_file(
        self, token_storage: TokenStorage, now_ms: int
    ) -> None:
        """Verify INVALID status for a corrupted token file."""
        token_storage.token_path.write_text("corrupted")

        assert token_storage.get_status(now_ms) == TokenStatus.INVALID
