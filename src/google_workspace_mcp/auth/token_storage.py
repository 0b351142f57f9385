"""On-disk OAuth state for Google Workspace MCP.

Storage Location: ~/.google-workspace-mcp/ (per user)

    credentials.json  OAuth client registration downloaded from the Google
                      Cloud console. Supplied by the operator, never written.
    token.json        Token record. Rewritten whole after every successful
                      authorization or refresh.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from google_workspace_mcp.auth.config import DEFAULT_CONFIG_DIR
from google_workspace_mcp.auth.errors import InvalidRegistration, MissingRegistration
from google_workspace_mcp.auth.models import ClientRegistration, TokenRecord, TokenStatus

logger = logging.getLogger(__name__)


class TokenStorage:
    """JSON file storage for the client registration and token record.

    Attributes:
        token_path: Path to token.json.
        credentials_path: Path to credentials.json.

    Example:
        ```python
        storage = TokenStorage()

        registration = storage.load_registration()
        record = storage.load()
        if record is None:
            ...  # run an authorization flow, then
            storage.save(new_record)
        ```
    """

    def __init__(
        self,
        token_path: Path | None = None,
        credentials_path: Path | None = None,
    ) -> None:
        """Initialize token storage.

        Args:
            token_path: Custom path for token.json.
            credentials_path: Custom path for credentials.json.
                Both default to files under ~/.google-workspace-mcp/.
        """
        self.token_path = token_path or DEFAULT_CONFIG_DIR / "token.json"
        self.credentials_path = credentials_path or DEFAULT_CONFIG_DIR / "credentials.json"

    @property
    def credentials_dir(self) -> Path:
        """Directory holding the token file."""
        return self.token_path.parent

    def ensure_credentials_dir(self) -> None:
        """Create the credentials directory with owner-only permissions."""
        creds_dir = self.credentials_dir
        if not creds_dir.exists():
            creds_dir.mkdir(parents=True, mode=0o700)
        else:
            creds_dir.chmod(0o700)

    def has_registration(self) -> bool:
        """Check whether credentials.json exists."""
        return self.credentials_path.is_file()

    def load_registration(self) -> ClientRegistration:
        """Load the OAuth client registration.

        Returns:
            Parsed ClientRegistration.

        Raises:
            MissingRegistration: If credentials.json does not exist.
            InvalidRegistration: If it is not valid JSON or has no usable client.
        """
        try:
            raw = self.credentials_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise MissingRegistration(self.credentials_path) from None
        except OSError as e:
            raise InvalidRegistration(f"Cannot read {self.credentials_path}: {e}") from e

        try:
            return ClientRegistration.from_client_secrets(json.loads(raw))
        except (json.JSONDecodeError, ValueError, ValidationError) as e:
            raise InvalidRegistration(
                f"Invalid credentials format in {self.credentials_path}: {e}"
            ) from e

    def load(self) -> TokenRecord | None:
        """Load the persisted token record.

        Returns:
            TokenRecord if present and parseable, None otherwise.
        """
        if not self.token_path.exists():
            return None

        try:
            with open(self.token_path, encoding="utf-8") as f:
                return TokenRecord.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable token file {self.token_path}: {e}")
            return None

    def save(self, record: TokenRecord) -> None:
        """Persist the token record, replacing any previous file.

        The record is written to a sibling temp file and renamed into place,
        so readers never see a half-written token.

        Args:
            record: Token record to persist.
        """
        self.ensure_credentials_dir()

        fd, tmp_name = tempfile.mkstemp(dir=self.credentials_dir, prefix=".token-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.to_json_dict(), f, indent=2)
            # Owner read/write only (600)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.token_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Token saved to {self.token_path}")

    def get_status(self, now_ms: int | None = None) -> TokenStatus:
        """Get the status of the persisted token.

        Args:
            now_ms: Current time in epoch milliseconds. Defaults to wall clock.

        Returns:
            TokenStatus indicating the token's current state.
        """
        if not self.token_path.exists():
            return TokenStatus.MISSING

        record = self.load()
        if record is None:
            return TokenStatus.INVALID

        if record.is_expired(now_ms):
            return TokenStatus.EXPIRED

        return TokenStatus.VALID
