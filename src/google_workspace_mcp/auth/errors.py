"""Exception hierarchy for Google Workspace authentication.

Configuration errors are terminal. Flow errors are recoverable only in
``auto`` mode, where a browser failure falls back to the device flow.
"""


class WorkspaceAuthError(Exception):
    """Base class for all authentication errors."""


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigurationError(WorkspaceAuthError):
    """Operator-supplied configuration is missing or unusable."""


class MissingRegistration(ConfigurationError):
    """No OAuth client registration file was found."""

    def __init__(self, credentials_path: object) -> None:
        self.credentials_path = credentials_path
        super().__init__(
            f"Credentials file not found at {credentials_path}. "
            "Please set up OAuth credentials first."
        )


class InvalidRegistration(ConfigurationError):
    """The registration file has neither an 'installed' nor a 'web' client."""


# =============================================================================
# Interactive flow errors
# =============================================================================


class AuthorizationFlowError(WorkspaceAuthError):
    """An interactive authorization attempt failed."""


class BrowserFlowError(AuthorizationFlowError):
    """The browser-redirect flow failed."""


class PortInUse(BrowserFlowError):
    """The loopback callback port could not be bound."""

    def __init__(self, host: str, port: int, reason: object = None) -> None:
        self.host = host
        self.port = port
        message = f"Cannot listen for OAuth callback on {host}:{port}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NoAuthorizationCode(BrowserFlowError):
    """The callback request carried no authorization code."""


class AuthorizationDenied(BrowserFlowError):
    """The provider redirected back with an error (e.g. consent denied)."""


class CallbackStateMismatch(BrowserFlowError):
    """The callback 'state' parameter did not match the issued one."""


class CallbackExchangeFailed(BrowserFlowError):
    """Exchanging the authorization code for tokens failed."""


class BrowserFlowTimedOut(BrowserFlowError):
    """No callback arrived before the listener deadline."""


class DeviceFlowError(AuthorizationFlowError):
    """The device-code flow failed."""


class DeviceFlowStartFailed(DeviceFlowError):
    """The provider refused to issue a device code."""


class DeviceFlowRejected(DeviceFlowError):
    """The provider answered a poll with a terminal error code."""

    def __init__(self, error_code: str, description: str | None = None) -> None:
        self.error_code = error_code
        self.description = description
        super().__init__(description or error_code)


class DeviceFlowTimedOut(DeviceFlowError):
    """The device code expired before the user completed authorization."""


# =============================================================================
# Terminal errors
# =============================================================================


class AuthenticationFailed(WorkspaceAuthError):
    """Every permitted authorization flow failed."""


class SessionExpired(WorkspaceAuthError):
    """The session's access token expired and cannot be refreshed."""
