"""Google authentication exceptions."""


class GoogleAuthError(Exception):
    """Base exception for Google authentication errors."""

    pass


class CredentialsNotFoundError(GoogleAuthError):
    """Raised when no OAuth client credentials have been configured."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"No credentials configured (expected {path}). "
            "Run: gtcli accounts credentials <credentials.json>"
        )


class TokenError(GoogleAuthError):
    """Raised when the token endpoint request fails."""

    pass


class MissingRefreshTokenError(TokenError):
    """Raised when the token exchange succeeds without a refresh token."""

    def __init__(self):
        super().__init__(
            "No refresh token received. Try revoking app access and re-authorizing."
        )


class AuthorizationError(GoogleAuthError):
    """Base exception for failures of the authorization-code flow."""

    pass


class AuthorizationDeniedError(AuthorizationError):
    """Raised when the provider redirects back with an error."""

    def __init__(self, error: str):
        self.error = error
        super().__init__(f"Authorization failed: {error}")


class InvalidRedirectError(AuthorizationError):
    """Raised when a redirect URL carries no authorization code."""

    def __init__(self, message: str = "Invalid redirect URL"):
        super().__init__(message)


class AuthorizationTimeoutError(AuthorizationError):
    """Raised when no redirect reaches the local callback server in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Authorization timed out after {timeout:g} seconds. "
            "Run the command again, or use --manual."
        )


class CallbackServerError(AuthorizationError):
    """Raised when the local callback server cannot be started."""

    def __init__(self, port: int, reason: str):
        self.port = port
        super().__init__(
            f"Failed to start local server on port {port}: {reason}. "
            "Make sure the port is available, or use --manual."
        )
