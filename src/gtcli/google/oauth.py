"""Google OAuth authorization-code flow using Authlib.

This module drives the three-legged OAuth 2.0 flow for a Google account:
- Authorization URL with offline access and forced consent, so a refresh
  token is issued even when the account already granted access
- Interactive mode: local callback server on http://localhost:<port>
- Manual mode: paste the redirect URL back into the terminal
- Code exchange that insists on a refresh token

The flow holds no persistent state; the caller stores the result.
"""

from __future__ import annotations

import logging
import re
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import parse_qs, unquote, urlsplit

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session

from gtcli.google.callback import CallbackServer
from gtcli.google.exceptions import (
    AuthorizationDeniedError,
    InvalidRedirectError,
    MissingRefreshTokenError,
    TokenError,
)

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"

TASKS_SCOPE = "https://www.googleapis.com/auth/tasks"
DEFAULT_SCOPES = [TASKS_SCOPE]

REDIRECT_PORT = 3000
AUTHORIZATION_TIMEOUT = 5 * 60

_CODE_PATTERN = re.compile(r"(?:^|[?&#])code=([^&#\s]+)")


@dataclass
class OAuthResult:
    """Tokens produced by a successful authorization."""

    refresh_token: str
    access_token: str | None = None


def extract_code(url: str) -> str:
    """Extract the authorization code from a redirect URL.

    Accepts strings that are not strictly valid absolute URLs by falling
    back to a scan for a ``code=`` parameter.

    Raises:
        AuthorizationDeniedError: If the redirect carries an ``error``.
        InvalidRedirectError: If no code can be found.
    """
    url = url.strip()
    parts = urlsplit(url)

    if parts.scheme and parts.netloc:
        params = parse_qs(parts.query)
        if params.get("code"):
            return params["code"][0]
        if params.get("error"):
            raise AuthorizationDeniedError(params["error"][0])

    match = _CODE_PATTERN.search(url)
    if match:
        return unquote(match.group(1))

    raise InvalidRedirectError()


class OAuthFlow:
    """Authorization-code flow for one Google account.

    Example:
        >>> flow = OAuthFlow(client_id="...", client_secret="...")
        >>> result = flow.authorize()            # browser + local server
        >>> result = flow.authorize(manual=True)  # paste redirect URL
        >>> result.refresh_token
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        scopes: list[str] | None = None,
        redirect_port: int = REDIRECT_PORT,
        timeout: float = AUTHORIZATION_TIMEOUT,
    ):
        """Initialize the flow.

        Args:
            client_id: OAuth client ID.
            client_secret: OAuth client secret.
            scopes: Scope URLs to request. Defaults to the Tasks scope.
            redirect_port: Local port of the redirect URI.
            timeout: Seconds the interactive mode waits for the redirect.
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = list(scopes or DEFAULT_SCOPES)
        self.redirect_port = redirect_port
        self.redirect_uri = f"http://localhost:{redirect_port}"
        self.timeout = timeout

        self.session = OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(self.scopes),
            redirect_uri=self.redirect_uri,
            token_endpoint_auth_method="client_secret_post",
        )

    def get_authorization_url(self) -> str:
        """Build the URL the user visits to grant access."""
        url, _state = self.session.create_authorization_url(
            AUTHORIZE_URL,
            access_type="offline",
            prompt="consent",
        )
        return url

    def exchange_code(self, code: str) -> OAuthResult:
        """Exchange an authorization code for tokens.

        Raises:
            TokenError: If the token endpoint request fails.
            MissingRefreshTokenError: If no refresh token was issued.
        """
        try:
            token = self.session.fetch_token(TOKEN_URL, code=code)
        except (AuthlibBaseError, requests.RequestException, ValueError) as e:
            raise TokenError(f"Token exchange failed: {e}") from e

        refresh_token = token.get("refresh_token")
        if not refresh_token:
            raise MissingRefreshTokenError()

        logger.info("Authorization code exchanged for tokens")
        return OAuthResult(
            refresh_token=refresh_token,
            access_token=token.get("access_token") or None,
        )

    def authorize(
        self,
        manual: bool = False,
        open_browser: bool = True,
        input_func: Callable[[str], str] = input,
    ) -> OAuthResult:
        """Run the full flow.

        Args:
            manual: Paste the redirect URL instead of running a local server.
            open_browser: Try to open the authorization URL in a browser.
            input_func: Reads the redirect URL in manual mode.

        Returns:
            The issued tokens.
        """
        auth_url = self.get_authorization_url()
        if manual:
            return self._authorize_manual(auth_url, input_func)
        return self._authorize_browser(auth_url, open_browser)

    def _authorize_manual(self, auth_url: str, input_func: Callable[[str], str]) -> OAuthResult:
        print("Open this URL in your browser:\n")
        print(auth_url)
        print("\nAfter authorization, paste the redirect URL here:")

        try:
            redirect_url = input_func("Redirect URL: ")
        except EOFError as e:
            raise InvalidRedirectError("No redirect URL provided") from e

        return self.exchange_code(extract_code(redirect_url))

    def _authorize_browser(self, auth_url: str, open_browser: bool) -> OAuthResult:
        with CallbackServer(port=self.redirect_port) as server:
            print("Opening browser for authorization...")
            print(f"If the browser doesn't open, visit: {auth_url}\n")
            if open_browser:
                _open_browser(auth_url)
            code = server.wait(self.timeout)

        return self.exchange_code(code)


def _open_browser(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.debug(f"webbrowser failed: {e}")
        opened = False
    if not opened:
        print("Could not open browser automatically.")
