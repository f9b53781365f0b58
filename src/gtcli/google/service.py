"""Per-account cache of authenticated Google Tasks API resources."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from gtcli.accounts import Account, AccountNotFoundError, AccountStorage
from gtcli.google.oauth import DEFAULT_SCOPES, TOKEN_URL

logger = logging.getLogger(__name__)


def get_credentials(account: Account) -> GoogleCredentials:
    """Build Google credentials from a stored account.

    A missing or stale access token is refreshed by google-auth on demand.
    """
    return GoogleCredentials(
        token=account.oauth2.access_token,
        refresh_token=account.oauth2.refresh_token,
        token_uri=TOKEN_URL,
        client_id=account.oauth2.client_id,
        client_secret=account.oauth2.client_secret,
        scopes=DEFAULT_SCOPES,
    )


def build_tasks_service(account: Account) -> Any:
    """Build a Google Tasks v1 API resource for an account."""
    return build("tasks", "v1", credentials=get_credentials(account))


class ServiceCache:
    """Lazily built API resources, keyed by account email.

    Entries never expire; call invalidate() after an account changes.
    """

    def __init__(
        self,
        storage: AccountStorage,
        builder: Callable[[Account], Any] = build_tasks_service,
    ):
        self.storage = storage
        self._builder = builder
        self._services: dict[str, Any] = {}

    def get(self, email: str) -> Any:
        """Get or create the API resource for an account.

        Raises:
            AccountNotFoundError: If no account is stored for the email.
        """
        if email not in self._services:
            account = self.storage.get_account(email)
            if account is None:
                raise AccountNotFoundError(email)
            logger.debug(f"Building Tasks service for {email}")
            self._services[email] = self._builder(account)
        return self._services[email]

    def invalidate(self, email: str | None = None) -> None:
        """Drop one cached resource, or all of them when email is None."""
        if email is None:
            self._services.clear()
        else:
            self._services.pop(email, None)

    def __contains__(self, email: str) -> bool:
        return email in self._services
