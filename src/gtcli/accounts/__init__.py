"""Account and application credential storage."""

from gtcli.accounts.exceptions import AccountError, AccountExistsError, AccountNotFoundError
from gtcli.accounts.models import Account, OAuth2Credentials, StoredCredentials
from gtcli.accounts.storage import AccountStorage

__all__ = [
    "AccountStorage",
    "Account",
    "OAuth2Credentials",
    "StoredCredentials",
    "AccountError",
    "AccountExistsError",
    "AccountNotFoundError",
]
