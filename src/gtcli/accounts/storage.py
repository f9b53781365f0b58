"""File-backed account store.

Two JSON files inside the configuration directory:
    credentials.json - {"clientId", "clientSecret"} of the OAuth application
    accounts.json    - array of {"email", "oauth2": {...}} records

Corrupt or missing files read as "no data" and never stop the CLI from
starting. Every mutation rewrites the whole file through a temporary file
and os.replace().
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from gtcli.accounts.models import Account, StoredCredentials
from gtcli.config import ACCOUNTS_FILENAME, CREDENTIALS_FILENAME

logger = logging.getLogger(__name__)


class AccountStorage:
    """Stores application credentials and per-account OAuth records.

    Example:
        >>> storage = AccountStorage(Path("~/.gtcli").expanduser())
        >>> storage.set_credentials("client-id", "client-secret")
        >>> storage.add_account(account)
        >>> storage.get_account("me@example.com")
    """

    def __init__(self, config_dir: str | Path):
        """Initialize the store, creating the directory if needed.

        Args:
            config_dir: Directory holding credentials.json and accounts.json.

        Raises:
            OSError: If the directory cannot be created.
        """
        self.config_dir = Path(config_dir)
        self.accounts_file = self.config_dir / ACCOUNTS_FILENAME
        self.credentials_file = self.config_dir / CREDENTIALS_FILENAME

        self._accounts: dict[str, Account] = {}

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self._load_accounts()

    def _load_accounts(self) -> None:
        """Load valid account records from the accounts file."""
        if not self.accounts_file.exists():
            return

        try:
            with open(self.accounts_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError, RecursionError) as e:
            logger.warning(f"Ignoring unreadable accounts file {self.accounts_file}: {e}")
            return

        if not isinstance(data, list):
            logger.warning(f"Ignoring accounts file {self.accounts_file}: expected a JSON array")
            return

        for entry in data:
            account = Account.from_dict(entry)
            if account is None:
                logger.warning("Skipping invalid account record")
                continue
            self._accounts[account.email] = account

        logger.debug(f"Loaded {len(self._accounts)} account(s)")

    def _write_json(self, path: Path, data: Any) -> None:
        """Replace a file's contents with pretty-printed JSON."""
        fd, tmp_name = tempfile.mkstemp(dir=self.config_dir, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _save_accounts(self) -> None:
        self._write_json(self.accounts_file, [a.to_dict() for a in self._accounts.values()])

    # =========================================================================
    # Accounts
    # =========================================================================

    def add_account(self, account: Account) -> None:
        """Add or replace the account stored under account.email."""
        self._accounts[account.email] = account
        self._save_accounts()
        logger.info(f"Saved account {account.email}")

    def get_account(self, email: str) -> Account | None:
        return self._accounts.get(email)

    def get_all_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    def delete_account(self, email: str) -> bool:
        """Delete an account.

        Returns:
            True if the account existed and was removed.
        """
        if self._accounts.pop(email, None) is None:
            return False
        self._save_accounts()
        logger.info(f"Deleted account {email}")
        return True

    def has_account(self, email: str) -> bool:
        return email in self._accounts

    # =========================================================================
    # Application credentials
    # =========================================================================

    def set_credentials(self, client_id: str, client_secret: str) -> None:
        """Overwrite the stored OAuth client credentials."""
        credentials = StoredCredentials(client_id=client_id, client_secret=client_secret)
        self._write_json(self.credentials_file, credentials.to_dict())

    def get_credentials(self) -> StoredCredentials | None:
        """Load the stored OAuth client credentials.

        Returns:
            The credentials, or None if missing or invalid.
        """
        if not self.credentials_file.exists():
            return None

        try:
            with open(self.credentials_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError, RecursionError) as e:
            logger.warning(f"Ignoring unreadable credentials file {self.credentials_file}: {e}")
            return None

        return StoredCredentials.from_dict(data)
