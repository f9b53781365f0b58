"""Account and credential records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


@dataclass
class StoredCredentials:
    """OAuth client credentials of the registered application."""

    client_id: str
    client_secret: str

    def to_dict(self) -> dict[str, str]:
        return {"clientId": self.client_id, "clientSecret": self.client_secret}

    @classmethod
    def from_dict(cls, data: Any) -> StoredCredentials | None:
        """Build credentials from JSON data, or None if it is not valid."""
        if not isinstance(data, dict):
            return None
        client_id = data.get("clientId")
        client_secret = data.get("clientSecret")
        if not (_non_empty_str(client_id) and _non_empty_str(client_secret)):
            return None
        return cls(client_id=client_id, client_secret=client_secret)


@dataclass
class OAuth2Credentials:
    """OAuth tokens for one account."""

    client_id: str
    client_secret: str
    refresh_token: str
    access_token: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "refreshToken": self.refresh_token,
        }
        if self.access_token:
            data["accessToken"] = self.access_token
        return data


@dataclass
class Account:
    """A stored, authorized account."""

    email: str
    oauth2: OAuth2Credentials

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "oauth2": self.oauth2.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> Account | None:
        """Build an account from JSON data.

        Returns None unless email, clientId, clientSecret and refreshToken
        are all non-empty strings. A non-string accessToken is dropped.
        """
        if not isinstance(data, dict) or not _non_empty_str(data.get("email")):
            return None

        oauth2 = data.get("oauth2")
        if not isinstance(oauth2, dict):
            return None

        client_id = oauth2.get("clientId")
        client_secret = oauth2.get("clientSecret")
        refresh_token = oauth2.get("refreshToken")
        if not all(_non_empty_str(v) for v in (client_id, client_secret, refresh_token)):
            return None

        access_token = oauth2.get("accessToken")
        return cls(
            email=data["email"],
            oauth2=OAuth2Credentials(
                client_id=client_id,
                client_secret=client_secret,
                refresh_token=refresh_token,
                access_token=access_token if _non_empty_str(access_token) else None,
            ),
        )
