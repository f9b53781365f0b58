"""Account store exceptions."""


class AccountError(Exception):
    """Base exception for account errors."""

    pass


class AccountNotFoundError(AccountError):
    """Raised when no account is stored for an email."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Account '{email}' not found")


class AccountExistsError(AccountError):
    """Raised when adding an account whose email is already stored."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Account '{email}' already exists")
