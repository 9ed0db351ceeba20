"""Error taxonomy raised by the account workflows."""

from __future__ import annotations


class AccountError(Exception):
    """Base class for failures surfaced by :class:`AccountService`."""

    default_message = "account operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class DuplicateAccount(AccountError):
    default_message = "account already registered"


class MissingCredentials(AccountError):
    default_message = "email and password are required"


class AccountNotFound(AccountError):
    default_message = "account not found"


class InvalidCredentials(AccountError):
    default_message = "invalid credentials"


class EmailInUse(AccountError):
    default_message = "email already in use"


class DeletionFailed(AccountError):
    default_message = "failed to delete account"


class InvalidImage(AccountError):
    default_message = "invalid image"


class StoreUnavailable(AccountError):
    """Wraps any failure raised by the underlying account store."""

    default_message = "account store unavailable"
