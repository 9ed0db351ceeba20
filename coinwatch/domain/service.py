"""Account service orchestrating credential hashing, persistence, and token issuance."""

from __future__ import annotations

import logging
from typing import Any

from .account import Account, AuthResult
from .contracts import AccountStore, CreateAccountInput, NewAccountRecord, UpdateAccountInput
from .errors import (
    AccountNotFound,
    DeletionFailed,
    DuplicateAccount,
    EmailInUse,
    InvalidCredentials,
    MissingCredentials,
)
from ..security.passwords import hash_password, verify_password
from ..security.tokens import issue_access_token

logger = logging.getLogger(__name__)


def _normalise(value: str) -> str:
    return value.lower()


class AccountService:
    """Account lifecycle workflows on top of an injected :class:`AccountStore`."""

    def __init__(self, repository: AccountStore, *, enforce_unique_names: bool = True) -> None:
        """Store dependencies used to orchestrate persistence and token issuance."""
        self._repository = repository
        self._enforce_unique_names = enforce_unique_names

    def create_account(self, payload: CreateAccountInput) -> Account:
        """Register a new account after normalisation and uniqueness checks.

        The returned aggregate still carries the password hash; callers that
        serialise it externally must go through :meth:`Account.view`.
        """
        name = _normalise(payload.name)
        email = _normalise(payload.email)

        if self._repository.find_by_email(email) is not None:
            raise DuplicateAccount()
        if self._enforce_unique_names and self._repository.find_by_name(name) is not None:
            raise DuplicateAccount()

        account = self._repository.create(
            NewAccountRecord(
                name=name,
                email=email,
                password_hash=hash_password(payload.password),
                description=payload.description,
                image=payload.image,
            )
        )
        logger.info("account created account_id=%s", account.account_id)
        return account

    def authenticate(self, email: str | None, password: str | None) -> AuthResult:
        """Verify credentials and issue a signed token bound to the account id."""
        if not email or not password:
            raise MissingCredentials()

        account = self._repository.find_by_email(_normalise(email))
        if account is None:
            logger.warning("authentication rejected: unknown email")
            raise AccountNotFound("email not found")

        if not verify_password(password, account.password_hash):
            logger.warning("authentication rejected: bad password account_id=%s", account.account_id)
            raise InvalidCredentials()

        token, expires_in = issue_access_token(subject=account.account_id)
        logger.info("account authenticated account_id=%s", account.account_id)
        return AuthResult(account=account.view(), token=token, expires_in=expires_in)

    def find_by_id(self, account_id: str) -> Account | None:
        return self._repository.find_by_id(account_id)

    def find_by_name(self, name: str) -> Account | None:
        return self._repository.find_by_name(_normalise(name))

    def find_by_email(self, email: str) -> Account | None:
        return self._repository.find_by_email(_normalise(email))

    def update_account(self, account_id: str, payload: UpdateAccountInput) -> Account:
        """Apply a partial update; fields left as ``None`` keep their stored value."""
        account = self._repository.find_by_id(account_id)
        if account is None:
            raise AccountNotFound()

        fields: dict[str, Any] = {}
        if payload.email is not None:
            email = _normalise(payload.email)
            owner = self._repository.find_by_email(email)
            if owner is not None and owner.account_id != account.account_id:
                raise EmailInUse()
            fields["email"] = email
        if payload.name is not None:
            fields["name"] = _normalise(payload.name)
        if payload.password is not None:
            fields["password_hash"] = hash_password(payload.password)
        if payload.description is not None:
            # an empty description clears the stored one
            fields["description"] = payload.description or None
        if payload.image is not None:
            fields["image"] = payload.image

        if not fields:
            return account

        updated = self._repository.update(account.account_id, fields)
        logger.info(
            "account updated account_id=%s fields=%s",
            updated.account_id,
            ",".join(sorted(fields)),
        )
        return updated

    def delete_account(self, account_id: str) -> None:
        """Permanently remove an account."""
        account = self._repository.find_by_id(account_id)
        if account is None:
            raise AccountNotFound()

        if not self._repository.delete(account.account_id):
            raise DeletionFailed()
        logger.info("account deleted account_id=%s", account.account_id)

    def list_accounts(self) -> list[Account]:
        return self._repository.list_all()
