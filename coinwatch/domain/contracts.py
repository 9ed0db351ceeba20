"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from .account import Account, ImageReference


@dataclass(slots=True)
class CreateAccountInput:
    """Raw registration fields as submitted by the client."""

    name: str
    email: str
    password: str
    description: str | None = None
    image: ImageReference | None = None


@dataclass(slots=True)
class UpdateAccountInput:
    """Partial update; a ``None`` field is left untouched.

    An empty ``description`` clears the stored description.
    """

    name: str | None = None
    email: str | None = None
    password: str | None = None
    description: str | None = None
    image: ImageReference | None = None


@dataclass(slots=True)
class NewAccountRecord:
    """Normalised, hashed values ready to be persisted."""

    name: str
    email: str
    password_hash: str
    description: str | None = None
    image: ImageReference | None = None


class AccountStore(Protocol):
    """Persistence operations consumed by :class:`AccountService`."""

    def create(self, record: NewAccountRecord) -> Account: ...

    def find_by_id(self, account_id: str) -> Account | None: ...

    def find_by_email(self, email: str) -> Account | None: ...

    def find_by_name(self, name: str) -> Account | None: ...

    def update(self, account_id: str, fields: dict[str, Any]) -> Account: ...

    def delete(self, account_id: str) -> bool: ...

    def list_all(self) -> list[Account]: ...
