from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime, timezone
from typing import Any

import pytest

from coinwatch.domain.account import Account
from coinwatch.domain.contracts import NewAccountRecord
from coinwatch.domain.errors import AccountNotFound
from coinwatch.domain.service import AccountService


class FakeRepository:
    """In-memory store mimicking the Postgres-backed repository."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self.fail_with: Exception | None = None
        self.delete_removes_nothing = False

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def create(self, record: NewAccountRecord) -> Account:
        self._check()
        now = datetime.now(timezone.utc)
        account = Account(
            account_id=str(uuid.uuid4()),
            name=record.name,
            email=record.email,
            password_hash=record.password_hash,
            created_at=now,
            updated_at=now,
            description=record.description,
            image=record.image,
        )
        self._accounts[account.account_id] = account
        return account

    def add_legacy(self, account: Account) -> None:
        self._accounts[account.account_id] = account

    def find_by_id(self, account_id: str) -> Account | None:
        self._check()
        if account_id in self._accounts:
            return self._accounts[account_id]
        for account in self._accounts.values():
            if account.legacy_object_id and account.legacy_object_id == account_id.lower():
                return account
        return None

    def find_by_email(self, email: str) -> Account | None:
        self._check()
        return next((a for a in self._accounts.values() if a.email == email), None)

    def find_by_name(self, name: str) -> Account | None:
        self._check()
        return next((a for a in self._accounts.values() if a.name == name), None)

    def update(self, account_id: str, fields: dict[str, Any]) -> Account:
        self._check()
        current = self._accounts.get(account_id)
        if current is None:
            raise AccountNotFound()
        updated = dataclasses.replace(current, **fields, updated_at=datetime.now(timezone.utc))
        self._accounts[account_id] = updated
        return updated

    def delete(self, account_id: str) -> bool:
        self._check()
        if self.delete_removes_nothing:
            return False
        return self._accounts.pop(account_id, None) is not None

    def list_all(self) -> list[Account]:
        self._check()
        return list(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository: FakeRepository) -> AccountService:
    return AccountService(repository)
