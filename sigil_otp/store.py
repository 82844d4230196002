"""
Account store interface, an in-memory store, and the restore merge.

The persistent store lives outside this library; anything implementing
AccountStore can be used. Callers are responsible for serializing
overlapping restores against the same store.
"""

import logging
import threading
import time
import uuid
from typing import Iterable, NamedTuple, Protocol

from . import config
from .account import Account, account_identity, normalize_account, strip_store_fields
from .errors import DuplicateAccount

_logger = logging.getLogger(__name__)


class AccountStore(Protocol):
    def get_accounts(self) -> list[Account]: ...

    def add_account(self, account: Account) -> Account: ...

    def update_account(self, account: Account) -> None: ...

    def delete_account(self, account_id: str) -> None: ...

    def delete_accounts(self, account_ids: Iterable[str]) -> None: ...


class RestoreResult(NamedTuple):
    restored: int
    skipped: int


# ==================== In-memory store ====================

class MemoryAccountStore:
    """AccountStore kept in a dict, ordered by (order, created)"""

    def __init__(self, accounts: Iterable[Account] = ()) -> None:
        self._lock = threading.RLock()
        self._accounts: dict[str, Account] = {}
        for account in accounts:
            self.add_account(strip_store_fields(account))

    def get_accounts(self) -> list[Account]:
        with self._lock:
            accounts = [dict(a) for a in self._accounts.values()]
        return sorted(accounts, key=lambda a: (a.get("order", 0), a.get("created", 0)))

    def add_account(self, account: Account) -> Account:
        with self._lock:
            max_order = max((a.get("order", 0) for a in self._accounts.values()), default=-1)
            new_account = {
                **account,
                "id": str(uuid.uuid4()),
                "created": time.time_ns() // 1_000_000,
                "order": max_order + 1,
            }
            self._accounts[new_account["id"]] = new_account
        return dict(new_account)

    def update_account(self, account: Account) -> None:
        with self._lock:
            if account["id"] not in self._accounts:
                raise KeyError(account["id"])
            self._accounts[account["id"]] = dict(account)

    def delete_account(self, account_id: str) -> None:
        with self._lock:
            self._accounts.pop(account_id, None)

    def delete_accounts(self, account_ids: Iterable[str]) -> None:
        with self._lock:
            for account_id in account_ids:
                self._accounts.pop(account_id, None)

    def __len__(self) -> int:
        return len(self._accounts)


# ==================== Add / restore ====================

def add_account(store: AccountStore, data: dict) -> Account:
    """Add a single account, refusing exact duplicates"""
    account = normalize_account(data)
    identity = account_identity(account)
    if any(account_identity(a) == identity for a in store.get_accounts()):
        raise DuplicateAccount(account["issuer"], account["label"])
    return store.add_account(account)


def add_accounts(store: AccountStore, items: Iterable[dict]) -> RestoreResult:
    """Add accounts one by one (scan/paste), counting duplicates instead of failing"""
    added = duplicates = 0
    for item in items:
        try:
            add_account(store, item)
            added += 1
        except DuplicateAccount:
            duplicates += 1
    return RestoreResult(added, duplicates)


def restore_accounts(store: AccountStore, candidates: Iterable[dict]) -> RestoreResult:
    """Merge imported accounts into the store.

    Every candidate is compared against a single snapshot taken before the
    batch starts, on the exact (issuer, label, secret) triple. Duplicates
    are counted and left alone; everything else is added through the store
    with its id, created and order removed. Two identical candidates in the
    same batch are therefore both restored.
    """
    existing = {account_identity(a) for a in store.get_accounts()}

    restored = skipped = 0
    for candidate in candidates:
        if account_identity(candidate) in existing:
            skipped += 1
            continue

        account = strip_store_fields(candidate)
        account["type"] = account.get("type") or config.DEFAULT_TYPE
        store.add_account(account)
        restored += 1

    _logger.info("Restore complete: restored=%d skipped=%d", restored, skipped)
    return RestoreResult(restored, skipped)
