"""
Account stores backing the Ledger.

What it does:
- Holds the account table keyed by identity, with insert-or-get reads that
  hand back zero-valued records for identities never seen before.
- Writes one or more changed records in a single atomic `commit`.
- Pins the owner identity so a durable table cannot be reopened under a
  different owner.

Two implementations share the same surface:
- `InMemoryAccountStore`: a dict, for tests and single-process runs.
- `SQLiteAccountStore`: a durable key-value table in a SQLite file.
"""
from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Protocol

from .errors import OwnerMismatch, StoreError
from .model import AccountRecord, AccountStatus


class AccountStore(Protocol):
    def load(self, identity: str) -> AccountRecord: ...

    def commit(self, records: Iterable[AccountRecord]) -> None: ...

    def identities(self) -> List[str]: ...

    def bind_owner(self, owner: str) -> str: ...


class InMemoryAccountStore:
    def __init__(self) -> None:
        self._accounts: Dict[str, AccountRecord] = {}
        self._owner: Optional[str] = None

    def load(self, identity: str) -> AccountRecord:
        rec = self._accounts.get(identity)
        if rec is None:
            return AccountRecord(identity=identity)
        return rec.copy()

    def commit(self, records: Iterable[AccountRecord]) -> None:
        staged = {r.identity: r.copy() for r in records}
        self._accounts.update(staged)

    def identities(self) -> List[str]:
        return sorted(self._accounts.keys())

    def bind_owner(self, owner: str) -> str:
        if self._owner is None:
            self._owner = owner
        elif self._owner != owner:
            raise OwnerMismatch(self._owner, owner)
        return self._owner


DDL = """
CREATE TABLE IF NOT EXISTS accounts (
  identity TEXT PRIMARY KEY,
  is_member INTEGER NOT NULL DEFAULT 0,
  balance INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0),
  status TEXT NOT NULL DEFAULT 'active',
  fallback_calls INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);
"""


class SQLiteAccountStore:
    def __init__(self, path: str = "data/ledger.sqlite"):
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.path = path
        try:
            with self._connect() as con:
                con.executescript(DDL)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialise store: {e}", {"path": path}) from e

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        con = sqlite3.connect(self.path)
        try:
            with con:
                yield con
        finally:
            con.close()

    def load(self, identity: str) -> AccountRecord:
        try:
            with self._connect() as con:
                row = con.execute(
                    "SELECT is_member, balance, status, fallback_calls FROM accounts WHERE identity = ?",
                    (identity,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to load account: {e}", {"identity": identity}) from e
        if row is None:
            return AccountRecord(identity=identity)
        return AccountRecord(
            identity=identity,
            is_member=bool(row[0]),
            balance=int(row[1]),
            status=AccountStatus(row[2]),
            fallback_calls=int(row[3]),
        )

    def commit(self, records: Iterable[AccountRecord]) -> None:
        rows = [
            (r.identity, int(r.is_member), int(r.balance), r.status.value, int(r.fallback_calls))
            for r in records
        ]
        try:
            # one transaction: all rows land or none do
            with self._connect() as con:
                con.executemany(
                    "INSERT OR REPLACE INTO accounts(identity,is_member,balance,status,fallback_calls) VALUES (?,?,?,?,?)",
                    rows,
                )
        except (sqlite3.Error, OverflowError) as e:
            # OverflowError: counters past SQLite's signed 64-bit INTEGER
            raise StoreError(f"Failed to commit accounts: {e}", {"records": len(rows)}) from e

    def identities(self) -> List[str]:
        try:
            with self._connect() as con:
                return [r[0] for r in con.execute("SELECT identity FROM accounts ORDER BY identity")]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list accounts: {e}") from e

    def bind_owner(self, owner: str) -> str:
        try:
            with self._connect() as con:
                con.execute("INSERT OR IGNORE INTO meta(key, value) VALUES ('owner', ?)", (owner,))
                stored = con.execute("SELECT value FROM meta WHERE key = 'owner'").fetchone()[0]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to bind owner: {e}", {"owner": owner}) from e
        if stored != owner:
            raise OwnerMismatch(stored, owner)
        return stored


def open_store(settings) -> AccountStore:
    """Build the account store selected by `settings.store`."""
    if settings.store == "sqlite":
        return SQLiteAccountStore(settings.db_path)
    return InMemoryAccountStore()
