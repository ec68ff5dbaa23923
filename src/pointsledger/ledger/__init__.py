"""Ledger package.

Public API:
- Ledger: membership, points, rewards, bans and incoming-value paths.
- InMemoryAccountStore / SQLiteAccountStore: account tables the Ledger runs on.
"""

from .ledger import Ledger  # re-export
from .model import AccountRecord, AccountStatus, REWARD_TIERS
from .store import InMemoryAccountStore, SQLiteAccountStore, open_store
from .errors import (
    LedgerError,
    AlreadyMember,
    NotMember,
    NotOwner,
    AccountBanned,
    InsufficientPoints,
    InvalidReward,
    InvalidAmount,
    OwnerMismatch,
    StoreError,
)

__all__ = [
    "Ledger",
    "AccountRecord", "AccountStatus", "REWARD_TIERS",
    "InMemoryAccountStore", "SQLiteAccountStore", "open_store",
    "LedgerError", "AlreadyMember", "NotMember", "NotOwner", "AccountBanned",
    "InsufficientPoints", "InvalidReward", "InvalidAmount", "OwnerMismatch", "StoreError",
]
