"""
Ledger exception hierarchy.

Every rejection raised by the ledger inherits from LedgerError and carries
the data needed to diagnose it, both as attributes and as the ordered
``error_args`` tuple.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple


class LedgerError(Exception):
    """Base exception for all ledger errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def error_args(self) -> Tuple[Any, ...]:
        return tuple(self.details.values())

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class AlreadyMember(LedgerError):
    def __init__(self, identity: str):
        super().__init__("Identity is already a member", {"identity": identity})
        self.identity = identity


class NotMember(LedgerError):
    def __init__(self, identity: str):
        super().__init__("Identity is not a member", {"identity": identity})
        self.identity = identity


class NotOwner(LedgerError):
    def __init__(self, identity: str):
        super().__init__("Caller is not the owner", {"identity": identity})
        self.identity = identity


class AccountBanned(LedgerError):
    def __init__(self, identity: str):
        super().__init__("Account is banned", {"identity": identity})
        self.identity = identity


class InsufficientPoints(LedgerError):
    def __init__(self, balance: int, requested: int):
        super().__init__(
            "Insufficient points",
            {"balance": balance, "requested": requested},
        )
        self.balance = balance
        self.requested = requested


class InvalidReward(LedgerError, LookupError):
    def __init__(self, reward_index: Any):
        super().__init__("Unknown reward index", {"reward_index": reward_index})
        self.reward_index = reward_index


class InvalidAmount(LedgerError, ValueError):
    """Raised when an amount or value is not a non-negative integer"""

    def __init__(self, amount: Any):
        super().__init__("Amount must be a non-negative integer", {"amount": amount})
        self.amount = amount


class OwnerMismatch(LedgerError):
    """Raised when a durable store was created for a different owner"""

    def __init__(self, stored: str, configured: str):
        super().__init__(
            "Store is bound to a different owner",
            {"stored": stored, "configured": configured},
        )
        self.stored = stored
        self.configured = configured


class StoreError(LedgerError):
    """Raised when the account store cannot be read or written"""
    pass
