from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict


class AccountStatus(str, Enum):
    ACTIVE = "active"
    BANNED = "banned"


# reward index -> point cost
REWARD_TIERS: Dict[int, int] = {
    0: 1000,
    1: 500,
    2: 250,
    3: 100,
}


@dataclass
class AccountRecord:
    identity: str
    is_member: bool = False
    balance: int = 0
    status: AccountStatus = AccountStatus.ACTIVE
    fallback_calls: int = 0

    @property
    def banned(self) -> bool:
        return self.status is AccountStatus.BANNED

    def copy(self) -> "AccountRecord":
        return replace(self)

    def to_dict(self) -> Dict[str, object]:
        return {
            "identity": self.identity,
            "is_member": self.is_member,
            "balance": self.balance,
            "status": self.status.value,
            "fallback_calls": self.fallback_calls,
        }
