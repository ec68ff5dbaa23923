from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional
import logging
import os
import threading

import pandas as pd

from .errors import (
    AccountBanned,
    AlreadyMember,
    InsufficientPoints,
    InvalidAmount,
    InvalidReward,
    LedgerError,
    NotMember,
    NotOwner,
)
from .model import REWARD_TIERS, AccountRecord, AccountStatus
from .store import AccountStore, InMemoryAccountStore
from ..events.schema import (
    BaseEvent,
    EventEnvelope,
    MemberBanned,
    MemberJoined,
    PointsAssigned,
    PointsEarned,
    PointsTransferred,
    ReceivedFunds,
    RewardRedeemed,
)
from ..events.bus import publish as publish_event
from ..logs.audit_log import append_jsonl, build_record, log_operation
from ..metrics.ledger import (
    get_fallback_calls_total,
    get_members_banned_total,
    get_members_gauge,
    get_points_issued_total,
    get_points_redeemed_total,
    get_points_transferred_total,
    get_received_funds_total,
    record_operation,
)

log = logging.getLogger("pointsledger.ledger")

Publisher = Callable[[EventEnvelope], None]


def _check_amount(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmount(amount)
    return amount


class Ledger:
    """
    Membership and points ledger.

    Owns the account table through an injected store and is the only place
    that mutates it. Every operation runs under one lock and either commits
    all of its record changes in a single store call or raises a LedgerError
    having changed nothing. Successful mutations publish a notification and
    return it.

    Example:
        ledger = Ledger("owner")
        ledger.join_as_member("alice")
        ledger.assign_points("owner", "alice", 100)
        ledger.redeem_reward("alice", 3)
    """

    def __init__(
        self,
        owner: str,
        store: Optional[AccountStore] = None,
        publisher: Optional[Publisher] = None,
        audit_path: Optional[str] = None,
        name: str = "main",
    ):
        if not owner:
            raise ValueError("owner identity required")
        self.name = name
        self.store: AccountStore = store if store is not None else InMemoryAccountStore()
        self._owner = self.store.bind_owner(owner)
        self.publisher: Publisher = publisher if publisher is not None else publish_event
        self.audit_path = audit_path
        self.events: List[EventEnvelope] = []
        self._sequence = 0
        self._reward_tiers: Dict[int, int] = dict(REWARD_TIERS)
        self._lock = threading.RLock()
        self._refresh_members_gauge()

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def reward_tiers(self) -> Dict[int, int]:
        return dict(self._reward_tiers)

    # ---- membership ----

    def join_as_member(self, caller: str) -> MemberJoined:
        with self._operation("join_as_member", caller):
            acct = self._load_active(caller)
            if acct.is_member:
                raise AlreadyMember(caller)
            acct.is_member = True
            self.store.commit([acct])
            self._refresh_members_gauge()
            return self._emit("join_as_member", caller, MemberJoined(identity=caller))

    # ---- points ----

    def earn_points(self, caller: str, amount: int) -> PointsEarned:
        with self._operation("earn_points", caller, amount=amount):
            acct = self._load_active(caller)
            if not acct.is_member:
                raise NotMember(caller)
            _check_amount(amount)
            acct.balance += amount
            self.store.commit([acct])
            get_points_issued_total().labels("earn").inc(amount)
            return self._emit("earn_points", caller, PointsEarned(identity=caller, amount=amount))

    def assign_points(self, caller: str, target: str, amount: int) -> PointsAssigned:
        with self._operation("assign_points", caller, target=target, amount=amount):
            self._load_active(caller)
            if caller != self._owner:
                raise NotOwner(caller)
            _check_amount(amount)
            acct = self.store.load(target)
            if not acct.is_member:
                raise NotMember(target)
            acct.balance += amount
            self.store.commit([acct])
            get_points_issued_total().labels("assign").inc(amount)
            evt = PointsAssigned(owner=caller, target=target, amount=amount)
            return self._emit("assign_points", caller, evt)

    def transfer_points(self, caller: str, target: str, amount: int) -> PointsTransferred:
        with self._operation("transfer_points", caller, target=target, amount=amount):
            sender = self._load_active(caller)
            if not sender.is_member:
                raise NotMember(caller)
            _check_amount(amount)
            recipient = sender if target == caller else self.store.load(target)
            if not recipient.is_member:
                raise NotMember(target)
            if sender.balance < amount:
                raise InsufficientPoints(sender.balance, amount)
            sender.balance -= amount
            recipient.balance += amount
            self.store.commit([sender] if recipient is sender else [sender, recipient])
            get_points_transferred_total().inc(amount)
            evt = PointsTransferred(sender=caller, recipient=target, amount=amount)
            return self._emit("transfer_points", caller, evt)

    # ---- rewards ----

    def points_required_for_rewards(self, reward_index: int) -> int:
        if isinstance(reward_index, bool) or not isinstance(reward_index, int):
            raise InvalidReward(reward_index)
        cost = self._reward_tiers.get(reward_index)
        if cost is None:
            raise InvalidReward(reward_index)
        return cost

    def redeem_reward(self, caller: str, reward_index: int) -> RewardRedeemed:
        with self._operation("redeem_reward", caller, reward_index=reward_index):
            acct = self._load_active(caller)
            cost = self.points_required_for_rewards(reward_index)
            if acct.balance < cost:
                raise InsufficientPoints(acct.balance, cost)
            acct.balance -= cost
            self.store.commit([acct])
            get_points_redeemed_total().labels(str(reward_index)).inc(cost)
            evt = RewardRedeemed(identity=caller, reward_index=reward_index, cost=cost)
            return self._emit("redeem_reward", caller, evt)

    # ---- administration ----

    def ban_account(self, caller: str, target: str) -> MemberBanned:
        # owner check only: a banned owner can still ban
        with self._operation("ban_account", caller, target=target):
            if caller != self._owner:
                raise NotOwner(caller)
            acct = self.store.load(target)
            acct.status = AccountStatus.BANNED
            self.store.commit([acct])
            get_members_banned_total().inc()
            return self._emit("ban_account", caller, MemberBanned(identity=target))

    # ---- reads ----

    def get_my_balance(self, caller: str) -> int:
        return self.balance_of(caller)

    def balance_of(self, identity: str) -> int:
        with self._lock:
            return self.store.load(identity).balance

    def is_member(self, identity: str) -> bool:
        with self._lock:
            return self.store.load(identity).is_member

    def is_banned(self, identity: str) -> bool:
        with self._lock:
            return self.store.load(identity).banned

    def fallback_calls(self, identity: str) -> int:
        with self._lock:
            return self.store.load(identity).fallback_calls

    def account(self, identity: str) -> AccountRecord:
        with self._lock:
            return self.store.load(identity)

    def accounts(self) -> List[AccountRecord]:
        with self._lock:
            return [self.store.load(i) for i in self.store.identities()]

    # ---- incoming value ----

    def incoming(self, sender: str, value: int = 0, data: bytes = b"") -> Optional[ReceivedFunds]:
        """Route an unsolicited call: payload-bearing calls take the data path."""
        if data:
            return self.on_data_transfer(sender, value, data)
        return self.on_plain_transfer(sender, value)

    def on_plain_transfer(self, sender: str, value: int) -> Optional[ReceivedFunds]:
        with self._operation("receive", sender, value=value):
            self._load_active(sender)
            _check_amount(value)
            if value == 0:
                self._succeed("receive", sender, {"value": value})
                return None
            get_received_funds_total().labels("plain").inc(value)
            return self._emit("receive", sender, ReceivedFunds(sender=sender, value=value))

    def on_data_transfer(self, sender: str, value: int, data: bytes = b"") -> Optional[ReceivedFunds]:
        with self._operation("fallback", sender, value=value, data_len=len(data or b"")):
            acct = self.store.load(sender)
            if acct.banned:
                # rejected before the counter moves
                get_fallback_calls_total().labels("rejected").inc()
                raise AccountBanned(sender)
            _check_amount(value)
            acct.fallback_calls += 1
            self.store.commit([acct])
            get_fallback_calls_total().labels("counted").inc()
            if value == 0:
                self._succeed("fallback", sender, {"value": value, "fallback_calls": acct.fallback_calls})
                return None
            get_received_funds_total().labels("data").inc(value)
            return self._emit("fallback", sender, ReceivedFunds(sender=sender, value=value))

    # ---- export ----

    def write_parquet(self, base_dir: str = "data") -> None:
        os.makedirs(base_dir, exist_ok=True)
        accounts_df = pd.DataFrame([a.to_dict() for a in self.accounts()])
        events_df = pd.DataFrame([
            {"sequence": env.sequence, "correlation_id": env.correlation_id, **env.event.model_dump()}
            for env in self.events
        ])
        accounts_df.to_parquet(os.path.join(base_dir, "accounts.parquet"))
        events_df.to_parquet(os.path.join(base_dir, "events.parquet"))

    # ---- internals ----

    def _load_active(self, identity: str) -> AccountRecord:
        acct = self.store.load(identity)
        if acct.banned:
            raise AccountBanned(identity)
        return acct

    @contextmanager
    def _operation(self, op: str, caller: str, **details: Any) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except LedgerError as e:
                record_operation(op, e.name)
                self._audit(build_record(op, caller, error=e.name, details={**details, **e.details}))
                raise

    def _succeed(self, op: str, caller: str, details: Dict[str, Any]) -> None:
        record_operation(op)
        self._audit(build_record(op, caller, details=details))

    def _emit(self, op: str, caller: str, evt: BaseEvent) -> Any:
        self._sequence += 1
        env = EventEnvelope(correlation_id=f"{self.name}:{caller}", sequence=self._sequence, event=evt)
        self.events.append(env)
        self._succeed(op, caller, dict(zip(evt.ARG_FIELDS, evt.args())))
        try:
            self.publisher(env)
        except Exception:
            # operation is already committed
            log.exception("event publisher failed for %s #%d", evt.event_type, env.sequence)
        return evt

    def _refresh_members_gauge(self) -> None:
        count = sum(1 for a in self.accounts() if a.is_member)
        get_members_gauge().labels(self.name).set(count)

    def _audit(self, rec: Dict[str, Any]) -> None:
        log_operation(rec)
        if self.audit_path:
            append_jsonl(self.audit_path, rec)
