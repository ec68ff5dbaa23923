from __future__ import annotations

import time
from typing import Any, ClassVar, Literal, Tuple, Union
from pydantic import BaseModel, Field


def now_ms() -> int:
    return int(time.time() * 1000)


# ---- Base ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int = Field(default_factory=now_ms)

    # positional notification fields, in emission order
    ARG_FIELDS: ClassVar[Tuple[str, ...]] = ()

    def args(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self.ARG_FIELDS)


# ---- Event types ----

class MemberJoined(BaseEvent):
    event_type: Literal["member_joined"] = "member_joined"
    identity: str

    ARG_FIELDS: ClassVar[Tuple[str, ...]] = ("identity",)


class PointsEarned(BaseEvent):
    event_type: Literal["points_earned"] = "points_earned"
    identity: str
    amount: int = Field(ge=0)

    ARG_FIELDS: ClassVar[Tuple[str, ...]] = ("identity", "amount")


class PointsAssigned(BaseEvent):
    event_type: Literal["points_assigned"] = "points_assigned"
    owner: str
    target: str
    amount: int = Field(ge=0)

    ARG_FIELDS: ClassVar[Tuple[str, ...]] = ("owner", "target", "amount")


class PointsTransferred(BaseEvent):
    event_type: Literal["points_transferred"] = "points_transferred"
    sender: str
    recipient: str
    amount: int = Field(ge=0)

    ARG_FIELDS: ClassVar[Tuple[str, ...]] = ("sender", "recipient", "amount")


class RewardRedeemed(BaseEvent):
    event_type: Literal["reward_redeemed"] = "reward_redeemed"
    identity: str
    reward_index: int = Field(ge=0)
    cost: int = Field(ge=0)

    ARG_FIELDS: ClassVar[Tuple[str, ...]] = ("identity", "reward_index", "cost")


class MemberBanned(BaseEvent):
    event_type: Literal["member_banned"] = "member_banned"
    identity: str

    ARG_FIELDS: ClassVar[Tuple[str, ...]] = ("identity",)


class ReceivedFunds(BaseEvent):
    event_type: Literal["received_funds"] = "received_funds"
    sender: str
    value: int = Field(gt=0)

    ARG_FIELDS: ClassVar[Tuple[str, ...]] = ("sender", "value")


AnyEvent = Union[
    MemberJoined,
    PointsEarned,
    PointsAssigned,
    PointsTransferred,
    RewardRedeemed,
    MemberBanned,
    ReceivedFunds,
]


# ---- Envelope ----

class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: AnyEvent = Field(discriminator="event_type")
