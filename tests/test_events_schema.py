import pytest
from pydantic import ValidationError

from pointsledger.events.schema import (
    EventEnvelope,
    MemberBanned,
    MemberJoined,
    PointsAssigned,
    PointsEarned,
    PointsTransferred,
    ReceivedFunds,
    RewardRedeemed,
)


def test_event_envelope_roundtrip():
    evt = PointsTransferred(ts=1, sender="alice", recipient="bob", amount=40)
    env = EventEnvelope(correlation_id="main:alice", sequence=3, event=evt)
    js = env.model_dump_json()
    assert "points_transferred" in js
    back = EventEnvelope.model_validate_json(js)
    assert isinstance(back.event, PointsTransferred)
    assert back.event.args() == ("alice", "bob", 40)


def test_event_args_follow_notification_order():
    assert MemberJoined(identity="a").args() == ("a",)
    assert PointsEarned(identity="a", amount=1).args() == ("a", 1)
    assert PointsAssigned(owner="o", target="a", amount=2).args() == ("o", "a", 2)
    assert RewardRedeemed(identity="a", reward_index=2, cost=250).args() == ("a", 2, 250)
    assert MemberBanned(identity="m").args() == ("m",)
    assert ReceivedFunds(sender="s", value=9).args() == ("s", 9)


def test_events_validate_amounts():
    with pytest.raises(ValidationError):
        PointsEarned(identity="a", amount=-1)
    with pytest.raises(ValidationError):
        ReceivedFunds(sender="s", value=0)


def test_events_are_timestamped():
    evt = MemberJoined(identity="a")
    assert evt.ts > 1_600_000_000_000
