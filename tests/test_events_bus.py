import json
import logging
import os
import socket

import pytest
from prometheus_client import REGISTRY

from pointsledger.events.schema import EventEnvelope, MemberJoined, PointsEarned
from pointsledger.events import bus
from pointsledger.ledger import Ledger


def _redis_up(host='localhost', port=6379):
    try:
        with socket.create_connection((host, port), timeout=0.5):
            return True
    except OSError:
        return False


def test_publish_logs_single_json_line_without_redis(monkeypatch, caplog):
    monkeypatch.setattr(bus, "REDIS_URL", "")
    caplog.set_level(logging.INFO, logger="pointsledger.events")
    before = REGISTRY.get_sample_value("ledger_events_total", {"type": "points_earned"}) or 0.0

    env = EventEnvelope(correlation_id="main:alice", sequence=7, event=PointsEarned(ts=5, identity="alice", amount=12))
    bus.publish(env)

    lines = [r.message for r in caplog.records if r.name == "pointsledger.events"]
    assert lines, "expected a JSON log line"
    data = json.loads(lines[-1])
    assert data["sequence"] == 7
    assert data["event"] == {"event_type": "points_earned", "ts": 5, "identity": "alice", "amount": 12}
    after = REGISTRY.get_sample_value("ledger_events_total", {"type": "points_earned"})
    assert after == before + 1


def test_ledger_publishes_through_bus_by_default(monkeypatch):
    seen = []
    monkeypatch.setattr("pointsledger.ledger.ledger.publish_event", seen.append)
    led = Ledger("0xowner")
    led.join_as_member("alice")
    assert [env.event.event_type for env in seen] == ["member_joined"]


def test_failing_publisher_does_not_undo_commit(caplog):
    def _boom(env):
        raise RuntimeError("sink down")

    led = Ledger("0xowner", publisher=_boom)
    caplog.set_level(logging.ERROR, logger="pointsledger.ledger")
    led.join_as_member("alice")
    assert led.is_member("alice") is True
    assert len(led.events) == 1
    assert any("event publisher failed" in r.message for r in caplog.records)


@pytest.mark.skipif(not _redis_up(), reason="redis not running on localhost:6379")
def test_bus_publish_consume_roundtrip(monkeypatch):
    monkeypatch.setattr(bus, "REDIS_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0"))
    env = EventEnvelope(correlation_id="cX", event=MemberJoined(ts=1, identity="alice"))
    bus.publish(env)
    bus.ensure_group('g1')
    it = bus.consume('g1', 'c1', block_ms=1000)
    msg = next(it)
    assert msg is None or isinstance(msg, tuple)
