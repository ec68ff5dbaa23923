from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_operations_total: Optional[Counter] = None
_rejections_total: Optional[Counter] = None
_points_issued_total: Optional[Counter] = None
_points_transferred_total: Optional[Counter] = None
_points_redeemed_total: Optional[Counter] = None
_fallback_calls_total: Optional[Counter] = None
_received_funds_total: Optional[Counter] = None
_members_banned_total: Optional[Counter] = None
_members_gauge: Optional[Gauge] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _existing_collector(name: str):
    try:
        coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if coll is not None:
            return coll
        for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
            if getattr(coll, "_name", None) == name:
                return coll
    except Exception:
        pass
    return None


def _safe_counter(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # already registered (module reloads, repeated imports in tests)
        coll = _existing_collector(name)
        return coll if coll is not None else _NoOp()


def _safe_gauge(name: str, doc: str, labelnames=()):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        coll = _existing_collector(name)
        return coll if coll is not None else _NoOp()


def get_operations_total():
    """Counter: ledger_operations_total{op,outcome}, outcome is ok|rejected."""
    global _operations_total
    if _operations_total is None:
        _operations_total = _safe_counter(
            "ledger_operations_total", "Ledger operations by outcome", ["op", "outcome"]
        )
    return _operations_total


def get_rejections_total():
    """Counter: ledger_rejections_total{op,error}"""
    global _rejections_total
    if _rejections_total is None:
        _rejections_total = _safe_counter(
            "ledger_rejections_total", "Ledger operations rejected", ["op", "error"]
        )
    return _rejections_total


def get_points_issued_total():
    global _points_issued_total
    if _points_issued_total is None:
        _points_issued_total = _safe_counter("points_issued_total", "Points credited", ["source"])
    return _points_issued_total


def get_points_transferred_total():
    global _points_transferred_total
    if _points_transferred_total is None:
        _points_transferred_total = _safe_counter(
            "points_transferred_total", "Points moved between accounts", []
        )
    return _points_transferred_total


def get_points_redeemed_total():
    global _points_redeemed_total
    if _points_redeemed_total is None:
        _points_redeemed_total = _safe_counter(
            "points_redeemed_total", "Points spent on rewards", ["reward"]
        )
    return _points_redeemed_total


def get_fallback_calls_total():
    """Counter: fallback_calls_total{outcome}, outcome is counted|rejected.

    Aggregate across identities; the per-identity count lives on the account record.
    """
    global _fallback_calls_total
    if _fallback_calls_total is None:
        _fallback_calls_total = _safe_counter(
            "fallback_calls_total", "Payload-bearing incoming calls", ["outcome"]
        )
    return _fallback_calls_total


def get_received_funds_total():
    global _received_funds_total
    if _received_funds_total is None:
        _received_funds_total = _safe_counter(
            "received_funds_total", "Value received by incoming path", ["path"]
        )
    return _received_funds_total


def get_members_banned_total():
    global _members_banned_total
    if _members_banned_total is None:
        _members_banned_total = _safe_counter("members_banned_total", "Ban actions taken", [])
    return _members_banned_total


def get_members_gauge():
    """Gauge: ledger_members{ledger}, current member count of the store behind each ledger name."""
    global _members_gauge
    if _members_gauge is None:
        _members_gauge = _safe_gauge("ledger_members", "Current members", ["ledger"])
    return _members_gauge


def record_operation(op: str, error: Optional[str] = None) -> None:
    try:
        if error is None:
            get_operations_total().labels(op, "ok").inc()
        else:
            get_operations_total().labels(op, "rejected").inc()
            get_rejections_total().labels(op, error).inc()
    except Exception:
        pass
