from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional
import logging
import time

from ..metrics.ledger import _safe_counter


def _get_append_counters():
    app = _safe_counter("audit_log_appends_total", "Audit records appended", [])
    err = _safe_counter("audit_log_errors_total", "Audit log errors", ["reason"])
    return app, err


REQUIRED_KEYS = {"ts", "op", "caller", "outcome"}


def validate_record(rec: Dict[str, Any]) -> List[str]:
    missing = [k for k in REQUIRED_KEYS if k not in rec]
    return sorted(missing)


def append_jsonl(path: str, rec: Dict[str, Any]) -> bool:
    """Append one audit record as a JSON line. Returns False if it was dropped."""
    app, err = _get_append_counters()
    missing = validate_record(rec)
    if missing:
        err.labels("missing_fields").inc()
        return False
    parent = os.path.dirname(path)
    try:
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False, sort_keys=True, default=str) + "\n")
        app.inc()
        return True
    except OSError:
        err.labels("io_error").inc()
        return False
    except (TypeError, ValueError):
        err.labels("serialize_error").inc()
        return False


def read_jsonl(path: str) -> List[Dict[str, Any]]:
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def build_record(
    op: str,
    caller: str,
    error: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    ts: Optional[int] = None,
) -> Dict[str, Any]:
    return {
        "ts": int(ts if ts is not None else int(time.time() * 1000)),
        "op": str(op),
        "caller": str(caller),
        "outcome": "rejected" if error else "ok",
        "error": error,
        "details": details or {},
    }


def log_operation(rec: Dict[str, Any]) -> None:
    """Emit a structured JSON log line for one ledger operation.

    Keys: event, op, caller, outcome, error, details, ts, component, schema_version
    """
    try:
        logger = logging.getLogger("pointsledger.audit")
        payload: Dict[str, Any] = {
            "event": "ledger_operation",
            "component": "ledger",
            "schema_version": "v1",
        }
        payload.update(rec)
        level = logging.INFO if rec.get("outcome") == "ok" else logging.WARNING
        logger.log(level, json.dumps(payload, separators=(",", ":"), default=str))
    except Exception:
        # Logging must never throw
        pass
