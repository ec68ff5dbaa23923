"""
Main entrypoint for pointsledger.

What it does:
- Loads runtime settings from `config/config.yaml` and `POINTS_LEDGER_*`
  environment variables.
- Opens the configured account store and builds a Ledger bound to the owner.
- Runs one ledger operation on behalf of `--caller` and prints a single JSON
  result line. Exit code 0 on success, 1 when the ledger rejects the call.

With `store: sqlite` the account table persists across invocations, so a
session looks like:

    python -m pointsledger.main deploy
    python -m pointsledger.main join --caller alice
    python -m pointsledger.main assign --caller <owner> --target alice --amount 100
    python -m pointsledger.main send --caller alice --value 5 --data 0x01

Key related modules:
- `pointsledger.config.loader.Settings` and `load_settings`
- `pointsledger.ledger.Ledger` and `open_store`
"""
import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from pointsledger.config.loader import Settings, load_settings
from pointsledger.events import bus
from pointsledger.ledger import Ledger, LedgerError, open_store
from pointsledger.metrics.core import start_server_safe

log = logging.getLogger("pointsledger.main")


def build_ledger(settings: Settings) -> Ledger:
    bus.STREAM_EVENTS = settings.events_stream
    bus.STREAM_DLQ = settings.events_dlq
    store = open_store(settings)
    log.info(f"Ledger store: {settings.store}, owner: {settings.owner}")
    return Ledger(settings.owner, store=store, audit_path=settings.audit_path)


def _parse_data(raw: str) -> bytes:
    raw = raw.strip()
    if raw.startswith(("0x", "0X")):
        raw = raw[2:]
    return bytes.fromhex(raw)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pointsledger", description="Membership and points ledger")
    p.add_argument("--config", default="config/config.yaml", help="settings YAML")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("deploy", help="bind the store to the configured owner")

    def cmd(name: str, help: str) -> argparse.ArgumentParser:
        sp = sub.add_parser(name, help=help)
        sp.add_argument("--caller", required=True)
        return sp

    cmd("join", "join as member")
    cmd("earn", "earn points").add_argument("--amount", type=int, required=True)
    for name, help in (("assign", "owner assigns points"), ("transfer", "transfer points")):
        sp = cmd(name, help)
        sp.add_argument("--target", required=True)
        sp.add_argument("--amount", type=int, required=True)
    cmd("redeem", "redeem a reward").add_argument("--reward", type=int, required=True)
    cmd("ban", "owner bans an account").add_argument("--target", required=True)
    balance = cmd("balance", "read a balance")
    balance.add_argument("--of", dest="identity", default=None, help="identity to read (default: caller)")
    cost = sub.add_parser("reward-cost", help="points required for a reward")
    cost.add_argument("--reward", type=int, required=True)
    send = cmd("send", "send value to the ledger (payload-bearing when --data is given)")
    send.add_argument("--value", type=int, default=0)
    send.add_argument("--data", type=_parse_data, default="", help="hex payload; empty means a plain transfer")
    return p


def run_command(ledger: Ledger, args: argparse.Namespace) -> Dict[str, Any]:
    c = args.command
    if c == "deploy":
        return {"owner": ledger.owner, "reward_tiers": ledger.reward_tiers}
    if c == "reward-cost":
        return {"reward": args.reward, "cost": ledger.points_required_for_rewards(args.reward)}
    if c == "balance":
        identity = args.identity or args.caller
        return {"identity": identity, "balance": ledger.balance_of(identity)}

    if c == "join":
        evt = ledger.join_as_member(args.caller)
    elif c == "earn":
        evt = ledger.earn_points(args.caller, args.amount)
    elif c == "assign":
        evt = ledger.assign_points(args.caller, args.target, args.amount)
    elif c == "transfer":
        evt = ledger.transfer_points(args.caller, args.target, args.amount)
    elif c == "redeem":
        evt = ledger.redeem_reward(args.caller, args.reward)
    elif c == "ban":
        evt = ledger.ban_account(args.caller, args.target)
    elif c == "send":
        evt = ledger.incoming(args.caller, args.value, args.data)
        return {
            "event": evt.model_dump() if evt is not None else None,
            "fallback_calls": ledger.fallback_calls(args.caller),
        }
    else:  # pragma: no cover - argparse restricts choices
        raise ValueError(f"unknown command: {c}")
    return {"event": evt.model_dump()}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    start_server_safe(settings.prometheus_port)

    try:
        ledger = build_ledger(settings)
        result = run_command(ledger, args)
    except LedgerError as e:
        print(json.dumps({"ok": False, "error": e.name, "args": list(e.error_args), "message": str(e)}))
        return 1
    print(json.dumps({"ok": True, **result}))
    return 0


if __name__ == "__main__":
    sys.exit(main())
