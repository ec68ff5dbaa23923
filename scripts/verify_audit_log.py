#!/usr/bin/env python3
"""
Verify that every line of a ledger audit log (JSONL) is a well-formed
operation record.

Checks per line: valid JSON, the required keys are present, outcome is
"ok" or "rejected", and rejected records name their error.

Usage:
  python3 scripts/verify_audit_log.py [audit.jsonl]

Exit codes:
  0 = OK
  1 = Failure (prints JSON report with offending line numbers)
"""

import json
import sys
from typing import Any, Dict, List

from pointsledger.logs.audit_log import validate_record


def check_lines(path: str) -> Dict[str, Any]:
    offenders: List[int] = []
    parse_errors: Dict[int, str] = {}
    checked = 0
    with open(path, 'r', encoding='utf-8') as f:
        for line_num, line in enumerate(f, 1):
            if not line.strip():
                continue
            checked += 1
            try:
                rec = json.loads(line)
            except ValueError as e:
                parse_errors[line_num] = str(e)
                offenders.append(line_num)
                continue
            if validate_record(rec):
                offenders.append(line_num)
            elif rec['outcome'] not in ('ok', 'rejected'):
                offenders.append(line_num)
            elif rec['outcome'] == 'rejected' and not rec.get('error'):
                offenders.append(line_num)

    status = 'ok' if not offenders else 'failed'
    return {
        'status': status,
        'checked': checked,
        'offenders': offenders,
        'parse_errors': parse_errors,
    }


def main() -> int:
    path = sys.argv[1] if len(sys.argv) > 1 else 'data/audit.jsonl'
    report = check_lines(path)
    print(json.dumps(report, indent=2))

    return 0 if report['status'] == 'ok' else 1


if __name__ == '__main__':
    raise SystemExit(main())
