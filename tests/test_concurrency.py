import threading

from pointsledger.ledger import Ledger, LedgerError


def test_concurrent_transfers_conserve_points():
    ledger = Ledger("0xowner", publisher=lambda env: None)
    members = ["alice", "bob", "carol", "dave"]
    for m in members:
        ledger.join_as_member(m)
        ledger.assign_points("0xowner", m, 1_000)
    total = sum(ledger.balance_of(m) for m in members)

    errors = []

    def worker(idx: int) -> None:
        src = members[idx % len(members)]
        dst = members[(idx + 1) % len(members)]
        for _ in range(200):
            try:
                ledger.transfer_points(src, dst, 7)
            except LedgerError:
                pass
            except Exception as e:  # pragma: no cover
                errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sum(ledger.balance_of(m) for m in members) == total
    assert all(ledger.balance_of(m) >= 0 for m in members)


def test_concurrent_fallback_calls_are_all_counted():
    ledger = Ledger("0xowner", publisher=lambda env: None)

    def worker() -> None:
        for _ in range(250):
            ledger.on_data_transfer("mallory", 0, b"\x01")

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert ledger.fallback_calls("mallory") == 1_000
