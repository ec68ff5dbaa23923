import pytest

from pointsledger.ledger import Ledger


OWNER = "0xowner"


@pytest.fixture
def published():
    return []


@pytest.fixture
def ledger(published):
    return Ledger(OWNER, publisher=published.append)


@pytest.fixture
def members(ledger):
    """Ledger where alice and bob have joined."""
    ledger.join_as_member("alice")
    ledger.join_as_member("bob")
    return ledger
