import pytest

from pointsledger.ledger import AccountBanned, AccountStatus, NotOwner
from pointsledger.events.schema import MemberBanned


def test_owner_can_ban_a_member(members):
    evt = members.ban_account("0xowner", "alice")
    assert isinstance(evt, MemberBanned)
    assert evt.args() == ("alice",)
    assert members.is_banned("alice") is True
    assert members.account("alice").status is AccountStatus.BANNED

    with pytest.raises(AccountBanned) as exc:
        members.earn_points("alice", 50)
    assert exc.value.identity == "alice"


def test_non_owner_cannot_ban(members):
    with pytest.raises(NotOwner) as exc:
        members.ban_account("bob", "alice")
    assert exc.value.identity == "bob"
    assert members.is_banned("alice") is False


def test_ban_keeps_balance_and_membership(members):
    members.assign_points("0xowner", "alice", 300)
    members.ban_account("0xowner", "alice")
    acct = members.account("alice")
    assert acct.balance == 300
    assert acct.is_member is True


def test_banned_identity_rejected_everywhere(members):
    members.assign_points("0xowner", "alice", 1000)
    members.on_data_transfer("alice", 0, b"\x01")
    members.ban_account("0xowner", "alice")

    with pytest.raises(AccountBanned):
        members.earn_points("alice", 1)
    with pytest.raises(AccountBanned):
        members.transfer_points("alice", "bob", 1)
    with pytest.raises(AccountBanned):
        members.redeem_reward("alice", 3)
    with pytest.raises(AccountBanned):
        members.on_plain_transfer("alice", 1)
    with pytest.raises(AccountBanned):
        members.on_data_transfer("alice", 1, b"\x01")

    assert members.balance_of("alice") == 1000
    assert members.balance_of("bob") == 0
    assert members.fallback_calls("alice") == 1


def test_ban_check_precedes_other_preconditions(ledger):
    ledger.ban_account("0xowner", "stranger")
    # not a member, no balance, invalid amount: the ban still wins
    with pytest.raises(AccountBanned):
        ledger.earn_points("stranger", -5)
    with pytest.raises(AccountBanned):
        ledger.transfer_points("stranger", "nobody", 10)
    with pytest.raises(AccountBanned):
        ledger.redeem_reward("stranger", 42)


def test_banned_owner_can_still_ban_but_not_assign(members):
    members.ban_account("0xowner", "0xowner")
    members.ban_account("0xowner", "bob")
    assert members.is_banned("bob") is True
    with pytest.raises(AccountBanned):
        members.assign_points("0xowner", "alice", 10)


def test_ban_is_one_way_and_repeatable(members):
    members.ban_account("0xowner", "alice")
    evt = members.ban_account("0xowner", "alice")
    assert evt.args() == ("alice",)
    assert members.is_banned("alice") is True
