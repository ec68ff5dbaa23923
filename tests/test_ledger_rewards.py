import pytest

from pointsledger.ledger import REWARD_TIERS, InsufficientPoints, InvalidReward
from pointsledger.events.schema import RewardRedeemed


def test_points_required_for_each_reward(ledger):
    assert ledger.points_required_for_rewards(0) == 1000
    assert ledger.points_required_for_rewards(1) == 500
    assert ledger.points_required_for_rewards(2) == 250
    assert ledger.points_required_for_rewards(3) == 100
    assert ledger.reward_tiers == REWARD_TIERS == {0: 1000, 1: 500, 2: 250, 3: 100}


@pytest.mark.parametrize("index", [-1, 4, 99, True, "0", 1.0])
def test_unknown_reward_index_rejected(ledger, index):
    with pytest.raises(InvalidReward) as exc:
        ledger.points_required_for_rewards(index)
    assert isinstance(exc.value, LookupError)


def test_reward_table_copy_is_not_live(ledger):
    tiers = ledger.reward_tiers
    tiers[0] = 1
    assert ledger.points_required_for_rewards(0) == 1000


def test_redeem_top_reward_then_insufficient(members):
    members.assign_points("0xowner", "alice", 1000)
    evt = members.redeem_reward("alice", 0)
    assert isinstance(evt, RewardRedeemed)
    assert evt.args() == ("alice", 0, 1000)
    assert members.balance_of("alice") == 0

    with pytest.raises(InsufficientPoints) as exc:
        members.redeem_reward("alice", 0)
    assert exc.value.error_args == (0, 1000)


def test_redeem_every_affordable_reward(members):
    members.assign_points("0xowner", "alice", 1850)
    redeemed = []
    for reward in range(4):
        cost = members.points_required_for_rewards(reward)
        if members.get_my_balance("alice") >= cost:
            redeemed.append(members.redeem_reward("alice", reward).args())
    assert redeemed == [("alice", 0, 1000), ("alice", 1, 500), ("alice", 2, 250), ("alice", 3, 100)]
    assert members.balance_of("alice") == 0


def test_redeem_invalid_index_changes_nothing(members):
    members.assign_points("0xowner", "alice", 5000)
    with pytest.raises(InvalidReward):
        members.redeem_reward("alice", 7)
    assert members.balance_of("alice") == 5000


def test_identity_without_points_cannot_redeem(ledger):
    with pytest.raises(InsufficientPoints) as exc:
        ledger.redeem_reward("stranger", 3)
    assert exc.value.error_args == (0, 100)
