import pytest
from stakepool.ledger.core.lock_policy import classify, total_bps
from stakepool.ledger.core.registry import StakerRegistry, EnumerationIndex
from stakepool.ledger.core.accounting import PoolAccounting
from stakepool.ledger.core.state import PoolState
from stakepool.ledger.core import rewards
from stakepool.protocol.types.staker import StakerRecord
from stakepool.protocol.types.common import AlreadyStaking, NoStake, InvalidLock, NothingToClaim
from stakepool.protocol.config.params import UNIT, BLOCKS_PER_YEAR

OWNER = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
ALICE = "ST1SJ3DTE5DN7X54YDH5D64R3BCB6A2AG2ZQ8YPD5"


def make_record(amount=100 * UNIT, bonus=0, checkpoint=0, lock_until=0):
    return StakerRecord(amount=amount, lock_until=lock_until, lock_bonus_bps=bonus,
                        lock_duration=0, accrual_checkpoint=checkpoint)


# ═══════════════════════════════════════════════════════════════════
# LOCK POLICY
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("lock_blocks,bonus", [
    (0, 0),
    (1008, 50),
    (4320, 150),
    (12960, 300),
])
def test_classify_named_tiers(lock_blocks, bonus):
    assert classify(lock_blocks).bonus_bps == bonus


def test_classify_between_tiers_uses_lower_tier():
    assert classify(2000).bonus_bps == 50
    assert classify(4319).bonus_bps == 50
    assert classify(12959).bonus_bps == 150
    assert classify(100_000).bonus_bps == 300


@pytest.mark.parametrize("lock_blocks", [1, 10, 1007, -1])
def test_classify_rejects_short_and_negative(lock_blocks):
    with pytest.raises(InvalidLock):
        classify(lock_blocks)


def test_total_bps_adds_base_rate():
    assert total_bps(0) == 50
    assert total_bps(300) == 350


# ═══════════════════════════════════════════════════════════════════
# REGISTRY + INDEX
# ═══════════════════════════════════════════════════════════════════

def test_registry_insert_get_remove():
    reg = StakerRegistry()
    assert not reg.exists(ALICE)
    assert reg.get(ALICE) is None

    reg.insert(ALICE, make_record())
    assert reg.exists(ALICE)
    assert reg.get(ALICE).amount == 100 * UNIT

    with pytest.raises(AlreadyStaking):
        reg.insert(ALICE, make_record())

    removed = reg.remove(ALICE)
    assert removed.amount == 100 * UNIT
    assert not reg.exists(ALICE)

    with pytest.raises(NoStake):
        reg.remove(ALICE)


def test_registry_rejects_empty_position():
    reg = StakerRegistry()
    with pytest.raises(ValueError):
        reg.insert(ALICE, make_record(amount=0))


def test_registry_clone_is_independent():
    reg = StakerRegistry()
    reg.insert(ALICE, make_record())
    copy = reg.clone()
    copy.get(ALICE).amount += 1
    assert reg.get(ALICE).amount == 100 * UNIT


def test_index_is_append_only():
    index = EnumerationIndex()
    assert index.append("a") == 0
    assert index.append("b") == 1
    assert len(index) == 2
    assert index.at(0) == "a"
    assert index.at(2) is None
    assert index.at(-1) is None
    assert index.slot_of("b") == 1

    with pytest.raises(ValueError):
        index.append("a")


def test_state_restake_reuses_slot():
    state = PoolState.genesis(OWNER)
    assert state.open_position(ALICE, make_record()) == 0
    assert state.accounting.staker_count == 1

    state.close_position(ALICE)
    assert state.index.at(0) == ALICE          # ghost entry kept
    assert not state.registry.exists(ALICE)

    assert state.open_position(ALICE, make_record(amount=5 * UNIT)) == 0
    assert state.accounting.staker_count == 1
    assert state.accounting.total_staked == 5 * UNIT
    state.check_invariants()


# ═══════════════════════════════════════════════════════════════════
# ACCOUNTING
# ═══════════════════════════════════════════════════════════════════

def test_accounting_guards():
    acc = PoolAccounting()
    acc.credit_stake(10)
    with pytest.raises(ValueError):
        acc.debit_stake(11)

    acc.fund(5)
    with pytest.raises(ValueError):
        acc.pay_reward(6)

    acc.pay_reward(5)
    assert acc.reward_pool_balance == 0
    assert acc.total_rewards_distributed == 5


# ═══════════════════════════════════════════════════════════════════
# REWARD ACCRUAL
# ═══════════════════════════════════════════════════════════════════

def test_accrued_one_year_base_rate():
    # 100 STX at 0.5% for one year = 0.5 STX
    assert rewards.accrued(make_record(), BLOCKS_PER_YEAR) == 500_000


def test_accrued_one_year_max_lock():
    # 100 STX at 3.5% for one year = 3.5 STX
    assert rewards.accrued(make_record(bonus=300), BLOCKS_PER_YEAR) == 3_500_000


def test_accrued_truncates_toward_zero():
    # 100e6 * 50 * 200 / 525_600_000 = 1902.58...
    assert rewards.accrued(make_record(), 200) == 1902


def test_accrued_zero_when_no_blocks_elapsed():
    assert rewards.accrued(make_record(checkpoint=50), 50) == 0
    assert rewards.accrued(make_record(checkpoint=50), 40) == 0


def test_pending_capped_by_pool():
    record = make_record()
    assert rewards.pending(record, BLOCKS_PER_YEAR, reward_pool_balance=1000) == 1000
    assert rewards.pending(record, BLOCKS_PER_YEAR, reward_pool_balance=0) == 0


def test_settle_pays_and_advances_checkpoint():
    state = PoolState.genesis(OWNER, reward_pool=10_000 * UNIT)
    state.open_position(ALICE, make_record(checkpoint=0))

    paid = rewards.settle(state, ALICE, BLOCKS_PER_YEAR)

    record = state.registry.get(ALICE)
    assert paid == 500_000
    assert record.total_claimed == 500_000
    assert record.accrual_checkpoint == BLOCKS_PER_YEAR
    assert state.accounting.reward_pool_balance == 10_000 * UNIT - 500_000
    assert state.accounting.total_rewards_distributed == 500_000


def test_settle_nothing_to_claim_leaves_record_untouched():
    state = PoolState.genesis(OWNER)  # unfunded
    state.open_position(ALICE, make_record(checkpoint=0))

    with pytest.raises(NothingToClaim):
        rewards.settle(state, ALICE, 1000)

    assert state.registry.get(ALICE).accrual_checkpoint == 0


def test_settle_zero_allowed_for_unstake_path():
    state = PoolState.genesis(OWNER)
    state.open_position(ALICE, make_record(checkpoint=0))
    assert rewards.settle(state, ALICE, 1000, allow_zero=True) == 0
    assert state.registry.get(ALICE).accrual_checkpoint == 1000


def test_estimate_apy():
    assert rewards.estimate_apy(0) == 50
    assert rewards.estimate_apy(1008) == 100
    assert rewards.estimate_apy(4320) == 200
    assert rewards.estimate_apy(12960) == 350
    with pytest.raises(InvalidLock):
        rewards.estimate_apy(10)
