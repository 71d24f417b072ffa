# MIT License
# Copyright (c) 2025 Hashborn

"""
Economic Invariant Tests

Tests that pool invariants hold under random call sequences:
1. Principal conservation (total_staked = sum of live positions)
2. Reward conservation (funded = reward pool + distributed)
3. Monotonic counters (staker_count, total_rewards_distributed)
4. Non-negative balances
"""

import random
import pytest
from stakepool.ledger.core.pool import StakingPool
from stakepool.ledger.core.state import PoolState
from stakepool.protocol.types.call import (
    StakeCall, AddStakeCall, UnstakeCall, ClaimRewardsCall, FundRewardPoolCall,
)
from stakepool.protocol.config.params import UNIT

OWNER = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
ACCOUNTS = [OWNER] + [f"ST{i:038d}" for i in range(1, 8)]
LOCKS = [0, 0, 1008, 2000, 4320, 12960, 10, 1007]


def random_call(rng):
    kind = rng.randrange(5)
    if kind == 0:
        return StakeCall(amount=rng.choice([500, UNIT, 7 * UNIT, 120 * UNIT]), lock_blocks=rng.choice(LOCKS))
    if kind == 1:
        return AddStakeCall(amount=rng.choice([1, UNIT, 30 * UNIT]))
    if kind == 2:
        return UnstakeCall()
    if kind == 3:
        return ClaimRewardsCall()
    return FundRewardPoolCall(amount=rng.choice([0, 1, 50 * UNIT]))


@pytest.mark.parametrize("seed", [1, 7, 42, 1337])
def test_invariants_hold_under_random_calls(seed):
    rng = random.Random(seed)
    pool = StakingPool(PoolState.genesis(OWNER, reward_pool=10 * UNIT))

    funded = 10 * UNIT
    deposited = 0
    withdrawn = 0
    height = 0
    last_count = 0
    last_distributed = 0

    for _ in range(400):
        height += rng.choice([0, 1, 5, 300, 2000])
        sender = rng.choice(ACCOUNTS)
        call = random_call(rng)

        result = pool.execute(call, sender, height)

        if result.ok:
            if isinstance(call, FundRewardPoolCall):
                funded += call.amount
            elif isinstance(call, StakeCall):
                deposited += result.value["staked"]
            elif isinstance(call, AddStakeCall):
                deposited += call.amount
            elif isinstance(call, UnstakeCall):
                withdrawn += result.value["unstaked"]

        state = pool.state
        state.check_invariants()

        acc = state.accounting
        assert acc.total_staked == deposited - withdrawn
        assert acc.reward_pool_balance + acc.total_rewards_distributed == funded
        assert acc.reward_pool_balance >= 0

        assert acc.staker_count >= last_count
        assert acc.total_rewards_distributed >= last_distributed
        last_count = acc.staker_count
        last_distributed = acc.total_rewards_distributed

        claimed = sum(r.total_claimed for _, r in state.registry.items())
        assert claimed <= acc.total_rewards_distributed


def test_staker_count_never_exceeds_accounts():
    pool = StakingPool(PoolState.genesis(OWNER))
    height = 0
    for _ in range(5):
        for account in ACCOUNTS[1:4]:
            height += 1
            pool.execute(StakeCall(amount=UNIT), account, height)
        for account in ACCOUNTS[1:4]:
            height += 1
            pool.execute(UnstakeCall(), account, height)

    assert pool.get_staker_count() == 3
    assert pool.get_pool_stats().total_staked == 0
    assert [pool.get_staker_at_index(i) for i in range(3)] == ACCOUNTS[1:4]


def test_rewards_never_exceed_funding():
    pool = StakingPool(PoolState.genesis(OWNER, reward_pool=2 * UNIT))
    for i, account in enumerate(ACCOUNTS[1:]):
        pool.stake(account, 1_000 * UNIT, 12960, height=i)

    # Several years later everyone is owed far more than the pool holds
    height = 10 * 52_560
    paid = 0
    for account in ACCOUNTS[1:]:
        result = pool.execute(UnstakeCall(), account, height)
        assert result.ok
        paid += result.value["rewards_claimed"]

    assert paid == 2 * UNIT
    assert pool.get_pool_stats().reward_pool == 0
    assert pool.get_pool_stats().total_staked == 0
