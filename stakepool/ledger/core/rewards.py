# MIT License
# Copyright (c) 2025 Hashborn

import logging
from typing import TYPE_CHECKING
from ...protocol.config.params import BASE_BPS, BPS_DENOMINATOR, BLOCKS_PER_YEAR
from ...protocol.types.staker import StakerRecord
from ...protocol.types.common import NothingToClaim
from .lock_policy import classify, total_bps

if TYPE_CHECKING:
    from .state import PoolState

logger = logging.getLogger(__name__)


def accrued(record: StakerRecord, current_height: int,
            base_bps: int = BASE_BPS, blocks_per_year: int = BLOCKS_PER_YEAR) -> int:
    """
    Rewards earned since the last checkpoint, before the pool cap.

    amount * rate_bps * elapsed / (10_000 * blocks_per_year), floored.
    Integer-only so every node computes the same value.
    """
    elapsed = current_height - record.accrual_checkpoint
    if elapsed <= 0:
        return 0
    rate_bps = total_bps(record.lock_bonus_bps, base_bps)
    return (record.amount * rate_bps * elapsed) // (BPS_DENOMINATOR * blocks_per_year)


def pending(record: StakerRecord, current_height: int, reward_pool_balance: int,
            base_bps: int = BASE_BPS, blocks_per_year: int = BLOCKS_PER_YEAR) -> int:
    """Payable rewards: accrued rewards capped at what the pool holds."""
    return min(accrued(record, current_height, base_bps, blocks_per_year), reward_pool_balance)


def settle(state: 'PoolState', account: str, current_height: int, allow_zero: bool = False) -> int:
    """
    Pays out pending rewards for `account` against the pool balance.

    Args:
        state: Pool state to mutate
        account: Staker whose rewards are settled
        current_height: Height the checkpoint advances to
        allow_zero: Accept a zero payout (unstake path) instead of failing

    Returns:
        Amount paid

    Raises:
        NoStake: if the account has no live position
        NothingToClaim: if nothing is payable and allow_zero is False
    """
    record = state.registry.require(account)
    paid = pending(record, current_height, state.accounting.reward_pool_balance,
                   state.config.base_bps, state.config.blocks_per_year)

    if paid == 0 and not allow_zero:
        raise NothingToClaim(f"No rewards payable to {account} at height {current_height}")

    if paid > 0:
        state.accounting.pay_reward(paid)
        record.total_claimed += paid
        logger.debug(f"Settled {paid} to {account} (pool left {state.accounting.reward_pool_balance})")

    record.accrual_checkpoint = max(record.accrual_checkpoint, current_height)
    return paid


def estimate_apy(lock_blocks: int, base_bps: int = BASE_BPS) -> int:
    """Total annual rate in bps for a lock duration. Raises InvalidLock."""
    return total_bps(classify(lock_blocks).bonus_bps, base_bps)
