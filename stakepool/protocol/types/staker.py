# MIT License
# Copyright (c) 2025 Hashborn

from pydantic import BaseModel
from typing import Optional


class StakerRecord(BaseModel):
    """A live staking position. At most one exists per account."""
    amount: int                 # Staked principal in micro units
    lock_until: int = 0         # Height at which the position unlocks (0 = no lock)
    lock_bonus_bps: int = 0     # Fixed by the initial stake call
    lock_duration: int = 0      # Requested lock length in blocks
    accrual_checkpoint: int     # Height of the last reward settlement
    total_claimed: int = 0      # Rewards ever paid to this account

    def is_unlocked(self, height: int) -> bool:
        return height >= self.lock_until

    def blocks_remaining(self, height: int) -> int:
        return max(0, self.lock_until - height)


class StakerStatus(BaseModel):
    """Read-only view of a staker, with values derived at a given height."""
    account: str
    index: Optional[int] = None
    amount: int
    lock_until: int
    lock_bonus_bps: int
    lock_duration: int
    accrual_checkpoint: int
    total_claimed: int
    is_unlocked: bool
    blocks_remaining: int
    pending_rewards: int = 0


class PoolStats(BaseModel):
    total_staked: int
    reward_pool: int
    staker_count: int
    total_rewards_distributed: int


class ApyEstimate(BaseModel):
    lock_blocks: int
    lock_bonus_bps: int
    total_bps: int
