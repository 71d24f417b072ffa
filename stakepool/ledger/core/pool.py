# MIT License
# Copyright (c) 2025 Hashborn

import logging
from typing import Callable, List, Optional, TypeVar
from ...protocol.types.common import (
    OpType, StakingError, NotAuthorized, ZeroAmount, StillLocked, AlreadyStaking,
)
from ...protocol.types.staker import StakerRecord, StakerStatus, PoolStats, ApyEstimate
from ...protocol.types.call import (
    Call, StakeCall, AddStakeCall, UnstakeCall, ClaimRewardsCall, FundRewardPoolCall,
    StakeResult, AddStakeResult, UnstakeResult, ClaimResult, FundResult, CallResult,
)
from .state import PoolState
from .lock_policy import classify
from . import rewards

logger = logging.getLogger(__name__)

R = TypeVar("R")


class StakingPool:
    """
    Operation dispatcher for the staking pool.

    Every mutating operation runs against a clone of the current state and
    the clone replaces the state only if the operation completes, so a
    rejected call changes nothing. The block height is supplied by the
    caller on every call; the pool never reads a clock.
    """

    def __init__(self, state: PoolState):
        self.state = state

    @property
    def config(self):
        return self.state.config

    def _commit(self, fn: Callable[[PoolState], R]) -> R:
        tmp_state = self.state.clone()
        result = fn(tmp_state)
        self.state = tmp_state
        return result

    # ═══════════════════════════════════════════════════════
    # MUTATING OPERATIONS
    # ═══════════════════════════════════════════════════════

    def stake(self, sender: str, amount: int, lock_blocks: int, height: int) -> StakeResult:
        """
        Opens a new position for `sender`.

        Raises:
            ZeroAmount: amount below the minimum stake
            InvalidLock: lock duration not in a recognised tier
            AlreadyStaking: sender already has a live position
        """
        def apply(state: PoolState) -> StakeResult:
            if amount < state.config.min_stake:
                raise ZeroAmount(f"Stake {amount} below minimum {state.config.min_stake}")

            tier = classify(lock_blocks)

            if state.registry.exists(sender):
                raise AlreadyStaking(f"Account {sender} already has a live stake")

            lock_until = height + lock_blocks if lock_blocks > 0 else 0
            record = StakerRecord(
                amount=amount,
                lock_until=lock_until,
                lock_bonus_bps=tier.bonus_bps,
                lock_duration=lock_blocks,
                accrual_checkpoint=height,
            )
            slot = state.open_position(sender, record)

            logger.info(
                f"{sender} staked {amount} ({tier.label}, +{tier.bonus_bps} bps) "
                f"at height {height}, slot {slot}"
            )
            return StakeResult(staked=amount, lock_until=lock_until, lock_bonus_bps=tier.bonus_bps)

        return self._commit(apply)

    def add_stake(self, sender: str, amount: int, height: int) -> AddStakeResult:
        """
        Adds principal to an existing position. Lock terms, bonus and the
        accrual checkpoint are left as they are.

        Raises:
            NoStake: sender has no live position
            ZeroAmount: amount below the minimum stake
        """
        def apply(state: PoolState) -> AddStakeResult:
            state.registry.require(sender)
            if amount < state.config.min_stake:
                raise ZeroAmount(f"Additional stake {amount} below minimum {state.config.min_stake}")

            record = state.increase_position(sender, amount)
            logger.info(f"{sender} added {amount} at height {height} (total {record.amount})")
            return AddStakeResult(new_total=record.amount)

        return self._commit(apply)

    def unstake(self, sender: str, height: int) -> UnstakeResult:
        """
        Closes the position: settles whatever rewards are payable (possibly
        zero) and releases the principal.

        Raises:
            NoStake: sender has no live position
            StillLocked: the lock has not expired at `height`
        """
        def apply(state: PoolState) -> UnstakeResult:
            record = state.registry.require(sender)
            if not record.is_unlocked(height):
                raise StillLocked(
                    f"Position of {sender} locked until {record.lock_until} "
                    f"({record.blocks_remaining(height)} blocks remaining)"
                )

            paid = rewards.settle(state, sender, height, allow_zero=True)
            released = state.close_position(sender)

            logger.info(f"{sender} unstaked {released.amount} with {paid} rewards at height {height}")
            return UnstakeResult(unstaked=released.amount, rewards_claimed=paid)

        return self._commit(apply)

    def claim_rewards(self, sender: str, height: int) -> ClaimResult:
        """
        Raises:
            NoStake: sender has no live position
            NothingToClaim: nothing is payable at `height`
        """
        def apply(state: PoolState) -> ClaimResult:
            paid = rewards.settle(state, sender, height)
            logger.info(f"{sender} claimed {paid} at height {height}")
            return ClaimResult(claimed=paid)

        return self._commit(apply)

    def fund_reward_pool(self, sender: str, amount: int, height: int) -> FundResult:
        """
        Raises:
            NotAuthorized: sender is not the pool owner
            ZeroAmount: amount is not positive
        """
        def apply(state: PoolState) -> FundResult:
            if sender != state.owner:
                raise NotAuthorized(f"Only the pool owner can fund rewards, not {sender}")
            if amount <= 0:
                raise ZeroAmount("Funding amount must be positive")

            balance = state.accounting.fund(amount)
            logger.info(f"Reward pool funded with {amount} at height {height} (balance {balance})")
            return FundResult(pool_balance=balance)

        return self._commit(apply)

    # ═══════════════════════════════════════════════════════
    # TYPED CALL BOUNDARY
    # ═══════════════════════════════════════════════════════

    def execute(self, call: Call, sender: str, height: int) -> CallResult:
        """
        Dispatches a call variant. Domain errors come back as a failed
        CallResult; anything else propagates.
        """
        op = OpType(call.op)
        try:
            if isinstance(call, StakeCall):
                value = self.stake(sender, call.amount, call.lock_blocks, height)
            elif isinstance(call, AddStakeCall):
                value = self.add_stake(sender, call.amount, height)
            elif isinstance(call, UnstakeCall):
                value = self.unstake(sender, height)
            elif isinstance(call, ClaimRewardsCall):
                value = self.claim_rewards(sender, height)
            elif isinstance(call, FundRewardPoolCall):
                value = self.fund_reward_pool(sender, call.amount, height)
            else:
                raise TypeError(f"Unknown call variant: {type(call).__name__}")
        except StakingError as e:
            logger.warning(f"Rejected {op.value} from {sender} at height {height}: {e.kind} ({e.message})")
            return CallResult(op=op, ok=False, height=height, error=e.kind, code=e.code, message=e.message)

        return CallResult(op=op, ok=True, height=height, value=value.model_dump())

    # ═══════════════════════════════════════════════════════
    # READ-ONLY QUERIES
    # ═══════════════════════════════════════════════════════

    def get_staker_status(self, account: str, height: int) -> Optional[StakerStatus]:
        record = self.state.registry.get(account)
        if record is None:
            return None

        return StakerStatus(
            account=account,
            index=self.state.index.slot_of(account),
            **record.model_dump(),
            is_unlocked=record.is_unlocked(height),
            blocks_remaining=record.blocks_remaining(height),
            pending_rewards=self.get_pending_rewards(account, height),
        )

    def get_pending_rewards(self, account: str, height: int) -> int:
        record = self.state.registry.get(account)
        if record is None:
            return 0
        return rewards.pending(
            record, height, self.state.accounting.reward_pool_balance,
            self.config.base_bps, self.config.blocks_per_year,
        )

    def get_pool_stats(self) -> PoolStats:
        acc = self.state.accounting
        return PoolStats(
            total_staked=acc.total_staked,
            reward_pool=acc.reward_pool_balance,
            staker_count=acc.staker_count,
            total_rewards_distributed=acc.total_rewards_distributed,
        )

    def get_staker_count(self) -> int:
        return self.state.accounting.staker_count

    def get_staker_at_index(self, index: int) -> Optional[str]:
        return self.state.index.at(index)

    def estimate_apy(self, lock_blocks: int) -> ApyEstimate:
        """Raises InvalidLock for an unrecognised duration."""
        tier = classify(lock_blocks)
        return ApyEstimate(
            lock_blocks=lock_blocks,
            lock_bonus_bps=tier.bonus_bps,
            total_bps=rewards.estimate_apy(lock_blocks, self.config.base_bps),
        )

    def leaderboard(self, height: int, limit: Optional[int] = None) -> List[StakerStatus]:
        """
        Live stakers among the first `limit` slots, largest position first.
        Slots whose account has unstaked are skipped.
        """
        limit = self.config.leaderboard_limit if limit is None else limit
        entries = []
        for i in range(min(self.get_staker_count(), limit)):
            account = self.get_staker_at_index(i)
            status = self.get_staker_status(account, height) if account else None
            if status is not None:
                entries.append(status)

        entries.sort(key=lambda s: (-s.amount, s.index))
        return entries
