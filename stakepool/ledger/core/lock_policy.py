# MIT License
# Copyright (c) 2025 Hashborn

from ...protocol.config.params import LOCK_TIERS, BASE_BPS, LockTier
from ...protocol.types.common import InvalidLock


def classify(lock_blocks: int) -> LockTier:
    """
    Map a requested lock duration to its tier.

    A duration lands in the highest tier whose threshold it reaches, so
    any duration of at least 1008 blocks is accepted. Zero means no lock.

    Args:
        lock_blocks: Requested lock duration in blocks

    Returns:
        The matching LockTier

    Raises:
        InvalidLock: if the duration is negative or strictly between
            zero and the smallest non-zero tier
    """
    if lock_blocks < 0:
        raise InvalidLock(f"Lock duration must be non-negative, got {lock_blocks}")

    if lock_blocks == 0:
        return LOCK_TIERS[0]

    for tier in reversed(LOCK_TIERS[1:]):
        if lock_blocks >= tier.min_blocks:
            return tier

    raise InvalidLock(
        f"Lock duration {lock_blocks} below minimum tier ({LOCK_TIERS[1].min_blocks} blocks)"
    )


def total_bps(lock_bonus_bps: int, base_bps: int = BASE_BPS) -> int:
    return base_bps + lock_bonus_bps
