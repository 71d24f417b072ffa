# MIT License
# Copyright (c) 2025 Hashborn

import os
from dataclasses import dataclass
from typing import Dict, Tuple

# Global Constants
DENOM = "stx"
DECIMALS = 6
UNIT = 10**DECIMALS          # 1 STX in micro units

# Reward rate
BASE_BPS = 50                # Base annual rate for every staker (0.5%)
BPS_DENOMINATOR = 10_000
BLOCK_MINUTES = 10
BLOCKS_PER_YEAR = 52_560     # 365 days @ 10 min per block

MIN_STAKE = 1 * UNIT


@dataclass(frozen=True)
class LockTier:
    label: str
    min_blocks: int       # Smallest duration that qualifies for this tier
    days: int             # Nominal length shown to users
    bonus_bps: int


# Ordered by threshold, ascending
LOCK_TIERS: Tuple[LockTier, ...] = (
    LockTier(label="No Lock",  min_blocks=0,      days=0,  bonus_bps=0),
    LockTier(label="1 Week",   min_blocks=1008,   days=7,  bonus_bps=50),
    LockTier(label="1 Month",  min_blocks=4320,   days=30, bonus_bps=150),
    LockTier(label="3 Months", min_blocks=12960,  days=90, bonus_bps=300),
)


class PoolConfig:
    def __init__(self,
                 network_id: str,
                 pool_id: str,
                 owner: str,
                 min_stake: int = MIN_STAKE,
                 base_bps: int = BASE_BPS,
                 blocks_per_year: int = BLOCKS_PER_YEAR,
                 # Client side params
                 leaderboard_limit: int = 50,
                 poll_interval_sec: int = 30):
        self.network_id = network_id
        self.pool_id = pool_id
        self.owner = owner
        self.min_stake = min_stake
        self.base_bps = base_bps
        self.blocks_per_year = blocks_per_year
        self.leaderboard_limit = leaderboard_limit
        self.poll_interval_sec = poll_interval_sec


NETWORKS: Dict[str, PoolConfig] = {
    "devnet": PoolConfig(
        network_id="devnet",
        pool_id="ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM.stacking-pool",
        owner="ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM",
    ),
    "testnet": PoolConfig(
        network_id="testnet",
        pool_id="ST26TQH4FRPTKHQEYE6HZQG98R4CZE6PTJ8J1YYR8.stacking-pool",
        owner="ST26TQH4FRPTKHQEYE6HZQG98R4CZE6PTJ8J1YYR8",
    ),
    "mainnet": PoolConfig(
        network_id="mainnet",
        pool_id="SP26TQH4FRPTKHQEYE6HZQG98R4CZE6PTJ8J1YYR8.stacking-pool",
        owner="SP26TQH4FRPTKHQEYE6HZQG98R4CZE6PTJ8J1YYR8",
    ),
}

# Default to devnet for now
CURRENT_NETWORK = NETWORKS[os.environ.get("STAKEPOOL_NETWORK", "devnet")]
