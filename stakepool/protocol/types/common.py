# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum


class OpType(str, Enum):
    STAKE = "STAKE"
    ADD_STAKE = "ADD_STAKE"
    UNSTAKE = "UNSTAKE"
    CLAIM_REWARDS = "CLAIM_REWARDS"
    FUND_REWARD_POOL = "FUND_REWARD_POOL"   # Owner only


class ProtocolError(Exception):
    pass


class StakingError(ProtocolError):
    """
    Base class for rejected pool operations.

    Every subclass carries a stable numeric code so that clients and
    persisted receipts can identify the failure without parsing messages.
    """
    code: int = 0
    kind: str = "StakingError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class NotAuthorized(StakingError):
    code = 100
    kind = "NotAuthorized"


class ZeroAmount(StakingError):
    code = 101
    kind = "ZeroAmount"


class StillLocked(StakingError):
    code = 102
    kind = "StillLocked"


class NoStake(StakingError):
    code = 103
    kind = "NoStake"


class AlreadyStaking(StakingError):
    code = 104
    kind = "AlreadyStaking"


class InvalidLock(StakingError):
    code = 105
    kind = "InvalidLock"


class NothingToClaim(StakingError):
    code = 107
    kind = "NothingToClaim"
