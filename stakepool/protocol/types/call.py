# MIT License
# Copyright (c) 2025 Hashborn

import hashlib
from pydantic import BaseModel, Field
from typing import Annotated, Any, Dict, Literal, Optional, Union
from .common import OpType

# Note: each call variant is tagged by `op` so the union below is closed and
# every argument shape is checked at parse time.


class StakeCall(BaseModel):
    op: Literal["STAKE"] = "STAKE"
    amount: int = Field(ge=0)        # micro units
    lock_blocks: int = Field(default=0, ge=0)


class AddStakeCall(BaseModel):
    op: Literal["ADD_STAKE"] = "ADD_STAKE"
    amount: int = Field(ge=0)


class UnstakeCall(BaseModel):
    op: Literal["UNSTAKE"] = "UNSTAKE"


class ClaimRewardsCall(BaseModel):
    op: Literal["CLAIM_REWARDS"] = "CLAIM_REWARDS"


class FundRewardPoolCall(BaseModel):
    op: Literal["FUND_REWARD_POOL"] = "FUND_REWARD_POOL"
    amount: int = Field(ge=0)


Call = Annotated[
    Union[StakeCall, AddStakeCall, UnstakeCall, ClaimRewardsCall, FundRewardPoolCall],
    Field(discriminator="op"),
]


class CallRequest(BaseModel):
    """A call together with the account submitting it."""
    sender: str
    call: Call
    nonce: int = 0

    def hash(self, height: int = 0) -> str:
        payload_str = (
            self.sender
            + self.call.model_dump_json()
            + str(self.nonce)
            + str(height)  # Same call at another height is another call
        )
        return hashlib.sha256(payload_str.encode("utf-8")).hexdigest()


# --- Results ---

class StakeResult(BaseModel):
    staked: int
    lock_until: int
    lock_bonus_bps: int


class AddStakeResult(BaseModel):
    new_total: int


class UnstakeResult(BaseModel):
    unstaked: int
    rewards_claimed: int


class ClaimResult(BaseModel):
    claimed: int


class FundResult(BaseModel):
    pool_balance: int


class CallResult(BaseModel):
    """Outcome of a dispatched call. Domain errors are carried, not raised."""
    op: OpType
    ok: bool
    height: int
    call_id: Optional[str] = None   # Set by the node that executed the call
    value: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    code: Optional[int] = None
    message: Optional[str] = None
