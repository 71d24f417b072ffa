# MIT License
# Copyright (c) 2025 Hashborn

from typing import Optional, List, Tuple
import logging
import os
import json
import threading
from ...protocol.types.call import CallRequest, CallResult
from ...protocol.types.common import OpType
from ...protocol.types.staker import StakerStatus, PoolStats, ApyEstimate
from ...protocol.config.params import PoolConfig, CURRENT_NETWORK
from ..storage.db import StorageDB
from ..observability import metrics
from .state import PoolState
from .pool import StakingPool
from .events import EventBus, STAKED, STAKE_ADDED, UNSTAKED, REWARDS_CLAIMED, POOL_FUNDED, CALL_FAILED, BLOCKS_MINED
from .call_receipt import CallReceiptStore

logger = logging.getLogger(__name__)

EVENT_BY_OP = {
    OpType.STAKE: STAKED,
    OpType.ADD_STAKE: STAKE_ADDED,
    OpType.UNSTAKE: UNSTAKED,
    OpType.CLAIM_REWARDS: REWARDS_CLAIMED,
    OpType.FUND_REWARD_POOL: POOL_FUNDED,
}


class PoolChain:
    """
    Node hosting a staking pool on a local ledger.

    Calls are executed one at a time, each in its own block: a submitted
    call runs at `height + 1` and the height advances whether or not the
    call is accepted. Committed calls are written to the call log so the
    state can be rebuilt by replaying them from genesis.
    """

    def __init__(self, db_path: str, config: PoolConfig = None,
                 event_bus: EventBus = None, receipts: CallReceiptStore = None):
        self.db = StorageDB(db_path)
        self._lock = threading.RLock()
        self.config = config or CURRENT_NETWORK
        self.events = event_bus or EventBus()
        self.receipts = receipts or CallReceiptStore()

        # Try to load genesis if the pool is empty
        self.genesis_path = os.path.join(os.path.dirname(db_path), "genesis.json")

        self._load_chain_state()

    def _load_chain_state(self):
        state = PoolState.load(self.db, self.config)
        if state is not None:
            self.pool = StakingPool(state)
            self.height = int(self.db.get_state("height") or 0)
            logger.info(f"Pool initialized at height {self.height}")
        else:
            genesis = self._read_genesis()
            self.pool = StakingPool(self._genesis_state(genesis))
            self.height = int(genesis.get("height", 0))
            self._persist()
            logger.info(f"Pool initialized from genesis at height {self.height}")

    def _read_genesis(self) -> dict:
        if not os.path.exists(self.genesis_path):
            logger.warning(f"No genesis.json found. Using owner {self.config.owner} and an empty reward pool.")
            return {}

        with open(self.genesis_path, "r") as f:
            return json.load(f)

    def _genesis_state(self, genesis: dict) -> PoolState:
        return PoolState.genesis(
            owner=genesis.get("owner", self.config.owner),
            config=self.config,
            reward_pool=int(genesis.get("reward_pool", 0)),
        )

    def _persist(self, call: Optional[Tuple[str, int, str, str]] = None, replace: bool = False):
        self.pool.state.persist(self.db, extra={"height": str(self.height)}, call=call, replace=replace)

    # --- Thread-safe wrappers ---
    def submit(self, request: CallRequest) -> CallResult:
        with self._lock:
            return self._submit_impl(request)

    def mine_empty_blocks(self, count: int = 1) -> int:
        with self._lock:
            if count < 0:
                raise ValueError(f"Block count must be non-negative, got {count}")
            self.height += count
            height = self.height
            self.db.set_state("height", str(height))
            logger.info(f"Mined {count} empty blocks (height {height})")
        self.events.emit(BLOCKS_MINED, count=count, height=height)
        return height

    def _submit_impl(self, request: CallRequest) -> CallResult:
        prev_height = self.height
        prev_state = self.pool.state
        height = prev_height + 1
        op = OpType(request.call.op)
        call_id = request.hash(height)
        self.receipts.add_pending(call_id, op.value)

        try:
            result = self.pool.execute(request.call, request.sender, height)
            self.height = height

            if result.ok:
                self._persist(call=(call_id, height, request.sender, request.model_dump_json()))
            else:
                self.db.set_state("height", str(height))
        except Exception as e:
            # Store rolled back; restore the in-memory view to match it
            self.pool.state = prev_state
            self.height = prev_height
            self.receipts.mark_failed(call_id, op.value, height, type(e).__name__)
            logger.error(f"Call {call_id[:16]} from {request.sender} aborted: {e}")
            raise

        if result.ok:
            self.receipts.mark_confirmed(call_id, op.value, height, result.value)
        else:
            self.receipts.mark_failed(call_id, op.value, height, result.error, result.code)

        metrics.record_call(result)

        if result.ok:
            self.events.emit(EVENT_BY_OP[op], call_id=call_id, sender=request.sender,
                             height=height, **result.value)
        else:
            self.events.emit(CALL_FAILED, call_id=call_id, sender=request.sender, height=height,
                             op=op.value, error=result.error, code=result.code)

        return result.model_copy(update={"call_id": call_id})

    # --- Replay ---
    def replay(self) -> PoolState:
        """
        Re-executes the call log from genesis on a fresh state.

        Every committed call must commit again at the same height; a call
        that fails during replay means the log and the state diverged.
        """
        with self._lock:
            replayed = StakingPool(self._genesis_state(self._read_genesis()))
            for seq, call_id, height, sender, data in self.db.get_calls():
                request = CallRequest.model_validate_json(data)
                result = replayed.execute(request.call, sender, height)
                if not result.ok:
                    raise ValueError(f"Replay of call {seq} ({call_id[:8]}) failed: {result.error}")
            return replayed.state

    def rebuild_state_from_calls(self):
        with self._lock:
            state = self.replay()
            self.pool = StakingPool(state)
            self._persist(replace=True)
            logger.info(f"Rebuilt pool state from call log at height {self.height}")

    # --- Queries (at the current height) ---
    def get_staker_status(self, account: str) -> Optional[StakerStatus]:
        return self.pool.get_staker_status(account, self.height)

    def get_pending_rewards(self, account: str) -> int:
        return self.pool.get_pending_rewards(account, self.height)

    def get_pool_stats(self) -> PoolStats:
        return self.pool.get_pool_stats()

    def get_staker_count(self) -> int:
        return self.pool.get_staker_count()

    def get_staker_at_index(self, index: int) -> Optional[str]:
        return self.pool.get_staker_at_index(index)

    def estimate_apy(self, lock_blocks: int) -> ApyEstimate:
        return self.pool.estimate_apy(lock_blocks)

    def leaderboard(self, limit: Optional[int] = None) -> List[StakerStatus]:
        return self.pool.leaderboard(self.height, limit)

    def close(self):
        self.db.close()
