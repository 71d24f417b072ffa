# MIT License
# Copyright (c) 2025 Hashborn

import json
import logging
from typing import Dict, Optional, Set, Tuple
from ...protocol.types.staker import StakerRecord
from ...protocol.config.params import PoolConfig, CURRENT_NETWORK
from ..storage.db import StorageDB
from .registry import StakerRegistry, EnumerationIndex
from .accounting import PoolAccounting

logger = logging.getLogger(__name__)


class PoolState:
    """
    The complete mutable state of the pool: registry, enumeration index and
    accounting, plus the owner allowed to fund rewards.

    Operations mutate a clone and the caller swaps it in on success, so a
    rejected call never leaves a partial change behind.
    """

    def __init__(self, owner: str, config: PoolConfig = None,
                 registry: StakerRegistry = None,
                 index: EnumerationIndex = None,
                 accounting: PoolAccounting = None):
        self.owner = owner
        self.config = config or CURRENT_NETWORK
        self.registry = registry if registry is not None else StakerRegistry()
        self.index = index if index is not None else EnumerationIndex()
        self.accounting = accounting if accounting is not None else PoolAccounting()
        # Accounts whose record was removed since the last persist
        self._removed: Set[str] = set()

    @classmethod
    def genesis(cls, owner: str, config: PoolConfig = None, reward_pool: int = 0) -> 'PoolState':
        """Creates the initial state. `reward_pool` pre-funds the reward balance."""
        state = cls(owner, config)
        if reward_pool:
            state.accounting.fund(reward_pool)
        logger.info(f"Genesis pool state: owner={owner}, reward_pool={reward_pool}")
        return state

    def clone(self) -> 'PoolState':
        """Creates a copy of the state (for simulation)."""
        cloned = PoolState(
            self.owner,
            self.config,
            self.registry.clone(),
            self.index.clone(),
            self.accounting.model_copy(),
        )
        cloned._removed = set(self._removed)
        return cloned

    # --- Registry + index mutations, kept in step with accounting ---

    def open_position(self, account: str, record: StakerRecord) -> int:
        """Inserts a record, assigning a slot on first-ever stake. Returns the slot."""
        self.registry.insert(account, record)
        self._removed.discard(account)

        slot = self.index.slot_of(account)
        if slot is None:
            slot = self.index.append(account)
            self.accounting.staker_count = len(self.index)

        self.accounting.credit_stake(record.amount)
        return slot

    def increase_position(self, account: str, amount: int) -> StakerRecord:
        record = self.registry.require(account)
        record.amount += amount
        self.accounting.credit_stake(amount)
        return record

    def close_position(self, account: str) -> StakerRecord:
        record = self.registry.remove(account)
        self.accounting.debit_stake(record.amount)
        self._removed.add(account)
        return record

    # --- Invariants ---

    def check_invariants(self):
        """Raises AssertionError if the accounting drifted from the registry."""
        live = self.registry.total_amount()
        assert live == self.accounting.total_staked, (
            f"total_staked {self.accounting.total_staked} != sum of positions {live}"
        )
        assert self.accounting.staker_count == len(self.index), (
            f"staker_count {self.accounting.staker_count} != index length {len(self.index)}"
        )
        assert self.accounting.reward_pool_balance >= 0, "Negative reward pool"
        for account, record in self.registry.items():
            assert record.amount > 0, f"Empty position kept for {account}"
            assert self.index.slot_of(account) is not None, f"{account} has no index slot"

    def to_dict(self) -> Dict:
        """Canonical plain representation (used for comparisons and snapshots)."""
        return {
            "owner": self.owner,
            "accounting": self.accounting.model_dump(),
            "index": list(self.index),
            "stakers": {k: v.model_dump() for k, v in sorted(self.registry.items())},
        }

    # --- Persistence ---

    def persist(self, db: StorageDB, extra: Dict[str, str] = None, call: Tuple = None,
                replace: bool = False):
        """
        Writes the whole state to DB in one transaction.

        Args:
            db: Target store
            extra: Additional state keys written in the same transaction (e.g. height)
            call: Call-log row committed together with the state
            replace: Drop every stored key first (full rewrite)
        """
        upserts = {f"stk:{acc}": rec.model_dump_json() for acc, rec in self.registry.items()}
        for slot, acc in enumerate(self.index):
            upserts[f"idx:{slot:012d}"] = acc
        upserts["pool"] = self.accounting.model_dump_json()
        upserts["owner"] = self.owner
        upserts.update(extra or {})

        deletes = [f"stk:{acc}" for acc in self._removed if not self.registry.exists(acc)]
        db.write_batch(upserts, deletes, call, replace)
        self._removed.clear()

    @classmethod
    def load(cls, db: StorageDB, config: PoolConfig = None) -> Optional['PoolState']:
        """Loads state from DB. Returns None if nothing was persisted yet."""
        owner = db.get_state("owner")
        if owner is None:
            return None

        records = {
            k.split(":", 1)[1]: StakerRecord.model_validate_json(v)
            for k, v in db.get_state_by_prefix("stk:").items()
        }
        slots = [v for _, v in sorted(db.get_state_by_prefix("idx:").items())]
        raw_pool = db.get_state("pool")
        accounting = PoolAccounting.model_validate_json(raw_pool) if raw_pool else PoolAccounting()

        state = cls(owner, config, StakerRegistry(records), EnumerationIndex(slots), accounting)
        logger.info(
            f"Loaded pool state: {len(records)} live stakers, "
            f"{len(slots)} slots, total_staked={accounting.total_staked}"
        )
        return state

    def __repr__(self):
        return (
            f"PoolState(owner='{self.owner}', stakers={len(self.registry)}, "
            f"total_staked={self.accounting.total_staked}, "
            f"reward_pool={self.accounting.reward_pool_balance})"
        )


def dumps(state: PoolState) -> str:
    return json.dumps(state.to_dict(), sort_keys=True, separators=(',', ':'))
