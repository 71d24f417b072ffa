# MIT License
# Copyright (c) 2025 Hashborn

from typing import Dict, List, Optional, Iterator, Tuple
from ...protocol.types.staker import StakerRecord
from ...protocol.types.common import AlreadyStaking, NoStake


class EnumerationIndex:
    """
    Append-only arena of account slots.

    Slots are dense integers starting at 0. A slot is never removed or
    reordered, even after its account unstakes; whether the account still
    has a position is answered by the registry, not by the index.
    """

    def __init__(self, slots: List[str] = None):
        self._slots: List[str] = list(slots) if slots is not None else []
        self._slot_of: Dict[str, int] = {acc: i for i, acc in enumerate(self._slots)}

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def append(self, account: str) -> int:
        if account in self._slot_of:
            raise ValueError(f"Account {account} already holds slot {self._slot_of[account]}")
        slot = len(self._slots)
        self._slots.append(account)
        self._slot_of[account] = slot
        return slot

    def at(self, index: int) -> Optional[str]:
        if 0 <= index < len(self._slots):
            return self._slots[index]
        return None

    def slot_of(self, account: str) -> Optional[int]:
        return self._slot_of.get(account)

    def clone(self) -> 'EnumerationIndex':
        return EnumerationIndex(self._slots)


class StakerRegistry:
    """Per-account record store. Holds only live positions."""

    def __init__(self, records: Dict[str, StakerRecord] = None):
        self._records: Dict[str, StakerRecord] = records if records is not None else {}

    def __len__(self) -> int:
        return len(self._records)

    def exists(self, account: str) -> bool:
        return account in self._records

    def get(self, account: str) -> Optional[StakerRecord]:
        return self._records.get(account)

    def require(self, account: str) -> StakerRecord:
        record = self._records.get(account)
        if record is None:
            raise NoStake(f"No stake found for {account}")
        return record

    def insert(self, account: str, record: StakerRecord):
        if record.amount <= 0:
            raise ValueError("Staker record amount must be positive")
        if account in self._records:
            raise AlreadyStaking(f"Account {account} already has a live stake")
        self._records[account] = record

    def remove(self, account: str) -> StakerRecord:
        record = self._records.pop(account, None)
        if record is None:
            raise NoStake(f"No stake found for {account}")
        return record

    def items(self) -> List[Tuple[str, StakerRecord]]:
        return list(self._records.items())

    def total_amount(self) -> int:
        return sum(r.amount for r in self._records.values())

    def clone(self) -> 'StakerRegistry':
        return StakerRegistry({k: v.model_copy() for k, v in self._records.items()})
