"""
Call receipt tracking.

Stores the lifecycle status of submitted calls for querying.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import time
import logging
from threading import RLock

logger = logging.getLogger(__name__)


@dataclass
class CallReceipt:
    """
    Receipt for a submitted call.

    Attributes:
        call_id: Call hash
        op: Operation name
        status: 'pending', 'confirmed' or 'failed'
        block_height: Height the call executed at (None while pending)
        timestamp: When the receipt last changed (unix timestamp)
        error: Error kind if the call was rejected
        code: Numeric error code if the call was rejected
        result: Operation result if the call was committed
    """
    call_id: str
    op: str
    status: str
    block_height: Optional[int] = None
    timestamp: int = 0
    error: Optional[str] = None
    code: Optional[int] = None
    result: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.timestamp == 0:
            self.timestamp = int(time.time())

    def to_dict(self) -> dict:
        return {
            "call_id": self.call_id,
            "op": self.op,
            "status": self.status,
            "block_height": self.block_height,
            "timestamp": self.timestamp,
            "error": self.error,
            "code": self.code,
            "result": self.result,
        }


class CallReceiptStore:
    """
    In-memory store for call receipts, trimmed when it grows past max_receipts.
    """

    def __init__(self, max_receipts: int = 10000):
        self.receipts: Dict[str, CallReceipt] = {}
        self.max_receipts = max_receipts
        self.lock = RLock()

    def add_pending(self, call_id: str, op: str) -> CallReceipt:
        with self.lock:
            existing = self.receipts.get(call_id)
            if existing and existing.status == 'confirmed':
                return existing

            receipt = CallReceipt(call_id=call_id, op=op, status='pending')
            self.receipts[call_id] = receipt

            if len(self.receipts) > self.max_receipts:
                self._cleanup_old_receipts()

            logger.debug(f"Added pending receipt: {call_id[:16]}...")
            return receipt

    def mark_confirmed(self, call_id: str, op: str, block_height: int,
                       result: Dict[str, Any] = None) -> CallReceipt:
        with self.lock:
            receipt = self.receipts.get(call_id)
            if not receipt:
                receipt = CallReceipt(call_id=call_id, op=op, status='confirmed')
                self.receipts[call_id] = receipt

            receipt.status = 'confirmed'
            receipt.block_height = block_height
            receipt.result = result or {}
            receipt.timestamp = int(time.time())

            logger.debug(f"Marked confirmed: {call_id[:16]}... at height {block_height}")
            return receipt

    def mark_failed(self, call_id: str, op: str, block_height: int,
                    error: str, code: Optional[int] = None) -> CallReceipt:
        with self.lock:
            receipt = self.receipts.get(call_id)
            if not receipt:
                receipt = CallReceipt(call_id=call_id, op=op, status='failed')
                self.receipts[call_id] = receipt

            receipt.status = 'failed'
            receipt.block_height = block_height
            receipt.error = error
            receipt.code = code
            receipt.timestamp = int(time.time())

            logger.debug(f"Marked failed: {call_id[:16]}... - {error}")
            return receipt

    def get(self, call_id: str) -> Optional[CallReceipt]:
        with self.lock:
            return self.receipts.get(call_id)

    def get_confirmations(self, call_id: str, current_height: int) -> Optional[int]:
        """
        Number of blocks since the call was confirmed, counting its own block.
        None if the call is unknown or was not confirmed.
        """
        with self.lock:
            receipt = self.receipts.get(call_id)
            if not receipt or receipt.status != 'confirmed' or receipt.block_height is None:
                return None

            return current_height - receipt.block_height + 1

    def pending_count(self) -> int:
        with self.lock:
            return sum(1 for r in self.receipts.values() if r.status == 'pending')

    def _cleanup_old_receipts(self) -> None:
        """Removes the oldest 10% of receipts."""
        num_to_remove = len(self.receipts) // 10

        sorted_receipts = sorted(
            self.receipts.items(),
            key=lambda x: x[1].timestamp
        )

        for call_id, _ in sorted_receipts[:num_to_remove]:
            del self.receipts[call_id]

        logger.info(f"Cleaned up {num_to_remove} old receipts (total: {len(self.receipts)})")
