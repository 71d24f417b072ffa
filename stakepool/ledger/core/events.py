"""
Pool lifecycle events.

The node publishes one event per processed call after it has been written
to storage, plus one per batch of empty blocks:

- staked, stake_added, unstaked, rewards_claimed, pool_funded
- call_failed (any rejected call)
- blocks_mined
"""
from typing import Dict, List, Callable, Any
import logging

logger = logging.getLogger(__name__)

STAKED = "staked"
STAKE_ADDED = "stake_added"
UNSTAKED = "unstaked"
REWARDS_CLAIMED = "rewards_claimed"
POOL_FUNDED = "pool_funded"
CALL_FAILED = "call_failed"
BLOCKS_MINED = "blocks_mined"


class EventBus:
    """
    Synchronous pub/sub for pool events.

    Listeners receive the event payload as keyword arguments. A listener
    that raises is logged and skipped; the ledger is already committed.
    """

    def __init__(self):
        self.listeners: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable) -> None:
        self.listeners.setdefault(event_type, []).append(callback)
        logger.debug(f"Listener added for {event_type}")

    def emit(self, event_type: str, **data: Any) -> None:
        for callback in self.listeners.get(event_type, []):
            try:
                callback(**data)
            except Exception as e:
                logger.error(f"Listener for {event_type} failed: {e}", exc_info=True)
