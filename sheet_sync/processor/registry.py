"""
In-memory registry of running syncs, one slot per store.
"""

from typing import Dict, Optional


class RunRegistry:
    """
    Tracks which stores have a sync running.

    The registry is not persisted: after a restart every store is idle,
    whatever the database says about old sessions.

    All methods are synchronous, so under asyncio a check-and-set in
    try_acquire cannot interleave with another task.
    """

    def __init__(self):
        self._owners: Dict[str, Optional[str]] = {}

    def try_acquire(self, store_id: str, owner: Optional[str] = None) -> bool:
        """
        Claim the store's slot.

        Args:
            store_id: Store to claim
            owner: Token identifying the run holding the slot

        Returns:
            False if the store already has a running sync
        """
        if store_id in self._owners:
            return False
        self._owners[store_id] = owner
        return True

    def release(self, store_id: str, owner: Optional[str] = None) -> bool:
        """
        Free the store's slot.

        When an owner is given, the slot is only freed if that owner still
        holds it, so a finishing run never frees a newer run's slot.

        Returns:
            True if a slot was freed
        """
        if store_id not in self._owners:
            return False
        if owner is not None and self._owners[store_id] != owner:
            return False
        del self._owners[store_id]
        return True

    def is_running(self, store_id: str, owner: Optional[str] = None) -> bool:
        """Check the store's slot, optionally for a specific owner."""
        if store_id not in self._owners:
            return False
        if owner is None:
            return True
        return self._owners[store_id] == owner

    def running_stores(self) -> list:
        return list(self._owners)
