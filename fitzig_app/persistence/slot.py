"""
Single-slot ownership of the active-session snapshot.

Only one session may own the snapshot key at a time. A session acquires the
slot when it opens and releases it when it completes or is discarded; writes
from anyone else are refused.
"""

import threading
from typing import Any, Optional

import structlog

from ..errors import SessionSlotBusyError
from .base import SnapshotStore
from .snapshot_codec import ActiveSessionSnapshot

logger = structlog.get_logger(__name__)


class SnapshotSlot:
    """Acquire/release guard around a SnapshotStore."""

    def __init__(self, store: SnapshotStore):
        self.store = store
        self.owner: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def is_held(self) -> bool:
        return self.owner is not None

    def acquire(self, owner: str) -> None:
        """
        Take ownership of the slot.

        Re-acquiring by the current owner is a no-op.

        Raises:
            SessionSlotBusyError: If another owner holds the slot
        """
        with self._lock:
            if self.owner is not None and self.owner != owner:
                raise SessionSlotBusyError(
                    "Another session already owns the active snapshot slot",
                    owner=self.owner,
                    requested_by=owner
                )
            self.owner = owner

        logger.debug("Snapshot slot acquired", owner=owner)

    def release(self, owner: str) -> None:
        """Give up ownership; releasing a slot you do not hold is ignored."""
        with self._lock:
            if self.owner != owner:
                return
            self.owner = None

        logger.debug("Snapshot slot released", owner=owner)

    def _check_owner(self, owner: str, operation: str) -> None:
        if self.owner != owner:
            raise SessionSlotBusyError(
                f"Session does not own the snapshot slot for {operation}",
                owner=self.owner,
                requested_by=owner
            )

    def read(self) -> Optional[dict[str, Any]]:
        """Raw stored snapshot; reading needs no ownership."""
        return self.store.get_snapshot()

    def write(self, owner: str, snapshot: ActiveSessionSnapshot) -> None:
        self._check_owner(owner, "write")
        self.store.put_snapshot(snapshot)

    def clear(self, owner: str) -> None:
        self._check_owner(owner, "clear")
        self.store.clear_snapshot()
