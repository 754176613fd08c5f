"""Tests for single-owner snapshot slot."""

import pytest

from fitzig_app.errors import SessionSlotBusyError
from fitzig_app.persistence.memory_store import InMemoryStore
from fitzig_app.persistence.slot import SnapshotSlot
from fitzig_app.persistence.snapshot_codec import encode_snapshot
from fitzig_app.state.models import CountdownState


class TestSnapshotSlot:
    """Test SnapshotSlot ownership rules."""

    def test_acquire_and_release(self):
        slot = SnapshotSlot(InMemoryStore())

        slot.acquire("a")
        assert slot.is_held is True
        slot.acquire("a")

        slot.release("a")
        assert slot.is_held is False

    def test_second_owner_refused(self):
        slot = SnapshotSlot(InMemoryStore())
        slot.acquire("a")

        with pytest.raises(SessionSlotBusyError) as exc_info:
            slot.acquire("b")

        assert exc_info.value.owner == "a"
        assert exc_info.value.requested_by == "b"

    def test_release_by_stranger_ignored(self):
        slot = SnapshotSlot(InMemoryStore())
        slot.acquire("a")

        slot.release("b")

        assert slot.owner == "a"

    def test_write_requires_ownership(self, running_state):
        store = InMemoryStore()
        slot = SnapshotSlot(store)
        snapshot = encode_snapshot(running_state, CountdownState(), "t", 1_000)

        with pytest.raises(SessionSlotBusyError):
            slot.write("a", snapshot)

        slot.acquire("a")
        slot.write("a", snapshot)
        assert slot.read()["template_id"] == "t"

        with pytest.raises(SessionSlotBusyError):
            slot.clear("b")

        slot.clear("a")
        assert slot.read() is None
