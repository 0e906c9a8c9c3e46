"""Tests for the pending-reservation tracker and session stores."""

import json

import pytest

from staybook.models.booking import PendingReservationMarker
from staybook.services.pending_tracker import (
    DEFAULT_STORAGE_KEY,
    InMemorySessionStore,
    JsonFileSessionStore,
    PendingReservationTracker,
)


@pytest.fixture
def marker():
    return PendingReservationMarker(
        reservation_id="res_123",
        payment_session_id="cs_abc",
        timestamp=1719800000000,
    )


# =============================================================================
# Tracker
# =============================================================================


class TestPendingReservationTracker:
    """Tests for record / peek / clear."""

    def test_peek_empty(self, tracker):
        assert tracker.peek() is None

    def test_record_then_peek(self, tracker, marker):
        tracker.record(marker)

        assert tracker.peek() == marker
        assert tracker.peek() == marker  # peek does not consume

    def test_stored_shape(self, marker):
        store = InMemorySessionStore()
        PendingReservationTracker(store).record(marker)

        assert json.loads(store.get(DEFAULT_STORAGE_KEY)) == {
            "reservationId": "res_123",
            "paymentSessionId": "cs_abc",
            "timestamp": 1719800000000,
        }

    def test_record_overwrites(self, tracker, marker):
        tracker.record(marker)
        newer = PendingReservationMarker(
            reservation_id="res_456",
            payment_session_id="cs_def",
            timestamp=1719800060000,
        )

        tracker.record(newer)

        assert tracker.peek() == newer

    def test_clear(self, tracker, marker):
        tracker.record(marker)

        tracker.clear()

        assert tracker.peek() is None

    def test_unreadable_value_treated_as_absent(self):
        store = InMemorySessionStore()
        store.set(DEFAULT_STORAGE_KEY, '{"reservationId": 1}')

        assert PendingReservationTracker(store).peek() is None

    def test_custom_key(self, marker):
        store = InMemorySessionStore()
        PendingReservationTracker(store, key="other").record(marker)

        assert store.get(DEFAULT_STORAGE_KEY) is None
        assert store.get("other") is not None


# =============================================================================
# JSON File Store
# =============================================================================


class TestJsonFileSessionStore:
    """Tests for the file-backed session store."""

    def test_shared_within_session(self, tmp_path, marker):
        PendingReservationTracker(JsonFileSessionStore(tmp_path, "s1")).record(marker)

        reopened = PendingReservationTracker(JsonFileSessionStore(tmp_path, "s1"))

        assert reopened.peek() == marker

    def test_isolated_between_sessions(self, tmp_path, marker):
        PendingReservationTracker(JsonFileSessionStore(tmp_path, "s1")).record(marker)

        assert PendingReservationTracker(JsonFileSessionStore(tmp_path, "s2")).peek() is None

    def test_missing_directory_created(self, tmp_path):
        store = JsonFileSessionStore(tmp_path / "nested" / "sessions", "s1")

        store.set("k", "v")

        assert store.get("k") == "v"

    def test_delete(self, tmp_path):
        store = JsonFileSessionStore(tmp_path, "s1")
        store.set("k", "v")
        store.set("other", "x")

        store.delete("k")
        store.delete("never-set")

        assert store.get("k") is None
        assert store.get("other") == "x"

    def test_corrupt_file_reads_empty(self, tmp_path):
        store = JsonFileSessionStore(tmp_path, "s1")
        store.path.write_text("{not json", encoding="utf-8")

        assert store.get("k") is None

        store.set("k", "v")
        assert store.get("k") == "v"

    def test_undecodable_file_reads_empty(self, tmp_path, marker):
        store = JsonFileSessionStore(tmp_path, "s1")
        store.path.write_bytes(b"\xff\xfe{\x80")

        assert PendingReservationTracker(store).peek() is None

        PendingReservationTracker(store).record(marker)
        assert PendingReservationTracker(store).peek() == marker

    def test_default_session_is_parent_process(self, tmp_path):
        store = JsonFileSessionStore(tmp_path)

        assert store.session_id.startswith("shell-")
