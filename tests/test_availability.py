"""Tests for the capacity ledger and the admission controller."""

import pytest

from src.integrations.store import InMemoryReservationStore
from src.schemas.reservation_schema import RejectionReason
from src.tools.availability import (
    capacity_snapshot,
    check_availability,
    today_capacity_status,
    used_seats,
    used_seats_strict,
)
from src.errors import StoreUnavailableError
from tests.conftest import NEXT_DAY, SERVICE_DAY, FailingStore, at, make_state, seed


class TestLedger:
    def test_empty_store(self, store, state):
        assert used_seats(store, state, SERVICE_DAY, state.get_window("lunch")) == 0

    def test_sums_party_sizes_in_window(self, store, state):
        seed(store, "A", 4, at(12, 0))
        seed(store, "B", 6, at(13, 30))
        seed(store, "C", 2, at(14, 45))
        assert used_seats(store, state, SERVICE_DAY, state.get_window("lunch")) == 12

    def test_ignores_other_windows_and_days(self, store, state):
        seed(store, "Lunch", 4, at(12, 30))
        seed(store, "Dinner", 5, at(20, 0))
        seed(store, "Tomorrow", 7, at(12, 30, day=NEXT_DAY))
        seed(store, "Afternoon", 3, at(16, 0))
        assert used_seats(store, state, SERVICE_DAY, state.get_window("lunch")) == 4
        assert used_seats(store, state, SERVICE_DAY, state.get_window("dinner")) == 5

    def test_skips_unparseable_rows(self, store, state):
        seed(store, "Good", 4, at(12, 30))
        store.append_row({"Name": "Bad date", "PartySize": "9", "DateTime": "soon"})
        store.append_row({
            "Name": "Bad size", "PartySize": "many", "DateTime": at(13, 0).isoformat(),
        })
        assert used_seats(store, state, SERVICE_DAY, state.get_window("lunch")) == 4

    def test_utc_rows_counted_on_local_day(self, store, state):
        store.append_row({"Name": "UTC", "PartySize": "3", "DateTime": "2025-06-11T10:30:00Z"})
        assert used_seats(store, state, SERVICE_DAY, state.get_window("lunch")) == 3

    def test_fail_soft_reports_zero(self, state):
        assert used_seats(FailingStore(), state, SERVICE_DAY, state.get_window("lunch")) == 0

    def test_strict_propagates(self, state):
        with pytest.raises(StoreUnavailableError):
            used_seats_strict(FailingStore(), state, SERVICE_DAY, state.get_window("lunch"))


class TestAdmission:
    def test_last_seats_admitted(self, store, state):
        seed(store, "Group", 55, at(12, 30))
        result = check_availability(at(13, 0), 5, state, store)
        assert result.available
        assert result.service == "lunch"
        assert result.remaining == 0

    def test_one_seat_too_many_rejected(self, store, state):
        seed(store, "Group", 55, at(12, 30))
        result = check_availability(at(13, 0), 6, state, store)
        assert not result.available
        assert result.reason == RejectionReason.INSUFFICIENT_CAPACITY
        assert result.remaining == 5
        assert result.needed == 6
        assert result.message == "Not enough seats for lunch: 5 left, 6 requested."

    def test_never_admits_over_remaining(self, store, state):
        seed(store, "Group", 40, at(20, 0))
        for party in range(1, 40):
            result = check_availability(at(21, 0), party, state, store)
            assert result.available == (party <= 30)

    def test_blocked_window_rejects(self, store, state):
        state.toggle_blocked("dinner")
        result = check_availability(at(20, 0), 2, state, store)
        assert not result.available
        assert result.reason == RejectionReason.SERVICE_BLOCKED
        assert result.service == "dinner"

    def test_blocked_window_does_not_affect_other(self, store, state):
        state.toggle_blocked("dinner")
        assert check_availability(at(12, 0), 2, state, store).available

    def test_outside_hours(self, store, state):
        result = check_availability(at(16, 0), 2, state, store)
        assert not result.available
        assert result.reason == RejectionReason.OUTSIDE_HOURS
        assert result.service is None
        assert result.message == "Outside service hours."

    def test_outside_hours_checked_before_capacity(self, store, state):
        result = check_availability(at(9, 0), 500, state, store)
        assert result.reason == RejectionReason.OUTSIDE_HOURS

    def test_capacity_change_applies_immediately(self, store, state):
        seed(store, "Group", 55, at(12, 30))
        state.set_capacity("lunch", 70)
        assert check_availability(at(13, 0), 15, state, store).available

    def test_fail_open_admits_when_store_down(self, state):
        result = check_availability(at(12, 0), 4, state, FailingStore(), read_policy="fail_open")
        assert result.available
        assert result.remaining == 56

    def test_fail_closed_rejects_when_store_down(self, state):
        result = check_availability(at(12, 0), 4, state, FailingStore(), read_policy="fail_closed")
        assert not result.available
        assert result.reason == RejectionReason.CAPACITY_UNKNOWN

    def test_fail_closed_behaves_normally_when_store_up(self, store, state):
        result = check_availability(at(12, 0), 4, state, store, read_policy="fail_closed")
        assert result.available


class TestSnapshots:
    def test_snapshot_values(self, store, state):
        seed(store, "Group", 55, at(12, 30))
        snap = capacity_snapshot(store, state, SERVICE_DAY, state.get_window("lunch"))
        assert (snap.used, snap.max, snap.remaining) == (55, 60, 5)
        assert snap.percentage == 92
        assert snap.blocked is False

    def test_today_status_covers_every_window(self, store, state):
        seed(store, "Lunch", 10, at(12, 0))
        seed(store, "Dinner", 35, at(19, 30))
        snapshots = today_capacity_status(store, state, now=at(10, 0))
        assert [s.service for s in snapshots] == ["lunch", "dinner"]
        assert snapshots[1].percentage == 50
        assert all(s.date == SERVICE_DAY for s in snapshots)

    def test_snapshots_are_never_cached(self, state):
        store = InMemoryReservationStore()
        window = state.get_window("dinner")
        assert capacity_snapshot(store, state, SERVICE_DAY, window).used == 0
        seed(store, "Late", 6, at(21, 0))
        assert capacity_snapshot(store, state, SERVICE_DAY, window).used == 6

    def test_blocked_flag_in_snapshot(self, store):
        state = make_state()
        state.toggle_blocked("lunch")
        snap = capacity_snapshot(store, state, SERVICE_DAY, state.get_window("lunch"))
        assert snap.blocked is True
