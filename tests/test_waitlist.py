"""Tests for the in-memory waitlist register."""

from datetime import datetime, timezone

from src.schemas.reservation_schema import Channel
from src.tools.waitlist import WaitlistRegister, make_waitlist_id
from tests.conftest import at


class TestWaitlistId:
    def test_millisecond_timestamp_and_name(self):
        now = datetime(2024, 6, 11, 12, 30, 0, 123000, tzinfo=timezone.utc)
        assert make_waitlist_id("Dupont", now) == "1718109000123_Dupont"


class TestWaitlistRegister:
    def test_starts_empty(self, waitlist):
        assert len(waitlist) == 0
        assert waitlist.list() == []

    def test_add_returns_id_of_entry(self, waitlist):
        entry_id = waitlist.add("Dupont", 6, at(20, 0), Channel.CHAT, phone="0612345678")
        entry = waitlist.list()[0]
        assert entry.id == entry_id
        assert entry_id.endswith("_Dupont")
        assert entry.customer_name == "Dupont"
        assert entry.party_size == 6
        assert entry.requested_at == at(20, 0)
        assert entry.phone == "0612345678"
        assert entry.email is None

    def test_preserves_insertion_order(self, waitlist):
        for name in ("A", "B", "C"):
            waitlist.add(name, 2, at(12, 0), Channel.CHAT)
        assert [e.customer_name for e in waitlist.list()] == ["A", "B", "C"]

    def test_same_name_same_instant_gets_distinct_ids(self):
        register = WaitlistRegister()
        ids = {register.add("Dupont", 2, at(12, 0), Channel.CHAT) for _ in range(5)}
        assert len(ids) == 5
        assert len(register) == 5

    def test_list_is_a_copy(self, waitlist):
        waitlist.add("Dupont", 2, at(12, 0), Channel.CHAT)
        waitlist.list().clear()
        assert len(waitlist) == 1
