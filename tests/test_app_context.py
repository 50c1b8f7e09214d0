"""Tests for wiring the shared booking context."""

import dataclasses

import pytest

from src.app_context import build_context
from src.config import settings
from src.errors import ConfigurationError
from src.integrations.calendar import InMemoryCalendar
from src.integrations.store import (
    REQUIRED_COLUMNS,
    CsvReservationStore,
    InMemoryReservationStore,
)
from tests.conftest import FailingStore


class TestBuildContext:
    def test_detects_capabilities(self):
        context = build_context(store=InMemoryReservationStore(headers=list(REQUIRED_COLUMNS)))
        assert context.state.capabilities.has_phone_email is False
        assert context.state.capabilities.has_arrival_tracking is False

    def test_shares_state_with_writer(self):
        calendar = InMemoryCalendar()
        context = build_context(store=InMemoryReservationStore(), calendar=calendar)
        assert context.writer.state is context.state
        assert context.writer.calendar is calendar
        assert context.writer.calendar_id == settings.integrations.calendar_id

    def test_unreachable_store_is_fatal(self):
        with pytest.raises(ConfigurationError, match="unreachable"):
            build_context(store=FailingStore())

    def test_csv_store_from_config(self, tmp_path):
        path = tmp_path / "reservations.csv"
        config = dataclasses.replace(
            settings,
            integrations=dataclasses.replace(settings.integrations, store_path=str(path)),
        )
        context = build_context(config=config)
        assert isinstance(context.store, CsvReservationStore)
        assert path.exists()
        assert context.state.capabilities.has_arrival_tracking is True

    def test_in_memory_store_by_default(self):
        config = dataclasses.replace(
            settings, integrations=dataclasses.replace(settings.integrations, store_path=""),
        )
        assert isinstance(build_context(config=config).store, InMemoryReservationStore)


class TestCsvStore:
    def test_append_and_update_persist(self, tmp_path):
        path = tmp_path / "reservations.csv"
        store = CsvReservationStore(str(path))
        index = store.append_row({"Name": "Dupont", "PartySize": "4"})
        store.update_row(index, {"Arrived": "Yes", "Unknown": "x"})

        reopened = CsvReservationStore(str(path))
        row = reopened.rows()[0]
        assert row["Name"] == "Dupont"
        assert row["Arrived"] == "Yes"
        assert "Unknown" not in row

    def test_update_missing_row(self, tmp_path):
        store = CsvReservationStore(str(tmp_path / "reservations.csv"))
        with pytest.raises(IndexError):
            store.update_row(3, {"Arrived": "Yes"})

    def test_custom_header(self, tmp_path):
        store = CsvReservationStore(str(tmp_path / "r.csv"), headers=list(REQUIRED_COLUMNS))
        assert store.header() == REQUIRED_COLUMNS
