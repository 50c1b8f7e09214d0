"""
Reservation store: a spreadsheet-like table addressed by column name.

In production this is a shared spreadsheet. The booking core only sees the
``ReservationStore`` protocol (header, rows, append, update), so the
in-memory and CSV implementations here are drop-in stand-ins.
"""

import csv
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from src.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["Timestamp", "Name", "PartySize", "DateTime", "Source"]
CONTACT_COLUMNS = ["PhoneNumber", "Email"]
ARRIVAL_COLUMN = "Arrived"
FULL_COLUMNS = REQUIRED_COLUMNS + CONTACT_COLUMNS + [ARRIVAL_COLUMN]


class ReservationStore(Protocol):
    """Row-level access to the reservation table.

    Every method may raise ``StoreUnavailableError``.
    """

    def header(self) -> list[str]: ...

    def rows(self) -> list[dict[str, str]]: ...

    def append_row(self, values: dict[str, str]) -> int: ...

    def update_row(self, index: int, values: dict[str, str]) -> None: ...


@dataclass(frozen=True)
class SchemaCapabilities:
    """Optional columns detected in the store header."""

    has_phone_email: bool = False
    has_arrival_tracking: bool = False

    @property
    def mode_label(self) -> str:
        contact = "Enhanced (phone/email)" if self.has_phone_email else "Compatible"
        arrivals = "Arrival tracking" if self.has_arrival_tracking else "No arrival tracking"
        return f"{contact} | {arrivals}"


def detect_capabilities(store: ReservationStore) -> SchemaCapabilities:
    """Read the header row and report which optional columns exist."""
    headers = store.header()
    capabilities = SchemaCapabilities(
        has_phone_email=all(col in headers for col in CONTACT_COLUMNS),
        has_arrival_tracking=ARRIVAL_COLUMN in headers,
    )
    logger.info("Store headers %s -> %s", headers, capabilities.mode_label)
    return capabilities


class InMemoryReservationStore:
    """Process-local table. Used by tests and the console demo."""

    def __init__(
        self,
        headers: Optional[list[str]] = None,
        rows: Optional[list[dict[str, str]]] = None,
    ) -> None:
        self._headers = list(headers or FULL_COLUMNS)
        self._rows: list[dict[str, str]] = []
        self._lock = threading.Lock()
        for row in rows or []:
            self.append_row(row)

    def header(self) -> list[str]:
        return list(self._headers)

    def rows(self) -> list[dict[str, str]]:
        with self._lock:
            return [dict(row) for row in self._rows]

    def append_row(self, values: dict[str, str]) -> int:
        row = {col: str(values.get(col, "")) for col in self._headers}
        with self._lock:
            self._rows.append(row)
            return len(self._rows) - 1

    def update_row(self, index: int, values: dict[str, str]) -> None:
        with self._lock:
            if not 0 <= index < len(self._rows):
                raise IndexError(f"Row {index} does not exist")
            for col, value in values.items():
                if col in self._headers:
                    self._rows[index][col] = str(value)

    def add_column(self, name: str) -> None:
        """Add a column to the header, as an operator would in the sheet."""
        with self._lock:
            if name not in self._headers:
                self._headers.append(name)
                for row in self._rows:
                    row.setdefault(name, "")


class CsvReservationStore:
    """Reservation table persisted to a local CSV file.

    The header row is created on first use with the full column set.
    """

    def __init__(self, path: str, headers: Optional[list[str]] = None) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        if not self._path.exists():
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._write(list(headers or FULL_COLUMNS), [])
            except OSError as exc:
                raise StoreUnavailableError(f"Cannot create {self._path}: {exc}") from exc

    def _read(self) -> tuple[list[str], list[dict[str, str]]]:
        try:
            with self._path.open(newline="", encoding="utf-8") as fh:
                reader = csv.DictReader(fh)
                rows = [{k: v or "" for k, v in row.items() if k is not None} for row in reader]
                return list(reader.fieldnames or []), rows
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot read {self._path}: {exc}") from exc

    def _write(self, headers: list[str], rows: list[dict[str, str]]) -> None:
        try:
            with self._path.open("w", newline="", encoding="utf-8") as fh:
                writer = csv.DictWriter(fh, fieldnames=headers, extrasaction="ignore")
                writer.writeheader()
                writer.writerows(rows)
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot write {self._path}: {exc}") from exc

    def header(self) -> list[str]:
        return self._read()[0]

    def rows(self) -> list[dict[str, str]]:
        return self._read()[1]

    def append_row(self, values: dict[str, str]) -> int:
        with self._lock:
            headers, rows = self._read()
            rows.append({col: str(values.get(col, "")) for col in headers})
            self._write(headers, rows)
            return len(rows) - 1

    def update_row(self, index: int, values: dict[str, str]) -> None:
        with self._lock:
            headers, rows = self._read()
            if not 0 <= index < len(rows):
                raise IndexError(f"Row {index} does not exist")
            rows[index].update({k: str(v) for k, v in values.items() if k in headers})
            self._write(headers, rows)
