"""Repository layer responsible for all persistence access.

The engine only needs a keyed read/write store: one bookings document and one
rules document per property id. `DataRepository` keeps those documents as JSON
payloads in SQLite; any other backend can stand in as long as it satisfies
`AvailabilityStore`.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Optional, Protocol, Sequence

from availability_engine.domain.models import AvailabilityRule, Booking
from availability_engine.utils.config import Settings, get_settings
from availability_engine.utils.logger import get_logger


logger = get_logger(__name__)


class StoreError(Exception):
    """Raised when the underlying store fails to read or write."""


class AvailabilityStore(Protocol):
    def load_bookings(self, property_id: str) -> list[Booking]: ...

    def save_bookings(self, property_id: str, bookings: Sequence[Booking]) -> None: ...

    def load_rules(self, property_id: str) -> list[AvailabilityRule]: ...

    def save_rules(self, property_id: str, rules: Sequence[AvailabilityRule]) -> None: ...

    def get_base_rate(self, property_id: str) -> Optional[float]: ...

    def set_base_rate(self, property_id: str, nightly_rate: float) -> None: ...

    def list_property_ids(self) -> list[str]: ...


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path, timeout=5.0)
        connection.row_factory = sqlite3.Row
        return connection

    def initialize_database(self) -> None:
        """Create the keyed documents tables before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS PropertyBookings (
                        property_id TEXT PRIMARY KEY,
                        payload TEXT NOT NULL,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS PropertyRules (
                        property_id TEXT PRIMARY KEY,
                        payload TEXT NOT NULL,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS PropertyRates (
                        property_id TEXT PRIMARY KEY,
                        nightly_rate REAL NOT NULL CHECK (nightly_rate > 0),
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"Database initialization failed: {exc}") from exc

    def _load_payload(self, table: str, property_id: str) -> list[dict]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT payload FROM {table} WHERE property_id = ?;",
                    (property_id,),
                )
                row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read {table} for {property_id}: {exc}") from exc
        if row is None:
            return []
        try:
            return list(json.loads(row["payload"]))
        except (TypeError, ValueError) as exc:
            raise StoreError(f"Corrupt {table} payload for {property_id}") from exc

    def _save_payload(self, table: str, property_id: str, items: list[dict]) -> None:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"""
                    INSERT INTO {table} (property_id, payload, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(property_id) DO UPDATE SET
                        payload = excluded.payload,
                        updated_at = excluded.updated_at;
                    """,
                    (property_id, json.dumps(items)),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to write {table} for {property_id}: {exc}") from exc

    def load_bookings(self, property_id: str) -> list[Booking]:
        return [
            Booking.from_dict(item)
            for item in self._load_payload("PropertyBookings", property_id)
        ]

    def save_bookings(self, property_id: str, bookings: Sequence[Booking]) -> None:
        self._save_payload(
            "PropertyBookings",
            property_id,
            [booking.to_dict() for booking in bookings],
        )

    def load_rules(self, property_id: str) -> list[AvailabilityRule]:
        return [
            AvailabilityRule.from_dict(item)
            for item in self._load_payload("PropertyRules", property_id)
        ]

    def save_rules(self, property_id: str, rules: Sequence[AvailabilityRule]) -> None:
        self._save_payload(
            "PropertyRules",
            property_id,
            [rule.to_dict() for rule in rules],
        )

    def get_base_rate(self, property_id: str) -> Optional[float]:
        """Return the owner-supplied nightly rate, if one was set."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT nightly_rate FROM PropertyRates WHERE property_id = ?;",
                    (property_id,),
                )
                row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read base rate for {property_id}: {exc}") from exc
        if row is None:
            return None
        return float(row["nightly_rate"])

    def set_base_rate(self, property_id: str, nightly_rate: float) -> None:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO PropertyRates (property_id, nightly_rate, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(property_id) DO UPDATE SET
                        nightly_rate = excluded.nightly_rate,
                        updated_at = excluded.updated_at;
                    """,
                    (property_id, nightly_rate),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to write base rate for {property_id}: {exc}") from exc

    def list_property_ids(self) -> list[str]:
        """Return every property with persisted bookings, rules or a base rate."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT property_id FROM PropertyBookings
                    UNION
                    SELECT property_id FROM PropertyRules
                    UNION
                    SELECT property_id FROM PropertyRates
                    ORDER BY property_id ASC;
                    """
                )
                return [str(row["property_id"]) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to list properties: {exc}") from exc
