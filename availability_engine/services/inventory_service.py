"""Unit inventory per property."""

from __future__ import annotations

from typing import Protocol

from availability_engine.domain.models import Inventory


class InventoryTracker(Protocol):
    def check_capacity(self, property_id: str, requested_units: int) -> Inventory: ...


class FixedInventoryTracker:
    """Every property owns the same fixed number of bookable units.

    Overlapping stays are rejected by the conflict detector, so the tracker
    reports the whole stock as available. A per-room-type tracker can replace
    this class without changes to the availability service.
    """

    def __init__(self, units_per_property: int = 1) -> None:
        self._units = units_per_property

    def check_capacity(self, property_id: str, requested_units: int) -> Inventory:
        return Inventory(total=self._units, available=self._units, reserved=0)
