"""
Pytest fixtures for the import pipeline tests.

Collaborators are the in-memory stores; hosts record the order in which they
were asked so gate ordering can be asserted.
"""

from datetime import date

import pytest

from stock_import.pipeline import ImportHost
from stock_import.schemas import DuplicatePolicy, InventoryItem
from stock_import.stores.memory import (
    InMemoryAuditLog,
    InMemoryCategoryStore,
    InMemoryInventoryStore,
    InMemoryLocationSet,
)

TODAY = date(2026, 10, 19)


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def make_raw_row():
    """Factory for a valid CSV row as the spreadsheet parser would hand it over."""

    def _make(**overrides):
        row = {
            "name": "Widget A",
            "sku": "WID-001",
            "category": "Widgets",
            "location": "Main Warehouse",
            "pickingBinLocation": "A-01-01-1-A",
            "pickingBinQuantity": "10",
            "overstockQuantity": "5",
            "reorderLevel": "3",
            "pickingReorderLevel": "2",
            "unitCost": "4.50",
            "retailPrice": "9.99",
            "description": "A widget",
        }
        row.update(overrides)
        return {key: value for key, value in row.items() if value is not None}

    return _make


@pytest.fixture
def make_item():
    """Factory for an existing inventory item."""

    def _make(**overrides):
        fields = {
            "name": "Existing Widget",
            "sku": "ABC",
            "category": "Widgets",
            "picking_bin_quantity": 3,
            "overstock_quantity": 2,
            "location": "Main Warehouse",
            "picking_bin_location": "A-01-01-1-A",
            "last_updated": date(2026, 1, 1),
        }
        fields.update(overrides)
        return InventoryItem(**fields)

    return _make


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================

@pytest.fixture
def category_store():
    return InMemoryCategoryStore(["Widgets"])


@pytest.fixture
def location_set():
    return InMemoryLocationSet(["Main Warehouse", "A-01-01-1-A"])


@pytest.fixture
def inventory_store():
    return InMemoryInventoryStore()


@pytest.fixture
def audit_log():
    return InMemoryAuditLog()


class RecordingHost(ImportHost):
    """Answers with preset values and remembers every question asked."""

    def __init__(self, policy=DuplicatePolicy.SKIP, accept_locations=True):
        self.policy = policy
        self.accept_locations = accept_locations
        self.calls = []

    def request_duplicate_policy(self, duplicates):
        self.calls.append(("duplicate_policy", [d.sku for d in duplicates]))
        return self.policy

    def request_location_confirmation(self, new_locations):
        self.calls.append(("location_confirmation", list(new_locations)))
        return self.accept_locations


@pytest.fixture
def recording_host():
    return RecordingHost
