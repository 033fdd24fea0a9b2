"""In-process collaborators. They enforce the same uniqueness rules as the database."""

import uuid
from typing import Iterable

from stock_import.errors import ConflictError, StoreError
from stock_import.schemas import Category, InventoryItem, StockMovement
from stock_import.stores.base import AuditLog, CategoryStore, InventoryStore, LocationSet


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryCategoryStore(CategoryStore):
    def __init__(self, names: Iterable[str] = ()):
        self.categories: list[Category] = [Category(id=_new_id(), name=n) for n in names]
        self.create_calls: list[str] = []

    def list_categories(self) -> list[Category]:
        return list(self.categories)

    def create_category(self, name: str) -> Category:
        self.create_calls.append(name)
        if any(c.name.lower() == name.lower() for c in self.categories):
            raise ConflictError(f"category '{name}' already exists")
        category = Category(id=_new_id(), name=name)
        self.categories.append(category)
        return category


class InMemoryLocationSet(LocationSet):
    def __init__(self, names: Iterable[str] = ()):
        self.locations: list[str] = list(names)

    def list_locations(self) -> list[str]:
        return list(self.locations)

    def add_many(self, names: Iterable[str]) -> None:
        known = {loc.lower() for loc in self.locations}
        for name in names:
            if name.lower() not in known:
                self.locations.append(name)
                known.add(name.lower())


class InMemoryInventoryStore(InventoryStore):
    def __init__(self, items: Iterable[InventoryItem] = ()):
        self.items: dict[str, InventoryItem] = {}
        for item in items:
            stored = item if item.id else item.model_copy(update={"id": _new_id()})
            self.items[stored.id] = stored

    def list_items(self) -> list[InventoryItem]:
        return list(self.items.values())

    def create_item(self, item: InventoryItem) -> InventoryItem:
        if self.find_by_sku(item.sku) is not None:
            raise ConflictError(f"duplicate key value violates unique constraint on sku '{item.sku}'")
        stored = item.model_copy(update={"id": _new_id()})
        self.items[stored.id] = stored
        return stored

    def update_item(self, item: InventoryItem) -> InventoryItem:
        if item.id not in self.items:
            raise StoreError(f"inventory item {item.id} not found")
        self.items[item.id] = item
        return item


class InMemoryAuditLog(AuditLog):
    def __init__(self):
        self.movements: list[StockMovement] = []

    def append(self, movement: StockMovement) -> StockMovement:
        stored = movement.model_copy(update={"id": _new_id()})
        self.movements.append(stored)
        return stored
