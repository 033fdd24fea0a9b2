from abc import ABC, abstractmethod
from typing import Iterable

from stock_import.schemas import Category, InventoryItem, StockMovement


class CategoryStore(ABC):
    @abstractmethod
    def list_categories(self) -> list[Category]:
        pass

    @abstractmethod
    def create_category(self, name: str) -> Category:
        """Creates a category. Raises ConflictError if the name is taken."""
        pass


class LocationSet(ABC):
    @abstractmethod
    def list_locations(self) -> list[str]:
        pass

    @abstractmethod
    def add_many(self, names: Iterable[str]) -> None:
        pass


class InventoryStore(ABC):
    @abstractmethod
    def list_items(self) -> list[InventoryItem]:
        pass

    @abstractmethod
    def create_item(self, item: InventoryItem) -> InventoryItem:
        """Persists a new item. Raises ConflictError on a SKU collision."""
        pass

    @abstractmethod
    def update_item(self, item: InventoryItem) -> InventoryItem:
        pass

    def list_existing_skus(self) -> set[str]:
        return {item.sku for item in self.list_items()}

    def find_by_sku(self, sku: str) -> InventoryItem | None:
        wanted = sku.lower()
        for item in self.list_items():
            if item.sku.lower() == wanted:
                return item
        return None


class AuditLog(ABC):
    @abstractmethod
    def append(self, movement: StockMovement) -> StockMovement:
        pass


class DiagnosticLog(ABC):
    @abstractmethod
    def record(self, messages: list[str]) -> None:
        """Fire-and-forget: implementations must not raise."""
        pass
