from .schemas import CandidateRow, DuplicateItem
from .stores.base import InventoryStore


def build_sku_index(inventory_store: InventoryStore) -> frozenset[str]:
    """
    Snapshot of existing SKUs, lower-cased. Built once per batch so every row
    is judged against the same inventory state.
    """
    return frozenset(sku.lower() for sku in inventory_store.list_existing_skus())


def flag_duplicates(rows: list[CandidateRow], sku_index: frozenset[str]) -> list[bool]:
    return [bool(row.sku) and row.sku.lower() in sku_index for row in rows]


def find_duplicates(rows: list[CandidateRow], sku_index: frozenset[str]) -> list[DuplicateItem]:
    """One entry per colliding row; a SKU repeated in the file is listed each time."""
    return [
        DuplicateItem(sku=row.sku, csv_quantity=row.quantity, item_name=row.name)
        for row, is_duplicate in zip(rows, flag_duplicates(rows, sku_index))
        if is_duplicate
    ]
