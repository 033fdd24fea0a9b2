import logging
from datetime import date
from typing import Optional

from pydantic import ValidationError

from . import settings
from .errors import (
    ConcurrentDuplicate,
    ConflictError,
    DuplicateMergeWriteError,
    DuplicateSkipped,
    FreshInsertError,
    RowError,
    RowValidationError,
)
from .schemas import (
    CandidateRow,
    DuplicatePolicy,
    ImportPhase,
    ImportState,
    InventoryItem,
    MovementType,
    OutcomeTag,
    RowOutcome,
    StockMovement,
)
from .stores.base import AuditLog, InventoryStore
from .validation import validate_row

logger = logging.getLogger(__name__)


def build_item(row: CandidateRow, today: date) -> InventoryItem:
    """New inventory item from every field of a validated row."""
    return InventoryItem(
        name=row.name,
        description=row.description or "",
        sku=row.sku,
        category=row.category,
        picking_bin_quantity=row.picking_bin_quantity,
        overstock_quantity=row.overstock_quantity,
        reorder_level=row.reorder_level,
        picking_reorder_level=row.picking_reorder_level,
        committed_stock=row.committed_stock,
        incoming_stock=row.incoming_stock,
        unit_cost=row.unit_cost,
        retail_price=row.retail_price,
        location=row.location,
        picking_bin_location=row.picking_bin_location,
        image_url=row.image_url,
        vendor_id=row.vendor_id,
        barcode_url=row.barcode_url or row.sku,
        auto_reorder_enabled=row.auto_reorder_enabled,
        auto_reorder_quantity=row.auto_reorder_quantity,
        last_updated=today,
    )


def _merge_into_stock(
    row: CandidateRow,
    inventory_store: InventoryStore,
    audit_log: AuditLog,
    today: date,
) -> RowOutcome:
    # Read at commit time so a SKU repeated in the file accumulates.
    try:
        existing = inventory_store.find_by_sku(row.sku)
    except Exception as e:
        raise DuplicateMergeWriteError(f"Failed to look up SKU '{row.sku}': {e}.") from e
    if existing is None:
        raise DuplicateMergeWriteError(
            f"SKU '{row.sku}': Item not found for stock addition, despite being marked as duplicate."
        )

    amount = row.quantity
    old_quantity = existing.quantity
    try:
        movement = StockMovement(
            item_id=existing.id,
            item_name=existing.name,
            type=MovementType.ADD,
            amount=amount,
            old_quantity=old_quantity,
            new_quantity=old_quantity + amount,
            reason=settings.MERGE_REASON,
        )
    except ValidationError as e:
        raise DuplicateMergeWriteError(f"Cannot record stock movement for SKU '{row.sku}': {e}") from e
    updated = existing.model_copy(
        update={
            "picking_bin_quantity": existing.picking_bin_quantity + row.picking_bin_quantity,
            "overstock_quantity": existing.overstock_quantity + row.overstock_quantity,
            "last_updated": today,
        }
    )

    try:
        inventory_store.update_item(updated)
    except Exception as e:
        raise DuplicateMergeWriteError(
            f"Failed to update item '{existing.name}' (SKU: {row.sku}): {e}."
        ) from e

    try:
        audit_log.append(movement)
    except Exception as e:
        logger.error(f"  > ❌ Stock movement for SKU '{row.sku}' was not recorded after the update.")
        raise DuplicateMergeWriteError(
            f"Failed to record stock movement for '{existing.name}' (SKU: {row.sku}): {e}. "
            "Inventory may be ahead of the stock movement ledger."
        ) from e

    return RowOutcome(
        row_number=row.row_number,
        sku=row.sku,
        tag=OutcomeTag.MERGED,
        message=(
            f"Added {amount} unit(s) to '{existing.name}' (SKU: {row.sku}): "
            f"{old_quantity} -> {movement.new_quantity}."
        ),
    )


def _duplicate_sku_message(row: CandidateRow) -> str:
    return (
        f"Failed to add item '{row.name}' (SKU: {row.sku}): Duplicate SKU detected. "
        "An item with this SKU already exists."
    )


def _create_item(
    row: CandidateRow,
    inventory_store: InventoryStore,
    today: date,
    created_skus: set[str],
) -> RowOutcome:
    # Stores may only enforce case-sensitive uniqueness
    if row.sku.lower() in created_skus:
        raise ConcurrentDuplicate(_duplicate_sku_message(row))
    try:
        created = inventory_store.create_item(build_item(row, today))
    except ConflictError as e:
        raise ConcurrentDuplicate(_duplicate_sku_message(row)) from e
    except Exception as e:
        raise FreshInsertError(f"Failed to add item '{row.name}' (SKU: {row.sku}): {e}.") from e

    created_skus.add(row.sku.lower())
    return RowOutcome(
        row_number=row.row_number,
        sku=row.sku,
        tag=OutcomeTag.CREATED,
        message=f"Added new inventory item: {created.name} (SKU: {created.sku}).",
    )


def commit_row(
    row: CandidateRow,
    is_duplicate: bool,
    state: ImportState,
    inventory_store: InventoryStore,
    audit_log: AuditLog,
    today: date,
    created_skus: Optional[set[str]] = None,
) -> RowOutcome:
    """
    Applies one row. Raises a RowError subclass when the row is not applied.
    ``created_skus`` holds the lower-cased SKUs already created in this batch.
    """
    validation = validate_row(row, state.references)
    if not validation.valid:
        raise RowValidationError(validation.reason)

    if is_duplicate:
        if state.duplicate_policy == DuplicatePolicy.MERGE_INTO_STOCK:
            return _merge_into_stock(row, inventory_store, audit_log, today)
        raise DuplicateSkipped(f"SKU '{row.sku}': Skipped due to duplicate entry confirmation.")

    return _create_item(row, inventory_store, today, created_skus if created_skus is not None else set())


def commit_rows(
    state: ImportState,
    inventory_store: InventoryStore,
    audit_log: AuditLog,
    today: Optional[date] = None,
) -> list[RowOutcome]:
    """
    Commits every row in file order. Each row stands alone: its failure is
    recorded as an outcome and never touches the rows around it. No retries.
    """
    if state.phase != ImportPhase.READY_TO_COMMIT:
        raise ValueError(f"Cannot commit an import in phase '{state.phase.value}'.")

    today = today or date.today()
    outcomes = []
    created_skus: set[str] = set()
    for row, is_duplicate in zip(state.rows, state.duplicate_flags):
        try:
            outcome = commit_row(row, is_duplicate, state, inventory_store, audit_log, today, created_skus)
            logger.info(f"  > ✅ Row {row.row_number}: {outcome.message}")
        except RowError as e:
            outcome = RowOutcome(
                row_number=row.row_number,
                sku=row.sku,
                tag=e.outcome,
                message=str(e),
                failure_kind=e.failure_kind,
            )
            logger.warning(f"  > ⚠️ Row {row.row_number}: {e}")
        outcomes.append(outcome)
    return outcomes
