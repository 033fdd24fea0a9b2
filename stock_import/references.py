import logging
from typing import Iterable

from .errors import ConflictError, ReferenceCreationError, StoreError
from .schemas import CandidateRow, Category, InventoryItem, ReferenceSet
from .stores.base import CategoryStore, InventoryStore, LocationSet

logger = logging.getLogger(__name__)


def _distinct(values: Iterable[str]) -> list[str]:
    """Non-blank values, de-duplicated case-insensitively, first spelling wins."""
    seen = set()
    result = []
    for value in values:
        key = value.lower()
        if value and key not in seen:
            seen.add(key)
            result.append(value)
    return result


def build_known_locations(location_set: LocationSet, items: Iterable[InventoryItem]) -> set[str]:
    """Configured locations plus every location already used by an item, lower-cased."""
    known = {loc.lower() for loc in location_set.list_locations() if loc}
    for item in items:
        for loc in (item.location, item.picking_bin_location):
            if loc:
                known.add(loc.lower())
    return known


def _ensure_category(category_store: CategoryStore, name: str) -> tuple[Category, bool]:
    """Returns the category and whether this call created it."""
    try:
        return category_store.create_category(name), True
    except ConflictError:
        # Someone else created it between our list and our insert.
        logger.warning(f"Category '{name}' already exists, likely added concurrently. Re-fetching.")
    except StoreError as e:
        raise ReferenceCreationError(f"Failed to ensure category '{name}' exists.") from e

    try:
        categories = category_store.list_categories()
    except StoreError as e:
        raise ReferenceCreationError(f"Failed to ensure category '{name}' exists.") from e
    for category in categories:
        if category.name.lower() == name.lower():
            return category, False
    raise ReferenceCreationError(f"Failed to ensure category '{name}' exists.")


def resolve_categories(rows: list[CandidateRow], category_store: CategoryStore) -> ReferenceSet:
    """
    Creates every category the batch mentions but the store lacks, once per
    case-insensitive name. A failed create is recorded and only affects rows
    that use that category.
    """
    references = ReferenceSet(
        resolved_categories={c.name.lower(): c.id for c in category_store.list_categories()}
    )

    for name in _distinct(row.category for row in rows):
        if references.has_category(name):
            continue
        try:
            category, created = _ensure_category(category_store, name)
        except ReferenceCreationError as e:
            logger.error(f"  > ❌ {e}")
            references.category_failures[name.lower()] = str(e)
            continue
        references.resolved_categories[category.name.lower()] = category.id
        references.resolved_categories[name.lower()] = category.id
        if created:
            references.created_categories.append(category.name)
        logger.info(f"  > Category '{category.name}' ready.")

    return references


def collect_unconfirmed_locations(rows: list[CandidateRow], known_locations: set[str]) -> list[str]:
    """Locations (main or picking bin) the tenant has never seen. Nothing is created here."""
    mentioned = _distinct(
        loc for row in rows for loc in (row.location, row.picking_bin_location)
    )
    return [loc for loc in mentioned if loc.lower() not in known_locations]


def resolve_references(
    rows: list[CandidateRow],
    category_store: CategoryStore,
    location_set: LocationSet,
    inventory_store: InventoryStore,
) -> ReferenceSet:
    references = resolve_categories(rows, category_store)
    references.known_locations = build_known_locations(location_set, inventory_store.list_items())
    references.unconfirmed_locations = collect_unconfirmed_locations(rows, references.known_locations)
    return references


def confirm_locations(references: ReferenceSet, location_set: LocationSet) -> ReferenceSet:
    """Stores the unconfirmed locations and returns references that know them."""
    confirmed = list(references.unconfirmed_locations)
    location_set.add_many(confirmed)
    return references.model_copy(
        update={
            "known_locations": references.known_locations | {loc.lower() for loc in confirmed},
            "unconfirmed_locations": [],
        }
    )
