"""
Collaborators backed by the Supabase REST (PostgREST) API.

Every request is scoped to one organization; tenant authentication itself is
handled by whoever issues the API key.
"""

import logging
from typing import Any, Iterable, Optional

import requests
from pydantic import ValidationError

from stock_import import settings
from stock_import.errors import ConflictError, StoreError
from stock_import.parsers import parse_location_string
from stock_import.schemas import Category, InventoryItem, StockMovement
from stock_import.stores.base import AuditLog, CategoryStore, InventoryStore, LocationSet

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class SupabaseRestClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        organization_id: str,
        timeout: int = settings.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/rest/v1"
        self.organization_id = organization_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            }
        )

    @classmethod
    def from_settings(cls) -> "SupabaseRestClient":
        if not (settings.SUPABASE_URL and settings.SUPABASE_KEY and settings.ORGANIZATION_ID):
            raise StoreError(
                "SUPABASE_URL, SUPABASE_KEY and ORGANIZATION_ID must be set to reach the inventory backend."
            )
        return cls(settings.SUPABASE_URL, settings.SUPABASE_KEY, settings.ORGANIZATION_ID)

    def request(
        self,
        method: str,
        table: str,
        params: Optional[dict[str, str]] = None,
        payload: Any = None,
    ) -> list[dict]:
        scoped = {"organization_id": f"eq.{self.organization_id}", **(params or {})}
        try:
            response = self.session.request(
                method,
                f"{self.base_url}/{table}",
                params=scoped,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StoreError(f"{method} {table} failed: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") or response.text or f"HTTP {response.status_code}"
            code = body.get("code")
            # 409 is also used for foreign-key violations, so the Postgres code decides
            if code == UNIQUE_VIOLATION or (code is None and response.status_code == 409):
                raise ConflictError(message)
            raise StoreError(message)

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    def with_tenant(self, record: dict) -> dict:
        return {**record, "organization_id": self.organization_id}


class RestCategoryStore(CategoryStore):
    def __init__(self, client: SupabaseRestClient):
        self.client = client

    def list_categories(self) -> list[Category]:
        rows = self.client.request("GET", "categories", {"select": "id,name", "order": "name.asc"})
        return [Category(id=str(row["id"]), name=row["name"]) for row in rows]

    def create_category(self, name: str) -> Category:
        rows = self.client.request("POST", "categories", payload=self.client.with_tenant({"name": name}))
        if not rows:
            raise StoreError(f"No data returned after creating category '{name}'.")
        return Category(id=str(rows[0]["id"]), name=rows[0]["name"])


class RestLocationSet(LocationSet):
    def __init__(self, client: SupabaseRestClient):
        self.client = client

    def list_locations(self) -> list[str]:
        rows = self.client.request("GET", "locations", {"select": "full_location_string"})
        return [row["full_location_string"] for row in rows]

    def add_many(self, names: Iterable[str]) -> None:
        records = [
            self.client.with_tenant(parse_location_string(name).model_dump())
            for name in names
        ]
        if records:
            self.client.request("POST", "locations", payload=records)
            logger.info(f"Added {len(records)} location(s).")


def _item_from_row(row: dict) -> InventoryItem:
    # NULL columns fall back to the model defaults; a NULL picking bin is the main location
    present = {key: value for key, value in row.items() if value is not None}
    if not present.get("picking_bin_location"):
        present["picking_bin_location"] = present.get("location")
    try:
        return InventoryItem(**{**present, "id": str(row["id"])})
    except ValidationError as e:
        raise StoreError(f"Inventory item {row.get('id')} (SKU: {row.get('sku')}) is not readable: {e}") from e


class RestInventoryStore(InventoryStore):
    def __init__(self, client: SupabaseRestClient):
        self.client = client

    def _payload(self, item: InventoryItem) -> dict:
        return self.client.with_tenant(
            item.model_dump(mode="json", exclude={"id", "quantity"})
        )

    def list_items(self) -> list[InventoryItem]:
        rows = self.client.request("GET", "inventory_items", {"select": "*"})
        return [_item_from_row(row) for row in rows]

    def list_existing_skus(self) -> set[str]:
        rows = self.client.request("GET", "inventory_items", {"select": "sku"})
        return {row["sku"] for row in rows}

    def find_by_sku(self, sku: str) -> InventoryItem | None:
        rows = self.client.request("GET", "inventory_items", {"select": "*", "sku": f"ilike.{sku}"})
        # ilike is case-insensitive but "_" still matches any character
        for row in rows:
            if str(row["sku"]).lower() == sku.lower():
                return _item_from_row(row)
        return None

    def create_item(self, item: InventoryItem) -> InventoryItem:
        rows = self.client.request("POST", "inventory_items", payload=self._payload(item))
        if not rows:
            raise StoreError("Failed to add item: No data returned after insert.")
        return _item_from_row(rows[0])

    def update_item(self, item: InventoryItem) -> InventoryItem:
        rows = self.client.request(
            "PATCH", "inventory_items", {"id": f"eq.{item.id}"}, payload=self._payload(item)
        )
        if not rows:
            raise StoreError("Update might not have been saved. Check database permissions.")
        return _item_from_row(rows[0])


class RestAuditLog(AuditLog):
    def __init__(self, client: SupabaseRestClient):
        self.client = client

    def append(self, movement: StockMovement) -> StockMovement:
        payload = self.client.with_tenant(movement.model_dump(mode="json", exclude={"id"}))
        rows = self.client.request("POST", "stock_movements", payload=payload)
        if not rows:
            raise StoreError("No data returned after recording stock movement.")
        return movement.model_copy(update={"id": str(rows[0]["id"])})
