from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class DuplicatePolicy(str, Enum):
    SKIP = "skip"
    MERGE_INTO_STOCK = "merge"


class OutcomeTag(str, Enum):
    CREATED = "Created"
    MERGED = "Merged"
    SKIPPED_DUPLICATE = "SkippedDuplicate"
    INVALID = "Invalid"
    REFERENCE_FAILURE = "ReferenceFailure"
    WRITE_FAILURE = "WriteFailure"


class MovementType(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"


def derive_status(quantity: int, reorder_level: int) -> str:
    if quantity > reorder_level:
        return "In Stock"
    if quantity > 0:
        return "Low Stock"
    return "Out of Stock"


class CandidateRow(BaseModel):
    """
    One normalized import row. Field aliases are the CSV header keys.
    """

    row_number: int = 0
    name: str = ""
    sku: str = ""
    category: str = ""
    location: str = ""
    picking_bin_location: str = Field(default="", alias="pickingBinLocation")
    picking_bin_quantity: int = Field(default=0, alias="pickingBinQuantity")
    overstock_quantity: int = Field(default=0, alias="overstockQuantity")
    reorder_level: int = Field(default=0, alias="reorderLevel")
    picking_reorder_level: int = Field(default=0, alias="pickingReorderLevel")
    committed_stock: int = Field(default=0, alias="committedStock")
    incoming_stock: int = Field(default=0, alias="incomingStock")
    auto_reorder_quantity: int = Field(default=0, alias="autoReorderQuantity")
    unit_cost: float = Field(default=0.0, alias="unitCost")
    retail_price: float = Field(default=0.0, alias="retailPrice")
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    vendor_id: Optional[str] = Field(default=None, alias="vendorId")
    barcode_url: Optional[str] = Field(default=None, alias="barcodeUrl")
    auto_reorder_enabled: bool = Field(default=False, alias="autoReorderEnabled")

    # Normalization bookkeeping, keyed by CSV column name.
    absent_fields: frozenset[str] = Field(default_factory=frozenset)
    unparsed_fields: frozenset[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(populate_by_name=True)

    @computed_field
    @property
    def quantity(self) -> int:
        return self.picking_bin_quantity + self.overstock_quantity


class ValidationOutcome(BaseModel):
    valid: bool
    reason: Optional[str] = None


class Category(BaseModel):
    id: str
    name: str


class Location(BaseModel):
    """A structured storage location, e.g. ``A-01-01-1-A``."""

    full_location_string: str
    display_name: Optional[str] = None
    area: str = "N/A"
    row: str = "N/A"
    bay: str = "N/A"
    level: str = "N/A"
    pos: str = "N/A"
    color: str = "#CCCCCC"


class InventoryItem(BaseModel):
    id: Optional[str] = None
    name: str
    description: str = ""
    sku: str
    category: str
    picking_bin_quantity: int = Field(default=0, ge=0)
    overstock_quantity: int = Field(default=0, ge=0)
    reorder_level: int = Field(default=0, ge=0)
    picking_reorder_level: int = Field(default=0, ge=0)
    committed_stock: int = Field(default=0, ge=0)
    incoming_stock: int = Field(default=0, ge=0)
    unit_cost: float = Field(default=0.0, ge=0)
    retail_price: float = Field(default=0.0, ge=0)
    location: str
    picking_bin_location: str
    image_url: Optional[str] = None
    vendor_id: Optional[str] = None
    barcode_url: Optional[str] = None
    auto_reorder_enabled: bool = False
    auto_reorder_quantity: int = Field(default=0, ge=0)
    last_updated: date = Field(default_factory=date.today)

    @computed_field
    @property
    def quantity(self) -> int:
        return self.picking_bin_quantity + self.overstock_quantity

    @computed_field
    @property
    def status(self) -> str:
        return derive_status(self.quantity, self.reorder_level)


class StockMovement(BaseModel):
    """Append-only ledger entry. Before/after values must agree with the amount."""

    id: Optional[str] = None
    item_id: str
    item_name: str
    type: MovementType
    amount: int = Field(ge=0)
    old_quantity: int
    new_quantity: int
    reason: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _check_balance(self):
        delta = self.amount if self.type == MovementType.ADD else -self.amount
        if self.new_quantity - self.old_quantity != delta:
            raise ValueError(
                f"movement {self.old_quantity} -> {self.new_quantity} does not match "
                f"{self.type.value} {self.amount}"
            )
        return self


class DuplicateItem(BaseModel):
    sku: str
    csv_quantity: int
    item_name: str


class ReferenceSet(BaseModel):
    # Keys of resolved_categories and members of known_locations are lower-cased.
    resolved_categories: dict[str, str] = Field(default_factory=dict)
    known_locations: set[str] = Field(default_factory=set)
    unconfirmed_locations: list[str] = Field(default_factory=list)
    created_categories: list[str] = Field(default_factory=list)
    category_failures: dict[str, str] = Field(default_factory=dict)

    def has_category(self, name: str) -> bool:
        return name.lower() in self.resolved_categories

    def has_location(self, name: str) -> bool:
        return name.lower() in self.known_locations


class RowOutcome(BaseModel):
    row_number: int
    sku: str
    tag: OutcomeTag
    message: str
    failure_kind: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.tag in (OutcomeTag.CREATED, OutcomeTag.MERGED)


class ImportSummary(BaseModel):
    success_count: int = 0
    error_count: int = 0
    error_messages: list[str] = Field(default_factory=list)
    outcomes: list[RowOutcome] = Field(default_factory=list)
    created_categories: list[str] = Field(default_factory=list)
    success_message: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def no_valid_data(self) -> bool:
        return self.success_count == 0 and self.error_count == 0


class ImportPhase(str, Enum):
    AWAITING_DUPLICATE_POLICY = "awaiting_duplicate_policy"
    AWAITING_LOCATION_CONFIRMATION = "awaiting_location_confirmation"
    READY_TO_COMMIT = "ready_to_commit"
    COMMITTED = "committed"
    ABORTED = "aborted"


class PendingDecision(BaseModel):
    """A question the host must answer before the import can continue."""

    kind: str  # "duplicate_policy" | "location_confirmation"
    duplicates: list[DuplicateItem] = Field(default_factory=list)
    new_locations: list[str] = Field(default_factory=list)


class ImportState(BaseModel):
    """
    Everything an in-flight import needs across its decision points. Each
    phase function takes a state and returns a new one; a host can persist
    it with ``model_dump_json()`` while waiting on a user.
    """

    phase: ImportPhase
    rows: list[CandidateRow]
    references: ReferenceSet
    duplicate_flags: list[bool]
    duplicates: list[DuplicateItem] = Field(default_factory=list)
    duplicate_policy: Optional[DuplicatePolicy] = None
    confirmed_locations: list[str] = Field(default_factory=list)
    pending: Optional[PendingDecision] = None
