"""Error taxonomy for the import pipeline.

Row-level errors are raised while committing a single row and are always
caught by the commit loop, which turns them into a RowOutcome carrying the
class's ``outcome`` tag. Pipeline-level errors propagate to the caller.
"""

from .schemas import OutcomeTag


class StoreError(Exception):
    """A collaborator store failed to read or write."""


class ConflictError(StoreError):
    """A write violated a uniqueness constraint (e.g. SKU or category name)."""


class StockImportError(Exception):
    """Base class for everything the import pipeline raises on purpose."""


# --- Row-level ---


class RowError(StockImportError):
    outcome: OutcomeTag = OutcomeTag.WRITE_FAILURE
    failure_kind: str | None = None


class RowValidationError(RowError):
    outcome = OutcomeTag.INVALID


class ReferenceCreationError(RowError):
    outcome = OutcomeTag.REFERENCE_FAILURE


class DuplicateSkipped(RowError):
    outcome = OutcomeTag.SKIPPED_DUPLICATE


class DuplicateMergeWriteError(RowError):
    outcome = OutcomeTag.WRITE_FAILURE


class FreshInsertError(RowError):
    outcome = OutcomeTag.WRITE_FAILURE


class ConcurrentDuplicate(FreshInsertError):
    failure_kind = "ConcurrentDuplicate"


# --- Pipeline-level ---


class EmptyBatchError(StockImportError):
    """The batch held no rows after normalization."""


class UserAbortedError(StockImportError):
    """A gate was rejected. Categories created before the gate are kept."""

    def __init__(self, message: str, created_categories: list[str] | None = None):
        super().__init__(message)
        self.created_categories = created_categories or []

    @property
    def caveat(self) -> str | None:
        if not self.created_categories:
            return None
        return (
            "Categories created before cancelling were kept: "
            + ", ".join(self.created_categories)
        )
