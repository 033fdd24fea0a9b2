"""
The import pipeline as an explicit state machine.

    start_import -> [decide_duplicate_policy] -> [decide_location_confirmation] -> commit_import

Each phase function takes an ImportState and returns the next one. When a
state carries a ``pending`` decision the host must answer it through the
matching ``decide_*`` function; nothing is written to inventory until the
state reaches READY_TO_COMMIT.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from . import settings
from .commit import commit_rows
from .duplicates import build_sku_index, find_duplicates, flag_duplicates
from .errors import EmptyBatchError, UserAbortedError
from .parsers import normalize_rows
from .references import confirm_locations, resolve_references
from .results import aggregate
from .schemas import (
    DuplicateItem,
    DuplicatePolicy,
    ImportPhase,
    ImportState,
    ImportSummary,
    PendingDecision,
)
from .stores.base import AuditLog, CategoryStore, DiagnosticLog, InventoryStore, LocationSet

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "CSV upload cancelled."


class ImportHost(ABC):
    """The party (UI, console, script) that answers the two batch-wide questions."""

    @abstractmethod
    def request_duplicate_policy(self, duplicates: list[DuplicateItem]) -> Optional[DuplicatePolicy]:
        """Skip or merge every duplicate row. None cancels the import."""
        pass

    @abstractmethod
    def request_location_confirmation(self, new_locations: list[str]) -> bool:
        """True adds the locations and continues, False cancels the import."""
        pass


def _advance(state: ImportState) -> ImportState:
    # The duplicate question always comes before the location question.
    if state.duplicate_policy is None:
        if state.duplicates:
            return state.model_copy(
                update={
                    "phase": ImportPhase.AWAITING_DUPLICATE_POLICY,
                    "pending": PendingDecision(kind="duplicate_policy", duplicates=state.duplicates),
                }
            )
        state = state.model_copy(update={"duplicate_policy": DuplicatePolicy.SKIP})

    if state.references.unconfirmed_locations:
        return state.model_copy(
            update={
                "phase": ImportPhase.AWAITING_LOCATION_CONFIRMATION,
                "pending": PendingDecision(
                    kind="location_confirmation",
                    new_locations=state.references.unconfirmed_locations,
                ),
            }
        )

    return state.model_copy(update={"phase": ImportPhase.READY_TO_COMMIT, "pending": None})


def _require_phase(state: ImportState, phase: ImportPhase):
    if state.phase != phase:
        raise ValueError(f"Import is in phase '{state.phase.value}', expected '{phase.value}'.")


def _abort(state: ImportState) -> UserAbortedError:
    created = list(state.references.created_categories)
    if created:
        logger.warning(f"⚠️ Import cancelled; categories already created are kept: {', '.join(created)}")
    return UserAbortedError(CANCELLED_MESSAGE, created_categories=created)


def start_import(
    raw_rows: Iterable[Mapping[str, Any]],
    category_store: CategoryStore,
    location_set: LocationSet,
    inventory_store: InventoryStore,
) -> ImportState:
    """
    Normalizes the batch, creates missing categories, finds unknown locations
    and SKU collisions. Raises EmptyBatchError before touching any store when
    no row survives normalization.
    """
    rows = normalize_rows(raw_rows)
    if not rows:
        raise EmptyBatchError(settings.NO_VALID_DATA_MESSAGE)

    sku_index = build_sku_index(inventory_store)
    references = resolve_references(rows, category_store, location_set, inventory_store)

    state = ImportState(
        phase=ImportPhase.READY_TO_COMMIT,
        rows=rows,
        references=references,
        duplicate_flags=flag_duplicates(rows, sku_index),
        duplicates=find_duplicates(rows, sku_index),
    )
    return _advance(state)


def decide_duplicate_policy(state: ImportState, policy: Optional[DuplicatePolicy]) -> ImportState:
    _require_phase(state, ImportPhase.AWAITING_DUPLICATE_POLICY)
    if policy is None:
        raise _abort(state)
    return _advance(state.model_copy(update={"duplicate_policy": DuplicatePolicy(policy), "pending": None}))


def decide_location_confirmation(state: ImportState, accepted: bool, location_set: LocationSet) -> ImportState:
    _require_phase(state, ImportPhase.AWAITING_LOCATION_CONFIRMATION)
    if not accepted:
        raise _abort(state)
    confirmed = list(state.references.unconfirmed_locations)
    references = confirm_locations(state.references, location_set)
    logger.info(f"Added new locations: {', '.join(confirmed)}")
    return _advance(
        state.model_copy(update={"references": references, "confirmed_locations": confirmed, "pending": None})
    )


def commit_import(
    state: ImportState,
    inventory_store: InventoryStore,
    audit_log: AuditLog,
    today: Optional[date] = None,
) -> ImportSummary:
    outcomes = commit_rows(state, inventory_store, audit_log, today=today)
    return aggregate(
        outcomes,
        reference_failures=list(state.references.category_failures.values()),
        created_categories=state.references.created_categories,
    )


class ImportPipeline:
    """
    Runs one import end to end against a set of collaborators, asking the host
    whenever the state machine stops on a pending decision.
    """

    def __init__(
        self,
        category_store: CategoryStore,
        location_set: LocationSet,
        inventory_store: InventoryStore,
        audit_log: AuditLog,
        host: ImportHost,
        diagnostic_log: Optional[DiagnosticLog] = None,
    ):
        self.category_store = category_store
        self.location_set = location_set
        self.inventory_store = inventory_store
        self.audit_log = audit_log
        self.host = host
        self.diagnostic_log = diagnostic_log

    def run_import(self, raw_rows: Iterable[Mapping[str, Any]]) -> ImportSummary:
        logger.info("🚀 STEP: INVENTORY IMPORT")
        logger.info("-" * 30)

        state = start_import(raw_rows, self.category_store, self.location_set, self.inventory_store)
        logger.info(
            f"Normalized {len(state.rows)} row(s): {len(state.duplicates)} duplicate SKU(s), "
            f"{len(state.references.unconfirmed_locations)} new location(s)."
        )

        while state.pending is not None:
            state = self.answer(state)

        logger.info("\n--- Committing Rows ---")
        summary = commit_import(state, self.inventory_store, self.audit_log)
        self.report(summary)

        logger.info("✅ Import Finished.\n")
        logger.info("=" * 60)
        return summary

    def answer(self, state: ImportState) -> ImportState:
        if state.phase == ImportPhase.AWAITING_DUPLICATE_POLICY:
            logger.info(f"⚠️ {len(state.pending.duplicates)} row(s) match existing SKUs.")
            policy = self.host.request_duplicate_policy(state.pending.duplicates)
            return decide_duplicate_policy(state, policy)
        logger.info(f"⚠️ New locations found: {', '.join(state.pending.new_locations)}")
        accepted = self.host.request_location_confirmation(state.pending.new_locations)
        return decide_location_confirmation(state, accepted, self.location_set)

    def report(self, summary: ImportSummary):
        if summary.success_message:
            logger.info(f"✅ {summary.success_message}")
        if summary.error_message:
            logger.error(f"❌ {summary.error_message}")
        if summary.error_messages and self.diagnostic_log is not None:
            self.diagnostic_log.record(summary.error_messages)
