"""End-to-end tests for the import state machine and the ImportPipeline driver."""

from unittest.mock import MagicMock

import pytest

from stock_import.errors import EmptyBatchError, StoreError, UserAbortedError
from stock_import.pipeline import (
    CANCELLED_MESSAGE,
    ImportPipeline,
    commit_import,
    decide_duplicate_policy,
    decide_location_confirmation,
    start_import,
)
from stock_import.schemas import DuplicatePolicy, ImportPhase, ImportState, MovementType, OutcomeTag
from stock_import.stores.memory import InMemoryCategoryStore, InMemoryInventoryStore

from conftest import TODAY


@pytest.fixture
def build_pipeline(category_store, location_set, inventory_store, audit_log, recording_host):
    def _build(host=None, **overrides):
        collaborators = {
            "category_store": category_store,
            "location_set": location_set,
            "inventory_store": inventory_store,
            "audit_log": audit_log,
            "host": host or recording_host(),
        }
        collaborators.update(overrides)
        return ImportPipeline(**collaborators)

    return _build


class TestScenarios:
    def test_fresh_rows_with_new_category_and_location(self, build_pipeline, location_set, inventory_store, recording_host):
        categories = InMemoryCategoryStore()
        host = recording_host(accept_locations=True)
        pipeline = build_pipeline(host=host, category_store=categories)

        summary = pipeline.run_import(
            [
                {"name": "Widget A", "sku": "W-1", "category": "Widgets", "location": "Dock B",
                 "pickingBinLocation": "A-01-01-1-A", "unitCost": "1", "retailPrice": "2"},
                {"name": "Widget B", "sku": "W-2", "category": "widgets", "location": "Dock B",
                 "pickingBinLocation": "A-01-01-1-A", "unitCost": "1", "retailPrice": "2"},
            ]
        )

        assert (summary.success_count, summary.error_count) == (2, 0)
        assert summary.success_message == "Successfully imported 2 item(s)."
        assert summary.error_message is None
        assert summary.created_categories == ["Widgets"]
        assert [c.name for c in categories.list_categories()] == ["Widgets"]
        assert "Dock B" in location_set.list_locations()
        assert {i.sku for i in inventory_store.list_items()} == {"W-1", "W-2"}
        assert host.calls == [("location_confirmation", ["Dock B"])]

    def test_duplicate_skipped(self, build_pipeline, make_raw_row, make_item, recording_host):
        store = InMemoryInventoryStore([make_item(sku="ABC")])
        pipeline = build_pipeline(host=recording_host(policy=DuplicatePolicy.SKIP), inventory_store=store)

        summary = pipeline.run_import([make_raw_row(sku="ABC")])

        assert (summary.success_count, summary.error_count) == (0, 1)
        assert "duplicate entry confirmation" in summary.error_message
        assert store.find_by_sku("ABC").quantity == 5

    def test_duplicate_merged(self, build_pipeline, make_raw_row, make_item, audit_log, recording_host):
        store = InMemoryInventoryStore([make_item(sku="ABC", picking_bin_quantity=5, overstock_quantity=0)])
        pipeline = build_pipeline(host=recording_host(policy=DuplicatePolicy.MERGE_INTO_STOCK), inventory_store=store)

        summary = pipeline.run_import([make_raw_row(sku="ABC", pickingBinQuantity="3", overstockQuantity="2")])

        assert summary.success_count == 1
        assert summary.outcomes[0].tag == OutcomeTag.MERGED
        assert store.find_by_sku("ABC").quantity == 10
        [movement] = audit_log.movements
        assert movement.type == MovementType.ADD
        assert (movement.amount, movement.old_quantity, movement.new_quantity) == (5, 5, 10)

    def test_missing_unit_cost(self, build_pipeline, make_raw_row, inventory_store, audit_log):
        summary = build_pipeline().run_import([make_raw_row(unitCost=None)])

        assert (summary.success_count, summary.error_count) == (0, 1)
        assert "unitCost" in summary.error_message
        assert inventory_store.list_items() == []
        assert audit_log.movements == []

    def test_empty_batch(self, build_pipeline, category_store, inventory_store, recording_host):
        host = recording_host()

        with pytest.raises(EmptyBatchError, match="No valid data"):
            build_pipeline(host=host).run_import([{"name": "", "sku": ""}])

        assert host.calls == []
        assert category_store.create_calls == []
        assert inventory_store.list_items() == []


class TestGates:
    def test_duplicate_question_comes_first(self, build_pipeline, make_raw_row, make_item, recording_host):
        host = recording_host(policy=DuplicatePolicy.SKIP)
        store = InMemoryInventoryStore([make_item(sku="ABC")])

        build_pipeline(host=host, inventory_store=store).run_import(
            [make_raw_row(sku="ABC"), make_raw_row(sku="NEW", location="Dock B")]
        )

        assert host.calls == [("duplicate_policy", ["ABC"]), ("location_confirmation", ["Dock B"])]

    def test_no_questions_when_nothing_to_decide(self, build_pipeline, make_raw_row, recording_host):
        host = recording_host()
        build_pipeline(host=host).run_import([make_raw_row()])
        assert host.calls == []

    def test_cancel_at_duplicate_gate_writes_nothing(self, build_pipeline, make_raw_row, make_item, recording_host):
        store = InMemoryInventoryStore([make_item(sku="ABC")])
        pipeline = build_pipeline(host=recording_host(policy=None), inventory_store=store)

        with pytest.raises(UserAbortedError, match=CANCELLED_MESSAGE):
            pipeline.run_import([make_raw_row(sku="ABC"), make_raw_row(sku="NEW")])

        assert [i.sku for i in store.list_items()] == ["ABC"]

    def test_declined_locations_keep_created_categories(self, build_pipeline, make_raw_row, inventory_store, location_set, recording_host):
        categories = InMemoryCategoryStore()
        pipeline = build_pipeline(host=recording_host(accept_locations=False), category_store=categories)

        with pytest.raises(UserAbortedError) as excinfo:
            pipeline.run_import([make_raw_row(category="Gadgets", location="Dock B")])

        assert excinfo.value.created_categories == ["Gadgets"]
        assert "Gadgets" in excinfo.value.caveat
        assert len(categories.list_categories()) == 1
        assert inventory_store.list_items() == []
        assert "Dock B" not in location_set.list_locations()

    def test_category_failure_only_skips_its_rows(self, build_pipeline, make_raw_row, inventory_store):
        categories = InMemoryCategoryStore(["Widgets"])
        categories.create_category = MagicMock(side_effect=StoreError("permission denied"))

        summary = build_pipeline(category_store=categories).run_import(
            [make_raw_row(sku="G-1", category="Gadgets"), make_raw_row(sku="W-1")]
        )

        assert summary.success_count == 1
        assert summary.error_messages[0] == "Failed to ensure category 'Gadgets' exists."
        assert [o.tag for o in summary.outcomes] == [OutcomeTag.INVALID, OutcomeTag.CREATED]
        assert [i.sku for i in inventory_store.list_items()] == ["W-1"]

    def test_diagnostic_log_receives_every_error(self, build_pipeline, make_raw_row):
        diagnostics = MagicMock()
        pipeline = build_pipeline(diagnostic_log=diagnostics)

        pipeline.run_import([make_raw_row(sku="A", unitCost=None), make_raw_row(sku="B", retailPrice="x")])

        [errors] = diagnostics.record.call_args.args
        assert len(errors) == 2

    def test_diagnostic_log_untouched_on_clean_run(self, build_pipeline, make_raw_row):
        diagnostics = MagicMock()
        build_pipeline(diagnostic_log=diagnostics).run_import([make_raw_row()])
        diagnostics.record.assert_not_called()


class TestStateMachine:
    def test_state_survives_serialization_between_gates(self, make_raw_row, make_item, category_store, location_set, audit_log):
        store = InMemoryInventoryStore([make_item(sku="ABC")])
        state = start_import(
            [make_raw_row(sku="ABC"), make_raw_row(sku="NEW", location="Dock B")],
            category_store, location_set, store,
        )
        assert state.phase == ImportPhase.AWAITING_DUPLICATE_POLICY
        assert [d.sku for d in state.pending.duplicates] == ["ABC"]

        state = ImportState.model_validate_json(state.model_dump_json())
        state = decide_duplicate_policy(state, DuplicatePolicy.MERGE_INTO_STOCK)
        assert state.phase == ImportPhase.AWAITING_LOCATION_CONFIRMATION

        state = ImportState.model_validate_json(state.model_dump_json())
        state = decide_location_confirmation(state, True, location_set)
        assert state.phase == ImportPhase.READY_TO_COMMIT
        assert state.confirmed_locations == ["Dock B"]

        summary = commit_import(state, store, audit_log, today=TODAY)

        assert [o.tag for o in summary.outcomes] == [OutcomeTag.MERGED, OutcomeTag.CREATED]
        assert store.find_by_sku("ABC").quantity == 20

    def test_decisions_must_match_the_phase(self, make_raw_row, category_store, location_set, inventory_store):
        state = start_import([make_raw_row()], category_store, location_set, inventory_store)
        assert state.phase == ImportPhase.READY_TO_COMMIT

        with pytest.raises(ValueError):
            decide_duplicate_policy(state, DuplicatePolicy.SKIP)
        with pytest.raises(ValueError):
            decide_location_confirmation(state, True, location_set)

    def test_policy_defaults_to_skip_without_duplicates(self, make_raw_row, category_store, location_set, inventory_store):
        state = start_import([make_raw_row()], category_store, location_set, inventory_store)
        assert state.duplicate_policy == DuplicatePolicy.SKIP
        assert state.pending is None
