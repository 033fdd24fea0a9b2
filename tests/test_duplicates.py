from stock_import.duplicates import build_sku_index, find_duplicates, flag_duplicates
from stock_import.parsers import normalize_rows
from stock_import.stores.memory import InMemoryInventoryStore


class TestDuplicateDetection:
    def test_index_is_lower_cased(self, make_item):
        store = InMemoryInventoryStore([make_item(sku="AbC-1"), make_item(sku="xyz")])
        assert build_sku_index(store) == frozenset({"abc-1", "xyz"})

    def test_flags_case_insensitive_matches(self, make_raw_row):
        rows = normalize_rows([make_raw_row(sku="abc"), make_raw_row(sku="NEW"), make_raw_row(sku="")])
        assert flag_duplicates(rows, frozenset({"abc"})) == [True, False, False]

    def test_repeated_skus_each_surface(self, make_raw_row):
        rows = normalize_rows(
            [
                make_raw_row(sku="ABC", name="First", pickingBinQuantity="1", overstockQuantity="1"),
                make_raw_row(sku="abc", name="Second", pickingBinQuantity="4", overstockQuantity="0"),
            ]
        )

        duplicates = find_duplicates(rows, frozenset({"abc"}))

        assert [(d.sku, d.csv_quantity, d.item_name) for d in duplicates] == [
            ("ABC", 2, "First"),
            ("abc", 4, "Second"),
        ]

    def test_index_is_a_snapshot(self, make_item, make_raw_row):
        store = InMemoryInventoryStore([make_item(sku="ABC")])
        index = build_sku_index(store)
        store.items.clear()

        rows = normalize_rows([make_raw_row(sku="ABC")])
        assert flag_duplicates(rows, index) == [True]
