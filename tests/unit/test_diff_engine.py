"""
Unit tests for the diff engine.

Run: pytest tests/unit/test_diff_engine.py -v
"""

from decimal import Decimal

from models.reconciliation import IncomingRecord
from services.diff_engine import diff_entry, STOCK_FIELD
from tests.factories import CatalogEntryFactory


def record(**fields):
    return IncomingRecord(row_number=2, model_ref="BG100", color="Black", **fields)


class TestDiffEntry:
    """Tests for diff_entry()"""

    def test_stock_change(self):
        entry = CatalogEntryFactory.create(id="A1", model_ref="BG100", stock_quantity=10)

        diff = diff_entry(record(stock_quantity=4), entry)

        assert diff.has_changes
        assert len(diff.changes) == 1
        change = diff.changes[0]
        assert change.field == STOCK_FIELD
        assert change.entry_id == "A1"
        assert change.old_value == 10
        assert change.new_value == 4
        assert diff.fields == {"stock_quantity": 4}

    def test_absent_fields_are_not_compared(self):
        entry = CatalogEntryFactory.create(stock_quantity=10, product_name="Tote")

        diff = diff_entry(record(), entry)

        assert not diff.has_changes
        assert diff.fields == {}

    def test_price_within_a_cent_is_unchanged(self):
        entry = CatalogEntryFactory.create(price_retail="100.00")

        diff = diff_entry(record(price_retail=Decimal("100.01")), entry)

        assert not diff.has_changes

    def test_price_beyond_a_cent_is_changed(self):
        entry = CatalogEntryFactory.create(price_retail="100.00")

        diff = diff_entry(record(price_retail=Decimal("100.02")), entry)

        assert diff.changes[0].field == "price_retail"
        assert diff.changes[0].old_value == Decimal("100.00")
        assert diff.fields == {"price_retail": "100.02"}

    def test_text_compared_after_trimming(self):
        entry = CatalogEntryFactory.create(product_name="Tote bag")

        assert not diff_entry(record(product_name="Tote bag"), entry).has_changes
        assert diff_entry(record(product_name="Tote Bag"), entry).has_changes

    def test_changes_in_field_order(self):
        entry = CatalogEntryFactory.create(
            stock_quantity=1, price_retail="10.00", price_wholesale="5.00", product_name="Old"
        )

        diff = diff_entry(
            record(
                product_name="New",
                price_wholesale=Decimal("6.00"),
                price_retail=Decimal("12.00"),
                stock_quantity=2,
            ),
            entry,
        )

        assert [c.field for c in diff.changes] == [
            "stock", "price_retail", "price_wholesale", "product_name"
        ]

    def test_zero_stock_is_a_value(self):
        entry = CatalogEntryFactory.create(stock_quantity=3)

        diff = diff_entry(record(stock_quantity=0), entry)

        assert diff.fields == {"stock_quantity": 0}
