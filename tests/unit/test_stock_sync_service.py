"""
Unit tests for StockSyncZeroer.

Run: pytest tests/unit/test_stock_sync_service.py -v
"""

from models.catalog import CatalogKey
from services.catalog_service import CatalogService
from services.diff_engine import SYNC_STOCK_FIELD
from services.stock_sync_service import StockSyncZeroer
from tests.factories import CatalogEntryFactory

CATALOG = "products"


class TestPlan:
    """Tests for StockSyncZeroer.plan()"""

    def test_unseen_entries_with_stock_are_planned(self):
        catalog = [
            CatalogEntryFactory.create(id="A1", stock_quantity=4),
            CatalogEntryFactory.create(id="A2", stock_quantity=2),
        ]

        plan = StockSyncZeroer().plan(catalog, {CatalogKey(id="A1")})

        assert [e.id for e in plan.entries] == ["A2"]
        assert plan.zeroed[0].old_stock == 2
        assert plan.changes[0].field == SYNC_STOCK_FIELD
        assert plan.changes[0].new_value == 0

    def test_entries_already_at_zero_are_skipped(self):
        catalog = [CatalogEntryFactory.create(id="A1", stock_quantity=0)]

        plan = StockSyncZeroer().plan(catalog, set())

        assert len(plan) == 0

    def test_placeholder_entries_seen_by_reference_and_color(self):
        catalog = [
            CatalogEntryFactory.create(id="undefined", model_ref="BG1", color="Red", stock_quantity=3),
            CatalogEntryFactory.create(id="undefined", model_ref="BG1", color="Blue", stock_quantity=3),
        ]

        plan = StockSyncZeroer().plan(catalog, {CatalogKey(model_ref="BG1", color="Red")})

        assert [e.color for e in plan.entries] == ["Blue"]


    def test_placeholder_size_variants_are_distinct(self):
        catalog = [
            CatalogEntryFactory.create(id="undefined", model_ref="BG1", color="Red", size="S", stock_quantity=3),
            CatalogEntryFactory.create(id="undefined", model_ref="BG1", color="Red", size="M", stock_quantity=3),
        ]

        plan = StockSyncZeroer().plan(catalog, {catalog[0].key()})

        assert [e.size for e in plan.entries] == ["M"]


class TestApply:
    """Tests for StockSyncZeroer.apply()"""

    def test_writes_zero(self, mock_db, mock_supabase):
        mock_supabase.set_table_data(CATALOG, [CatalogEntryFactory.row(id="A1", stock_quantity=4)])
        zeroer = StockSyncZeroer()
        plan = zeroer.plan([CatalogEntryFactory.create(id="A1", stock_quantity=4)], set())

        errors = zeroer.apply(plan, CatalogService())

        assert errors == []
        assert mock_supabase.rows(CATALOG)[0]["stock_quantity"] == 0

    def test_failed_writes_dropped_from_plan(self, mock_db, mock_supabase):
        mock_supabase.set_table_data(CATALOG, [
            CatalogEntryFactory.row(id="A1", stock_quantity=4),
            CatalogEntryFactory.row(id="A2", stock_quantity=4),
        ])
        mock_supabase.fail_on(CATALOG, "update", lambda q: q.eq_filters.get("id") == "A1")
        zeroer = StockSyncZeroer()
        plan = zeroer.plan([
            CatalogEntryFactory.create(id="A1", stock_quantity=4),
            CatalogEntryFactory.create(id="A2", stock_quantity=4),
        ], set())

        errors = zeroer.apply(plan, CatalogService())

        assert len(errors) == 1
        assert "A1" in errors[0].message
        assert [z.id for z in plan.zeroed] == ["A2"]
        assert [c.entry_id for c in plan.changes] == ["A2"]
