"""
Stock sync: zero the stock of catalog entries the feed no longer lists.

Only runs when the caller opts in. Entries are never deleted, and entries
already at zero are neither written nor reported.
"""

from dataclasses import dataclass, field
from typing import Iterable

import structlog

from models.catalog import CatalogEntry, CatalogKey
from models.reconciliation import ChangeRecord, RowError, ZeroedProduct
from services.catalog_service import CatalogService
from services.diff_engine import SYNC_STOCK_FIELD
from exceptions import PersistenceError

logger = structlog.get_logger(__name__)


@dataclass
class ZeroPlan:
    """Entries to zero, in snapshot order."""
    entries: list[CatalogEntry] = field(default_factory=list)
    zeroed: list[ZeroedProduct] = field(default_factory=list)
    changes: list[ChangeRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)


class StockSyncZeroer:
    """Plans and applies the absence-driven zeroing pass."""

    def plan(self, catalog: Iterable[CatalogEntry], seen: set[CatalogKey]) -> ZeroPlan:
        """
        Find entries to zero.

        Args:
            catalog: Snapshot taken at the start of the run
            seen: Keys of entries the feed referenced

        Returns:
            ZeroPlan of every unseen entry with positive stock
        """
        plan = ZeroPlan()
        for entry in catalog:
            if entry.key() in seen or entry.stock_quantity <= 0:
                continue
            plan.entries.append(entry)
            plan.zeroed.append(ZeroedProduct(
                id=entry.id,
                model_ref=entry.model_ref,
                color=entry.color,
                size=entry.size,
                old_stock=entry.stock_quantity,
            ))
            plan.changes.append(ChangeRecord(
                entry_id=entry.id,
                model_ref=entry.model_ref,
                color=entry.color,
                field=SYNC_STOCK_FIELD,
                old_value=entry.stock_quantity,
                new_value=0,
            ))

        logger.info("stock_sync_planned", to_zero=len(plan))
        return plan

    def apply(self, plan: ZeroPlan, catalog_service: CatalogService) -> list[RowError]:
        """
        Write stock_quantity = 0 for every planned entry.

        Failed writes are dropped from the plan (so reports only list what
        was zeroed) and returned as errors.
        """
        errors: list[RowError] = []
        kept = ZeroPlan()

        for entry, zeroed, change in zip(plan.entries, plan.zeroed, plan.changes):
            try:
                catalog_service.update(entry.key(), {"stock_quantity": 0})
            except PersistenceError as e:
                errors.append(RowError(message=f"Failed to zero stock for {entry.id}: {e.message}"))
                continue
            kept.entries.append(entry)
            kept.zeroed.append(zeroed)
            kept.changes.append(change)

        plan.entries, plan.zeroed, plan.changes = kept.entries, kept.zeroed, kept.changes
        logger.info("stock_sync_applied", zeroed=len(plan), failed=len(errors))
        return errors
