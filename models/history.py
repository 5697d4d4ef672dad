"""
History schemas.

One HistoryEntry is written per applied (non dry-run) reconciliation run.
Detail lists are capped; the snapshot is complete.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from models.base import BaseSchema
from models.catalog import CatalogEntry
from models.reconciliation import (
    ChangeRecord,
    CreatedItem,
    ReconciliationStats,
    ZeroedProduct,
)

MAX_HISTORY_CHANGES = 100
MAX_HISTORY_INSERTED = 50
MAX_HISTORY_ZEROED = 50


class HistorySummary(BaseSchema):
    """History entry without its snapshot (for listing)."""

    id: str = Field(..., description="History entry UUID")
    file_name: str = Field(..., description="Feed file or source name")
    uploaded_at: datetime = Field(..., description="When the run was applied")
    stats: ReconciliationStats = Field(default_factory=ReconciliationStats)
    changes: list[ChangeRecord] = Field(default_factory=list, max_length=MAX_HISTORY_CHANGES)
    inserted_products: list[CreatedItem] = Field(default_factory=list, max_length=MAX_HISTORY_INSERTED)
    zeroed_products: list[ZeroedProduct] = Field(default_factory=list, max_length=MAX_HISTORY_ZEROED)
    sync_stock_enabled: bool = False
    restored_at: Optional[datetime] = None


class HistoryEntry(HistorySummary):
    """Full history entry including the catalog as it was before the run."""

    snapshot_before: list[CatalogEntry] = Field(default_factory=list)

    def to_row(self) -> dict:
        """Serialize for the history table."""
        return self.model_dump(mode="json")


class RestoreResult(BaseSchema):
    """Outcome of restoring a history entry."""

    history_id: str
    restored: int = 0
    recreated: int = 0
    errors: list[str] = Field(default_factory=list)
    restored_at: datetime
