"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.catalog import (
    CatalogEntry,
    CatalogKey,
    MUTABLE_FIELDS,
)
from models.reconciliation import (
    IncomingRecord,
    MatchTier,
    TIER_CONFIDENCE,
    MatchResult,
    ChangeRecord,
    UpdatedItem,
    CreatedItem,
    NotFoundItem,
    RowError,
    DuplicateRows,
    ZeroedProduct,
    ReconciliationStats,
    ReconciliationReport,
)
from models.history import (
    MAX_HISTORY_CHANGES,
    MAX_HISTORY_INSERTED,
    MAX_HISTORY_ZEROED,
    HistorySummary,
    HistoryEntry,
    RestoreResult,
)

__all__ = [
    # Base
    "BaseSchema",

    # Catalog
    "CatalogEntry",
    "CatalogKey",
    "MUTABLE_FIELDS",

    # Reconciliation
    "IncomingRecord",
    "MatchTier",
    "TIER_CONFIDENCE",
    "MatchResult",
    "ChangeRecord",
    "UpdatedItem",
    "CreatedItem",
    "NotFoundItem",
    "RowError",
    "DuplicateRows",
    "ZeroedProduct",
    "ReconciliationStats",
    "ReconciliationReport",

    # History
    "MAX_HISTORY_CHANGES",
    "MAX_HISTORY_INSERTED",
    "MAX_HISTORY_ZEROED",
    "HistorySummary",
    "HistoryEntry",
    "RestoreResult",
]
