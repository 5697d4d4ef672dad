"""
Business logic services.

Reconciliation pipeline pieces plus the catalog and history stores.
"""

from services.catalog_service import CatalogService, get_catalog_service
from services.history_service import HistoryService, get_history_service
from services.reconciliation_service import ReconciliationService, get_reconciliation_service
from services.restore_service import RestoreService, get_restore_service
from services.stock_sync_service import StockSyncZeroer
from services.catalog_index import CatalogIndex
from services.key_resolver import KeyResolver
from services.catalog_lock import catalog_lease

__all__ = [
    "CatalogService",
    "get_catalog_service",
    "HistoryService",
    "get_history_service",
    "ReconciliationService",
    "get_reconciliation_service",
    "RestoreService",
    "get_restore_service",
    "StockSyncZeroer",
    "CatalogIndex",
    "KeyResolver",
    "catalog_lease",
]
