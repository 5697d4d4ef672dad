"""
Reconciliation history.

One entry per applied run, holding the catalog snapshot taken before the
run so it can be restored. Only the most recent entries are kept.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import structlog

from config import get_supabase_client, settings
from models.catalog import CatalogEntry
from models.history import (
    HistoryEntry,
    HistorySummary,
    MAX_HISTORY_CHANGES,
    MAX_HISTORY_INSERTED,
    MAX_HISTORY_ZEROED,
)
from models.reconciliation import (
    ChangeRecord,
    CreatedItem,
    ReconciliationStats,
    ZeroedProduct,
)
from exceptions import DatabaseError, HistoryNotFoundError, PersistenceError

logger = structlog.get_logger(__name__)

SUMMARY_COLUMNS = (
    "id, file_name, uploaded_at, stats, changes, inserted_products, "
    "zeroed_products, sync_stock_enabled, restored_at"
)


class HistoryService:
    """History table operations."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.history_table
        self.retention = settings.history_retention

    # ===================
    # WRITE OPERATIONS
    # ===================

    def record(
        self,
        file_name: str,
        stats: ReconciliationStats,
        changes: list[ChangeRecord],
        inserted: list[CreatedItem],
        zeroed: list[ZeroedProduct],
        snapshot: list[CatalogEntry],
        sync_stock: bool = False,
    ) -> HistoryEntry:
        """
        Write one history entry, then prune old ones.

        Detail lists are truncated to their caps; the snapshot is stored
        whole.

        Raises:
            PersistenceError: If the entry cannot be written
        """
        entry = HistoryEntry(
            id=str(uuid4()),
            file_name=file_name,
            uploaded_at=datetime.now(timezone.utc),
            stats=stats,
            changes=changes[:MAX_HISTORY_CHANGES],
            inserted_products=inserted[:MAX_HISTORY_INSERTED],
            zeroed_products=zeroed[:MAX_HISTORY_ZEROED],
            snapshot_before=snapshot,
            sync_stock_enabled=sync_stock,
        )

        try:
            self.db.table(self.table).insert(entry.to_row()).execute()
        except Exception as e:
            logger.error("history_write_failed", file_name=file_name, error=str(e))
            raise PersistenceError("history insert", str(e), entry_id=entry.id) from e

        logger.info(
            "history_recorded",
            history_id=entry.id,
            file_name=file_name,
            snapshot_size=len(snapshot),
        )

        self.prune()
        return entry

    def prune(self) -> int:
        """
        Delete entries beyond the retention limit.

        Returns:
            Number of entries deleted (0 if pruning failed)
        """
        try:
            result = (
                self.db.table(self.table)
                .select("id, uploaded_at")
                .order("uploaded_at", desc=True)
                .execute()
            )
            stale = [row["id"] for row in (result.data or [])[self.retention:]]
            if not stale:
                return 0
            self.db.table(self.table).delete().in_("id", stale).execute()
        except Exception as e:
            # Old entries only cost storage
            logger.warning("history_prune_failed", error=str(e))
            return 0

        logger.info("history_pruned", deleted=len(stale), retention=self.retention)
        return len(stale)

    def mark_restored(self, history_id: str, at: Optional[datetime] = None) -> datetime:
        """
        Stamp restored_at on an entry.

        Raises:
            PersistenceError: If the update fails
        """
        restored_at = at or datetime.now(timezone.utc)
        try:
            (
                self.db.table(self.table)
                .update({"restored_at": restored_at.isoformat()})
                .eq("id", history_id)
                .execute()
            )
        except Exception as e:
            logger.error("mark_restored_failed", history_id=history_id, error=str(e))
            raise PersistenceError("history update", str(e), entry_id=history_id) from e
        return restored_at

    # ===================
    # READ OPERATIONS
    # ===================

    def list_recent(self, limit: Optional[int] = None) -> list[HistorySummary]:
        """
        List entries newest first, without snapshots.

        Raises:
            DatabaseError: If the query fails
        """
        limit = limit or self.retention
        try:
            result = (
                self.db.table(self.table)
                .select(SUMMARY_COLUMNS)
                .order("uploaded_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error("list_history_failed", error=str(e))
            raise DatabaseError("select", str(e))

        return [HistorySummary(**row) for row in result.data or []]

    def get(self, history_id: str) -> HistoryEntry:
        """
        Get a full entry including its snapshot.

        Raises:
            HistoryNotFoundError: If no entry has this id
            DatabaseError: If the query fails
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", history_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_history_failed", history_id=history_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise HistoryNotFoundError(history_id)
        return HistoryEntry(**result.data[0])


_history_service: Optional[HistoryService] = None


def get_history_service() -> HistoryService:
    global _history_service
    if _history_service is None:
        _history_service = HistoryService()
    return _history_service
