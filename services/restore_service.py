"""
Restore the catalog from a history snapshot.

Writes back the mutable fields of every snapshot entry. Entries that no
longer exist are inserted again. Entries the restored run inserted stay.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

from models.catalog import CatalogEntry, MUTABLE_FIELDS
from models.history import RestoreResult
from services.catalog_lock import catalog_lease
from services.catalog_service import CatalogService, get_catalog_service
from services.history_service import HistoryService, get_history_service
from exceptions import NothingToRestoreError, PersistenceError

logger = structlog.get_logger(__name__)


class RestoreService:
    """Restores catalog state recorded before a reconciliation run."""

    def __init__(
        self,
        catalog_service: Optional[CatalogService] = None,
        history_service: Optional[HistoryService] = None,
    ):
        self.catalog = catalog_service or get_catalog_service()
        self.history = history_service or get_history_service()

    def restore(self, history_id: str) -> RestoreResult:
        """
        Restore one history entry.

        Args:
            history_id: History entry UUID

        Returns:
            RestoreResult with counts and per-entry errors

        Raises:
            HistoryNotFoundError: If the entry does not exist
            NothingToRestoreError: If the entry has no snapshot
            CatalogBusyError: If a run holds the catalog
        """
        entry = self.history.get(history_id)
        if not entry.snapshot_before:
            raise NothingToRestoreError(history_id)

        logger.info(
            "restore_started",
            history_id=history_id,
            file_name=entry.file_name,
            entries=len(entry.snapshot_before),
        )

        restored = 0
        recreated = 0
        errors: list[str] = []

        with catalog_lease(self.catalog.table):
            for snapshot_entry in entry.snapshot_before:
                try:
                    if self._write_back(snapshot_entry):
                        restored += 1
                    else:
                        recreated += 1
                except PersistenceError as e:
                    errors.append(f"{snapshot_entry.id}: {e.message}")

            restored_at = self.history.mark_restored(history_id, datetime.now(timezone.utc))

        logger.info(
            "restore_completed",
            history_id=history_id,
            restored=restored,
            recreated=recreated,
            errors=len(errors),
        )

        return RestoreResult(
            history_id=history_id,
            restored=restored,
            recreated=recreated,
            errors=errors,
            restored_at=restored_at,
        )

    def _write_back(self, snapshot_entry: CatalogEntry) -> bool:
        """Returns True if an existing entry was updated, False if re-inserted."""
        row = snapshot_entry.to_row()
        fields = {name: row[name] for name in MUTABLE_FIELDS}

        updated = self.catalog.update(snapshot_entry.key(), fields)
        if updated:
            return True

        self.catalog.insert(snapshot_entry)
        return False


_restore_service: Optional[RestoreService] = None


def get_restore_service() -> RestoreService:
    global _restore_service
    if _restore_service is None:
        _restore_service = RestoreService()
    return _restore_service
