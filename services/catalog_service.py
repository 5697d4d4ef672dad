"""
Catalog store access.

Wraps the catalog table behind the three primitives reconciliation needs:
list everything, insert one entry, update one keyed entry.
"""

from typing import Any, Optional
import structlog
from pydantic import ValidationError as PydanticValidationError

from config import get_supabase_client, settings
from models.catalog import CatalogEntry, CatalogKey
from exceptions import CatalogUnavailableError, PersistenceError

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Catalog table operations.

    Reads raise CatalogUnavailableError (the run cannot proceed);
    writes raise PersistenceError (the caller decides whether to continue).
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.catalog_table
        self.page_size = settings.catalog_page_size

    # ===================
    # READ OPERATIONS
    # ===================

    def list_all(self) -> list[CatalogEntry]:
        """
        Read the whole catalog.

        Pages through the table since Supabase caps rows per request.

        Returns:
            Every readable catalog entry, in id order

        Raises:
            CatalogUnavailableError: If the table cannot be read
        """
        logger.info("reading_catalog", table=self.table)

        rows: list[dict] = []
        offset = 0
        try:
            while True:
                result = (
                    self.db.table(self.table)
                    .select("*")
                    .order("id")
                    .range(offset, offset + self.page_size - 1)
                    .execute()
                )
                page = result.data or []
                rows.extend(page)
                if len(page) < self.page_size:
                    break
                offset += self.page_size
        except Exception as e:
            logger.error("read_catalog_failed", error=str(e))
            raise CatalogUnavailableError(
                f"Failed to read catalog: {e}",
                details={"table": self.table}
            ) from e

        entries = []
        for row in rows:
            try:
                entries.append(CatalogEntry(**row))
            except PydanticValidationError as e:
                logger.warning(
                    "catalog_row_skipped",
                    entry_id=row.get("id"),
                    error=str(e)
                )

        logger.info("catalog_read", count=len(entries), skipped=len(rows) - len(entries))
        return entries

    # ===================
    # WRITE OPERATIONS
    # ===================

    def insert(self, entry: CatalogEntry) -> CatalogEntry:
        """
        Insert a new catalog entry.

        Raises:
            PersistenceError: If the insert fails
        """
        logger.debug("inserting_catalog_entry", entry_id=entry.id, model_ref=entry.model_ref)

        try:
            result = self.db.table(self.table).insert(entry.to_row()).execute()
        except Exception as e:
            logger.error("insert_catalog_entry_failed", entry_id=entry.id, error=str(e))
            raise PersistenceError("insert", str(e), entry_id=entry.id) from e

        if result.data:
            return CatalogEntry(**result.data[0])
        return entry

    def update(self, key: CatalogKey, fields: dict[str, Any]) -> list[dict]:
        """
        Update the entry (or entries) addressed by key.

        Args:
            key: Id, or model_ref + color + size for entries without a stable id
            fields: Column → new value (JSON-serializable)

        Returns:
            Updated rows; empty if nothing matched the key

        Raises:
            PersistenceError: If the update fails
        """
        if not fields:
            return []

        logger.debug("updating_catalog_entry", key=str(key), fields=list(fields.keys()))

        try:
            query = self.db.table(self.table).update(fields)
            for column, value in key.filters():
                query = query.is_(column, "null") if value is None else query.eq(column, value)
            result = query.execute()
        except Exception as e:
            logger.error("update_catalog_entry_failed", key=str(key), error=str(e))
            raise PersistenceError("update", str(e), entry_id=key.id) from e

        return result.data or []


# Singleton instance for convenience
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
