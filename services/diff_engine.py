"""
Field-level comparison between an incoming record and its catalog entry.

Only fields present in the feed row are compared, so a partial feed never
erases catalog data.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from models.catalog import CatalogEntry
from models.reconciliation import ChangeRecord, IncomingRecord

PRICE_EPSILON = Decimal("0.01")

STOCK_FIELD = "stock"
SYNC_STOCK_FIELD = "stock (sync)"

# (change label, record/entry attribute, kind) in report order
COMPARED_FIELDS = (
    (STOCK_FIELD, "stock_quantity", "int"),
    ("price_retail", "price_retail", "decimal"),
    ("price_wholesale", "price_wholesale", "decimal"),
    ("product_name", "product_name", "text"),
)


@dataclass
class EntryDiff:
    """Changes for one entry plus the column values to write."""
    changes: list[ChangeRecord] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


def _differs(kind: str, old: Any, new: Any) -> bool:
    if kind == "int":
        return int(old or 0) != int(new)
    if kind == "decimal":
        return abs(Decimal(old or 0) - Decimal(new)) > PRICE_EPSILON
    return (old or "").strip() != (new or "").strip()


def diff_entry(record: IncomingRecord, entry: CatalogEntry) -> EntryDiff:
    """
    Compare a record against its matched entry.

    Args:
        record: Normalized feed row
        entry: Matched catalog entry

    Returns:
        EntryDiff; no changes means the row is unchanged
    """
    diff = EntryDiff()

    for label, attr, kind in COMPARED_FIELDS:
        new_value: Optional[Any] = getattr(record, attr)
        if new_value is None:
            continue
        old_value = getattr(entry, attr)
        if not _differs(kind, old_value, new_value):
            continue

        diff.changes.append(ChangeRecord(
            entry_id=entry.id,
            model_ref=entry.model_ref,
            color=entry.color,
            field=label,
            old_value=old_value,
            new_value=new_value,
        ))
        diff.fields[attr] = str(new_value) if kind == "decimal" else new_value

    return diff
