"""
Reconciliation schemas.

IncomingRecord and MatchResult live only for one run. ChangeRecord and the
report models are returned to the caller and stored in history.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import Field

from models.base import BaseSchema
from models.catalog import CatalogEntry

ChangeValue = Optional[Union[int, Decimal, str]]

# Key under which parsers pass the sheet row number along with a raw row
ROW_NUMBER_KEY = "_row_number"


@dataclass
class IncomingRecord:
    """
    Normalized view of one feed row.

    None means the cell was absent or blank: the field is neither compared
    nor written.
    """
    row_number: int
    model_ref: str
    color: Optional[str] = None
    id: Optional[str] = None
    size: Optional[str] = None
    stock_quantity: Optional[int] = None
    price_retail: Optional[Decimal] = None
    price_wholesale: Optional[Decimal] = None
    product_name: Optional[str] = None
    brand: Optional[str] = None
    collection: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    gender: Optional[str] = None
    supplier: Optional[str] = None
    image_url: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    def raw_summary(self) -> dict[str, Any]:
        """Compact view of the row for not-found reports."""
        return {
            "id": self.id,
            "reference": self.model_ref,
            "color": self.color,
            "size": self.size,
            "stock": self.stock_quantity,
        }


class MatchTier(str, Enum):
    """Matching tiers, most specific first."""
    ID_REF_COLOR = "id+modelRef+color"
    ID = "id"
    REF_COLOR_SIZE = "modelRef+color+size"
    REF_COLOR = "modelRef+color"
    REF_COLOR_UNSIZED = "modelRef+color (unsized)"
    REF = "modelRef"
    NONE = "none"


TIER_CONFIDENCE = {
    MatchTier.ID_REF_COLOR: 100,
    MatchTier.ID: 100,
    MatchTier.REF_COLOR_SIZE: 95,
    MatchTier.REF_COLOR: 85,
    MatchTier.REF_COLOR_UNSIZED: 80,
    MatchTier.REF: 70,
    MatchTier.NONE: 0,
}


@dataclass
class MatchResult:
    """Outcome of resolving one record against the catalog index."""
    tier: MatchTier
    confidence: int
    entry: Optional[CatalogEntry] = None
    ambiguous_candidates: list[CatalogEntry] = field(default_factory=list)

    @property
    def is_match(self) -> bool:
        return self.entry is not None

    @property
    def is_ambiguous(self) -> bool:
        return self.entry is None and len(self.ambiguous_candidates) > 1

    @property
    def is_new(self) -> bool:
        return self.entry is None and not self.ambiguous_candidates


class ChangeRecord(BaseSchema):
    """One field-level change applied (or planned) on a catalog entry."""
    entry_id: Optional[str] = None
    model_ref: str
    color: str = ""
    field: str
    old_value: ChangeValue = None
    new_value: ChangeValue = None


# ===================
# REPORT DETAILS
# ===================

class UpdatedItem(BaseSchema):
    row_number: int
    id: str
    model_ref: str
    color: str = ""
    size: Optional[str] = None
    tier: MatchTier
    confidence: int
    changes: list[ChangeRecord] = Field(default_factory=list)


class CreatedItem(BaseSchema):
    row_number: int
    id: str
    model_ref: str
    color: str = ""
    size: Optional[str] = None
    stock: int = 0


class NotFoundItem(BaseSchema):
    row_number: int
    data: dict[str, Any] = Field(default_factory=dict)
    reason: str
    suggestions: list[str] = Field(default_factory=list)


class RowError(BaseSchema):
    row_number: Optional[int] = None
    message: str


class DuplicateRows(BaseSchema):
    row_numbers: list[int]
    model_ref: str
    color: Optional[str] = None
    size: Optional[str] = None


class ZeroedProduct(BaseSchema):
    id: str
    model_ref: str
    color: str = ""
    size: Optional[str] = None
    old_stock: int


class ReconciliationStats(BaseSchema):
    """Run counters. Identical between dry-run and apply for the same input."""
    total_rows: int = 0
    valid_rows: int = 0
    updated: int = 0
    inserted: int = 0
    unchanged: int = 0
    not_found: int = 0
    stock_zeroed: int = 0
    errors_count: int = 0
    duplicates_in_file: int = 0


class ReconciliationReport(BaseSchema):
    """
    Result of one reconciliation run.

    Detail lists are complete; only the stored history entry is capped.
    """
    success: bool = True
    dry_run: bool = False
    sync_stock_enabled: bool = False
    file_name: str
    message: str = ""
    stats: ReconciliationStats = Field(default_factory=ReconciliationStats)
    updated: list[UpdatedItem] = Field(default_factory=list)
    created: list[CreatedItem] = Field(default_factory=list)
    not_found: list[NotFoundItem] = Field(default_factory=list)
    errors: list[RowError] = Field(default_factory=list)
    duplicates_in_file: list[DuplicateRows] = Field(default_factory=list)
    zeroed_products: list[ZeroedProduct] = Field(default_factory=list)
    changes: list[ChangeRecord] = Field(default_factory=list)
    history_id: Optional[str] = None
    history_error: Optional[str] = None
