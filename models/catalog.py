"""
Catalog entry schemas.

A catalog entry is one sellable variant (reference + color, optionally
size). Rows in the catalog table use the same snake_case field names.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from models.base import BaseSchema
from utils.text_utils import is_placeholder_id

# Fields a restore writes back from a snapshot
MUTABLE_FIELDS = ("stock_quantity", "price_retail", "price_wholesale", "product_name")


class CatalogEntry(BaseSchema):
    """
    One catalog entry as stored.

    (model_ref, color, size) is not unique: legacy duplicates exist.
    Only `id` identifies an entry reliably.
    """

    id: str = Field(..., description="Stable identifier, may be synthetic")
    model_ref: str = Field(..., description="Supplier model reference")
    color: str = Field(default="", description="Color label")
    size: Optional[str] = Field(None, description="Size label")
    stock_quantity: int = Field(default=0, ge=0, description="Units in stock")
    price_retail: Decimal = Field(default=Decimal("0"), ge=0, description="Retail price")
    price_wholesale: Decimal = Field(default=Decimal("0"), ge=0, description="Wholesale price")
    product_name: Optional[str] = Field(None, description="Display name")

    # Descriptive columns, only written on insert
    brand: Optional[str] = None
    collection: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    gender: Optional[str] = None
    supplier: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("id", "model_ref", mode="before")
    @classmethod
    def coerce_text(cls, v):
        """Numeric ids come back from the store as numbers."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v)) if float(v).is_integer() else str(v)
        return v

    @field_validator("color", mode="before")
    @classmethod
    def color_not_null(cls, v):
        return "" if v is None else v

    @field_validator("stock_quantity", mode="before")
    @classmethod
    def clamp_negative_stock(cls, v):
        """Legacy rows carry negative stock; treat them as empty."""
        if v is None:
            return 0
        if isinstance(v, (int, float)) and v < 0:
            return 0
        return v

    @field_validator("price_retail", "price_wholesale", mode="before")
    @classmethod
    def price_not_null(cls, v):
        return Decimal("0") if v is None else v

    @property
    def has_stable_id(self) -> bool:
        return not is_placeholder_id(self.id)

    def key(self) -> "CatalogKey":
        """Key used to address this entry in the store."""
        if self.has_stable_id:
            return CatalogKey(id=self.id)
        return CatalogKey(model_ref=self.model_ref, color=self.color, size=self.size)

    def to_row(self) -> dict:
        """Serialize for the catalog table (Decimals as strings)."""
        return self.model_dump(mode="json")

    def label(self) -> str:
        """Short human label used in suggestions and logs."""
        details = " / ".join(p for p in (self.color, self.size) if p)
        return f"{self.id}: {details or 'no color/size'}"


@dataclass(frozen=True)
class CatalogKey:
    """
    Address of a catalog entry in the store.

    Either the id, or model_ref + color + size for entries without a
    stable id. Legacy size variants share reference and color, so size
    is part of the key.
    """
    id: Optional[str] = None
    model_ref: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None

    @property
    def by_id(self) -> bool:
        return self.id is not None

    def filters(self) -> list[tuple[str, Optional[str]]]:
        """
        Column filters selecting this entry.

        A None value means the column must be null.
        """
        if self.by_id:
            return [("id", self.id)]
        return [
            ("model_ref", self.model_ref or ""),
            ("color", self.color or ""),
            ("size", self.size),
        ]

    def __str__(self) -> str:
        if self.by_id:
            return self.id
        return f"{self.model_ref}|{self.color}|{self.size or ''}"
