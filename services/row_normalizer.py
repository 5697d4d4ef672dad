"""
Feed row normalization.

Turns one raw feed row (column header → cell) into an IncomingRecord.
Column headers vary between feeds, so logical fields are resolved through
FIELD_ALIASES; supporting a new feed layout means adding aliases there.

Pure functions, no I/O.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Mapping, Optional

from exceptions import RowValidationError
from models.reconciliation import IncomingRecord
from utils.text_utils import cell_to_text, is_blank

MISSING_KEY_MESSAGE = "modelRef or color missing"

# Logical field → accepted headers, in priority order (matched case-insensitively)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "מזהה"),
    "model_ref": (
        "modelRef", "model_ref", "model ref", "reference", "ref",
        "מקט", "מק״ט", "מק\"ט", "sku",
    ),
    "color": ("color", "colour", "couleur", "צבע"),
    "size": ("size", "taille", "מידה"),
    "stock_quantity": (
        "stockQuantity", "stock_quantity", "stock", "quantity", "qty",
        "מלאי", "כמות",
    ),
    "price_retail": (
        "priceRetail", "price_retail", "price", "retail price", "prix",
        "מחיר", "מחיר קמעונאי",
    ),
    "price_wholesale": (
        "priceWholesale", "price_wholesale", "wholesale", "wholesale price",
        "מחיר סיטונאי",
    ),
    "product_name": ("productName", "product_name", "name", "שם", "שם מוצר"),
    "brand": ("brand", "marque", "מותג"),
    "collection": ("collection", "קולקציה"),
    "category": ("category", "catégorie", "קטגוריה"),
    "subcategory": ("subcategory", "sub_category", "תת-קטגוריה", "תת קטגוריה"),
    "gender": ("gender", "מגדר"),
    "supplier": ("supplier", "fournisseur", "ספק"),
    "image_url": ("imageUrl", "image_url", "image", "תמונה"),
}

INTEGER_FIELDS = ("stock_quantity",)
DECIMAL_FIELDS = ("price_retail", "price_wholesale")
TEXT_FIELDS = (
    "id", "color", "size", "product_name", "brand", "collection",
    "category", "subcategory", "gender", "supplier", "image_url",
)

_NON_NUMERIC = re.compile(r"[^\d,.\-]")
_CENT = Decimal("0.01")


def parse_number(value: Any, decimal_field: bool = False) -> Decimal:
    """
    Parse a numeric cell leniently.

    - "₪1.234,50" → 1234.50 (rightmost separator is the decimal point)
    - "1,234.50" → 1234.50
    - "12,5" → 12.5 for price fields, 125 for quantity fields
    - "abc" → 0

    Args:
        value: Raw cell (str, int, float)
        decimal_field: True for prices, where a lone comma is a decimal point

    Returns:
        Parsed Decimal, 0 when the cell cannot be read
    """
    if is_blank(value) or isinstance(value, bool):
        return Decimal("0")

    if isinstance(value, (int, float)):
        cleaned = str(value)
    else:
        cleaned = _clean_number_text(str(value), decimal_field)

    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")

    # inf cells from spreadsheet readers
    if not number.is_finite():
        return Decimal("0")
    return number


def _clean_number_text(text: str, decimal_field: bool) -> str:
    """Strip symbols and settle which separator is the decimal point."""
    cleaned = _NON_NUMERIC.sub("", text)

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        if decimal_field and cleaned.count(",") == 1:
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif cleaned.count(".") > 1:
        cleaned = cleaned.replace(".", "")
    return cleaned


def parse_quantity(value: Any) -> int:
    """Whole, non-negative quantity (half-up rounding)."""
    number = parse_number(value, decimal_field=False)
    try:
        rounded = int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # Beyond Decimal precision
        return 0
    return max(rounded, 0)


def parse_price(value: Any) -> Decimal:
    """Non-negative price rounded to cents."""
    number = parse_number(value, decimal_field=True)
    try:
        rounded = number.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Decimal("0.00")
    return max(rounded, Decimal("0.00"))


def resolve_aliases(row: Mapping[str, Any]) -> dict[str, Any]:
    """
    Map raw headers to logical fields.

    The first alias with a non-blank value wins. Fields with no usable
    value are left out.
    """
    lowered: dict[str, Any] = {}
    for header, value in row.items():
        key = str(header).strip().casefold()
        if key not in lowered or is_blank(lowered[key]):
            lowered[key] = value

    resolved: dict[str, Any] = {}
    for field_name, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            value = lowered.get(alias.casefold())
            if not is_blank(value):
                resolved[field_name] = value
                break
    return resolved


def normalize_row(row: Mapping[str, Any], row_number: int) -> IncomingRecord:
    """
    Build an IncomingRecord from one raw feed row.

    Args:
        row: Column header → raw cell value
        row_number: Sheet row number, for error reporting

    Returns:
        IncomingRecord with None for every absent/blank field

    Raises:
        RowValidationError: If the row has no model reference
    """
    values = resolve_aliases(row)

    text: dict[str, Optional[str]] = {
        name: cell_to_text(values.get(name)) for name in TEXT_FIELDS
    }

    # Rows that only carry an id use it as their reference
    model_ref = cell_to_text(values.get("model_ref")) or text["id"]
    if not model_ref:
        raise RowValidationError(row_number, MISSING_KEY_MESSAGE)

    return IncomingRecord(
        row_number=row_number,
        model_ref=model_ref,
        stock_quantity=parse_quantity(values["stock_quantity"]) if "stock_quantity" in values else None,
        price_retail=parse_price(values["price_retail"]) if "price_retail" in values else None,
        price_wholesale=parse_price(values["price_wholesale"]) if "price_wholesale" in values else None,
        raw=dict(row),
        **text,
    )
