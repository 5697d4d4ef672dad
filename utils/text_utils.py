"""
Text utilities for comparing catalog keys coming from spreadsheets.

Feed values arrive with mixed case, stray whitespace, accents and
spreadsheet number formatting; everything that is compared goes through
normalize_key().
"""

import math
import re
import unicodedata
from typing import Any, Optional

_WHITESPACE = re.compile(r"\s+")

# Ids exported by the old admin screens for rows that never had one
PLACEHOLDER_IDS = {"", "undefined", "null", "none", "nan"}


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and NaN cells."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def cell_to_text(value: Any) -> Optional[str]:
    """
    Render a raw cell as trimmed text, or None if blank.

    Spreadsheet readers turn numeric codes into floats:
    - 102.0 → "102"
    - "  BG100 " → "BG100"
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


def normalize_key(value: Any) -> str:
    """
    Normalize a value for key comparison.

    - "  Noir Délavé " → "noir delave"
    - "BG100" → "bg100"
    - None → ""

    Args:
        value: Raw cell or catalog value

    Returns:
        Case-folded ASCII-ish string with accents removed and inner
        whitespace collapsed
    """
    text = cell_to_text(value)
    if text is None:
        return ""

    # NFD decomposition separates base chars from accents
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")

    return _WHITESPACE.sub(" ", stripped).casefold().strip()


def is_placeholder_id(value: Optional[str]) -> bool:
    """True if an id cannot be trusted as a stable key."""
    if value is None:
        return True
    return value.strip().lower() in PLACEHOLDER_IDS
