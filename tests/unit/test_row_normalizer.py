"""
Unit tests for feed row normalization.

Run: pytest tests/unit/test_row_normalizer.py -v
"""

import math
from decimal import Decimal

import pytest

from services.row_normalizer import (
    MISSING_KEY_MESSAGE,
    normalize_row,
    parse_number,
    parse_price,
    parse_quantity,
    resolve_aliases,
)
from exceptions import RowValidationError


class TestParseNumber:
    """Tests for parse_number()"""

    def test_comma_as_decimal_when_rightmost(self):
        assert parse_number("₪1.234,50", decimal_field=True) == Decimal("1234.50")

    def test_dot_as_decimal_when_rightmost(self):
        assert parse_number("1,234.50", decimal_field=True) == Decimal("1234.50")

    def test_lone_comma_is_decimal_for_prices(self):
        assert parse_number("12,5", decimal_field=True) == Decimal("12.5")

    def test_lone_comma_is_thousands_for_quantities(self):
        assert parse_number("1,250", decimal_field=False) == Decimal("1250")

    def test_repeated_dots_are_thousands(self):
        assert parse_number("1.234.567") == Decimal("1234567")

    def test_unparseable_is_zero(self):
        assert parse_number("abc") == Decimal("0")
        assert parse_number("") == Decimal("0")
        assert parse_number(None) == Decimal("0")
        assert parse_number(math.nan) == Decimal("0")

    def test_native_numbers_used_as_is(self):
        assert parse_number(7) == Decimal("7")
        assert parse_number(2.5) == Decimal("2.5")

    def test_infinite_cells_are_zero(self):
        assert parse_number(math.inf) == Decimal("0")
        assert parse_number(-math.inf, decimal_field=True) == Decimal("0")
        assert parse_number("inf") == Decimal("0")


class TestParseQuantityAndPrice:
    """Tests for parse_quantity() and parse_price()"""

    def test_quantity_rounds_half_up(self):
        assert parse_quantity("2.5") == 3
        assert parse_quantity("2.4") == 2

    def test_negative_quantity_clamps_to_zero(self):
        assert parse_quantity("-3") == 0

    def test_spreadsheet_float_quantity(self):
        assert parse_quantity(4.0) == 4

    def test_price_rounds_to_cents(self):
        assert parse_price("19.999") == Decimal("20.00")
        assert parse_price("99,95") == Decimal("99.95")

    def test_negative_price_clamps_to_zero(self):
        assert parse_price("-5") == Decimal("0.00")

    def test_out_of_range_float_is_zero(self):
        assert parse_quantity(1e40) == 0
        assert parse_price(1e40) == Decimal("0.00")


class TestResolveAliases:
    """Tests for resolve_aliases()"""

    def test_headers_match_case_insensitively(self):
        resolved = resolve_aliases({"MODELREF": "BG100", " Colour ": "Black"})

        assert resolved["model_ref"] == "BG100"
        assert resolved["color"] == "Black"

    def test_first_non_blank_alias_wins(self):
        resolved = resolve_aliases({"modelRef": "", "ref": "BG9"})

        assert resolved["model_ref"] == "BG9"

    def test_hebrew_headers(self):
        resolved = resolve_aliases({"מק״ט": "BG100", "צבע": "שחור", "מלאי": "4"})

        assert resolved == {"model_ref": "BG100", "color": "שחור", "stock_quantity": "4"}

    def test_blank_fields_are_left_out(self):
        resolved = resolve_aliases({"modelRef": "BG100", "priceRetail": "  "})

        assert "price_retail" not in resolved


class TestNormalizeRow:
    """Tests for normalize_row()"""

    def test_full_row(self):
        record = normalize_row(
            {
                "id": "BG100-BLK",
                "modelRef": " BG100 ",
                "color": "Black",
                "size": "M",
                "stockQuantity": "12",
                "priceRetail": "199,90",
                "priceWholesale": "99.95",
                "productName": "Tote bag",
            },
            row_number=2,
        )

        assert record.row_number == 2
        assert record.id == "BG100-BLK"
        assert record.model_ref == "BG100"
        assert record.color == "Black"
        assert record.size == "M"
        assert record.stock_quantity == 12
        assert record.price_retail == Decimal("199.90")
        assert record.price_wholesale == Decimal("99.95")
        assert record.product_name == "Tote bag"

    def test_absent_fields_are_none(self):
        record = normalize_row({"modelRef": "BG100", "color": "Black"}, row_number=3)

        assert record.stock_quantity is None
        assert record.price_retail is None
        assert record.size is None
        assert record.id is None

    def test_spreadsheet_numeric_id_keeps_no_decimal(self):
        record = normalize_row({"id": 102.0, "color": "Red"}, row_number=4)

        assert record.id == "102"
        assert record.model_ref == "102"

    def test_row_without_color_is_accepted_for_lookup(self):
        record = normalize_row({"modelRef": "BG100"}, row_number=5)

        assert record.color is None

    def test_missing_reference_raises(self):
        with pytest.raises(RowValidationError) as exc_info:
            normalize_row({"color": "Red", "stock": "3"}, row_number=6)

        assert exc_info.value.row_number == 6
        assert exc_info.value.message == MISSING_KEY_MESSAGE

    def test_raw_row_is_kept(self):
        row = {"modelRef": "BG100", "color": "Black", "notes": "x"}
        record = normalize_row(row, row_number=7)

        assert record.raw == row

    def test_infinite_numeric_cells_default_to_zero(self):
        record = normalize_row(
            {
                "modelRef": "BG1",
                "color": "Red",
                "stockQuantity": float("inf"),
                "priceRetail": float("-inf"),
            },
            row_number=2,
        )

        assert record.stock_quantity == 0
        assert record.price_retail == Decimal("0.00")
