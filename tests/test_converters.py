"""Tests for loose value conversion."""

import pytest

from tirematch.utils.converters import (
    digits_only,
    optional_float,
    optional_str,
    safe_float,
    safe_int,
)


class TestSafeNumbers:
    @pytest.mark.parametrize(
        "val, expected",
        [("228.00", 228.0), (4, 4.0), (None, 0.0), ("", 0.0), ("n/a", 0.0), ([1], 0.0)],
    )
    def test_safe_float(self, val, expected):
        assert safe_float(val) == expected

    def test_safe_float_default(self):
        assert safe_float("n/a", default=-1.0) == -1.0

    @pytest.mark.parametrize("val, expected", [("4", 4), ("4.0", 4), (3.7, 3), (None, 0), ("x", 0)])
    def test_safe_int(self, val, expected):
        assert safe_int(val) == expected


class TestOptionalValues:
    def test_zero_coordinate_is_kept(self):
        assert optional_float(0) == 0.0
        assert optional_float("0.0") == 0.0

    @pytest.mark.parametrize("val", [None, "", "north", {}])
    def test_missing_coordinate(self, val):
        assert optional_float(val) is None

    def test_optional_str(self):
        assert optional_str(" Laval ") == "Laval"
        assert optional_str(42) == "42"
        assert optional_str("  ") is None
        assert optional_str(None) is None


class TestDigitsOnly:
    def test_shopify_gid(self):
        assert digits_only("gid://shopify/ProductVariant/42") == "42"

    def test_plain_id(self):
        assert digits_only("101") == "101"
