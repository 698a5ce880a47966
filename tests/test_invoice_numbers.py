"""Tests for invoice number sequencing."""

import pytest

from services.invoice_numbers import (
    is_taken,
    lowest_free,
    next_sequential,
    parse_invoice_number,
)


class TestParseInvoiceNumber:
    @pytest.mark.parametrize("value,expected", [
        ("000042", 42),
        ("INV-000007", 7),
        ("inv-12", 12),
        (" 15 ", 15),
        ("A-100", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, value, expected):
        assert parse_invoice_number(value) == expected


class TestNextSequential:
    def test_first_number(self):
        assert next_sequential([], 6) == "000001"

    def test_highest_plus_one_ignores_gaps(self):
        assert next_sequential(["000001", "000005", None, "junk"], 6) == "000006"


class TestLowestFree:
    """Bulk invoices reuse the smallest unused number."""

    def test_fills_gap(self):
        assert lowest_free(["000001", "000002", "000004"], 6) == "000003"

    def test_prefixed_values_count_as_used(self):
        assert lowest_free(["INV-000001", "000002"], 6) == "000003"

    def test_empty(self):
        assert lowest_free([], 4) == "0001"


class TestIsTaken:
    def test_numeric_collision_across_formats(self):
        assert is_taken("7", ["INV-000007"])

    def test_literal_collision(self):
        assert is_taken("SPECIAL-A", ["SPECIAL-A"])

    def test_free(self):
        assert not is_taken("000003", ["000001", "000002"])
