"""Tests for shipping table, tax, totals, and delivery estimates."""
from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace_checkout.checkout.pricing import (
    calculate_totals,
    delivery_days,
    estimate_delivery,
    round2,
    shipping_cost,
)
from marketplace_checkout.checkout.schema import LineItem

from conftest import FIXED_NOW


class TestShippingTable:
    @pytest.mark.parametrize("method,cost,days", [
        ("standard", Decimal("5.99"), 5),
        ("express", Decimal("12.99"), 2),
        ("overnight", Decimal("24.99"), 1),
    ])
    def test_known_methods(self, method, cost, days):
        assert shipping_cost(method) == cost
        assert delivery_days(method) == days

    @pytest.mark.parametrize("method", ["drone", "", "EXPRESS", "same-day"])
    def test_unknown_method_falls_back_to_standard(self, method):
        assert shipping_cost(method) == Decimal("5.99")
        assert delivery_days(method) == 5

    def test_overnight_adds_one_calendar_day(self):
        assert estimate_delivery("overnight", FIXED_NOW) == FIXED_NOW + timedelta(days=1)

    def test_no_weekend_skipping(self):
        # FIXED_NOW is a Monday; standard lands on Saturday
        assert estimate_delivery("standard", FIXED_NOW).weekday() == 5


class TestTotals:
    def test_worked_example(self, line_items):
        totals = calculate_totals(line_items, "express")
        assert totals.subtotal == Decimal("55.50")
        assert totals.shipping_cost == Decimal("12.99")
        assert totals.tax == Decimal("4.44")
        assert totals.total == Decimal("72.93")

    @pytest.mark.parametrize("prices", [
        [("0.01", 1)],
        [("19.99", 3), ("4.05", 7)],
        [("1234.56", 2), ("0.99", 11), ("7.77", 1)],
        [("0.00", 5)],
    ])
    def test_total_is_sum_of_rounded_parts(self, prices):
        items = [
            LineItem(product_id=f"p{i}", unit_price=Decimal(p), quantity=q)
            for i, (p, q) in enumerate(prices)
        ]
        totals = calculate_totals(items, "standard")
        assert totals.tax == round2(totals.subtotal * Decimal("0.08"))
        assert totals.total == round2(totals.subtotal + totals.shipping_cost + totals.tax)

    def test_subtotal_rounds_half_up(self):
        items = [LineItem(product_id="p", unit_price=Decimal("0.125"), quantity=1)]
        totals = calculate_totals(items, "standard")
        assert totals.subtotal == Decimal("0.13")
        assert totals.tax == Decimal("0.01")
        assert totals.total == Decimal("6.13")

    def test_round2_half_up(self):
        assert round2(Decimal("2.345")) == Decimal("2.35")
        assert round2(Decimal("2.344")) == Decimal("2.34")

    def test_to_dict_uses_strings(self, line_items):
        d = calculate_totals(line_items, "overnight").to_dict()
        assert d == {"subtotal": "55.50", "shipping": "24.99", "tax": "4.44", "total": "84.93"}
