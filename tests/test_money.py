"""Tests for money utilities"""
import pytest
from decimal import Decimal

from storefront.services.money import (
    format_money,
    multiply,
    round_money,
    to_decimal,
    to_float,
    to_pence,
)


@pytest.mark.parametrize("value,expected", [
    (24.99, Decimal("24.99")),
    ("39.50", Decimal("39.50")),
    (5, Decimal("5")),
    (None, Decimal("0")),
    ("abc", Decimal("0")),
    (True, Decimal("0")),
])
def test_to_decimal(value, expected):
    assert to_decimal(value) == expected


def test_round_money_half_up():
    assert round_money("2.345") == Decimal("2.35")
    assert round_money(Decimal("249.9")) == Decimal("249.90")


def test_pence_conversion():
    assert to_pence(24.99) == 2499
    assert to_pence("4.995") == 500


def test_format_money():
    assert format_money(Decimal("1249.9")) == "£1,249.90"
    assert format_money(0) == "£0.00"
    assert format_money(10, "USD") == "$10.00"
    assert format_money(10, "PLN") == "10.00 PLN"


def test_multiply_and_float():
    assert multiply("24.99", 3) == Decimal("74.97")
    assert to_float(Decimal("24.99")) == 24.99
