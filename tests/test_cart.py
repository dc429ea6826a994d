"""
Tests for cart models and totals
"""

import pytest
from decimal import Decimal

from storefront.cart import CartCandidate, CartItem, CartSnapshot, compute_totals, make_item_id


def make_item(variant_id="var-1", price="24.99", quantity=1, max_quantity=10):
    return CartItem(
        id=make_item_id("prod-1", variant_id),
        product_id="prod-1",
        variant_id=variant_id,
        name="Royal Marines Tee",
        price=price,
        image="/images/rm.jpg",
        quantity=quantity,
        max_quantity=max_quantity,
        size="L",
        color="Green",
    )


class TestCartItem:
    """Tests for CartItem dataclass."""

    def test_item_id_is_product_and_variant(self):
        """Test identity is derived from product and variant."""
        assert make_item_id("prod-1", "var-9") == "prod-1-var-9"

    def test_candidate_item_id(self, tee_v1):
        """Test candidate exposes the id it will get in the cart."""
        assert tee_v1.item_id == "prod-para-var-m-olive"

    def test_price_normalized_to_decimal(self):
        """Test float prices become exact decimals."""
        item = make_item(price=24.99)
        assert item.price == Decimal("24.99")

    def test_line_total(self):
        """Test price for all units of a line."""
        item = make_item(price="24.99", quantity=3)
        assert item.line_total == Decimal("74.97")

    def test_from_candidate_starts_at_one(self, tee_v1):
        """Test a new line holds a single unit."""
        item = CartItem.from_candidate(tee_v1)
        assert item.quantity == 1
        assert item.max_quantity == 10
        assert item.id == tee_v1.item_id

    def test_to_dict_uses_camel_case(self):
        """Test serialization to the stored shape."""
        data = make_item(quantity=2).to_dict()
        assert data["productId"] == "prod-1"
        assert data["variantId"] == "var-1"
        assert data["maxQuantity"] == 10
        assert data["price"] == 24.99
        assert data["quantity"] == 2

    def test_from_dict(self):
        """Test deserialization from the stored shape."""
        data = {
            "id": "prod-1-var-1",
            "productId": "prod-1",
            "variantId": "var-1",
            "name": "Royal Marines Tee",
            "price": 24.99,
            "image": "/images/rm.jpg",
            "size": "L",
            "color": "Green",
            "quantity": 2,
            "maxQuantity": 5,
        }

        item = CartItem.from_dict(data)
        assert item == make_item(quantity=2, max_quantity=5)

    def test_from_dict_without_optional_fields(self):
        """Test size, color, image and id are optional in stored data."""
        item = CartItem.from_dict({
            "productId": "prod-1",
            "variantId": "var-1",
            "name": "Tee",
            "price": 10,
            "quantity": 1,
            "maxQuantity": 1,
        })
        assert item.id == "prod-1-var-1"
        assert item.size is None
        assert item.image == ""

    @pytest.mark.parametrize("field,value", [
        ("quantity", "2"),
        ("maxQuantity", None),
        ("price", "abc"),
        ("price", -1),
        ("productId", ""),
    ])
    def test_from_dict_rejects_bad_fields(self, field, value):
        """Test malformed stored items are refused."""
        data = make_item().to_dict()
        data[field] = value
        with pytest.raises((ValueError, TypeError, ArithmeticError)):
            CartItem.from_dict(data)

    def test_from_dict_missing_key(self):
        """Test a missing required key raises KeyError."""
        data = make_item().to_dict()
        del data["variantId"]
        with pytest.raises(KeyError):
            CartItem.from_dict(data)


class TestTotals:
    """Tests for compute_totals."""

    def test_empty(self):
        """Test totals of an empty cart."""
        totals = compute_totals([])
        assert totals.total_items == 0
        assert totals.total_price == Decimal("0")

    def test_multiple_lines(self):
        """Test totals across lines."""
        items = [
            make_item("var-1", price="24.99", quantity=2),
            make_item("var-2", price="39.50", quantity=1),
        ]

        totals = compute_totals(items)
        assert totals.total_items == 3
        assert totals.total_price == Decimal("89.48")

    def test_no_float_drift(self):
        """Test ten lines of 0.10 add up to exactly 1.00."""
        items = [make_item(f"var-{i}", price=0.1) for i in range(10)]
        assert compute_totals(items).total_price == Decimal("1.00")


class TestCartSnapshot:
    """Tests for CartSnapshot."""

    def test_persisted_dict_excludes_is_open(self):
        """Test the UI flag never reaches storage."""
        snapshot = CartSnapshot(items=(make_item(),), is_open=True, total_items=1, total_price=Decimal("24.99"))

        persisted = snapshot.persisted_dict()
        assert "isOpen" not in persisted
        assert persisted["totalItems"] == 1
        assert persisted["totalPrice"] == 24.99

    def test_to_dict_includes_is_open(self):
        """Test API shape carries the UI flag."""
        snapshot = CartSnapshot(is_open=True)
        assert snapshot.to_dict()["isOpen"] is True
        assert snapshot.is_empty
