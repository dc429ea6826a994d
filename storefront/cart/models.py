"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Optional, Tuple

from storefront.services.money import to_decimal, round_money, multiply, to_float


def make_item_id(product_id: str, variant_id: str) -> str:
    """Stable cart line identity for a product variant."""
    return f"{product_id}-{variant_id}"


@dataclass
class CartCandidate:
    """
    A variant the customer wants to add, before it has a cart identity.

    `price` and `max_quantity` are whatever the product page showed;
    they become the item's snapshot on first add.
    """
    product_id: str
    variant_id: str
    name: str
    price: Decimal
    image: str
    max_quantity: int
    size: Optional[str] = None
    color: Optional[str] = None

    def __post_init__(self):
        self.price = to_decimal(self.price)

    @property
    def item_id(self) -> str:
        return make_item_id(self.product_id, self.variant_id)


@dataclass
class CartItem:
    """One product variant in the cart."""
    id: str
    product_id: str
    variant_id: str
    name: str
    price: Decimal
    image: str
    quantity: int
    max_quantity: int  # Stock ceiling at add-time
    size: Optional[str] = None
    color: Optional[str] = None

    def __post_init__(self):
        self.price = to_decimal(self.price)

    @classmethod
    def from_candidate(cls, candidate: CartCandidate, quantity: int = 1) -> "CartItem":
        return cls(
            id=candidate.item_id,
            product_id=candidate.product_id,
            variant_id=candidate.variant_id,
            name=candidate.name,
            price=candidate.price,
            image=candidate.image,
            quantity=quantity,
            max_quantity=candidate.max_quantity,
            size=candidate.size,
            color=candidate.color,
        )

    @property
    def line_total(self) -> Decimal:
        """Price for all units of this line."""
        return round_money(multiply(self.price, self.quantity))

    def copy(self, **changes) -> "CartItem":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to the persisted (camelCase) shape."""
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "name": self.name,
            "price": to_float(self.price),
            "image": self.image,
            "size": self.size,
            "color": self.color,
            "quantity": self.quantity,
            "maxQuantity": self.max_quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        """
        Create from the persisted shape.

        Raises KeyError, TypeError or ValueError when the payload does not
        look like a cart item.
        """
        if not isinstance(data, dict):
            raise TypeError(f"cart item must be an object, got {type(data).__name__}")

        product_id = _require_str(data, "productId")
        variant_id = _require_str(data, "variantId")
        price = data["price"]
        if isinstance(price, bool) or not isinstance(price, (int, float, str)):
            raise TypeError("price must be a number")
        price = Decimal(str(price))
        if not price.is_finite() or price < 0:
            raise ValueError("price must be a non-negative number")

        return cls(
            id=data.get("id") or make_item_id(product_id, variant_id),
            product_id=product_id,
            variant_id=variant_id,
            name=_require_str(data, "name"),
            price=price,
            image=data.get("image") or "",
            quantity=_require_int(data, "quantity"),
            max_quantity=_require_int(data, "maxQuantity"),
            size=data.get("size"),
            color=data.get("color"),
        )


def _require_str(data: dict, key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _require_int(data: dict, key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer")
    return value


@dataclass(frozen=True)
class CartSnapshot:
    """Read-only view of the cart handed to subscribers and the API."""
    items: Tuple[CartItem, ...] = field(default_factory=tuple)
    is_open: bool = False
    total_items: int = 0
    total_price: Decimal = Decimal("0.00")

    @property
    def is_empty(self) -> bool:
        return not self.items

    def persisted_dict(self) -> dict:
        """Storage shape. `isOpen` is UI state and never stored."""
        return {
            "items": [item.to_dict() for item in self.items],
            "totalItems": self.total_items,
            "totalPrice": to_float(self.total_price),
        }

    def to_dict(self) -> dict:
        data = self.persisted_dict()
        data["isOpen"] = self.is_open
        return data
