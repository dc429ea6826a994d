"""Wishlist store.

Saved products per browser session, persisted next to the cart under
`military-tees-wishlist:{session_id}`. Stored items use the same
camelCase keys and Decimal prices as cart lines.
"""

import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, MutableMapping, Optional

from storefront.cart.storage import LRUBackend
from storefront.db import RedisKeys, TTL, get_redis_sync, redis_configured
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import to_decimal, to_float

logger = get_logger(__name__)

MAX_MEMORY_WISHLISTS = 10000


def _optional_price(value) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


@dataclass
class WishlistItem:
    """Saved product."""

    id: str
    product_id: str
    name: str
    slug: str
    price: Decimal
    image: str
    category: str
    in_stock: bool
    sizes: List[str] = field(default_factory=list)
    original_price: Optional[Decimal] = None
    added_date: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "slug": self.slug,
            "price": to_float(self.price),
            "image": self.image,
            "category": self.category,
            "inStock": self.in_stock,
            "sizes": list(self.sizes),
            "originalPrice": None if self.original_price is None else to_float(self.original_price),
            "addedDate": self.added_date,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WishlistItem":
        """
        Raises:
            KeyError: a required key is missing
            TypeError, ArithmeticError: a price is unreadable
        """
        return cls(
            id=str(data["id"]),
            product_id=str(data["productId"]),
            name=str(data["name"]),
            slug=str(data.get("slug", "")),
            price=to_decimal(data["price"]),
            image=str(data.get("image", "")),
            category=str(data.get("category", "")),
            in_stock=bool(data.get("inStock", True)),
            sizes=[str(size) for size in data.get("sizes") or []],
            original_price=_optional_price(data.get("originalPrice")),
            added_date=str(data.get("addedDate", "")),
        )


class WishlistStore:
    """
    One item per product; order of insertion is kept.

    Reads from Redis on construction and writes through on every change,
    or uses `backend` (any mutable mapping of key to JSON text) instead.
    """

    def __init__(
        self,
        session_id: str,
        redis=None,
        backend: Optional[MutableMapping] = None,
    ):
        self.session_id = session_id
        self.key = RedisKeys.wishlist_key(session_id)
        self._redis = redis
        self._backend = backend
        self._items: List[WishlistItem] = self._load()

    @property
    def redis(self):
        if self._redis is None:
            self._redis = get_redis_sync()
        return self._redis

    @property
    def items(self) -> List[WishlistItem]:
        return list(self._items)

    @property
    def total_items(self) -> int:
        return len(self._items)

    def is_in_wishlist(self, product_id: str) -> bool:
        return any(item.product_id == product_id for item in self._items)

    def add_item(
        self,
        product_id: str,
        name: str,
        slug: str,
        price,
        image: str,
        category: str,
        in_stock: bool,
        sizes: Optional[List[str]] = None,
        original_price=None,
    ) -> bool:
        """Save a product. Returns False if it was already saved."""
        if self.is_in_wishlist(product_id):
            return False

        self._items.append(WishlistItem(
            id=f"wishlist-{product_id}",
            product_id=product_id,
            name=name,
            slug=slug,
            price=to_decimal(price),
            image=image,
            category=category,
            in_stock=in_stock,
            sizes=list(sizes or []),
            original_price=_optional_price(original_price),
            added_date=date.today().isoformat(),
        ))
        self._save()
        return True

    def remove_item(self, product_id: str) -> None:
        self._items = [item for item in self._items if item.product_id != product_id]
        self._save()

    def clear_wishlist(self) -> None:
        self._items = []
        self._save()

    def to_dict(self) -> dict:
        return {
            "items": [item.to_dict() for item in self._items],
            "totalItems": self.total_items,
        }

    def _read(self) -> Optional[str]:
        if self._backend is not None:
            return self._backend.get(self.key)
        return self.redis.get(self.key)

    def _load(self) -> List[WishlistItem]:
        try:
            text = self._read()
            if not text:
                return []
            data = json.loads(text)
            return [WishlistItem.from_dict(raw) for raw in data.get("items", [])]
        except (ValueError, KeyError, TypeError, AttributeError, ArithmeticError) as e:
            logger.warning(
                "Dropping unreadable wishlist for session %s: %s",
                sanitize_id_for_logging(self.session_id),
                e,
            )
            return []
        except Exception as e:
            logger.error("Failed to read wishlist: %s", type(e).__name__)
            return []

    def _save(self) -> None:
        text = json.dumps(self.to_dict())
        if self._backend is not None:
            self._backend[self.key] = text
            return
        try:
            self.redis.set(self.key, text, ex=TTL.WISHLIST)
        except Exception as e:
            logger.error("Failed to save wishlist: %s", type(e).__name__)


_memory_wishlists = LRUBackend(maxsize=MAX_MEMORY_WISHLISTS)


def get_wishlist_store(session_id: str) -> WishlistStore:
    """Wishlist for a session, loaded fresh from Upstash or the bounded in-process fallback."""
    if redis_configured():
        return WishlistStore(session_id)
    return WishlistStore(session_id, backend=_memory_wishlists)
