"""
Cart persistence.

The cart is a convenience cache of purchase intent, not a record of
orders: writes are best-effort and an unreadable snapshot means an
empty cart.
"""
import json
import threading
from collections import OrderedDict
from typing import Iterator, List, MutableMapping, Optional, Protocol

from storefront.db import get_redis_sync, RedisKeys, TTL
from storefront.errors import CartSignal
from storefront.logging import get_logger, sanitize_id_for_logging

from .models import CartItem, CartSnapshot

logger = get_logger(__name__)

CART_STORAGE_KEY = "military-tees-cart"

# Anything CartItem.from_dict or json.loads can raise on a bad payload
_MALFORMED_ERRORS = (ValueError, KeyError, TypeError, ArithmeticError)


class MalformedCartError(ValueError):
    """Stored cart payload does not have the expected shape."""


def serialize_cart(snapshot: CartSnapshot) -> str:
    """Encode the persisted part of a snapshot as JSON text."""
    return json.dumps(snapshot.persisted_dict())


def deserialize_cart(text: str) -> List[CartItem]:
    """
    Decode stored JSON text into cart items.

    Stored totals are ignored; the store recomputes them from items.

    Raises:
        MalformedCartError: payload is not a `{"items": [...]}` object
            or an item is unreadable
    """
    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise TypeError("cart payload must be an object")
        raw_items = data["items"]
        if not isinstance(raw_items, list):
            raise TypeError("items must be a list")
        return [CartItem.from_dict(raw) for raw in raw_items]
    except _MALFORMED_ERRORS as e:
        raise MalformedCartError(str(e)) from e


class LRUBackend(MutableMapping):
    """
    Thread-safe dict that forgets its least recently used keys.

    Stands in for Redis when Upstash is not configured, and holds the
    per-session drawer flag, so neither grows with every new session.
    """

    def __init__(self, maxsize: int = 10000):
        self.maxsize = maxsize
        self._data: "OrderedDict[str, object]" = OrderedDict()
        self._lock = threading.Lock()

    def __getitem__(self, key):
        with self._lock:
            value = self._data[key]
            self._data.move_to_end(key)
            return value

    def __setitem__(self, key, value):
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self.maxsize:
                self._data.popitem(last=False)

    def __delitem__(self, key):
        with self._lock:
            del self._data[key]

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)


class CartStorage(Protocol):
    """Durable storage for one cart."""

    def load(self) -> List[CartItem]:
        ...

    def save(self, snapshot: CartSnapshot) -> None:
        ...


class MemoryCartStorage:
    """
    In-process storage.

    Used in tests and when Upstash is not configured. Several instances can
    share one `backend` dict to simulate a shared store.
    """

    def __init__(self, key: str = CART_STORAGE_KEY, backend: Optional[MutableMapping[str, str]] = None):
        self.key = key
        self.backend = backend if backend is not None else {}

    def load(self) -> List[CartItem]:
        text = self.backend.get(self.key)
        if not text:
            return []
        try:
            return deserialize_cart(text)
        except MalformedCartError as e:
            logger.warning("%s: dropping stored cart: %s", CartSignal.MALFORMED_PERSISTED_STATE.value, e)
            self.backend.pop(self.key, None)
            return []

    def save(self, snapshot: CartSnapshot) -> None:
        self.backend[self.key] = serialize_cart(snapshot)


class RedisCartStorage:
    """
    Cart snapshot in Upstash Redis under `military-tees-cart:{session_id}`.

    Every save refreshes the TTL, so an abandoned cart expires 30 days
    after its last change.
    """

    def __init__(self, session_id: str, redis=None, ttl: int = TTL.CART):
        self.session_id = session_id
        self.key = RedisKeys.cart_key(session_id)
        self.ttl = ttl
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis_sync()
        return self._redis

    def load(self) -> List[CartItem]:
        session = sanitize_id_for_logging(self.session_id)
        try:
            text = self.redis.get(self.key)
        except Exception as e:
            logger.error("Failed to read cart for session %s: %s", session, type(e).__name__)
            return []

        if not text:
            return []

        try:
            return deserialize_cart(text)
        except MalformedCartError as e:
            logger.warning(
                "%s for session %s: %s",
                CartSignal.MALFORMED_PERSISTED_STATE.value,
                session,
                e,
            )
            self._delete_quietly()
            return []

    def save(self, snapshot: CartSnapshot) -> None:
        try:
            self.redis.set(self.key, serialize_cart(snapshot), ex=self.ttl)
        except Exception as e:
            logger.error(
                "Failed to save cart for session %s: %s",
                sanitize_id_for_logging(self.session_id),
                type(e).__name__,
            )

    def _delete_quietly(self) -> None:
        try:
            self.redis.delete(self.key)
        except Exception as e:
            logger.error("Failed to delete corrupt cart: %s", type(e).__name__)
