"""Cart package: models, totals, storage, store and session facade."""
from .models import CartCandidate, CartItem, CartSnapshot, make_item_id
from .totals import CartTotals, compute_totals
from .storage import (
    CART_STORAGE_KEY,
    CartStorage,
    LRUBackend,
    MalformedCartError,
    MemoryCartStorage,
    RedisCartStorage,
    deserialize_cart,
    serialize_cart,
)
from .store import AddItemResult, CartStore
from .service import CartSessionManager, get_cart_session_manager, new_session_id

__all__ = [
    "CartCandidate",
    "CartItem",
    "CartSnapshot",
    "make_item_id",
    "CartTotals",
    "compute_totals",
    "CART_STORAGE_KEY",
    "CartStorage",
    "LRUBackend",
    "MalformedCartError",
    "MemoryCartStorage",
    "RedisCartStorage",
    "deserialize_cart",
    "serialize_cart",
    "AddItemResult",
    "CartStore",
    "CartSessionManager",
    "get_cart_session_manager",
    "new_session_id",
]
