"""
Cart store.

Holds the canonical list of cart items for one shopper, derives the
aggregates from it, persists it and notifies subscribers. All operations
are synchronous and never raise; an add that cannot be honoured returns
an `AddItemResult` carrying the reason.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from storefront.errors import CartSignal
from storefront.logging import get_logger, sanitize_string_for_logging

from .models import CartCandidate, CartItem, CartSnapshot, make_item_id
from .storage import CartStorage, MemoryCartStorage
from .totals import compute_totals

logger = get_logger(__name__)

Listener = Callable[[CartSnapshot], None]


@dataclass(frozen=True)
class AddItemResult:
    """Outcome of `CartStore.add_item`."""
    ok: bool
    item: Optional[CartItem] = None
    reason: Optional[CartSignal] = None
    at_limit: bool = False  # quantity was already at the stock ceiling

    def __bool__(self) -> bool:
        return self.ok


class CartStore:
    """
    Single owner of a cart's items.

    Aggregates are recomputed after every change to `items` and the item
    list is written to storage; `is_open` is UI state and stays in memory.
    """

    def __init__(self, storage: Optional[CartStorage] = None, is_open: bool = False):
        self._storage = storage if storage is not None else MemoryCartStorage()
        self._listeners: List[Listener] = []
        self._is_open = is_open
        self._items: List[CartItem] = _restore(self._storage.load())
        self._total_items, self._total_price = compute_totals(self._items)

    # ---------------------------------------------------------------
    # Readers
    # ---------------------------------------------------------------

    @property
    def items(self) -> Tuple[CartItem, ...]:
        return tuple(item.copy() for item in self._items)

    @property
    def total_items(self) -> int:
        return self._total_items

    @property
    def total_price(self) -> Decimal:
        return self._total_price

    @property
    def is_open(self) -> bool:
        return self._is_open

    def get_item(self, item_id: str) -> Optional[CartItem]:
        index = self._index_of(item_id)
        return self._items[index].copy() if index is not None else None

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(
            items=self.items,
            is_open=self._is_open,
            total_items=self._total_items,
            total_price=self._total_price,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------------------------------------------
    # Item operations
    # ---------------------------------------------------------------

    def add_item(self, candidate: CartCandidate) -> AddItemResult:
        """
        Add one unit of a variant.

        An existing line goes up by one, capped at the ceiling it was
        added with. A new line needs at least one unit in stock, otherwise
        nothing changes and the result carries OUT_OF_STOCK. A successful
        add opens the cart.
        """
        index = self._find(candidate.product_id, candidate.variant_id)

        if index is not None:
            existing = self._items[index]
            quantity = min(existing.quantity + 1, existing.max_quantity)
            at_limit = quantity == existing.quantity
            item = existing.copy(quantity=quantity)
            self._items[index] = item
        else:
            if candidate.max_quantity < 1:
                logger.info(
                    "Rejected add of out-of-stock variant %s",
                    sanitize_string_for_logging(candidate.variant_id),
                )
                return AddItemResult(ok=False, reason=CartSignal.OUT_OF_STOCK)
            at_limit = False
            item = CartItem.from_candidate(candidate)
            self._items.append(item)

        self._is_open = True
        self._commit()
        return AddItemResult(ok=True, item=item.copy(), at_limit=at_limit)

    def remove_item(self, item_id: str) -> None:
        """Remove a line. Unknown ids are ignored."""
        self._items = [item for item in self._items if item.id != item_id]
        self._commit()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """
        Set a line's quantity, clamped to [1, max_quantity].

        Zero or less removes the line; unknown ids are ignored.
        """
        if quantity <= 0:
            self.remove_item(item_id)
            return

        index = self._index_of(item_id)
        if index is None:
            return

        item = self._items[index]
        if item.max_quantity < 1:
            self.remove_item(item_id)
            return

        self._items[index] = item.copy(quantity=max(1, min(quantity, item.max_quantity)))
        self._commit()

    def clear_cart(self) -> None:
        """Empty the cart and close it."""
        self._items = []
        self._is_open = False
        self._commit()

    # ---------------------------------------------------------------
    # UI flag
    # ---------------------------------------------------------------

    def open_cart(self) -> None:
        self._set_open(True)

    def close_cart(self) -> None:
        self._set_open(False)

    def toggle_cart(self) -> None:
        self._set_open(not self._is_open)

    # ---------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------

    def _find(self, product_id: str, variant_id: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.product_id == product_id and item.variant_id == variant_id:
                return index
        return None

    def _index_of(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def _set_open(self, value: bool) -> None:
        self._is_open = value
        self._notify()

    def _commit(self) -> None:
        self._total_items, self._total_price = compute_totals(self._items)
        snapshot = self.snapshot()
        self._storage.save(snapshot)
        self._notify(snapshot)

    def _notify(self, snapshot: Optional[CartSnapshot] = None) -> None:
        if not self._listeners:
            return
        snapshot = snapshot or self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.error("Cart listener failed", exc_info=True)


def _restore(items: List[CartItem]) -> List[CartItem]:
    """
    Bring a loaded item list back in line with the cart invariants.

    One line per variant (first wins), no line without stock, quantities
    within [1, max_quantity].
    """
    restored: List[CartItem] = []
    seen = set()
    dropped = 0

    for item in items:
        key = (item.product_id, item.variant_id)
        if key in seen or item.max_quantity < 1 or item.quantity < 1:
            dropped += 1
            continue
        seen.add(key)
        restored.append(item.copy(
            id=make_item_id(item.product_id, item.variant_id),
            quantity=min(item.quantity, item.max_quantity),
        ))

    if dropped:
        logger.warning("Dropped %d invalid line(s) from stored cart", dropped)
    return restored
