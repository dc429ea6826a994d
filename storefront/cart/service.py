"""Per-session cart stores."""
import secrets
from typing import Callable, MutableMapping, Optional

from storefront.db import redis_configured
from storefront.logging import get_logger

from .storage import CartStorage, LRUBackend, MemoryCartStorage, RedisCartStorage
from .store import CartStore

logger = get_logger(__name__)

StorageFactory = Callable[[str], CartStorage]

# Sessions whose drawer state is remembered per process
MAX_TRACKED_SESSIONS = 10000


def new_session_id() -> str:
    """Issue an opaque cart session id."""
    return secrets.token_urlsafe(24)


def default_storage_factory() -> StorageFactory:
    """
    Redis when Upstash is configured, otherwise a bounded process-local dict.

    The in-memory fallback keeps local development working without
    credentials; carts then live only as long as the process.
    """
    if redis_configured():
        return RedisCartStorage

    logger.warning("Upstash Redis not configured, carts are kept in memory")
    shared = LRUBackend(MAX_TRACKED_SESSIONS)
    return lambda session_id: MemoryCartStorage(key=session_id, backend=shared)


class CartSessionManager:
    """
    Hands out a CartStore for a browser session.

    Every call builds the store from storage, so a cart cleared by another
    worker (checkout callback, Stripe webhook) is seen on the next request.
    Only the drawer flag, which is never persisted, is remembered here.
    """

    def __init__(
        self,
        storage_factory: Optional[StorageFactory] = None,
        open_flags: Optional[MutableMapping[str, bool]] = None,
    ):
        self._storage_factory = storage_factory
        self._open_flags = open_flags if open_flags is not None else LRUBackend(MAX_TRACKED_SESSIONS)

    @property
    def storage_factory(self) -> StorageFactory:
        if self._storage_factory is None:
            self._storage_factory = default_storage_factory()
        return self._storage_factory

    def get_store(self, session_id: str) -> CartStore:
        store = CartStore(
            self.storage_factory(session_id),
            is_open=self._open_flags.get(session_id, False),
        )
        store.subscribe(lambda snapshot: self._remember_open(session_id, snapshot.is_open))
        return store

    def _remember_open(self, session_id: str, is_open: bool) -> None:
        if is_open:
            self._open_flags[session_id] = True
        else:
            self._open_flags.pop(session_id, None)


# Singleton instance
_cart_session_manager: Optional[CartSessionManager] = None


def get_cart_session_manager() -> CartSessionManager:
    """Get CartSessionManager singleton."""
    global _cart_session_manager
    if _cart_session_manager is None:
        _cart_session_manager = CartSessionManager()
    return _cart_session_manager
