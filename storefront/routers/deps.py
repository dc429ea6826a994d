"""
Shared Dependencies for Routers

Resolves the browser's cart session and hands routers their store and
services. Tests replace these through `app.dependency_overrides`.
"""

from fastapi import Depends, HTTPException, Request, Response

from storefront.cart import CartStore, get_cart_session_manager, new_session_id
from storefront.catalog import CatalogService
from storefront.checkout import CheckoutService
from storefront.db import get_supabase
from storefront.wishlist import WishlistStore, get_wishlist_store

from .session import read_session_id, set_session_cookie


def get_cart_session(request: Request, response: Response) -> str:
    """
    Session id resolved by CartSessionMiddleware.

    Without the middleware (a bare router mounted in tests) the id is
    read from the request here, and a new one is issued on the success
    response if neither header nor cookie is usable.
    """
    session_id = getattr(request.state, "cart_session", None)
    if session_id:
        return session_id

    session_id = read_session_id(request)
    if session_id:
        return session_id

    session_id = new_session_id()
    set_session_cookie(response, session_id)
    return session_id


def get_cart_store(session_id: str = Depends(get_cart_session)) -> CartStore:
    return get_cart_session_manager().get_store(session_id)


def get_wishlist(session_id: str = Depends(get_cart_session)) -> WishlistStore:
    return get_wishlist_store(session_id)


async def get_catalog_service() -> CatalogService:
    try:
        client = await get_supabase()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=f"Catalog unavailable: {e}")
    return CatalogService(client)


def get_checkout_service(catalog: CatalogService = Depends(get_catalog_service)) -> CheckoutService:
    return CheckoutService(catalog)
