"""
Cart API Router

Session cart operations for the cart icon, drawer and checkout summary.
Handlers are plain functions so FastAPI runs the blocking Upstash calls
in its threadpool.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException

from storefront.cart import CartStore
from storefront.catalog import CatalogService, apply_revalidation
from storefront.errors import ERROR_PRODUCT_OUT_OF_STOCK
from storefront.models import AddItemRequest, UpdateQuantityRequest
from storefront.services.money import format_money

from .deps import get_cart_store, get_catalog_service

router = APIRouter(prefix="/api/cart", tags=["cart"])


def cart_response(store: CartStore) -> dict:
    data = store.snapshot().to_dict()
    data["totalPriceFormatted"] = format_money(store.total_price)
    return data


@router.get("")
def get_cart(store: CartStore = Depends(get_cart_store)):
    """Current cart snapshot"""
    return cart_response(store)


@router.post("/items")
def add_item(request: AddItemRequest, store: CartStore = Depends(get_cart_store)):
    """Add one unit of a variant (409 when it is out of stock)"""
    result = store.add_item(request.to_candidate())
    if not result:
        raise HTTPException(
            status_code=409,
            detail={"error": result.reason.value, "message": ERROR_PRODUCT_OUT_OF_STOCK},
        )

    data = cart_response(store)
    data["item"] = result.item.to_dict()
    data["atLimit"] = result.at_limit
    return data


@router.patch("/items/{item_id}")
def update_quantity(
    item_id: str,
    request: UpdateQuantityRequest,
    store: CartStore = Depends(get_cart_store),
):
    store.update_quantity(item_id, request.quantity)
    return cart_response(store)


@router.delete("/items/{item_id}")
def remove_item(item_id: str, store: CartStore = Depends(get_cart_store)):
    store.remove_item(item_id)
    return cart_response(store)


@router.delete("")
def clear_cart(store: CartStore = Depends(get_cart_store)):
    store.clear_cart()
    return cart_response(store)


@router.post("/open")
def open_cart(store: CartStore = Depends(get_cart_store)):
    store.open_cart()
    return cart_response(store)


@router.post("/close")
def close_cart(store: CartStore = Depends(get_cart_store)):
    store.close_cart()
    return cart_response(store)


@router.post("/toggle")
def toggle_cart(store: CartStore = Depends(get_cart_store)):
    store.toggle_cart()
    return cart_response(store)


@router.post("/revalidate")
async def revalidate_cart(
    store: CartStore = Depends(get_cart_store),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Check lines against the catalog and clear the ones that can't be bought"""
    report = await catalog.revalidate(store.items)
    # Redis writes are blocking; keep them off the event loop
    changed = await asyncio.to_thread(apply_revalidation, store, report)

    data = cart_response(store)
    data["revalidation"] = report.to_dict()
    data["changed"] = changed
    return data
