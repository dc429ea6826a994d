"""
Wishlist API Router
"""

from fastapi import APIRouter, Depends

from storefront.models import WishlistAddRequest
from storefront.wishlist import WishlistStore

from .deps import get_wishlist

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


@router.get("")
def get_wishlist_items(wishlist: WishlistStore = Depends(get_wishlist)):
    return wishlist.to_dict()


@router.post("/items")
def add_to_wishlist(request: WishlistAddRequest, wishlist: WishlistStore = Depends(get_wishlist)):
    added = wishlist.add_item(
        product_id=request.product_id,
        name=request.name,
        slug=request.slug,
        price=request.price,
        image=request.image,
        category=request.category,
        in_stock=request.in_stock,
        sizes=request.sizes,
        original_price=request.original_price,
    )
    return {"added": added, **wishlist.to_dict()}


@router.delete("/items/{product_id}")
def remove_from_wishlist(product_id: str, wishlist: WishlistStore = Depends(get_wishlist)):
    wishlist.remove_item(product_id)
    return wishlist.to_dict()


@router.delete("")
def clear_wishlist(wishlist: WishlistStore = Depends(get_wishlist)):
    wishlist.clear_wishlist()
    return wishlist.to_dict()
