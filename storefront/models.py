"""
Pydantic Models - API request schemas.

Responses are built from the domain objects' `to_dict()` so the browser
sees the same camelCase shape that is persisted.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from storefront.cart import CartCandidate


class AddItemRequest(BaseModel):
    """Variant as shown on the product page."""
    product_id: str = Field(..., min_length=1)
    variant_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    image: str = ""
    size: Optional[str] = None
    color: Optional[str] = None
    max_quantity: int = Field(..., description="Units in stock when the page was rendered")

    def to_candidate(self) -> CartCandidate:
        return CartCandidate(
            product_id=self.product_id,
            variant_id=self.variant_id,
            name=self.name,
            price=self.price,
            image=self.image,
            max_quantity=self.max_quantity,
            size=self.size,
            color=self.color,
        )


class UpdateQuantityRequest(BaseModel):
    quantity: int


class CheckoutRequest(BaseModel):
    customer_email: Optional[str] = Field(None, max_length=254)
    customer_notes: str = Field("", max_length=500)


class CompleteCheckoutRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class WishlistAddRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    name: str
    slug: str
    price: float = Field(..., ge=0)
    original_price: Optional[float] = None
    image: str = ""
    category: str = ""
    in_stock: bool = True
    sizes: List[str] = Field(default_factory=list)
