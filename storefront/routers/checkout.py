"""
Checkout API Router

Stripe Checkout Session creation, the success callback and the Stripe
webhook. The cart is cleared only after Stripe reports payment.
"""

import asyncio

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from storefront.cart import CartStore, get_cart_session_manager
from storefront.checkout import CheckoutService, STRIPE_SECRET_KEY
from storefront.db import SUPABASE_SERVICE_ROLE_KEY
from storefront.errors import CartDriftError, CheckoutError, CartSignal, ERROR_CART_DRIFT
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.models import CheckoutRequest, CompleteCheckoutRequest

from .deps import get_cart_session, get_cart_store, get_checkout_service

logger = get_logger(__name__)

router = APIRouter(tags=["checkout"])


def _clear_session_cart(session_id: str) -> None:
    get_cart_session_manager().get_store(session_id).clear_cart()


@router.get("/api/checkout")
async def checkout_health():
    """Checkout configuration status"""
    return {
        "status": "ok",
        "service": "checkout-api",
        "stripe_configured": bool(STRIPE_SECRET_KEY),
        "supabase_configured": bool(SUPABASE_SERVICE_ROLE_KEY),
    }


@router.post("/api/checkout")
async def create_checkout(
    request: CheckoutRequest,
    session_id: str = Depends(get_cart_session),
    store: CartStore = Depends(get_cart_store),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Start a Stripe Checkout Session for the session cart"""
    try:
        session = await checkout.create_session(
            store,
            cart_session_id=session_id,
            customer_email=request.customer_email,
            customer_notes=request.customer_notes,
        )
    except CartDriftError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "error": CartSignal.STALE_REFERENCE.value,
                "message": ERROR_CART_DRIFT,
                "revalidation": e.report.to_dict(),
            },
        )
    except CheckoutError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, **session.to_dict()}


@router.post("/api/checkout/complete")
async def complete_checkout(
    request: CompleteCheckoutRequest,
    store: CartStore = Depends(get_cart_store),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Success page callback: clear the cart once the payment is confirmed"""
    try:
        result = await checkout.complete(store, request.session_id)
    except CheckoutError as e:
        raise HTTPException(status_code=402, detail=str(e))
    return {"success": True, **result}


@router.post("/api/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(""),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Stripe webhook: clear the paying session's cart on completed checkout"""
    payload = await request.body()
    try:
        event = checkout.verify_webhook(payload, stripe_signature)
    except CheckoutError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if event["type"] == "checkout.session.completed":
        session = event["data"]["object"]
        cart_session = (session.get("metadata") or {}).get("cartSession")
        if cart_session and session.get("payment_status") == "paid":
            await asyncio.to_thread(_clear_session_cart, cart_session)
            logger.info("Cleared cart for paid session %s", sanitize_id_for_logging(cart_session))

    return {"received": True}
