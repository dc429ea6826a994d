"""Checkout Service - Stripe Checkout Sessions.

The cart is revalidated against the live catalog before a session is
created. The cart is only cleared once Stripe reports the session paid.
"""

import asyncio
import os
import secrets
import string
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

import stripe

from storefront.cart import CartStore
from storefront.catalog import CatalogService, RevalidationReport
from storefront.errors import (
    CartDriftError,
    CheckoutError,
    ERROR_CART_EMPTY,
    ERROR_INVALID_SIGNATURE,
    ERROR_PAYMENT_NOT_COMPLETED,
    ERROR_PAYMENT_NOT_CONFIGURED,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import round_money, to_float, to_pence

logger = get_logger(__name__)

STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET", "")
APP_URL = os.environ.get("APP_URL", "http://localhost:3002")

CURRENCY = "gbp"
STANDARD_SHIPPING = Decimal("4.99")
FREE_SHIPPING_THRESHOLD = Decimal("50")
VAT_RATE = Decimal("0.20")
SESSION_EXPIRY_SECONDS = 30 * 60

ALLOWED_COUNTRIES = ["GB", "US", "CA", "AU", "DE", "FR", "ES", "IT", "NL", "BE", "IE"]


# ============================================================
# Totals
# ============================================================

def calculate_shipping(subtotal: Decimal) -> Decimal:
    """Flat UK shipping, free from £50."""
    return Decimal("0.00") if subtotal >= FREE_SHIPPING_THRESHOLD else STANDARD_SHIPPING


def calculate_vat(gross: Decimal) -> Decimal:
    """VAT contained in a VAT-inclusive amount."""
    return round_money(gross * VAT_RATE / (1 + VAT_RATE))


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    vat: Decimal
    total: Decimal

    @classmethod
    def from_subtotal(cls, subtotal) -> "OrderTotals":
        subtotal = round_money(subtotal)
        shipping = calculate_shipping(subtotal)
        total = subtotal + shipping
        return cls(subtotal=subtotal, shipping=shipping, vat=calculate_vat(total), total=total)

    def to_dict(self) -> dict:
        return {
            "subtotal": to_float(self.subtotal),
            "shipping": to_float(self.shipping),
            "vat": to_float(self.vat),
            "total": to_float(self.total),
        }


def generate_order_number(now_ms: Optional[int] = None) -> str:
    """MT + last 6 digits of the ms timestamp + 6 random uppercase chars."""
    timestamp = str(now_ms if now_ms is not None else int(time.time() * 1000))
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(6))
    return f"MT{timestamp[-6:]}{suffix}"


# ============================================================
# Checkout
# ============================================================

@dataclass
class CheckoutSession:
    """What the browser needs to redirect to Stripe."""
    session_id: str
    url: str
    order_number: str
    totals: OrderTotals

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "url": self.url,
            "orderNumber": self.order_number,
            "totals": self.totals.to_dict(),
        }


class CheckoutService:
    """Turns a cart into a Stripe Checkout Session."""

    def __init__(
        self,
        catalog: CatalogService,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        app_url: Optional[str] = None,
    ):
        self.catalog = catalog
        self.secret_key = secret_key if secret_key is not None else STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else STRIPE_WEBHOOK_SECRET
        self.app_url = (app_url or APP_URL).rstrip("/")

    def _require_key(self) -> str:
        if not self.secret_key:
            raise CheckoutError(ERROR_PAYMENT_NOT_CONFIGURED)
        return self.secret_key

    async def create_session(
        self,
        store: CartStore,
        cart_session_id: str,
        customer_email: Optional[str] = None,
        customer_notes: str = "",
    ) -> CheckoutSession:
        """
        Create a Stripe Checkout Session for the current cart.

        Raises:
            CheckoutError: cart is empty or Stripe is not configured
            CartDriftError: a line's price or stock no longer matches the
                catalog; carries the RevalidationReport
        """
        snapshot = store.snapshot()
        if snapshot.is_empty:
            raise CheckoutError(ERROR_CART_EMPTY)
        api_key = self._require_key()

        report = await self.catalog.revalidate(snapshot.items)
        if report.has_drift:
            raise CartDriftError(report)

        totals = OrderTotals.from_subtotal(snapshot.total_price)
        order_number = generate_order_number()

        params: Dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "success_url": f"{self.app_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.app_url}/checkout",
            "metadata": {
                "orderNumber": order_number,
                "cartSession": cart_session_id,
                "customerNotes": customer_notes or "",
            },
            "shipping_address_collection": {"allowed_countries": ALLOWED_COUNTRIES},
            "billing_address_collection": "required",
            "line_items": self._line_items(report),
            "shipping_options": [self._shipping_option(totals.shipping)],
            "allow_promotion_codes": True,
            "expires_at": int(time.time()) + SESSION_EXPIRY_SECONDS,
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = await asyncio.to_thread(stripe.checkout.Session.create, api_key=api_key, **params)
        except stripe.StripeError as e:
            logger.error("Stripe session creation failed for order %s: %s", order_number, e)
            raise CheckoutError(str(e)) from e

        logger.info("Checkout session created for order %s", order_number)
        return CheckoutSession(
            session_id=session["id"],
            url=session["url"],
            order_number=order_number,
            totals=totals,
        )

    def _line_items(self, report: RevalidationReport) -> List[dict]:
        items = []
        for line in report.lines:
            item, variant = line.item, line.variant
            label = " ".join(part for part in (item.size, item.color) if part)
            product_data = {
                "name": f"{item.name} - {label}" if label else item.name,
                "metadata": {
                    "sku": variant.sku,
                    "variant_id": item.variant_id,
                    "product_id": item.product_id,
                },
            }
            if variant.sku:
                product_data["description"] = f"SKU: {variant.sku}"
            if variant.image_url:
                product_data["images"] = [f"{self.app_url}{variant.image_url}"]
            items.append({
                "price_data": {
                    "currency": CURRENCY,
                    "product_data": product_data,
                    "unit_amount": to_pence(variant.unit_price),
                },
                "quantity": item.quantity,
            })
        return items

    @staticmethod
    def _shipping_option(shipping: Decimal) -> dict:
        return {
            "shipping_rate_data": {
                "type": "fixed_amount",
                "fixed_amount": {"amount": to_pence(shipping), "currency": CURRENCY},
                "display_name": "Free UK Shipping (Over £50)" if shipping == 0 else "Standard UK Shipping",
                "delivery_estimate": {
                    "minimum": {"unit": "business_day", "value": 3},
                    "maximum": {"unit": "business_day", "value": 7},
                },
            },
        }

    async def complete(self, store: CartStore, stripe_session_id: str) -> dict:
        """
        Success callback from the checkout page.

        Clears the cart only when Stripe confirms the session is paid.

        Raises:
            CheckoutError: session unpaid or unknown
        """
        api_key = self._require_key()
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.retrieve, stripe_session_id, api_key=api_key,
            )
        except stripe.StripeError as e:
            logger.warning("Could not retrieve session %s: %s", sanitize_id_for_logging(stripe_session_id), e)
            raise CheckoutError(ERROR_PAYMENT_NOT_COMPLETED) from e

        if session["payment_status"] != "paid":
            raise CheckoutError(ERROR_PAYMENT_NOT_COMPLETED)

        await asyncio.to_thread(store.clear_cart)
        metadata = session.get("metadata") or {}
        logger.info("Order %s paid, cart cleared", metadata.get("orderNumber", "N/A"))
        return {"orderNumber": metadata.get("orderNumber"), "paymentStatus": session["payment_status"]}

    def verify_webhook(self, payload: bytes, sig_header: str):
        """
        Verify a Stripe webhook and return the event.

        Raises:
            CheckoutError: secret missing or signature invalid
        """
        if not self.webhook_secret:
            raise CheckoutError(ERROR_PAYMENT_NOT_CONFIGURED)
        try:
            return stripe.Webhook.construct_event(payload=payload, sig_header=sig_header, secret=self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise CheckoutError(ERROR_INVALID_SIGNATURE) from e
