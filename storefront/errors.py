"""
Common Error Constants

Centralized error messages and cart failure signals.
"""

from enum import Enum


class CartSignal(str, Enum):
    """Recoverable cart conditions. None of these are fatal."""
    OUT_OF_STOCK = "OUT_OF_STOCK"  # add_item on a variant with no stock
    MALFORMED_PERSISTED_STATE = "MALFORMED_PERSISTED_STATE"  # stored cart unreadable
    STALE_REFERENCE = "STALE_REFERENCE"  # cart line points at a gone/changed variant


class CheckoutError(Exception):
    """Checkout could not be started or completed."""


class CartDriftError(CheckoutError):
    """Cart snapshot disagrees with the live catalog; the customer must re-confirm."""

    def __init__(self, report):
        self.report = report
        super().__init__(ERROR_CART_DRIFT)


ERROR_CART_EMPTY = "Cart is empty"
ERROR_CART_DRIFT = "Cart items changed since they were added"
ERROR_PRODUCT_OUT_OF_STOCK = "Product out of stock"

ERROR_PAYMENT_NOT_CONFIGURED = "Stripe not configured"
ERROR_PAYMENT_NOT_COMPLETED = "Payment not completed"
ERROR_INVALID_SIGNATURE = "Invalid webhook signature"
