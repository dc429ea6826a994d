"""
Cart Session Middleware

Resolves the browser's cart session before routing. A request with no
usable session gets a fresh id, and the `mt_cart_session` cookie is set
on whatever response goes back, error responses included.
"""

import re
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from storefront.cart import new_session_id

CART_SESSION_COOKIE = "mt_cart_session"
CART_SESSION_HEADER = "x-cart-session"
CART_SESSION_MAX_AGE = 30 * 24 * 3600

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


def read_session_id(request: Request) -> Optional[str]:
    """Client-supplied session id (header first, then cookie) if well formed."""
    session_id = request.headers.get(CART_SESSION_HEADER) or request.cookies.get(CART_SESSION_COOKIE)
    if session_id and _SESSION_ID_RE.match(session_id):
        return session_id
    return None


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        CART_SESSION_COOKIE,
        session_id,
        max_age=CART_SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
    )


class CartSessionMiddleware(BaseHTTPMiddleware):
    """Puts the session id on `request.state.cart_session` for every request."""

    async def dispatch(self, request: Request, call_next):
        session_id = read_session_id(request)
        issued = session_id is None
        if issued:
            session_id = new_session_id()
        request.state.cart_session = session_id

        response: Response = await call_next(request)

        if issued:
            set_session_cookie(response, session_id)
        return response
