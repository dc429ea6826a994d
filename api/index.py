"""
Military Tees UK - Storefront API

Single FastAPI entry point for the cart, wishlist and checkout endpoints.
"""
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.logging import configure_logging, get_logger
from storefront.routers.cart import router as cart_router
from storefront.routers.checkout import router as checkout_router
from storefront.routers.session import CartSessionMiddleware
from storefront.routers.wishlist import router as wishlist_router

configure_logging()
logger = get_logger(__name__)

APP_URL = os.environ.get("APP_URL", "http://localhost:3002")
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("ALLOWED_ORIGINS", APP_URL).split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Storefront API starting")
    yield
    logger.info("Storefront API stopped")


app = FastAPI(
    title="Military Tees UK Storefront",
    description="Cart, wishlist and checkout API",
    version="1.0.0",
    lifespan=lifespan,
)

# Cookies carry the cart session, so origins must be explicit
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CartSessionMiddleware)

app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(wishlist_router)


# ==================== HEALTH CHECK ====================

@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "military-tees-storefront"}
