"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import AsyncMock, Mock

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("APP_URL", "https://militarytees.test")

from storefront.cart import CartCandidate, CartStore, MemoryCartStorage


@pytest.fixture
def storage_backend():
    """Shared dict standing in for Redis"""
    return {}


@pytest.fixture
def memory_storage(storage_backend):
    """In-memory cart storage"""
    return MemoryCartStorage(backend=storage_backend)


@pytest.fixture
def store(memory_storage):
    """Empty cart store"""
    return CartStore(memory_storage)


@pytest.fixture
def tee_v1():
    """Medium olive tee, 10 in stock"""
    return CartCandidate(
        product_id="prod-para",
        variant_id="var-m-olive",
        name="Parachute Regiment Tee",
        price=24.99,
        image="/images/para-tee.jpg",
        size="M",
        color="Olive",
        max_quantity=10,
    )


@pytest.fixture
def tee_v2():
    """Sold-out variant"""
    return CartCandidate(
        product_id="prod-para",
        variant_id="var-xl-black",
        name="Parachute Regiment Tee",
        price=24.99,
        image="/images/para-tee.jpg",
        size="XL",
        color="Black",
        max_quantity=0,
    )


@pytest.fixture
def hoodie():
    """Second product with a low stock ceiling"""
    return CartCandidate(
        product_id="prod-raf",
        variant_id="var-l-navy",
        name="RAF Hoodie",
        price="39.50",
        image="/images/raf-hoodie.jpg",
        size="L",
        color="Navy",
        max_quantity=3,
    )


def make_variant_row(variant_id, product_id, price=24.99, stock=10, name="Parachute Regiment Tee",
                     variant_price=None, sku="SKU-1"):
    """product_variants row as returned by Supabase"""
    return {
        "id": variant_id,
        "sku": sku,
        "stock_quantity": stock,
        "price": variant_price,
        "size": "M",
        "color": "Olive",
        "product_id": product_id,
        "is_active": True,
        "products": {
            "id": product_id,
            "name": name,
            "price": price,
            "main_image_url": "/images/para-tee.jpg",
        },
    }


def make_supabase_client(rows):
    """Mock async Supabase client whose queries return `rows`"""
    client = Mock()

    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.in_.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute = AsyncMock(return_value=Mock(data=rows))

    client.table.return_value = table_mock
    return client


@pytest.fixture
def variant_row():
    return make_variant_row


@pytest.fixture
def supabase_client_factory():
    return make_supabase_client
