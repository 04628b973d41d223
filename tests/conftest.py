"""Pytest configuration and fixtures"""
import asyncio
import os
from typing import Dict, List

import pytest

# Set test environment variables
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from portal.cart.models import CartLineItem, Product
from portal.cart.storage import MemoryLocalStorage
from portal.errors import CartServiceUnavailable


class FakeRemoteCart:
    """In-memory remote store that records every write."""

    def __init__(self, carts: Dict[str, List[CartLineItem]] = None):
        self.carts: Dict[str, List[CartLineItem]] = dict(carts or {})
        self.fail_fetch = False
        self.fail_persist = False
        self.fetch_calls: List[str] = []
        self.writes: List[tuple] = []  # (loop time, user_id, [(product_id, quantity)])

    async def fetch(self, user_id) -> List[CartLineItem]:
        self.fetch_calls.append(str(user_id))
        if self.fail_fetch:
            raise CartServiceUnavailable("connection refused")
        return list(self.carts.get(str(user_id), []))

    async def persist(self, user_id, items: List[CartLineItem]) -> None:
        if self.fail_persist:
            raise CartServiceUnavailable("connection reset")
        lines = [(item.product_id, item.quantity) for item in items]
        self.writes.append((asyncio.get_running_loop().time(), str(user_id), lines))
        self.carts[str(user_id)] = list(items)


@pytest.fixture
def free_product():
    """Unrestricted product"""
    return Product(id="1001", name="Cable HDMI 2m", code="HD-002", price="12.50",
                   stock_available=40, pack_quantity=1)


@pytest.fixture
def packed_product():
    """Restricted product with no stock: only whole packs of 10"""
    return Product(id="2001", name="Screw M4 (box)", code="SC-M4", price="0.30",
                   stock_available=0, pack_quantity=10, is_packaging_restricted=True)


@pytest.fixture
def stocked_product():
    """Restricted product with stock 5 and packs of 3"""
    return Product(id="3001", name="Toner TN-660", code="TN-660", price="45.00",
                   stock_available=5, pack_quantity=3, is_packaging_restricted=True)


@pytest.fixture
def local_storage():
    return MemoryLocalStorage()


@pytest.fixture
def remote_cart():
    return FakeRemoteCart()
