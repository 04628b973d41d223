"""
Tests for remote cart store clients
"""
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from tenacity import wait_none

from portal.cart.models import CartLineItem
from portal.cart.remote import HttpRemoteCart, RedisRemoteCart
from portal.db import TTL
from portal.errors import CartServiceUnavailable


@pytest.fixture
def mock_redis():
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    return redis


class TestRedisRemoteCart:

    @pytest.mark.asyncio
    async def test_missing_cart_is_empty(self, mock_redis):
        remote = RedisRemoteCart(redis=mock_redis)
        assert await remote.fetch(7) == []
        mock_redis.get.assert_awaited_once_with("cart:7")

    @pytest.mark.asyncio
    async def test_fetch_parses_snapshot(self, mock_redis):
        mock_redis.get.return_value = json.dumps([{"product_id": "5", "quantity": 1}])
        remote = RedisRemoteCart(redis=mock_redis)

        items = await remote.fetch(7)
        assert [(i.product_id, i.quantity) for i in items] == [("5", 1)]

    @pytest.mark.asyncio
    async def test_corrupted_cart_is_cleared(self, mock_redis):
        mock_redis.get.return_value = "{broken"
        remote = RedisRemoteCart(redis=mock_redis)

        assert await remote.fetch(7) == []
        mock_redis.delete.assert_awaited_once_with("cart:7")

    @pytest.mark.asyncio
    async def test_persist_writes_json_with_ttl(self, mock_redis):
        remote = RedisRemoteCart(redis=mock_redis)
        await remote.persist(7, [CartLineItem(product_id="5", quantity=2)])

        key, payload = mock_redis.set.await_args.args
        assert key == "cart:7"
        assert json.loads(payload)[0]["quantity"] == 2
        assert mock_redis.set.await_args.kwargs == {"ex": TTL.CART}

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self, mock_redis):
        mock_redis.get.side_effect = ConnectionError("down")
        remote = RedisRemoteCart(redis=mock_redis)

        with pytest.raises(CartServiceUnavailable):
            await remote.fetch(7)

    @pytest.mark.asyncio
    async def test_missing_credentials_raise(self):
        with patch("portal.cart.remote.get_redis", side_effect=ValueError("not set")):
            remote = RedisRemoteCart()
            with pytest.raises(CartServiceUnavailable):
                await remote.persist(7, [])


def make_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://portal.test")


class TestHttpRemoteCart:

    @pytest.mark.asyncio
    async def test_fetch_sends_user_and_token(self):
        seen = {}

        def handler(request):
            seen["user"] = request.headers.get("X-User-Id")
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[{"product_id": "9", "quantity": 4}])

        remote = HttpRemoteCart(token="secret", client=make_client(handler))
        items = await remote.fetch("u-1")

        assert [(i.product_id, i.quantity) for i in items] == [("9", 4)]
        assert seen == {"user": "u-1", "auth": "Bearer secret"}

    @pytest.mark.asyncio
    async def test_not_found_is_empty(self):
        remote = HttpRemoteCart(client=make_client(lambda request: httpx.Response(404)))
        assert await remote.fetch("u-1") == []

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        remote = HttpRemoteCart(client=make_client(lambda request: httpx.Response(500)))
        with pytest.raises(CartServiceUnavailable):
            await remote.fetch("u-1")

    @pytest.mark.asyncio
    async def test_fetch_retries_transport_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=[])

        remote = HttpRemoteCart(client=make_client(handler), fetch_attempts=3, retry_wait=wait_none())
        assert await remote.fetch("u-1") == []
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_fetch_gives_up_after_attempts(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        remote = HttpRemoteCart(client=make_client(handler), fetch_attempts=2, retry_wait=wait_none())
        with pytest.raises(CartServiceUnavailable):
            await remote.fetch("u-1")

    @pytest.mark.asyncio
    async def test_persist_posts_items(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})

        remote = HttpRemoteCart(client=make_client(handler))
        await remote.persist("u-1", [CartLineItem(product_id="3", quantity=6)])

        assert bodies[0]["items"][0]["product_id"] == "3"
        assert bodies[0]["items"][0]["quantity"] == 6

    @pytest.mark.asyncio
    async def test_persist_failure_raises(self):
        remote = HttpRemoteCart(client=make_client(lambda request: httpx.Response(503)))
        with pytest.raises(CartServiceUnavailable):
            await remote.persist("u-1", [])
