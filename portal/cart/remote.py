"""
Remote cart store clients.

The remote store is a per-user key-value slot holding the last cart
snapshot written by any of the user's devices. Two implementations:

- RedisRemoteCart: talks to Upstash Redis directly (server side, workers)
- HttpRemoteCart: talks to the cart HTTP service (``/api/cart``)

Both return ``[]`` when the user has no cart yet and raise
``CartServiceUnavailable`` for anything else that goes wrong.
"""
import json
from typing import List, Optional, Protocol

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from portal.config import PORTAL_API_URL, REMOTE_FETCH_ATTEMPTS, REMOTE_TIMEOUT_SECONDS
from portal.db import RedisKeys, TTL, get_redis
from portal.errors import CartServiceUnavailable
from portal.logging import get_logger, sanitize_id_for_logging
from .models import CartLineItem, snapshot_from_dicts, snapshot_to_dicts

logger = get_logger(__name__)


class RemoteCartStore(Protocol):
    async def fetch(self, user_id) -> List[CartLineItem]: ...

    async def persist(self, user_id, items: List[CartLineItem]) -> None: ...


class RedisRemoteCart:
    """Cart snapshots stored as JSON under ``cart:{user_id}``."""

    def __init__(self, redis=None, ttl: Optional[int] = TTL.CART):
        self._redis = redis  # Lazy initialization
        self.ttl = ttl

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise CartServiceUnavailable(f"Redis not available: {e}")
        return self._redis

    async def fetch(self, user_id) -> List[CartLineItem]:
        key = RedisKeys.cart_key(user_id)
        try:
            data = await self.redis.get(key)
        except CartServiceUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to get cart from Redis: {e}")
            raise CartServiceUnavailable(str(e)) from e

        if not data:
            return []

        try:
            return snapshot_from_dicts(json.loads(data), source=key)
        except (json.JSONDecodeError, TypeError) as e:
            # Corrupted data - clear it and treat as no cart
            logger.warning(f"Corrupted cart data for user {sanitize_id_for_logging(user_id)}: {e}")
            await self.delete(user_id)
            return []

    async def persist(self, user_id, items: List[CartLineItem]) -> None:
        key = RedisKeys.cart_key(user_id)
        payload = json.dumps(snapshot_to_dicts(items))
        try:
            if self.ttl:
                await self.redis.set(key, payload, ex=self.ttl)
            else:
                await self.redis.set(key, payload)
        except CartServiceUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to save cart to Redis: {e}")
            raise CartServiceUnavailable(str(e)) from e

    async def delete(self, user_id) -> None:
        try:
            await self.redis.delete(RedisKeys.cart_key(user_id))
        except CartServiceUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to clear cart from Redis: {e}")
            raise CartServiceUnavailable(str(e)) from e


class HttpRemoteCart:
    """
    Client for the cart HTTP service.

    Reads are retried on transport errors; writes are not, since the
    persistence scheduler already writes again on the next change.
    """

    def __init__(
        self,
        base_url: str = PORTAL_API_URL,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        fetch_attempts: int = REMOTE_FETCH_ATTEMPTS,
        retry_wait=None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.fetch_attempts = max(1, fetch_attempts)
        self.retry_wait = retry_wait or wait_exponential(multiplier=0.5, min=0.5, max=4)
        self._http_client = client

    def _get_http_client(self) -> httpx.AsyncClient:
        """Shared httpx client, created on first use."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(REMOTE_TIMEOUT_SECONDS, connect=5.0),
            )
        return self._http_client

    def _headers(self, user_id) -> dict:
        headers = {"X-User-Id": str(user_id)}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch(self, user_id) -> List[CartLineItem]:
        client = self._get_http_client()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.fetch_attempts),
                wait=self.retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await client.get("/api/cart", headers=self._headers(user_id))

            if response.status_code == 404:
                return []
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Remote cart fetch failed for user {sanitize_id_for_logging(user_id)}: {e}")
            raise CartServiceUnavailable(str(e)) from e
        except ValueError as e:
            raise CartServiceUnavailable(f"invalid response body: {e}") from e

        if isinstance(data, dict):
            data = data.get("items", [])
        return snapshot_from_dicts(data, source="remote")

    async def persist(self, user_id, items: List[CartLineItem]) -> None:
        client = self._get_http_client()
        try:
            response = await client.post(
                "/api/cart",
                json={"items": snapshot_to_dicts(items)},
                headers=self._headers(user_id),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CartServiceUnavailable(str(e)) from e

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
