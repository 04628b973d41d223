"""
Shared Dependencies for Routers

Lazy-loaded singletons so that importing the app does not require
Redis credentials.
"""
from typing import Optional, TYPE_CHECKING

from fastapi import Header, HTTPException

from portal.errors import ERROR_UNAUTHORIZED

if TYPE_CHECKING:
    from portal.cart.remote import RedisRemoteCart


_remote_cart: Optional["RedisRemoteCart"] = None


def get_remote_cart() -> "RedisRemoteCart":
    """Get or create the Redis-backed cart store (lazy loaded)."""
    global _remote_cart
    if _remote_cart is None:
        from portal.cart.remote import RedisRemoteCart
        _remote_cart = RedisRemoteCart()
    return _remote_cart


async def require_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    Caller identity as set by the authentication layer in front of this
    service.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail=ERROR_UNAUTHORIZED)
    return x_user_id.strip()
