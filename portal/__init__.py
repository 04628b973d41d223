"""
Portal Cart Core

This package contains the cart engine of the B2B ordering portal:
- cart: quantity policy, cart store, snapshot storage, sync and persistence
- db: Redis client for the remote cart store
- routers: remote cart HTTP service
- logging: centralized logging configuration

Note: Imports are lazy to avoid pulling the HTTP and Redis clients
into code that only needs the pure quantity policy.
"""

__all__ = [
    "get_redis",
    "CartStore",
    "CartSession",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "get_redis":
        from portal.db import get_redis
        return get_redis
    elif name == "CartStore":
        from portal.cart.store import CartStore
        return CartStore
    elif name == "CartSession":
        from portal.cart.sync import CartSession
        return CartSession
    raise AttributeError(f"module 'portal' has no attribute '{name}'")
