"""Cart package: quantity policy, store, storage, sync and persistence."""
from .models import CartLineItem, Product, is_restricted_indicator
from .quantity import (
    QuantityField,
    QuantityZone,
    apply_typed_delta,
    coerce_quantity,
    decrement,
    increment,
    initial_quantity,
    is_valid_quantity,
    normalize_on_blur,
)
from .store import CartChange, CartStore
from .storage import FileLocalStorage, MemoryLocalStorage, cart_storage_key
from .remote import HttpRemoteCart, RedisRemoteCart
from .persistence import PersistenceScheduler
from .sync import CartSession, SnapshotSource, SyncReconciler, SyncResult, choose_snapshot

__all__ = [
    "CartLineItem",
    "Product",
    "is_restricted_indicator",
    "QuantityField",
    "QuantityZone",
    "apply_typed_delta",
    "coerce_quantity",
    "decrement",
    "increment",
    "initial_quantity",
    "is_valid_quantity",
    "normalize_on_blur",
    "CartChange",
    "CartStore",
    "FileLocalStorage",
    "MemoryLocalStorage",
    "cart_storage_key",
    "HttpRemoteCart",
    "RedisRemoteCart",
    "PersistenceScheduler",
    "CartSession",
    "SnapshotSource",
    "SyncReconciler",
    "SyncResult",
    "choose_snapshot",
]
