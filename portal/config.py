"""Cart engine configuration read from the environment."""
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


# Quiet period before the cart is written to the remote store
CART_SYNC_DEBOUNCE_MS = _int_env("CART_SYNC_DEBOUNCE_MS", 2000)

# Device-resident snapshots (one JSON file per user)
LOCAL_CART_DIR = os.environ.get("LOCAL_CART_DIR", os.path.join(os.path.expanduser("~"), ".portal", "carts"))

# Remote cart service used by HttpRemoteCart
PORTAL_API_URL = os.environ.get("PORTAL_API_URL", "http://localhost:8000")
REMOTE_FETCH_ATTEMPTS = _int_env("REMOTE_FETCH_ATTEMPTS", 3)
REMOTE_TIMEOUT_SECONDS = _int_env("REMOTE_TIMEOUT_SECONDS", 10)
