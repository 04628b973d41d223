"""
Debounced cart persistence.

Every cart change is written to local storage right away, and to the
remote store once the cart has been quiet for ``delay`` seconds. A new
change restarts the quiet period (trailing-edge debounce), so a burst of
edits produces a single remote write carrying the final state.

Remote write failures are logged and dropped: local storage already has
the latest snapshot and the next change will try again.
"""
import asyncio
from typing import Optional

from portal.config import CART_SYNC_DEBOUNCE_MS
from portal.logging import get_logger, sanitize_id_for_logging, summarize_cart_for_logging
from .remote import RemoteCartStore
from .storage import LocalCartStorage, cart_storage_key
from .store import CartChange, CartStore

logger = get_logger(__name__)


class PersistenceScheduler:
    """Writes the cart of one bound user to local and remote storage."""

    def __init__(
        self,
        store: CartStore,
        local_storage: LocalCartStorage,
        remote: RemoteCartStore,
        delay: float = CART_SYNC_DEBOUNCE_MS / 1000,
    ):
        self.store = store
        self.local_storage = local_storage
        self.remote = remote
        self.delay = delay

        self.user_id = None
        self.remote_writes = 0
        self.last_error: Optional[BaseException] = None
        self.synced = False

        self._unsubscribe = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.Task] = None
        self._due_at: Optional[float] = None
        self._inflight: set[asyncio.Task] = set()

    # ==================== LIFECYCLE ====================

    def bind(self, user_id, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Start persisting changes for ``user_id``.

        Remote writes run on ``loop``, by default the running one, so this
        must be called from async code unless a loop is given. Changes made
        from other threads are handed over to that loop.
        """
        loop = loop or asyncio.get_running_loop()
        self.unbind()
        self._loop = loop
        self.user_id = user_id
        self.synced = False
        self._unsubscribe = self.store.subscribe(self._on_change)
        logger.debug(f"Cart persistence bound to user {sanitize_id_for_logging(user_id)}")

    def unbind(self) -> None:
        """Stop observing the store and drop any pending remote write."""
        self.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.user_id = None
        self._loop = None

    @property
    def bound(self) -> bool:
        return self._unsubscribe is not None

    # ==================== SCHEDULING ====================

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def due_at(self) -> Optional[float]:
        """Event loop time at which the pending remote write fires."""
        return self._due_at if self.pending else None

    def schedule(self) -> None:
        """(Re)start the quiet period for the bound user."""
        if self.user_id is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._arm(self.user_id)
        else:
            self._loop.call_soon_threadsafe(self._arm, self.user_id)

    def cancel(self) -> None:
        """Cancel the pending remote write, if any. In-flight writes finish."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        self._due_at = None

    async def flush(self) -> None:
        """Write to the remote store now instead of waiting out the timer."""
        if self.user_id is None:
            return
        self.cancel()
        await self._write_remote(self.user_id)

    async def wait_idle(self) -> None:
        """Wait for the pending timer and any in-flight writes to finish."""
        while self.pending or self._inflight:
            tasks = [t for t in (self._timer, *self._inflight) if t is not None]
            await asyncio.gather(*tasks, return_exceptions=True)

    def save_local(self) -> None:
        """Write the current cart to local storage without scheduling a remote write."""
        if self.user_id is not None:
            self._write_local(self.user_id)

    # ==================== INTERNALS ====================

    def _on_change(self, change: CartChange) -> None:
        if self.user_id is None:
            return
        self._write_local(self.user_id)
        self.schedule()

    def _arm(self, user_id) -> None:
        # Unbound or rebound since the change was handed over
        if user_id != self.user_id:
            return
        self.cancel()
        self._due_at = self._loop.time() + self.delay
        self._timer = self._loop.create_task(self._write_after_delay(user_id))

    def _write_local(self, user_id) -> None:
        try:
            self.local_storage.write(cart_storage_key(user_id), list(self.store.items))
        except Exception as e:
            logger.error(f"Failed to write local cart for user {sanitize_id_for_logging(user_id)}: {e}")

    async def _write_after_delay(self, user_id) -> None:
        await asyncio.sleep(self.delay)
        # Past this point the write belongs to this user and is no longer cancellable
        self._timer = None
        self._due_at = None
        task = asyncio.current_task()
        self._inflight.add(task)
        try:
            await self._write_remote(user_id)
        finally:
            self._inflight.discard(task)

    async def _write_remote(self, user_id) -> None:
        items = list(self.store.items)
        try:
            await self.remote.persist(user_id, items)
        except Exception as e:
            self.last_error = e
            self.synced = False
            logger.warning(f"Remote cart write failed for user {sanitize_id_for_logging(user_id)}: {e}")
            return

        self.remote_writes += 1
        self.last_error = None
        self.synced = True
        logger.debug(
            f"Remote cart written for user {sanitize_id_for_logging(user_id)} "
            f"({summarize_cart_for_logging(items)})"
        )
