"""
Cart reconciliation on session changes.

When a user logs in (or the session switches to another user) the cart
is rebuilt from two snapshots: the one stored on this device and the one
in the remote store. The rule is snapshot selection, not item merging:

- remote wins whenever it has items
- otherwise a non-empty local snapshot is promoted (first sync uploads it)
- otherwise the cart starts empty

Two non-empty snapshots are never merged; items only present in the
local one are dropped. If the remote store cannot be read the local
snapshot is used and the session is flagged as local-only until a
remote write goes through.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from portal.config import CART_SYNC_DEBOUNCE_MS
from portal.logging import get_logger, sanitize_id_for_logging, summarize_cart_for_logging
from .models import CartLineItem
from .persistence import PersistenceScheduler
from .remote import RemoteCartStore
from .storage import LocalCartStorage, cart_storage_key
from .store import CartStore

logger = get_logger(__name__)


class SnapshotSource(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"
    EMPTY = "empty"


@dataclass
class SyncResult:
    """Outcome of one reconciliation."""
    user_id: str
    items: List[CartLineItem] = field(default_factory=list)
    source: SnapshotSource = SnapshotSource.EMPTY
    local_only: bool = False


def choose_snapshot(
    local: Optional[List[CartLineItem]],
    remote: Optional[List[CartLineItem]],
) -> Tuple[List[CartLineItem], SnapshotSource]:
    """Pick the authoritative snapshot. Never merges."""
    if remote:
        return list(remote), SnapshotSource.REMOTE
    if local:
        return list(local), SnapshotSource.LOCAL
    return [], SnapshotSource.EMPTY


class SyncReconciler:
    """Reads both snapshots of a user and selects the winner."""

    def __init__(self, local_storage: LocalCartStorage, remote: RemoteCartStore):
        self.local_storage = local_storage
        self.remote = remote

    def _read_local(self, user_id) -> List[CartLineItem]:
        try:
            return self.local_storage.read(cart_storage_key(user_id)) or []
        except Exception as e:
            logger.error(f"Failed to read local cart for user {sanitize_id_for_logging(user_id)}: {e}")
            return []

    async def reconcile(self, user_id) -> SyncResult:
        local = self._read_local(user_id)

        try:
            remote = await self.remote.fetch(user_id)
        except Exception as e:
            logger.warning(
                f"Remote cart unavailable for user {sanitize_id_for_logging(user_id)}, "
                f"continuing with local snapshot ({summarize_cart_for_logging(local)}): {e}"
            )
            return SyncResult(
                user_id=str(user_id),
                items=list(local),
                source=SnapshotSource.LOCAL if local else SnapshotSource.EMPTY,
                local_only=True,
            )

        items, source = choose_snapshot(local, remote)
        if source is SnapshotSource.REMOTE and local and not _same_lines(local, remote):
            logger.info(
                f"Remote cart replaces local snapshot for user {sanitize_id_for_logging(user_id)} "
                f"({len(local)} local items discarded)"
            )
        return SyncResult(user_id=str(user_id), items=items, source=source)


def _same_lines(a: List[CartLineItem], b: List[CartLineItem]) -> bool:
    return [(i.product_id, i.quantity) for i in a] == [(i.product_id, i.quantity) for i in b]


class CartSession:
    """
    Owns the cart across user transitions.

    ``on_user_changed`` is meant to be called whenever the authenticated
    user may have changed; repeated calls with the same user do nothing.
    """

    def __init__(
        self,
        store: CartStore,
        reconciler: SyncReconciler,
        scheduler: PersistenceScheduler,
    ):
        self.store = store
        self.reconciler = reconciler
        self.scheduler = scheduler
        self.user_id: Optional[str] = None
        self.last_sync: Optional[SyncResult] = None
        self._generation = 0

    @classmethod
    def create(
        cls,
        local_storage: LocalCartStorage,
        remote: RemoteCartStore,
        delay: Optional[float] = None,
    ) -> "CartSession":
        """Wire a store, reconciler and scheduler around shared storage."""
        store = CartStore()
        if delay is None:
            delay = CART_SYNC_DEBOUNCE_MS / 1000
        scheduler = PersistenceScheduler(store, local_storage, remote, delay=delay)
        return cls(store, SyncReconciler(local_storage, remote), scheduler)

    @property
    def local_only(self) -> bool:
        """True while running on the local snapshot with no successful remote write."""
        return bool(self.last_sync and self.last_sync.local_only and not self.scheduler.synced)

    async def on_user_changed(self, user_id) -> Optional[SyncResult]:
        user_id = str(user_id) if user_id not in (None, "") else None
        if user_id == self.user_id:
            return None

        self._generation += 1
        generation = self._generation

        # Pending writes belong to the previous user; drop them before touching the store
        self.scheduler.unbind()
        self.store.clear()
        self.user_id = user_id
        self.last_sync = None

        if user_id is None:
            logger.info("Session ended, cart cleared")
            return None

        result = await self.reconciler.reconcile(user_id)
        if generation != self._generation:
            logger.debug(f"Discarding stale cart sync for user {sanitize_id_for_logging(user_id)}")
            return None

        self.last_sync = result
        # The winning snapshot is the starting state, not a user edit
        self.store.replace(result.items)
        self.scheduler.bind(user_id)
        if result.source is SnapshotSource.REMOTE:
            self.scheduler.save_local()
        elif result.source is SnapshotSource.LOCAL and not result.local_only:
            # First sync: the remote cart is empty, upload this device's cart
            self.scheduler.schedule()
        logger.info(
            f"Cart ready for user {sanitize_id_for_logging(user_id)}: "
            f"{summarize_cart_for_logging(result.items)} from {result.source.value}"
            + (" (local only)" if result.local_only else "")
        )
        return result

    async def logout(self) -> None:
        await self.on_user_changed(None)

    async def close(self) -> None:
        """Stop persistence without writing the pending change remotely."""
        self.scheduler.unbind()
