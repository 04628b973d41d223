"""
In-memory cart store.

Holds the ordered line items of the current session, most recently
touched first. The only invariant enforced here is that every stored
quantity is a positive integer: setting a non-positive quantity removes
the line. Packaging rules are the caller's job (see ``quantity``).

Every mutating call notifies subscribers exactly once, whether or not it
changed anything. Coalescing happens in the persistence layer.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Tuple

from portal.errors import ERROR_INVALID_QUANTITY
from portal.logging import get_logger
from .models import CartLineItem, Product
from .quantity import coerce_quantity, initial_quantity

logger = get_logger(__name__)


@dataclass(frozen=True)
class CartChange:
    """Notification sent to subscribers after each store call."""
    action: str  # add | remove | set_quantity | clear | replace
    product_id: Optional[str] = None


Listener = Callable[[CartChange], None]


class CartStore:
    """Ordered collection of cart line items."""

    def __init__(self, items: Optional[Iterable[CartLineItem]] = None):
        self._items: List[CartLineItem] = _dedupe(items or [])
        self._listeners: List[Listener] = []

    # ==================== QUERIES ====================

    @property
    def items(self) -> Tuple[CartLineItem, ...]:
        return tuple(self._items)

    def get(self, product_id) -> Optional[CartLineItem]:
        product_id = str(product_id)
        return next((item for item in self._items if item.product_id == product_id), None)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id) -> bool:
        return self.get(product_id) is not None

    @property
    def total_items(self) -> int:
        """Total number of units in the cart."""
        return sum(item.quantity for item in self._items)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self._items), Decimal("0"))

    # ==================== OBSERVERS ====================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, action: str, product_id: Optional[str] = None) -> None:
        change = CartChange(action=action, product_id=product_id)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"Cart listener failed on {action}: {e}", exc_info=True)

    # ==================== MUTATIONS ====================

    def add(self, product: Product, quantity: Optional[int] = None) -> CartLineItem:
        """
        Add units of a product.

        An existing line gets the quantities summed and moves to the front;
        a new line is inserted at the front. Without an explicit quantity the
        product's initial quantity is used.
        """
        if quantity is None:
            quantity = initial_quantity(product)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError(ERROR_INVALID_QUANTITY)

        existing = self.get(product.id)
        if existing:
            self._items.remove(existing)
            existing.quantity += quantity
            item = existing
        else:
            item = CartLineItem.from_product(product, quantity)
        self._items.insert(0, item)

        self._notify("add", item.product_id)
        return item

    def remove(self, product_id) -> None:
        """Remove a line. Absent products are ignored."""
        product_id = str(product_id)
        self._items = [item for item in self._items if item.product_id != product_id]
        self._notify("remove", product_id)

    def set_quantity(self, product_id, quantity) -> Optional[CartLineItem]:
        """
        Replace the quantity of a line, keeping its position.

        Anything that is not a positive integer removes the line.
        """
        product_id = str(product_id)
        value = coerce_quantity(quantity)

        if value is None or value <= 0:
            self._items = [item for item in self._items if item.product_id != product_id]
            self._notify("set_quantity", product_id)
            return None

        item = self.get(product_id)
        if item:
            item.quantity = value
        self._notify("set_quantity", product_id)
        return item

    def clear(self) -> None:
        self._items = []
        self._notify("clear")

    def replace(self, items: Iterable[CartLineItem]) -> None:
        """Load an authoritative snapshot in place of the current lines."""
        self._items = _dedupe(items)
        self._notify("replace")


def _dedupe(items: Iterable[CartLineItem]) -> List[CartLineItem]:
    """Drop non-positive quantities and repeated product ids (first wins)."""
    seen = set()
    result: List[CartLineItem] = []
    for item in items:
        if item.quantity <= 0 or item.product_id in seen:
            continue
        seen.add(item.product_id)
        result.append(item)
    return result
