"""
Quantity policy for cart line items.

Products flagged as packaging-restricted may be ordered freely (one unit
at a time) up to their available stock. Past the stock, extra units can
only be ordered in whole packs, so every reachable quantity is either in
``[1, stock]`` or ``stock + k * pack`` for ``k >= 1``. With no stock at
all the quantity is a positive multiple of the pack size.

Unrestricted products only require ``quantity >= 1``.

All functions here are pure: they take a product-like object and a
quantity, and return the next quantity. Bad input is never an error;
an unparseable typed value leaves the quantity unchanged.
"""
import math
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol


class PackagingInfo(Protocol):
    """Anything carrying the packaging attributes the policy needs."""

    stock_available: int
    pack_quantity: int
    is_packaging_restricted: bool


class QuantityZone(str, Enum):
    """Where a restricted quantity sits relative to the available stock."""
    FREE = "free"  # quantity <= stock, steps of one
    PACK = "pack"  # quantity > stock, steps of one pack


def coerce_quantity(raw) -> Optional[int]:
    """
    Parse a typed quantity.

    Accepts ints, finite floats and Decimals (truncated toward zero) and
    numeric strings. Returns None for anything else, including bools,
    NaN and empty text.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            raw = float(text)
        except ValueError:
            return None
    if isinstance(raw, (float, Decimal)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return None
        if isinstance(raw, Decimal) and not raw.is_finite():
            return None
        return int(raw)
    return None


def _stock(product: PackagingInfo) -> int:
    return max(0, product.stock_available)


def _pack(product: PackagingInfo) -> int:
    return product.pack_quantity if product.pack_quantity > 0 else 1


def _floor(product: PackagingInfo) -> int:
    """Lowest quantity reachable by stepping down out of the pack zone."""
    stock = _stock(product)
    return stock if stock > 0 else _pack(product)


def initial_quantity(product: PackagingInfo) -> int:
    """Quantity a new line item starts with."""
    if product.is_packaging_restricted and _stock(product) <= 0:
        return _pack(product)
    return 1


def zone(product: PackagingInfo, quantity: int) -> QuantityZone:
    if product.is_packaging_restricted and quantity > _stock(product):
        return QuantityZone.PACK
    return QuantityZone.FREE


def increment(product: PackagingInfo, current: int) -> int:
    """Stepper "+": one unit inside the stock, one pack past it."""
    if not product.is_packaging_restricted:
        return current + 1
    if current < _stock(product):
        return current + 1
    return current + _pack(product)


def decrement(product: PackagingInfo, current: int) -> int:
    """Stepper "-": one pack while past the stock, never below the floor."""
    if not product.is_packaging_restricted:
        return max(1, current - 1)
    if current > _stock(product):
        return max(_floor(product), current - _pack(product))
    return max(1, current - 1)


def apply_typed_delta(product: PackagingInfo, current: int, typed) -> int:
    """
    Handle a value typed into the quantity input.

    A change of exactly one unit while in the pack zone is what arrow keys
    on a number input produce, so it is treated as a stepper press instead
    of being taken literally. Any other value is accepted as typed and
    corrected later by ``normalize_on_blur``.
    """
    value = coerce_quantity(typed)
    if value is None:
        return current

    if product.is_packaging_restricted:
        stock = _stock(product)
        diff = value - current
        if diff == 1 and current >= stock:
            return increment(product, current)
        if diff == -1 and current > stock:
            return decrement(product, current)

    return value


def normalize_on_blur(product: PackagingInfo, quantity: int) -> int:
    """
    Snap a quantity to the nearest valid one.

    This is the authoritative pass run when the input loses focus, before
    the value reaches the cart. Idempotent.
    """
    quantity = max(1, quantity)

    if not product.is_packaging_restricted:
        return quantity

    stock = _stock(product)
    pack = _pack(product)

    if stock <= 0:
        # Nearest multiple of the pack, ties round up
        nearest = ((2 * quantity + pack) // (2 * pack)) * pack
        return max(pack, nearest)

    if quantity > stock:
        packs = -(-(quantity - stock) // pack)
        return stock + packs * pack

    return quantity


def is_valid_quantity(product: PackagingInfo, quantity) -> bool:
    """Check a quantity against the packaging invariants."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        return False
    if not product.is_packaging_restricted:
        return True

    stock = _stock(product)
    pack = _pack(product)
    if stock <= 0:
        return quantity % pack == 0
    return quantity <= stock or (quantity - stock) % pack == 0


class QuantityField:
    """
    Quantity state of a single input control.

    Owns the value shown in one quantity input (product card, product
    modal, cart row) and moves it only through the policy functions.
    """

    def __init__(self, product: PackagingInfo, quantity: Optional[int] = None):
        self.product = product
        self.quantity = initial_quantity(product) if quantity is None else quantity

    def reset(self, product: Optional[PackagingInfo] = None) -> int:
        """Start over, optionally for a different product."""
        if product is not None:
            self.product = product
        self.quantity = initial_quantity(self.product)
        return self.quantity

    @property
    def zone(self) -> QuantityZone:
        return zone(self.product, self.quantity)

    def increment(self) -> int:
        self.quantity = increment(self.product, self.quantity)
        return self.quantity

    def decrement(self) -> int:
        self.quantity = decrement(self.product, self.quantity)
        return self.quantity

    def on_input(self, raw) -> int:
        self.quantity = apply_typed_delta(self.product, self.quantity, raw)
        return self.quantity

    def on_blur(self) -> int:
        self.quantity = normalize_on_blur(self.product, self.quantity)
        return self.quantity
