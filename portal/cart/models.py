"""Cart models: catalog products, line items and snapshot wire format."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from portal.logging import get_logger
from portal.money import to_decimal, round_money, multiply
from .quantity import coerce_quantity

logger = get_logger(__name__)


def is_restricted_indicator(value: Any) -> bool:
    """
    Whether a catalog packaging indicator marks the product as restricted.

    Only the literal 0, as a number or as text, means restricted. Anything
    else, including a missing indicator or an empty string, does not.
    """
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return value == 0
    if isinstance(value, str):
        return value.strip() == "0"
    return False


def _stock_from(value: Any) -> int:
    stock = coerce_quantity(value)
    return stock if stock is not None and stock > 0 else 0


def _pack_from(value: Any) -> int:
    pack = coerce_quantity(value)
    return pack if pack is not None and pack > 0 else 1


def _flag_from(value: Any) -> bool:
    """Parse a stored boolean; text such as ``"false"`` or ``"0"`` is False."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return value is True or (isinstance(value, int) and value == 1)


@dataclass(frozen=True)
class Product:
    """Catalog product as seen by the cart. Read-only."""
    id: str
    name: str = ""
    code: str = ""
    price: Decimal = Decimal("0")
    stock_available: int = 0
    pack_quantity: int = 1
    is_packaging_restricted: bool = False

    def __post_init__(self):
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "price", to_decimal(self.price))
        object.__setattr__(self, "stock_available", _stock_from(self.stock_available))
        object.__setattr__(self, "pack_quantity", _pack_from(self.pack_quantity))

    @classmethod
    def from_catalog(cls, record: dict) -> "Product":
        """Build from a catalog record using the portal's field names."""
        return cls(
            id=str(record["id"]),
            name=record.get("name") or record.get("description") or "",
            code=str(record.get("code") or ""),
            price=to_decimal(record.get("price")),
            stock_available=record.get("stock_disponible"),
            pack_quantity=record.get("pack_quantity"),
            is_packaging_restricted=is_restricted_indicator(record.get("indicator_description")),
        )


@dataclass
class CartLineItem:
    """Single line in the cart."""
    product_id: str
    quantity: int
    product_name: str = ""
    product_code: str = ""
    unit_price: Decimal = Decimal("0")
    stock_available: int = 0
    pack_quantity: int = 1
    is_packaging_restricted: bool = False
    added_at: str = field(default="")

    def __post_init__(self):
        if not self.added_at:
            self.added_at = datetime.now(timezone.utc).isoformat()
        self.product_id = str(self.product_id)
        self.unit_price = to_decimal(self.unit_price)
        self.stock_available = _stock_from(self.stock_available)
        self.pack_quantity = _pack_from(self.pack_quantity)

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "CartLineItem":
        """Copy the display and packaging fields of a product into a new line."""
        return cls(
            product_id=product.id,
            quantity=quantity,
            product_name=product.name,
            product_code=product.code,
            unit_price=product.price,
            stock_available=product.stock_available,
            pack_quantity=product.pack_quantity,
            is_packaging_restricted=product.is_packaging_restricted,
        )

    @property
    def line_total(self) -> Decimal:
        """Total price for all units."""
        return round_money(multiply(self.unit_price, self.quantity))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_code": self.product_code,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "stock_available": self.stock_available,
            "pack_quantity": self.pack_quantity,
            "is_packaging_restricted": self.is_packaging_restricted,
            "added_at": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLineItem":
        """Create from dictionary. ``id`` is accepted for ``product_id``."""
        product_id = data.get("product_id", data.get("id"))
        if product_id is None:
            raise KeyError("product_id")
        quantity = coerce_quantity(data["quantity"])
        if quantity is None:
            raise ValueError(f"invalid quantity: {data['quantity']!r}")
        return cls(
            product_id=str(product_id),
            quantity=quantity,
            product_name=data.get("product_name", ""),
            product_code=data.get("product_code", ""),
            unit_price=to_decimal(data.get("unit_price")),
            stock_available=data.get("stock_available", 0),
            pack_quantity=data.get("pack_quantity", 1),
            is_packaging_restricted=_flag_from(data.get("is_packaging_restricted", False)),
            added_at=data.get("added_at", ""),
        )


def snapshot_to_dicts(items: Iterable[CartLineItem]) -> List[dict]:
    """Serialize a cart snapshot, keeping its order."""
    return [item.to_dict() for item in items]


def snapshot_from_dicts(raw: Any, source: Optional[str] = None) -> List[CartLineItem]:
    """
    Load a cart snapshot.

    Malformed entries and entries without a positive quantity are skipped,
    so whatever comes back from storage always satisfies the cart invariant.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(f"Ignoring cart snapshot that is not a list (source={source})")
        return []

    items: List[CartLineItem] = []
    for entry in raw:
        try:
            item = CartLineItem.from_dict(entry)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed cart entry (source={source}): {e}")
            continue
        if item.quantity <= 0:
            continue
        items.append(item)
    return items
