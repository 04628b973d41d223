"""
Common Error Constants

Centralized error messages shared by the cart service and its clients.
"""

# Request errors
ERROR_UNAUTHORIZED = "Unauthorized"
ERROR_ITEMS_NOT_ARRAY = "Items must be an array"
ERROR_INVALID_QUANTITY = "quantity must be a positive integer"

# Remote cart errors
ERROR_CART_UNAVAILABLE = "Cart service unavailable"
ERROR_CART_FETCH = "Error fetching cart"
ERROR_CART_UPDATE = "Error updating cart"


class CartServiceUnavailable(ValueError):
    """Raised when the remote cart store cannot be read or written."""

    def __init__(self, detail: str = ""):
        message = f"{ERROR_CART_UNAVAILABLE}: {detail}" if detail else ERROR_CART_UNAVAILABLE
        super().__init__(message)
        self.detail = detail
