"""
Cart Router

Remote cart slot for the portal clients. The client keeps the cart in
memory and in local storage, and pushes the whole snapshot here after
each quiet period; on login it reads it back.

- GET  /api/cart -> list of line items ([] if the user has no cart)
- POST /api/cart -> {"items": [...]} replaces the stored snapshot
"""
from fastapi import APIRouter, Depends, HTTPException

from portal.cart.models import snapshot_from_dicts, snapshot_to_dicts
from portal.errors import (
    CartServiceUnavailable,
    ERROR_CART_FETCH,
    ERROR_CART_UPDATE,
    ERROR_ITEMS_NOT_ARRAY,
)
from portal.logging import get_logger, sanitize_id_for_logging
from .deps import get_remote_cart, require_user_id
from .models import UpdateCartRequest, UpdateCartResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["cart"])


@router.get("/cart")
async def get_cart(
    user_id: str = Depends(require_user_id),
    remote=Depends(get_remote_cart),
):
    try:
        items = await remote.fetch(user_id)
    except CartServiceUnavailable as e:
        logger.error(f"Error in get_cart for user {sanitize_id_for_logging(user_id)}: {e}")
        raise HTTPException(status_code=503, detail=ERROR_CART_FETCH)
    return snapshot_to_dicts(items)


@router.post("/cart", response_model=UpdateCartResponse)
async def update_cart(
    request: UpdateCartRequest,
    user_id: str = Depends(require_user_id),
    remote=Depends(get_remote_cart),
):
    if not isinstance(request.items, list):
        raise HTTPException(status_code=400, detail=ERROR_ITEMS_NOT_ARRAY)

    items = snapshot_from_dicts(request.items, source="request")
    try:
        await remote.persist(user_id, items)
    except CartServiceUnavailable as e:
        logger.error(f"Error in update_cart for user {sanitize_id_for_logging(user_id)}: {e}")
        raise HTTPException(status_code=503, detail=ERROR_CART_UPDATE)

    return UpdateCartResponse(success=True, message="Cart updated", items=len(items))
