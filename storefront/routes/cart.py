"""Cart API routes"""

import logging

import httpx
from fastapi import APIRouter, Depends

from ..core.session import ShoppingSession
from ..exceptions import StoreApiError
from ..models.cart import AddToCartRequest, CartResponse, UpdateCartItemRequest
from ..services.store_client import StoreApiClient
from .dependencies import current_session, get_store_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["Cart"])


@router.get("", response_model=CartResponse)
async def get_cart(session: ShoppingSession = Depends(current_session)):
    """Get the session's cart"""
    return CartResponse(cart=session.cart.get_state())


@router.post("/items", response_model=CartResponse)
async def add_to_cart(
    request: AddToCartRequest,
    session: ShoppingSession = Depends(current_session),
    client: StoreApiClient = Depends(get_store_client),
):
    """
    Add an item to the cart.

    Stock is read from the product source at this point. Asking for more
    than is available adds what there is and flags the response as clamped.
    """
    try:
        product = await client.get_product(request.product_id)
    except httpx.HTTPError as e:
        logger.error(f"Product lookup failed for {request.product_id}: {e}")
        raise StoreApiError("Product service unavailable") from e

    result = session.cart.add_item(product, request.quantity)

    if result.clamped:
        message = (
            f"Only {result.granted_quantity} more of {product.name} available; "
            f"cart now has {result.line.quantity}"
        )
    else:
        message = f"Added {result.granted_quantity}x {product.name} to cart"

    return CartResponse(
        cart=session.cart.get_state(),
        message=message,
        clamped=result.clamped,
    )


@router.put("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str,
    request: UpdateCartItemRequest,
    session: ShoppingSession = Depends(current_session),
):
    """Update item quantity; zero removes the item, more than stock is clamped"""
    if session.cart.get_line(product_id) is None:
        return CartResponse(cart=session.cart.get_state(), message="Item not in cart")

    line = session.cart.update_quantity(product_id, request.quantity)
    if line is None:
        return CartResponse(cart=session.cart.get_state(), message="Item removed")

    clamped = line.quantity < request.quantity
    if clamped:
        message = f"Only {line.quantity} of {line.name} available"
    else:
        message = "Cart updated"
    return CartResponse(cart=session.cart.get_state(), message=message, clamped=clamped)


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_from_cart(
    product_id: str,
    session: ShoppingSession = Depends(current_session),
):
    """Remove an item from the cart"""
    session.cart.remove_item(product_id)
    return CartResponse(cart=session.cart.get_state(), message="Item removed")


@router.delete("", response_model=CartResponse)
async def clear_cart(session: ShoppingSession = Depends(current_session)):
    """Clear all items from cart"""
    session.cart.clear_cart()
    return CartResponse(cart=session.cart.get_state(), message="Cart cleared")
