"""Checkout API routes"""

from typing import Optional

from fastapi import APIRouter, Depends

from ..core.session import ShoppingSession
from ..models.checkout import (
    ApplyCouponRequest,
    CheckoutDetailsRequest,
    CheckoutResponse,
    CheckoutState,
)
from ..services.checkout_session import CheckoutSession
from .dependencies import current_session

router = APIRouter(prefix="/api/checkout", tags=["Checkout"])


def _response(checkout: CheckoutSession, message: Optional[str] = None) -> CheckoutResponse:
    totals = None
    if checkout.state in (CheckoutState.IDLE, CheckoutState.REVIEWING):
        totals = checkout.current_totals()
    return CheckoutResponse(
        state=checkout.state,
        snapshot=checkout.snapshot,
        totals=totals,
        coupon=checkout.coupon,
        confirmation=checkout.confirmation,
        last_error=checkout.last_error,
        message=message,
    )


@router.get("", response_model=CheckoutResponse)
async def get_checkout(session: ShoppingSession = Depends(current_session)):
    """Checkout state, snapshot and live cart totals"""
    return _response(session.checkout)


@router.post("/coupon", response_model=CheckoutResponse)
async def apply_coupon(
    request: ApplyCouponRequest,
    session: ShoppingSession = Depends(current_session),
):
    """
    Apply a coupon code.

    An unknown code is not an error: the response says so and any
    previously applied coupon stays in place.
    """
    result = session.checkout.apply_coupon(request.code)
    message = (
        f"Coupon {result.code} applied"
        if result.accepted else "Invalid coupon code"
    )
    return _response(session.checkout, message)


@router.delete("/coupon", response_model=CheckoutResponse)
async def remove_coupon(session: ShoppingSession = Depends(current_session)):
    """Remove the active coupon"""
    session.checkout.remove_coupon()
    return _response(session.checkout, "Coupon removed")


@router.post("/begin", response_model=CheckoutResponse)
async def begin_checkout(session: ShoppingSession = Depends(current_session)):
    """Snapshot the cart and start reviewing the order"""
    session.checkout.begin_checkout()
    return _response(session.checkout)


@router.put("/details", response_model=CheckoutResponse)
async def set_details(
    request: CheckoutDetailsRequest,
    session: ShoppingSession = Depends(current_session),
):
    """Record shipping address, billing address and payment selection"""
    session.checkout.set_details(
        shipping_address=request.shipping_address,
        payment=request.payment,
        billing_address=request.billing_address,
    )
    return _response(session.checkout)


@router.post("/submit", response_model=CheckoutResponse)
async def submit_order(session: ShoppingSession = Depends(current_session)):
    """
    Place the order.

    On failure the session stays on the same snapshot so the shopper can
    retry without re-entering anything.
    """
    confirmation = await session.checkout.submit()
    return _response(session.checkout, f"Order {confirmation.order_id} placed")


@router.post("/abort", response_model=CheckoutResponse)
async def abort_checkout(session: ShoppingSession = Depends(current_session)):
    """Leave checkout; the cart is kept"""
    session.checkout.abort()
    return _response(session.checkout)
