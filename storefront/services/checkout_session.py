"""
Checkout Session

Drives one shopper from "reviewing the cart" to "order placed".

    IDLE -> REVIEWING -> SUBMITTING -> COMPLETED
                ^            |
                +-- FAILED <-+

The session prices an immutable snapshot of the cart when checkout begins
and submits that snapshot, never the live cart, so the order carries exactly
the amounts the shopper agreed to.
"""

import uuid
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

import httpx

from ..core.config import settings
from ..exceptions import (
    CheckoutIncompleteError,
    CheckoutStateError,
    DuplicateSubmissionError,
    EmptyCartError,
    StoreApiError,
    SubmissionFailedError,
)
from ..models.cart import CartLine
from ..models.checkout import (
    CheckoutSnapshot,
    CheckoutState,
    CouponApplication,
    CouponResult,
    OrderConfirmation,
    OrderLine,
    OrderRequest,
    OrderTotals,
    PaymentDetails,
    ShippingAddress,
)
from ..utils.money import ZERO, apply_discount, to_money
from .cart_store import CartStore
from .coupons import CouponEvaluator
from .shipping import ShippingPolicy
from .store_client import StoreApiClient

logger = logging.getLogger(__name__)


def price_lines(
    lines: Iterable[CartLine],
    shipping: ShippingPolicy,
    currency: str,
    discount: Decimal = ZERO,
    coupon_code: Optional[str] = None,
) -> OrderTotals:
    """
    Price a set of cart lines.

    The discount is capped at the subtotal and shipping is charged on the
    pre-discount subtotal. An empty set of lines ships for free.
    """
    lines = list(lines)
    subtotal = to_money(sum((line.line_total for line in lines), ZERO))
    savings = to_money(sum((line.line_savings for line in lines), ZERO))
    discount = min(to_money(discount), subtotal)
    fee = shipping.fee(subtotal) if lines else to_money(ZERO)

    return OrderTotals(
        subtotal=subtotal,
        savings=savings,
        discount=discount,
        shipping_fee=fee,
        grand_total=apply_discount(subtotal, discount) + fee,
        currency=currency,
        coupon_code=coupon_code if discount > 0 else None,
        free_shipping_remaining=shipping.amount_until_free(subtotal) if lines else to_money(ZERO),
    )


class CheckoutSession:
    """
    Checkout state machine for one shopping session.

    The active coupon lives here rather than on the cart: it belongs to a
    checkout attempt, not to the product lines.
    """

    def __init__(
        self,
        cart: CartStore,
        client: StoreApiClient,
        coupons: Optional[CouponEvaluator] = None,
        shipping: Optional[ShippingPolicy] = None,
        currency: Optional[str] = None,
        revalidate_coupon: Optional[bool] = None,
    ):
        """
        Args:
            cart: Cart Store this checkout snapshots from
            client: Store API client used to submit orders
            coupons: Coupon evaluator (configured table if omitted)
            shipping: Shipping policy (configured policy if omitted)
            currency: Currency code for totals
            revalidate_coupon: Re-check the coupon code when checkout begins
                instead of keeping the discount locked in at apply time
        """
        self.cart = cart
        self._client = client
        self._coupons = coupons or CouponEvaluator.from_config(settings.coupon_rules)
        self._shipping = shipping or ShippingPolicy.from_settings()
        self.currency = currency or settings.currency
        if revalidate_coupon is None:
            revalidate_coupon = settings.revalidate_coupon_on_checkout
        self.revalidate_coupon = revalidate_coupon

        self.state = CheckoutState.IDLE
        self.snapshot: Optional[CheckoutSnapshot] = None
        self.coupon: Optional[CouponApplication] = None
        self.shipping_address: Optional[ShippingAddress] = None
        self.billing_address: Optional[ShippingAddress] = None
        self.payment: Optional[PaymentDetails] = None
        self.confirmation: Optional[OrderConfirmation] = None
        self.last_error: Optional[str] = None
        self.attempt_token: Optional[str] = None
        self._cleared_while_submitting = False

        cart.on_clear(self._on_cart_cleared)

    # ==================== Pricing ====================

    def current_totals(self) -> OrderTotals:
        """Totals of the live cart with the active coupon"""
        return self._price(self.cart.get_state().lines)

    def apply_coupon(self, code: str) -> CouponResult:
        """
        Apply a coupon code, replacing any active one.

        A rejected code leaves the current coupon in place. While reviewing,
        the discount is computed against the snapshot and the snapshot is
        re-priced.
        """
        self._require("apply a coupon", CheckoutState.IDLE, CheckoutState.REVIEWING)

        if self.state == CheckoutState.REVIEWING:
            subtotal = self.snapshot.subtotal
        else:
            subtotal = self.cart.get_state().subtotal

        result = self._coupons.apply(code, subtotal)
        if result.accepted:
            self.coupon = CouponApplication(code=result.code, discount_amount=result.discount_amount)
            self._reprice_snapshot()
        return result

    def remove_coupon(self) -> None:
        self._require("remove a coupon", CheckoutState.IDLE, CheckoutState.REVIEWING)
        if self.coupon is None:
            return
        self.coupon = None
        self._reprice_snapshot()

    # ==================== Lifecycle ====================

    def begin_checkout(self) -> CheckoutSnapshot:
        """
        Snapshot the cart and start reviewing.

        Calling it again while reviewing takes a fresh snapshot.

        Raises:
            EmptyCartError: nothing to check out
            CheckoutStateError: a submission is in flight
        """
        self._require(
            "begin checkout",
            CheckoutState.IDLE,
            CheckoutState.REVIEWING,
            CheckoutState.COMPLETED,
        )

        cart_state = self.cart.get_state()
        if cart_state.is_empty:
            raise EmptyCartError()

        if self.coupon and self.revalidate_coupon:
            result = self._coupons.apply(self.coupon.code, cart_state.subtotal)
            self.coupon = (
                CouponApplication(code=result.code, discount_amount=result.discount_amount)
                if result.accepted else None
            )

        self.confirmation = None
        self.last_error = None
        self.snapshot = self._take_snapshot(cart_state.lines)
        self.attempt_token = uuid.uuid4().hex
        self._transition(CheckoutState.REVIEWING)

        logger.info(
            f"Checkout snapshot for {self.cart.cart_key}: {self.snapshot.item_count} items, "
            f"total {self.snapshot.grand_total} {self.currency}"
        )
        return self.snapshot

    def set_details(
        self,
        shipping_address: ShippingAddress,
        payment: PaymentDetails,
        billing_address: Optional[ShippingAddress] = None,
    ) -> None:
        """Record destination, billing address and payment selection"""
        self._require("set checkout details", CheckoutState.REVIEWING)
        self.shipping_address = shipping_address
        self.billing_address = billing_address
        self.payment = payment

    async def submit(self) -> OrderConfirmation:
        """
        Send the snapshot to the order API.

        The state moves to SUBMITTING before the request is awaited, so a
        second call made meanwhile is rejected without reaching the backend.

        Raises:
            DuplicateSubmissionError: a submission is already in flight
            CheckoutStateError: not reviewing
            CheckoutIncompleteError: address or payment missing
            SubmissionFailedError: backend rejected the order or was
                unreachable; the session is back to reviewing the same
                snapshot and may retry with the same attempt token
        """
        if self.state == CheckoutState.SUBMITTING:
            logger.warning(f"Duplicate order submission rejected for {self.cart.cart_key}")
            raise DuplicateSubmissionError()
        self._require("submit", CheckoutState.REVIEWING)

        missing = []
        if self.shipping_address is None:
            missing.append("shipping address")
        if self.payment is None:
            missing.append("payment method")
        if missing:
            raise CheckoutIncompleteError(missing)

        order = self._build_order_request()
        self._cleared_while_submitting = False
        self._transition(CheckoutState.SUBMITTING)

        try:
            confirmation = await self._client.create_order(order, self.attempt_token)
        except (httpx.HTTPError, StoreApiError) as e:
            message = _describe_failure(e)
            self._fail(message)
            upstream = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
            raise SubmissionFailedError(message, upstream_status=upstream) from e
        except Exception as e:
            self._fail(str(e) or type(e).__name__)
            raise

        self.confirmation = confirmation
        self.coupon = None
        self._transition(CheckoutState.COMPLETED)
        logger.info(
            f"Order {confirmation.order_id} placed: {order.grand_total} {order.currency} "
            f"({self.snapshot.item_count} items)"
        )
        try:
            self.cart.clear_cart()
        except Exception:
            # Order is already placed
            logger.exception(f"Could not clear cart {self.cart.cart_key} after order {confirmation.order_id}")
        return confirmation

    def abort(self) -> None:
        """Abandon checkout; the cart is left untouched"""
        self._require(
            "abort checkout",
            CheckoutState.IDLE,
            CheckoutState.REVIEWING,
            CheckoutState.COMPLETED,
        )
        self._drop_snapshot()
        self.confirmation = None
        self.last_error = None
        self._transition(CheckoutState.IDLE)

    # ==================== Internals ====================

    def _price(self, lines: Iterable[CartLine]) -> OrderTotals:
        if self.coupon:
            return price_lines(
                lines,
                self._shipping,
                self.currency,
                discount=self.coupon.discount_amount,
                coupon_code=self.coupon.code,
            )
        return price_lines(lines, self._shipping, self.currency)

    def _take_snapshot(self, lines: Iterable[CartLine]) -> CheckoutSnapshot:
        lines = tuple(lines)
        totals = self._price(lines)
        return CheckoutSnapshot(
            lines=lines,
            subtotal=totals.subtotal,
            savings=totals.savings,
            discount=totals.discount,
            coupon_code=totals.coupon_code,
            shipping_fee=totals.shipping_fee,
            grand_total=totals.grand_total,
            currency=totals.currency,
            taken_at=datetime.now(timezone.utc),
        )

    def _reprice_snapshot(self) -> None:
        # The amount agreed to changed, so this is a new attempt
        if self.state != CheckoutState.REVIEWING:
            return
        self.snapshot = self._take_snapshot(self.snapshot.lines)
        self.attempt_token = uuid.uuid4().hex

    def _build_order_request(self) -> OrderRequest:
        snapshot = self.snapshot
        return OrderRequest(
            lines=[
                OrderLine(
                    product_id=line.product_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=line.line_total,
                    variant=line.variant,
                )
                for line in snapshot.lines
            ],
            subtotal=snapshot.subtotal,
            discount=snapshot.discount,
            shipping_fee=snapshot.shipping_fee,
            grand_total=snapshot.grand_total,
            currency=snapshot.currency,
            coupon_code=snapshot.coupon_code,
            address=self.shipping_address,
            billing_address=self.billing_address or self.shipping_address,
            payment_method=self.payment.method,
            payment_details=self.payment.to_order_details(),
        )

    def _fail(self, message: str) -> None:
        self.last_error = message
        self._transition(CheckoutState.FAILED)
        logger.warning(f"Order submission failed for {self.cart.cart_key}: {message}")

        if self._cleared_while_submitting:
            self._drop_snapshot()
            self._transition(CheckoutState.IDLE)
        else:
            self._transition(CheckoutState.REVIEWING)

    def _on_cart_cleared(self) -> None:
        if self.state == CheckoutState.REVIEWING:
            logger.info(f"Cart cleared during checkout for {self.cart.cart_key}; snapshot dropped")
            self._drop_snapshot()
            self._transition(CheckoutState.IDLE)
        elif self.state == CheckoutState.SUBMITTING:
            self._cleared_while_submitting = True

    def _drop_snapshot(self) -> None:
        self.snapshot = None
        self.attempt_token = None

    def _require(self, operation: str, *allowed: CheckoutState) -> None:
        if self.state not in allowed:
            raise CheckoutStateError(operation, self.state.value)

    def _transition(self, new_state: CheckoutState) -> None:
        if new_state != self.state:
            logger.debug(f"Checkout {self.cart.cart_key}: {self.state.value} -> {new_state.value}")
        self.state = new_state


def _describe_failure(error: Exception) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        detail = None
        try:
            body = error.response.json()
            if isinstance(body, dict):
                detail = body.get("message") or body.get("detail")
        except ValueError:
            pass
        status = error.response.status_code
        return f"Order rejected ({status}): {detail}" if detail else f"Order rejected ({status})"
    if isinstance(error, httpx.TimeoutException):
        return "Order service timed out"
    if isinstance(error, httpx.HTTPError):
        return f"Order service unreachable: {error}"
    return str(error)
