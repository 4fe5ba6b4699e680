# Storefront Models

from .product import Product
from .cart import (
    CartLine,
    CartState,
    AddItemResult,
    StoredCart,
    AddToCartRequest,
    UpdateCartItemRequest,
    CartResponse,
)
from .checkout import (
    CheckoutState,
    PaymentMethod,
    ShippingAddress,
    PaymentDetails,
    CouponResult,
    CouponApplication,
    OrderTotals,
    CheckoutSnapshot,
    OrderLine,
    OrderRequest,
    OrderConfirmation,
    ApplyCouponRequest,
    CheckoutDetailsRequest,
    CheckoutResponse,
)

__all__ = [
    "Product",
    "CartLine",
    "CartState",
    "AddItemResult",
    "StoredCart",
    "AddToCartRequest",
    "UpdateCartItemRequest",
    "CartResponse",
    "CheckoutState",
    "PaymentMethod",
    "ShippingAddress",
    "PaymentDetails",
    "CouponResult",
    "CouponApplication",
    "OrderTotals",
    "CheckoutSnapshot",
    "OrderLine",
    "OrderRequest",
    "OrderConfirmation",
    "ApplyCouponRequest",
    "CheckoutDetailsRequest",
    "CheckoutResponse",
]
