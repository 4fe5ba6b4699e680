# Engine services

from .cart_store import CartStore
from .coupons import CouponEvaluator, CouponRule, CouponKind
from .shipping import ShippingPolicy, shipping_fee
from .store_client import StoreApiClient
from .checkout_session import CheckoutSession, price_lines

__all__ = [
    "CartStore",
    "CouponEvaluator",
    "CouponRule",
    "CouponKind",
    "ShippingPolicy",
    "shipping_fee",
    "StoreApiClient",
    "CheckoutSession",
    "price_lines",
]
