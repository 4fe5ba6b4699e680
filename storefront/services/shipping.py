"""Shipping fee policy"""

from dataclasses import dataclass
from decimal import Decimal

from ..core.config import settings
from ..utils.money import ZERO, to_money


@dataclass(frozen=True)
class ShippingPolicy:
    """Free shipping at or above a threshold, a flat fee below it"""
    free_shipping_threshold: Decimal
    flat_fee: Decimal

    @classmethod
    def from_settings(cls) -> "ShippingPolicy":
        return cls(
            free_shipping_threshold=settings.free_shipping_threshold,
            flat_fee=settings.flat_shipping_fee,
        )

    def fee(self, subtotal: Decimal) -> Decimal:
        if subtotal >= self.free_shipping_threshold:
            return to_money(ZERO)
        return to_money(self.flat_fee)

    def amount_until_free(self, subtotal: Decimal) -> Decimal:
        """How much more the shopper must spend to get free shipping"""
        return to_money(max(self.free_shipping_threshold - subtotal, ZERO))


def shipping_fee(subtotal: Decimal) -> Decimal:
    """Shipping fee for a subtotal under the configured policy"""
    return ShippingPolicy.from_settings().fee(subtotal)
