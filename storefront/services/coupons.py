"""Coupon / discount evaluation"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..models.checkout import CouponResult
from ..utils.money import ZERO, percentage_of, to_money

logger = logging.getLogger(__name__)


class CouponKind(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"


@dataclass(frozen=True)
class CouponRule:
    """A single entry of the coupon table"""
    code: str
    kind: CouponKind
    value: Decimal
    min_subtotal: Optional[Decimal] = None

    def discount_for(self, subtotal: Decimal) -> Decimal:
        if self.kind == CouponKind.PERCENT:
            discount = percentage_of(subtotal, self.value)
        else:
            discount = to_money(self.value)
        return min(discount, to_money(subtotal))


class CouponEvaluator:
    """
    Validates coupon codes against a fixed rule table.

    A bad code is ordinary user input, so it yields ``accepted=False``
    rather than an exception.
    """

    def __init__(self, rules: list[CouponRule]):
        self.rules: dict[str, CouponRule] = {rule.code.upper(): rule for rule in rules}

    @classmethod
    def from_config(cls, table: dict[str, dict]) -> "CouponEvaluator":
        """
        Build from a ``{code: {"kind", "value", "min_subtotal"}}`` mapping
        as found in settings.
        """
        rules = []
        for code, rule_config in table.items():
            min_subtotal = rule_config.get("min_subtotal")
            rules.append(CouponRule(
                code=code,
                kind=CouponKind(rule_config.get("kind", CouponKind.PERCENT.value)),
                value=Decimal(str(rule_config["value"])),
                min_subtotal=Decimal(str(min_subtotal)) if min_subtotal is not None else None,
            ))
        return cls(rules)

    def apply(self, code: str, subtotal: Decimal) -> CouponResult:
        """Evaluate ``code`` against the current subtotal"""
        normalized = (code or "").strip().upper()
        rule = self.rules.get(normalized) if normalized else None

        if rule is None:
            logger.info(f"Coupon rejected: {normalized or '<empty>'}")
            return CouponResult(code=normalized, accepted=False, discount_amount=ZERO)

        if rule.min_subtotal is not None and subtotal < rule.min_subtotal:
            logger.info(f"Coupon {normalized} rejected: subtotal {subtotal} below {rule.min_subtotal}")
            return CouponResult(code=normalized, accepted=False, discount_amount=ZERO)

        discount = rule.discount_for(subtotal)
        if discount <= 0:
            logger.info(f"Coupon {normalized} rejected: no discount on subtotal {subtotal}")
            return CouponResult(code=normalized, accepted=False, discount_amount=ZERO)

        logger.info(f"Coupon {normalized} accepted: discount {discount}")
        return CouponResult(code=normalized, accepted=True, discount_amount=discount)
