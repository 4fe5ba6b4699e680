# Utility modules

from .money import to_money, percentage_of, apply_discount, format_currency

__all__ = ["to_money", "percentage_of", "apply_discount", "format_currency"]
