"""
Storefront cart and checkout engine.

Owns a shopper's cart, prices it, and turns a snapshot of it into an order
on the store backend.
"""

__version__ = "1.0.0"
