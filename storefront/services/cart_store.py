"""
Cart Store

Owns the cart lines of one shopping session and enforces the stock and
quantity rules on every mutation. Aggregates are always recomputed from the
lines; nothing derived is cached.
"""

import logging
from typing import Callable, Optional

from ..database.carts import CartStorage
from ..exceptions import OutOfStockError
from ..models.cart import AddItemResult, CartLine, CartState
from ..models.product import Product

logger = logging.getLogger(__name__)


class CartStore:
    """
    Shopping cart for a single shopper.

    Every line satisfies ``1 <= quantity <= stock_ceiling``. Mutations are
    computed on a copy of the lines, persisted, and only then swapped in, so
    a failed write leaves the cart exactly as it was.
    """

    def __init__(self, storage: CartStorage, cart_key: str):
        """
        Args:
            storage: Persistence backend shared by all sessions
            cart_key: Shopper identity the cart is stored under
        """
        self.cart_key = cart_key
        self._storage = storage
        self._lines: list[CartLine] = []
        self._revision = 0
        self._clear_listeners: list[Callable[[], None]] = []
        self.reload()

    def reload(self) -> CartState:
        """Replace in-memory lines with the persisted cart"""
        stored = self._storage.load(self.cart_key)
        if stored:
            self._lines = list(stored.lines)
            self._revision = stored.revision
        else:
            self._lines = []
            self._revision = 0
        return self.get_state()

    def get_state(self) -> CartState:
        """Current cart with aggregates computed from the lines"""
        return CartState(lines=tuple(self._lines), revision=self._revision)

    def get_line(self, product_id: str) -> Optional[CartLine]:
        """Get the line for a product, if present"""
        index = self._index_of(product_id)
        return None if index is None else self._lines[index]

    def on_clear(self, listener: Callable[[], None]) -> None:
        """Register a callback run whenever the cart is cleared"""
        self._clear_listeners.append(listener)

    def add_item(self, product: Product, quantity: int = 1) -> AddItemResult:
        """
        Add a product to the cart.

        An existing line for the same product is merged into; the stock
        ceiling is refreshed from ``product`` and the quantity clamped to it.
        The line keeps the price it was first added at.

        Raises:
            OutOfStockError: product has no stock; the cart is unchanged
            ValueError: quantity is below 1
        """
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {quantity}")

        if product.quantity <= 0:
            logger.info(f"Rejected add of out-of-stock product {product.id}")
            raise OutOfStockError(product.id, product.name)

        ceiling = product.quantity
        lines = list(self._lines)
        index = self._index_of(product.id)

        if index is None:
            granted = min(quantity, ceiling)
            line = CartLine(
                product_id=product.id,
                name=product.name,
                image=product.image,
                unit_price=product.price,
                original_unit_price=_original_price(product),
                quantity=granted,
                stock_ceiling=ceiling,
                variant=product.variant,
            )
            lines.append(line)
        else:
            existing = lines[index]
            new_quantity = min(existing.quantity + quantity, ceiling)
            granted = max(new_quantity - existing.quantity, 0)
            line = existing.model_copy(
                update={"quantity": new_quantity, "stock_ceiling": ceiling}
            )
            lines[index] = line

        self._commit(lines)

        if granted < quantity:
            logger.info(
                f"Clamped add of {product.id}: requested {quantity}, "
                f"granted {granted} (stock {ceiling})"
            )

        return AddItemResult(
            line=line,
            requested_quantity=quantity,
            granted_quantity=granted,
        )

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartLine]:
        """
        Set a line's quantity, clamped to ``[1, stock_ceiling]``.

        Zero or less removes the line. Unknown product ids are ignored.

        Returns:
            The updated line, or None if it was removed or never existed
        """
        index = self._index_of(product_id)
        if index is None:
            return None

        if quantity <= 0:
            self.remove_item(product_id)
            return None

        existing = self._lines[index]
        clamped = min(quantity, existing.stock_ceiling)
        if clamped == existing.quantity:
            return existing

        lines = list(self._lines)
        line = existing.model_copy(update={"quantity": clamped})
        lines[index] = line
        self._commit(lines)
        return line

    def remove_item(self, product_id: str) -> None:
        """Remove a line; removing a missing line is a no-op"""
        if self._index_of(product_id) is None:
            return
        self._commit([line for line in self._lines if line.product_id != product_id])

    def clear_cart(self) -> None:
        """Remove every line and notify clear listeners"""
        self._commit([])
        logger.info(f"Cart {self.cart_key} cleared")
        for listener in list(self._clear_listeners):
            listener()

    def _index_of(self, product_id: str) -> Optional[int]:
        return next(
            (i for i, line in enumerate(self._lines) if line.product_id == product_id),
            None,
        )

    def _commit(self, lines: list[CartLine]) -> None:
        stored = self._storage.save(self.cart_key, lines, self._revision)
        self._lines = lines
        self._revision = stored.revision


def _original_price(product: Product):
    """Compare-at price, only when it is actually above the selling price"""
    if product.compare_at_price is not None and product.compare_at_price > product.price:
        return product.compare_at_price
    return None
