"""
Unit tests for the Cart Store.
"""

import random
from decimal import Decimal

import pytest

from storefront.database.carts import InMemoryCartStorage
from storefront.exceptions import OutOfStockError
from storefront.services.cart_store import CartStore


def _recomputed(lines):
    item_count = sum(line.quantity for line in lines)
    subtotal = sum((line.unit_price * line.quantity for line in lines), Decimal("0"))
    savings = sum(
        ((line.original_unit_price - line.unit_price) * line.quantity
         for line in lines if line.original_unit_price is not None),
        Decimal("0"),
    )
    return item_count, subtotal, savings


class TestAddItem:
    """Tests for adding products."""

    def test_add_new_line(self, cart, product_factory):
        """Test adding a product creates a line with the requested quantity."""
        result = cart.add_item(product_factory("1", price=2500, quantity=10), 2)

        state = cart.get_state()
        assert len(state.lines) == 1
        assert result.line.quantity == 2
        assert result.line.stock_ceiling == 10
        assert result.clamped is False
        assert state.subtotal == Decimal("5000")

    def test_add_more_than_stock_is_clamped(self, cart, product_factory):
        """Test requesting 5 of a product with 3 in stock grants 3 and reports it."""
        result = cart.add_item(product_factory("1", price=10000, quantity=3), 5)

        assert result.line.quantity == 3
        assert result.requested_quantity == 5
        assert result.granted_quantity == 3
        assert result.clamped is True

    def test_duplicate_add_merges(self, cart, product_factory):
        """Test adding the same product twice yields one line."""
        product = product_factory("1", quantity=10)
        cart.add_item(product, 2)
        cart.add_item(product, 3)

        state = cart.get_state()
        assert len(state.lines) == 1
        assert state.lines[0].quantity == 5

    def test_duplicate_add_clamps_to_stock(self, cart, product_factory):
        """Test merged quantity is min(n1 + n2, stock)."""
        product = product_factory("1", quantity=4)
        cart.add_item(product, 3)
        result = cart.add_item(product, 3)

        assert result.line.quantity == 4
        assert result.granted_quantity == 1
        assert result.clamped is True
        assert len(cart.get_state().lines) == 1

    def test_variant_does_not_split_lines(self, cart, product_factory):
        """Test a second variant of the same product merges into one line."""
        first = product_factory("1", quantity=10).model_copy(update={"variant": "red"})
        second = product_factory("1", quantity=10).model_copy(update={"variant": "blue"})
        cart.add_item(first, 1)
        cart.add_item(second, 1)

        state = cart.get_state()
        assert len(state.lines) == 1
        assert state.lines[0].quantity == 2

    def test_merge_refreshes_stock_ceiling_and_keeps_price(self, cart, product_factory):
        """Test re-adding takes the newer stock figure but not the newer price."""
        cart.add_item(product_factory("1", price=1000, quantity=10), 6)
        result = cart.add_item(product_factory("1", price=1200, quantity=4), 1)

        assert result.line.stock_ceiling == 4
        assert result.line.quantity == 4
        assert result.line.unit_price == Decimal("1000")

    def test_out_of_stock_rejected(self, cart, product_factory):
        """Test adding a product with zero stock raises and creates no line."""
        with pytest.raises(OutOfStockError) as exc_info:
            cart.add_item(product_factory("1", quantity=0), 1)

        assert exc_info.value.product_id == "1"
        assert exc_info.value.status_code == 409
        assert cart.get_state().is_empty

    def test_out_of_stock_leaves_existing_line(self, cart, product_factory):
        """Test a rejected re-add does not touch the existing line."""
        cart.add_item(product_factory("1", quantity=5), 2)
        with pytest.raises(OutOfStockError):
            cart.add_item(product_factory("1", quantity=0), 1)

        line = cart.get_line("1")
        assert line.quantity == 2
        assert line.stock_ceiling == 5

    def test_quantity_below_one_is_rejected(self, cart, product_factory):
        """Test a non-positive requested quantity is a programming error."""
        with pytest.raises(ValueError):
            cart.add_item(product_factory("1"), 0)
        assert cart.get_state().is_empty

    def test_compare_at_price_becomes_original_price(self, cart, product_factory):
        """Test savings come from the compare-at price."""
        cart.add_item(product_factory("1", price=800, compare_at_price=1000, quantity=5), 3)
        assert cart.get_state().total_savings == Decimal("600")

    def test_compare_at_price_below_price_is_ignored(self, cart, product_factory):
        """Test a compare-at price under the selling price yields no savings."""
        result = cart.add_item(product_factory("1", price=1000, compare_at_price=900, quantity=5), 1)
        assert result.line.original_unit_price is None
        assert cart.get_state().total_savings == Decimal("0")


class TestUpdateAndRemove:
    """Tests for quantity updates and removal."""

    def test_update_clamps_to_stock(self, cart, product_factory):
        """Test update above stock is clamped to the ceiling."""
        cart.add_item(product_factory("1", quantity=3), 1)
        line = cart.update_quantity("1", 10)
        assert line.quantity == 3

    def test_update_to_zero_removes(self, cart, product_factory):
        """Test decrementing to zero removes the line."""
        cart.add_item(product_factory("1", quantity=3), 1)
        assert cart.update_quantity("1", 0) is None
        assert cart.get_line("1") is None

    def test_update_negative_removes(self, cart, product_factory):
        """Test a negative quantity removes the line rather than failing."""
        cart.add_item(product_factory("1", quantity=3), 2)
        cart.update_quantity("1", -4)
        assert cart.get_state().is_empty

    def test_update_unknown_is_noop(self, cart, product_factory):
        """Test updating a missing product changes nothing."""
        cart.add_item(product_factory("1", quantity=3), 1)
        before = cart.get_state()
        assert cart.update_quantity("missing", 2) is None
        assert cart.get_state() == before

    def test_remove_unknown_is_noop(self, cart, product_factory):
        """Test removing a missing product changes nothing and does not raise."""
        cart.add_item(product_factory("1", quantity=3), 1)
        before = cart.get_state()
        cart.remove_item("missing")
        assert cart.get_state() == before

    def test_double_remove_is_idempotent(self, cart, product_factory):
        """Test two remove clicks end in the same state as one."""
        cart.add_item(product_factory("1", quantity=3), 1)
        cart.add_item(product_factory("2", quantity=3), 1)
        cart.remove_item("1")
        after_first = cart.get_state()
        cart.remove_item("1")
        assert cart.get_state() == after_first
        assert [line.product_id for line in after_first.lines] == ["2"]

    def test_insertion_order_preserved(self, cart, product_factory):
        """Test lines keep the order they were added in."""
        for product_id in ("3", "1", "2"):
            cart.add_item(product_factory(product_id, quantity=5), 1)
        cart.update_quantity("1", 4)
        assert [line.product_id for line in cart.get_state().lines] == ["3", "1", "2"]


class TestClearCart:
    """Tests for clearing the cart."""

    def test_clear_empties_cart(self, cart, product_factory):
        cart.add_item(product_factory("1"), 1)
        cart.add_item(product_factory("2"), 1)
        cart.clear_cart()
        state = cart.get_state()
        assert state.is_empty
        assert state.item_count == 0
        assert state.subtotal == Decimal("0")

    def test_clear_notifies_listeners(self, cart):
        calls = []
        cart.on_clear(lambda: calls.append("cleared"))
        cart.clear_cart()
        assert calls == ["cleared"]


class TestInvariants:
    """Properties that must hold after any sequence of operations."""

    def test_random_operation_sequences(self, storage, product_factory):
        """Test quantity bounds and derived totals over random sequences."""
        rng = random.Random(20240601)
        products = [
            product_factory(str(i), price=rng.randint(1, 50) * 100,
                            compare_at_price=rng.choice([None, 6000]),
                            quantity=rng.randint(1, 6))
            for i in range(6)
        ]
        cart = CartStore(storage, "property")

        for _ in range(500):
            op = rng.choice(["add", "update", "remove"])
            product = rng.choice(products)
            if op == "add":
                cart.add_item(product, rng.randint(1, 8))
            elif op == "update":
                cart.update_quantity(product.id, rng.randint(-2, 10))
            else:
                cart.remove_item(product.id)

            state = cart.get_state()
            ids = [line.product_id for line in state.lines]
            assert len(ids) == len(set(ids))
            for line in state.lines:
                assert 1 <= line.quantity <= line.stock_ceiling
            assert (state.item_count, state.subtotal, state.total_savings) == _recomputed(state.lines)

    def test_failed_write_leaves_cart_unchanged(self, product_factory):
        """Test no partial mutation when persistence fails."""

        class FlakyStorage(InMemoryCartStorage):
            fail = False

            def _write(self, key, payload):
                if self.fail:
                    raise OSError("disk full")
                super()._write(key, payload)

        storage = FlakyStorage()
        cart = CartStore(storage, "flaky")
        cart.add_item(product_factory("1", quantity=5), 2)
        before = cart.get_state()

        storage.fail = True
        with pytest.raises(OSError):
            cart.add_item(product_factory("1", quantity=5), 2)
        with pytest.raises(OSError):
            cart.remove_item("1")

        assert cart.get_state() == before
