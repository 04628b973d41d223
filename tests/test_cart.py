"""
Tests for the cart store
"""

from decimal import Decimal

import pytest

from portal.cart.models import CartLineItem
from portal.cart.store import CartChange, CartStore


def lines(store):
    return [(item.product_id, item.quantity) for item in store.items]


class TestAdd:

    def test_new_item_goes_to_front(self, free_product, stocked_product):
        store = CartStore()
        store.add(free_product, 2)
        store.add(stocked_product, 1)

        assert lines(store) == [("3001", 1), ("1001", 2)]

    def test_existing_item_is_summed_and_moved_to_front(self, free_product, stocked_product):
        store = CartStore()
        store.add(free_product, 2)
        store.add(stocked_product, 1)
        store.add(free_product, 3)

        assert lines(store) == [("1001", 5), ("3001", 1)]

    def test_default_quantity_follows_policy(self, packed_product):
        store = CartStore()
        item = store.add(packed_product)
        assert item.quantity == 10

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True])
    def test_rejects_invalid_quantity(self, free_product, quantity):
        store = CartStore()
        with pytest.raises(ValueError):
            store.add(free_product, quantity)
        assert len(store) == 0

    def test_totals(self, free_product, stocked_product):
        store = CartStore()
        store.add(free_product, 2)
        store.add(stocked_product, 1)

        assert store.total_items == 3
        assert store.subtotal == Decimal("70.00")


class TestSetQuantity:

    @pytest.mark.parametrize("quantity", [0, -3, "0", None, "abc"])
    def test_non_positive_removes_item(self, free_product, quantity):
        store = CartStore()
        store.add(free_product, 4)
        store.set_quantity(free_product.id, quantity)

        assert free_product.id not in store

    def test_replaces_quantity_in_place(self, free_product, stocked_product):
        store = CartStore()
        store.add(free_product, 1)
        store.add(stocked_product, 1)
        store.set_quantity("1001", 9)

        assert lines(store) == [("3001", 1), ("1001", 9)]

    def test_does_not_apply_packaging_rules(self, packed_product):
        store = CartStore()
        store.add(packed_product)
        store.set_quantity(packed_product.id, 13)

        assert store.get(packed_product.id).quantity == 13

    def test_unknown_product_is_noop(self, free_product):
        store = CartStore()
        store.add(free_product, 1)
        assert store.set_quantity("missing", 3) is None
        assert lines(store) == [("1001", 1)]


class TestRemoveAndClear:

    def test_remove(self, free_product, stocked_product):
        store = CartStore()
        store.add(free_product, 1)
        store.add(stocked_product, 1)
        store.remove(1001)

        assert lines(store) == [("3001", 1)]

    def test_remove_absent_is_silent(self):
        store = CartStore()
        store.remove("nope")
        assert len(store) == 0

    def test_clear(self, free_product):
        store = CartStore()
        store.add(free_product, 1)
        store.clear()
        assert store.items == ()

    def test_replace_drops_invalid_and_duplicate_lines(self):
        store = CartStore()
        store.replace([
            CartLineItem(product_id="1", quantity=2),
            CartLineItem(product_id="2", quantity=0),
            CartLineItem(product_id="1", quantity=7),
            CartLineItem(product_id="3", quantity=1),
        ])

        assert lines(store) == [("1", 2), ("3", 1)]


class TestNotifications:
    """Every call notifies exactly once."""

    def test_one_notification_per_call(self, free_product):
        store = CartStore()
        events = []
        store.subscribe(events.append)

        store.add(free_product, 1)
        store.add(free_product, 1)
        store.set_quantity(free_product.id, 5)
        store.set_quantity("missing", 2)
        store.remove("missing")
        store.set_quantity(free_product.id, 0)
        store.clear()
        store.replace([])

        assert [e.action for e in events] == [
            "add", "add", "set_quantity", "set_quantity", "remove", "set_quantity", "clear", "replace",
        ]
        assert events[0] == CartChange(action="add", product_id="1001")

    def test_failed_add_does_not_notify(self, free_product):
        store = CartStore()
        events = []
        store.subscribe(events.append)

        with pytest.raises(ValueError):
            store.add(free_product, 0)
        assert events == []

    def test_unsubscribe(self, free_product):
        store = CartStore()
        events = []
        unsubscribe = store.subscribe(events.append)
        unsubscribe()
        store.add(free_product, 1)

        assert events == []

    def test_failing_listener_does_not_break_mutation(self, free_product):
        store = CartStore()
        events = []

        def broken(change):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(events.append)
        store.add(free_product, 2)

        assert lines(store) == [("1001", 2)]
        assert len(events) == 1
