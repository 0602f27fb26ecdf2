# Overview: Pytest coverage for the order lifecycle (create, status change, edit, delete).

"""
Order lifecycle tests

Covers:
- stock reservation/release around create, edit and delete
- sales rows exist exactly while an order is Paid/Completed
- status log entries for create and status changes (not for edits)
- all-or-nothing behavior on failures
"""

from datetime import datetime

import pytest

from backoffice.errors import InsufficientStockError, NotFoundError, ValidationError
from backoffice.models import Customer, Order, OrderStatusLog
from backoffice.services import order_service

from conftest import items_for, logs_for, order_count, order_payload, sales_for, stock_of


def _multiset(rows):
    return sorted((r.variant_id, r.quantity, r.unit_price_cents) for r in rows)


class TestLifecycleScenario:

    def test_create_pay_delete(self, db_session, variant):
        """Pending order for 2 of V (stock 5), then Paid, then deleted."""
        order = order_service.create_order(order_payload(variant.id, quantity=2, unit_price_cents=100))
        order_id = order.id

        assert stock_of(variant.id) == 3
        assert sales_for(order_id) == []
        logs = logs_for(order_id)
        assert [(l.old_status, l.new_status) for l in logs] == [(None, "Pending")]

        order_service.update_order_status(order_id, "Paid")

        assert stock_of(variant.id) == 3
        sales = sales_for(order_id)
        assert len(sales) == 1
        assert sales[0].quantity == 2
        assert sales[0].unit_price_cents == 100
        assert sales[0].payment_status == "Paid"
        assert [(l.old_status, l.new_status) for l in logs_for(order_id)] == [
            (None, "Pending"),
            ("Pending", "Paid"),
        ]

        order_service.delete_order(order_id)

        assert stock_of(variant.id) == 5
        assert sales_for(order_id) == []
        assert items_for(order_id) == []
        assert db_session.get(Order, order_id) is None

    def test_insufficient_stock_creates_nothing(self, db_session, variant):
        payload = order_payload(
            variant.id, quantity=10,
            customer={"name": "Ayesha", "phone": "0300", "address": "Block 5"},
        )

        with pytest.raises(InsufficientStockError) as exc:
            order_service.create_order(payload)

        assert exc.value.available == 5
        assert stock_of(variant.id) == 5
        assert order_count() == 0
        assert db_session.query(Customer).count() == 0
        assert db_session.query(OrderStatusLog).count() == 0


class TestCreateOrder:

    def test_totals_computed(self, db_session, make_variant):
        v = make_variant(qty=10)
        payload = order_payload(
            v.id, quantity=3,
            subtotal_cents=1000, manual_discount_cents=50, delivery_saving_cents=300,
        )

        order = order_service.create_order(payload)

        assert order.subtotal_cents == 1000
        assert order.discount_cents == 350
        assert order.delivery_fee_cents == 0
        assert order.total_cents == 650

    def test_subtotal_defaults_to_line_sum(self, db_session, make_variant):
        a = make_variant(qty=10)
        b = make_variant(qty=10)
        payload = order_payload(a.id, quantity=2, unit_price_cents=150)
        payload["items"].append({"variant_id": b.id, "quantity": 1, "unit_price_cents": 75})

        order = order_service.create_order(payload)

        assert order.subtotal_cents == 375
        assert order.total_cents == 375

    def test_missing_unit_price_uses_variant_price(self, db_session, make_variant):
        own_price = make_variant(qty=5, price_cents=180)
        product_price = make_variant(qty=5)
        payload = order_payload(own_price.id, quantity=1, unit_price_cents=None)
        payload["items"].append({"variant_id": product_price.id, "quantity": 1})

        order = order_service.create_order(payload)

        prices = [item.unit_price_cents for item in items_for(order.id)]
        assert prices == [180, 100]

    def test_paid_order_records_sales_at_order_date(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id, status="Completed"))

        sales = sales_for(order.id)
        assert _multiset(sales) == _multiset(items_for(order.id))
        assert sales[0].sale_date == datetime(2026, 10, 1, 10, 0)
        assert sales[0].payment_method == "Order"

    def test_customer_linked(self, db_session, variant):
        order = order_service.create_order(order_payload(
            variant.id, customer={"name": "Ayesha", "phone": "0300", "address": "Block 5"},
        ))

        customer = db_session.get(Customer, order.customer_id)
        assert customer.phone == "0300"
        assert order.customer_name == "Ayesha"

    def test_changed_by_recorded(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id), changed_by="staff-1")

        assert logs_for(order.id)[0].changed_by == "staff-1"

    def test_validation_happens_before_any_write(self, db_session, variant):
        with pytest.raises(ValidationError):
            order_service.create_order(order_payload(variant.id, quantity=0))

        assert order_count() == 0
        assert stock_of(variant.id) == 5

    def test_unknown_variant(self, db_session, variant):
        with pytest.raises(NotFoundError):
            order_service.create_order(order_payload(99999))

        assert order_count() == 0


class TestUpdateOrderStatus:

    def test_status_change_never_touches_stock(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id, quantity=2))

        for status in ("Paid", "Canceled", "Completed", "Pending"):
            order_service.update_order_status(order.id, status)
            assert stock_of(variant.id) == 3

    @pytest.mark.parametrize("status,expect_sales", [
        ("Pending", False),
        ("Paid", True),
        ("Partial", False),
        ("Completed", True),
        ("Canceled", False),
    ])
    def test_sales_follow_status(self, db_session, variant, status, expect_sales):
        order = order_service.create_order(order_payload(variant.id, status="Paid"))

        order_service.update_order_status(order.id, status)

        sales = sales_for(order.id)
        if expect_sales:
            assert _multiset(sales) == _multiset(items_for(order.id))
            assert all(s.payment_status == status for s in sales)
        else:
            assert sales == []

    def test_same_status_twice_logs_twice(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id, status="Pending"))

        order_service.update_order_status(order.id, "Paid", changed_by="staff-1")
        first = _multiset(sales_for(order.id))
        order_service.update_order_status(order.id, "Paid", changed_by="staff-1")

        assert _multiset(sales_for(order.id)) == first
        transitions = [(l.old_status, l.new_status) for l in logs_for(order.id)]
        assert transitions == [(None, "Pending"), ("Pending", "Paid"), ("Paid", "Paid")]

    def test_any_transition_allowed(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id, status="Canceled"))

        order_service.update_order_status(order.id, "Completed")

        assert db_session.get(Order, order.id).payment_status == "Completed"

    def test_invalid_status(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id))

        with pytest.raises(ValidationError):
            order_service.update_order_status(order.id, "Shipped")

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.update_order_status(12345, "Paid")

    def test_deleted_order_not_found(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id))
        order_id = order.id
        order_service.delete_order(order_id)

        with pytest.raises(NotFoundError):
            order_service.update_order_status(order_id, "Paid")


class TestUpdateOrder:

    def test_resave_same_items_when_stock_fully_reserved(self, db_session, make_variant):
        """Old lines are released before new ones are reserved."""
        v = make_variant(qty=2)
        order = order_service.create_order(order_payload(v.id, quantity=2))
        assert stock_of(v.id) == 0

        order_service.update_order(order.id, order_payload(v.id, quantity=2))

        assert stock_of(v.id) == 0
        assert len(items_for(order.id)) == 1

    def test_swap_variant(self, db_session, make_variant):
        a = make_variant(qty=5)
        b = make_variant(qty=5)
        order = order_service.create_order(order_payload(a.id, quantity=2))

        order_service.update_order(order.id, order_payload(b.id, quantity=4, status="Paid"))

        assert stock_of(a.id) == 5
        assert stock_of(b.id) == 1
        items = items_for(order.id)
        assert [(i.variant_id, i.quantity) for i in items] == [(b.id, 4)]
        assert _multiset(sales_for(order.id)) == _multiset(items)

    def test_failed_edit_changes_nothing(self, db_session, make_variant):
        a = make_variant(qty=5)
        b = make_variant(qty=1)
        order = order_service.create_order(order_payload(a.id, quantity=2, status="Paid"))
        sales_before = _multiset(sales_for(order.id))

        with pytest.raises(InsufficientStockError):
            order_service.update_order(order.id, order_payload(b.id, quantity=3))

        assert stock_of(a.id) == 3
        assert stock_of(b.id) == 1
        assert [(i.variant_id, i.quantity) for i in items_for(order.id)] == [(a.id, 2)]
        assert _multiset(sales_for(order.id)) == sales_before
        assert db_session.get(Order, order.id).payment_status == "Paid"

    def test_edit_updates_totals_and_customer(self, db_session, make_variant):
        v = make_variant(qty=10)
        order = order_service.create_order(order_payload(v.id, quantity=1, unit_price_cents=500))

        updated = order_service.update_order(order.id, order_payload(
            v.id, quantity=3, unit_price_cents=500,
            manual_discount_cents=100, delivery_saving_cents=200,
            customer={"name": "Bilal", "phone": "0311"},
        ))

        assert updated.subtotal_cents == 1500
        assert updated.discount_cents == 300
        assert updated.total_cents == 1200
        assert updated.customer_name == "Bilal"
        assert db_session.get(Customer, updated.customer_id).phone == "0311"

    def test_status_change_through_edit_is_not_logged(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id, status="Pending"))

        order_service.update_order(order.id, order_payload(variant.id, status="Paid"))

        assert db_session.get(Order, order.id).payment_status == "Paid"
        assert len(sales_for(order.id)) == 1
        assert [(l.old_status, l.new_status) for l in logs_for(order.id)] == [(None, "Pending")]

    def test_edit_to_pending_clears_sales(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id, status="Paid"))

        order_service.update_order(order.id, order_payload(variant.id, status="Pending"))

        assert sales_for(order.id) == []

    def test_unknown_order(self, db_session, variant):
        with pytest.raises(NotFoundError):
            order_service.update_order(4242, order_payload(variant.id))

        assert stock_of(variant.id) == 5


class TestDeleteOrder:

    def test_status_log_kept_after_delete(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id))
        order_id = order.id
        order_service.update_order_status(order_id, "Paid")

        order_service.delete_order(order_id)

        assert len(logs_for(order_id)) == 2

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.delete_order(777)


class TestStockConservation:

    def test_reserved_minus_released_matches_stock_change(self, db_session, make_variant):
        v = make_variant(qty=20)

        first = order_service.create_order(order_payload(v.id, quantity=3))
        second = order_service.create_order(order_payload(v.id, quantity=4, status="Paid"))
        order_service.update_order(first.id, order_payload(v.id, quantity=6))
        order_service.update_order_status(second.id, "Completed")
        order_service.delete_order(second.id)

        held = sum(i.quantity for i in items_for(first.id))
        assert held == 6
        assert 20 - stock_of(v.id) == held


class TestReads:

    def test_get_order(self, db_session, variant):
        order = order_service.create_order(order_payload(variant.id, quantity=2))

        header, items = order_service.get_order(order.id)

        assert header.id == order.id
        data = items[0].to_dict()
        assert data["product_name"] == "Oversized Tee"
        assert data["unit_cost_cents"] == 40
        assert data["current_stock"] == 3

    def test_get_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.get_order(1)

    def test_list_recent_orders(self, db_session, make_variant):
        v = make_variant(qty=10, cost_cents=30)
        older = order_service.create_order(order_payload(v.id, quantity=1, order_date="2026-09-01"))
        newer = order_service.create_order(order_payload(v.id, quantity=2, order_date="2026-10-05"))

        rows = order_service.list_recent_orders(limit=10, range_name="all")

        assert [r["id"] for r in rows] == [newer.id, older.id]
        assert rows[0]["line_count"] == 1
        assert rows[0]["total_cost_cents"] == 60

    def test_list_range_filter(self, db_session, make_variant):
        v = make_variant(qty=10)
        order_service.create_order(order_payload(v.id, quantity=1, order_date="2026-09-01"))
        recent = order_service.create_order(order_payload(v.id, quantity=1, order_date="2026-10-18T09:00:00"))

        rows = order_service.list_recent_orders(range_name="last7", now=datetime(2026, 10, 19, 12, 0))

        assert [r["id"] for r in rows] == [recent.id]

    def test_list_unknown_range(self, db_session):
        with pytest.raises(ValidationError):
            order_service.list_recent_orders(range_name="fortnight")
