"""Tests for the order ledger."""

import random
from dataclasses import replace

import pytest

from conftest import make_order
from wipedesk import ledger
from wipedesk.errors import (
    InvalidDeliveryQuantityError,
    InvalidPaymentAmountError,
    OrderItemNotFoundError,
    PaymentExceedsBalanceError,
    PaymentNotFoundError,
)
from wipedesk.models import Delivery, OrderStatus, PaymentTransaction


def with_payments(order, *amounts):
    history = tuple(
        PaymentTransaction(id=f"p{i}", date="2026-10-02", amount=a, note="")
        for i, a in enumerate(amounts)
    )
    return replace(order, payment_history=history)


class TestMoney:
    def test_order_total_is_stored_total(self):
        order = make_order(total=540)
        # Item prices drifting after creation must not change the total
        drifted = replace(order.items[0], total_price=1.0)
        order = replace(order, items=(drifted,))
        assert ledger.order_total(order) == 540

    def test_total_paid_includes_down_payment(self):
        order = with_payments(make_order(total=540, down_payment=100), 50, 25)
        assert ledger.total_paid(order) == pytest.approx(175)

    def test_refunds_subtract(self):
        order = with_payments(make_order(total=540), 200, -50)
        assert ledger.total_paid(order) == pytest.approx(150)
        assert ledger.balance(order) == pytest.approx(390)

    def test_balance_can_go_negative(self):
        order = make_order(total=100, down_payment=150)
        assert ledger.balance(order) == pytest.approx(-50)

    def test_balance_independent_of_history_order(self):
        amounts = [12.3, 45.6, -7.8, 0.1, 99.99, 3.33]
        order = with_payments(make_order(total=1000), *amounts)
        shuffled = list(order.payment_history)
        random.Random(4).shuffle(shuffled)
        reordered = replace(order, payment_history=tuple(shuffled))
        assert ledger.balance(order) == pytest.approx(ledger.balance(reordered))
        assert ledger.balance(order) == pytest.approx(
            ledger.order_total(order) - ledger.total_paid(order)
        )


class TestPayments:
    def test_add_payment_appends_and_reduces_balance(self):
        order = make_order(total=540)
        updated = ledger.add_payment(order, 162, date="2026-10-02", note="Down payment")

        assert len(updated.payment_history) == 1
        assert updated.payment_history[0].note == "Down payment"
        assert ledger.balance(updated) == pytest.approx(378)
        # Input untouched
        assert order.payment_history == ()

    def test_default_note(self):
        updated = ledger.add_payment(make_order(), 10)
        assert updated.payment_history[0].note == "Tahsilat"

    @pytest.mark.parametrize("amount", [0, 0.0, "abc", None, float("nan"), True])
    def test_invalid_amount_rejected(self, amount):
        with pytest.raises(InvalidPaymentAmountError):
            ledger.add_payment(make_order(), amount)

    def test_overpayment_rejected(self):
        order = with_payments(make_order(total=540), 162)
        with pytest.raises(PaymentExceedsBalanceError) as exc_info:
            ledger.add_payment(order, 400)
        assert exc_info.value.allowable == pytest.approx(378)
        assert exc_info.value.currency == "GBP"

    def test_tolerance_accepts_small_rounding(self):
        order = make_order(total=100)
        updated = ledger.add_payment(order, 100.05)
        assert ledger.balance(updated) == pytest.approx(-0.05)

    def test_just_over_tolerance_rejected(self):
        with pytest.raises(PaymentExceedsBalanceError):
            ledger.add_payment(make_order(total=100), 100.2)

    def test_negative_amount_skips_ceiling(self):
        order = with_payments(make_order(total=100), 100)
        updated = ledger.add_payment(order, -500)
        assert ledger.balance(updated) == pytest.approx(500)

    def test_edit_adds_original_back(self):
        # balance 440 with the 100 payment included; ceiling for the edit is 540
        order = with_payments(make_order(total=540), 100)
        updated = ledger.edit_payment(order, "p0", 150)
        assert updated.payment_history[0].amount == 150
        assert ledger.balance(updated) == pytest.approx(390)

    def test_edit_to_full_total_allowed(self):
        order = with_payments(make_order(total=540), 100, 200)
        # balance 240, editing p1 (200) -> ceiling 440
        updated = ledger.edit_payment(order, "p1", 440)
        assert ledger.balance(updated) == pytest.approx(0)

    def test_edit_over_ceiling_rejected(self):
        order = with_payments(make_order(total=540), 100, 200)
        with pytest.raises(PaymentExceedsBalanceError):
            ledger.edit_payment(order, "p1", 440.2)

    def test_edit_keeps_note_when_blank(self):
        order = replace(
            make_order(),
            payment_history=(PaymentTransaction("p0", "2026-10-02", 10, "Havale"),),
        )
        updated = ledger.edit_payment(order, "p0", 20, note="")
        assert updated.payment_history[0].note == "Havale"
        assert updated.payment_history[0].date == "2026-10-02"

    def test_edit_unknown_payment(self):
        with pytest.raises(PaymentNotFoundError):
            ledger.edit_payment(make_order(), "missing", 10)

    def test_edit_to_zero_rejected(self):
        order = with_payments(make_order(), 10)
        with pytest.raises(InvalidPaymentAmountError):
            ledger.edit_payment(order, "p0", 0)

    def test_delete_restores_balance_exactly(self):
        order = with_payments(make_order(total=540), 162, 100)
        before = ledger.balance(order)
        updated = ledger.delete_payment(order, "p0")
        assert ledger.balance(updated) == pytest.approx(before + 162)
        assert [p.id for p in updated.payment_history] == ["p1"]

    def test_delete_refund_is_unconditional(self):
        order = with_payments(make_order(total=100), 100, -20)
        updated = ledger.delete_payment(order, "p1")
        assert ledger.balance(updated) == pytest.approx(0)

    def test_delete_unknown_payment(self):
        with pytest.raises(PaymentNotFoundError):
            ledger.delete_payment(make_order(), "missing")


class TestDeliveries:
    def test_quantities(self):
        order = make_order(quantity=10000)
        item = replace(
            order.items[0],
            deliveries=(Delivery("d1", "2026-10-05", 2000), Delivery("d2", "2026-10-06", 1500)),
        )
        order = replace(order, items=(item,))

        assert ledger.item_delivered_qty(item) == 3500
        assert ledger.item_remaining_qty(item) == 6500
        assert ledger.order_delivered_qty(order) == 3500
        assert ledger.order_total_qty(order) == 10000
        assert ledger.delivery_progress(order) == pytest.approx(35)

    @pytest.mark.parametrize("quantity", [0, -5, "abc", None, 2.5, True])
    def test_invalid_quantity_rejected(self, quantity):
        order = make_order()
        with pytest.raises(InvalidDeliveryQuantityError):
            ledger.add_delivery(order, order.items[0].id, quantity)
        assert order.items[0].deliveries == ()

    def test_numeric_string_accepted(self):
        order = make_order()
        updated = ledger.add_delivery(order, order.items[0].id, "250")
        assert ledger.item_delivered_qty(updated.items[0]) == 250

    def test_unknown_item(self):
        with pytest.raises(OrderItemNotFoundError):
            ledger.add_delivery(make_order(), "nope", 10)

    def test_over_delivery_accepted_and_progress_clamped(self):
        order = make_order(quantity=100)
        updated = ledger.add_delivery(order, order.items[0].id, 150)
        assert ledger.item_delivered_qty(updated.items[0]) == 150
        assert ledger.item_remaining_qty(updated.items[0]) == -50
        assert ledger.delivery_progress(updated) == 100
        assert ledger.item_progress(updated.items[0]) == 100

    def test_progress_zero_for_empty_order(self):
        order = replace(make_order(), items=())
        assert ledger.delivery_progress(order) == 0

    @pytest.mark.parametrize(
        "status", [OrderStatus.PENDING, OrderStatus.IN_PRODUCTION, OrderStatus.IN_TRANSIT]
    )
    def test_delivery_moves_to_partial(self, status):
        order = make_order(status=status)
        updated = ledger.add_delivery(order, order.items[0].id, 10)
        assert updated.status == OrderStatus.PARTIAL

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.DELIVERED, OrderStatus.SHIPPED, OrderStatus.DRAFT, OrderStatus.APPROVED],
    )
    def test_delivery_leaves_other_statuses(self, status):
        order = make_order(status=status)
        updated = ledger.add_delivery(order, order.items[0].id, 10)
        assert updated.status == status


class TestWorkedExample:
    def test_payments_and_delivery(self, example_order):
        order = example_order
        assert order.financials.sub_total == pytest.approx(450)
        assert ledger.order_total(order) == pytest.approx(540)
        assert ledger.total_paid(order) == 0

        order = ledger.add_payment(order, 162, note="Down payment")
        assert ledger.total_paid(order) == pytest.approx(162)
        assert ledger.balance(order) == pytest.approx(378)

        with pytest.raises(PaymentExceedsBalanceError):
            ledger.add_payment(order, 400)

        order = ledger.add_payment(order, 378)
        assert ledger.balance(order) == pytest.approx(0, abs=1e-9)

        assert order.status == OrderStatus.PENDING
        order = ledger.add_delivery(order, order.items[0].id, 5000)
        assert order.status == OrderStatus.PARTIAL
        assert ledger.item_delivered_qty(order.items[0]) == 5000
        assert ledger.delivery_progress(order) == pytest.approx(50)


class TestCustomerFinancials:
    def test_sums_only_own_orders(self):
        orders = [
            with_payments(make_order(total=540, customer_id="c1", order_id="a"), 540),
            with_payments(make_order(total=300, customer_id="c1", order_id="b"), 100),
            with_payments(make_order(total=999, customer_id="c2", order_id="c"), 1),
        ]
        fin = ledger.customer_financials("c1", orders)
        assert [o.id for o in fin.orders] == ["a", "b"]
        assert fin.total_debt == pytest.approx(840)
        assert fin.total_paid == pytest.approx(640)
        assert fin.balance == pytest.approx(200)

    def test_summarize(self):
        order = with_payments(make_order(total=200, quantity=100), 50)
        summary = ledger.summarize(order)
        assert summary.total == 200
        assert summary.paid == pytest.approx(50)
        assert summary.balance == pytest.approx(150)
        assert summary.remaining_qty == 100
        assert summary.progress == 0
