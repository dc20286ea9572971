"""Money and quantity figures derived from an order's histories.

Every figure here is a pure function of the Order value. Mutating commands
(payments, deliveries) validate at the point of mutation and return a new
Order; the input is never modified, so a rejected command leaves prior state
unchanged.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Iterable

from .errors import (
    InvalidDeliveryQuantityError,
    InvalidPaymentAmountError,
    OrderItemNotFoundError,
    PaymentExceedsBalanceError,
    PaymentNotFoundError,
)
from .models import Delivery, Order, OrderItem, PaymentTransaction
from .status import status_after_delivery

logger = logging.getLogger(__name__)

# Absorbs floating point rounding when comparing a payment to the balance.
BALANCE_TOLERANCE = 0.1

DEFAULT_PAYMENT_NOTE = "Tahsilat"


# --- Money ---


def order_total(order: Order) -> float:
    """The order's stored grand total. Not re-derived from the items."""
    return order.financials.total_amount


def history_total(order: Order) -> float:
    """Sum of the payment history, refunds included."""
    return math.fsum(p.amount for p in order.payment_history)


def total_paid(order: Order) -> float:
    """Legacy down payment plus every payment history entry."""
    return order.financials.down_payment + history_total(order)


def balance(order: Order) -> float:
    """Outstanding amount. Negative means the client has overpaid."""
    return order_total(order) - total_paid(order)


def allowable_payment(order: Order, editing_payment_id: str | None = None) -> float:
    """
    Ceiling for a positive payment.

    When editing an existing entry its original amount is added back, so
    raising a 100 payment to 150 is checked against balance + 100.
    """
    allowable = balance(order)
    if editing_payment_id is not None:
        original = order.find_payment(editing_payment_id)
        if original is not None:
            allowable += original.amount
    return allowable


# --- Quantities ---


def item_delivered_qty(item: OrderItem) -> int:
    return sum(d.quantity for d in item.deliveries)


def item_remaining_qty(item: OrderItem) -> int:
    """Undelivered quantity. Negative when over-delivered."""
    return item.quantity - item_delivered_qty(item)


def item_progress(item: OrderItem) -> float:
    """Delivered share of one line, in percent, clamped to 100."""
    if item.quantity <= 0:
        return 0.0
    return min(100.0, item_delivered_qty(item) / item.quantity * 100)


def order_total_qty(order: Order) -> int:
    return sum(i.quantity for i in order.items)


def order_delivered_qty(order: Order) -> int:
    return sum(item_delivered_qty(i) for i in order.items)


def order_remaining_qty(order: Order) -> int:
    return order_total_qty(order) - order_delivered_qty(order)


def delivery_progress(order: Order) -> float:
    """Delivered share of the whole order, in percent (0 for an empty order)."""
    total = order_total_qty(order)
    if total == 0:
        return 0.0
    return min(100.0, order_delivered_qty(order) / total * 100)


# --- Payment commands ---


def _coerce_amount(amount: Any) -> float:
    """Parse a payment amount, rejecting zero and anything non-numeric."""
    if isinstance(amount, bool):
        raise InvalidPaymentAmountError(amount)
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise InvalidPaymentAmountError(amount) from None
    if not math.isfinite(value) or value == 0:
        raise InvalidPaymentAmountError(amount)
    return value


def validate_payment(order: Order, amount: Any, editing_payment_id: str | None = None) -> float:
    """
    Check a payment amount against the order and return it as a float.

    Negative amounts are refunds or corrections and skip the balance check.

    Raises:
        InvalidPaymentAmountError: If amount is zero or not a number.
        PaymentExceedsBalanceError: If a positive amount overpays the order.
    """
    value = _coerce_amount(amount)
    if value > 0:
        allowable = allowable_payment(order, editing_payment_id)
        if value > allowable + BALANCE_TOLERANCE:
            logger.warning(
                "Rejected payment of %s on order %s (allowable %s)", value, order.id, allowable
            )
            raise PaymentExceedsBalanceError(value, allowable, order.currency.value)
    return value


def add_payment(
    order: Order,
    amount: Any,
    date: str | None = None,
    note: str | None = None,
) -> Order:
    """Append a payment to the order's history."""
    value = validate_payment(order, amount)
    payment = PaymentTransaction.create(value, date=date, note=note or DEFAULT_PAYMENT_NOTE)
    logger.info("Order %s: recorded payment %s of %s", order.id, payment.id, value)
    return order.evolve(payment_history=order.payment_history + (payment,))


def edit_payment(
    order: Order,
    payment_id: str,
    amount: Any,
    date: str | None = None,
    note: str | None = None,
) -> Order:
    """
    Change an existing payment in place. An empty note keeps the old one.

    Raises:
        PaymentNotFoundError: If payment_id is not in the history.
    """
    original = order.find_payment(payment_id)
    if original is None:
        raise PaymentNotFoundError(order.id, payment_id)

    value = validate_payment(order, amount, editing_payment_id=payment_id)
    updated = replace(
        original,
        amount=value,
        date=date or original.date,
        note=note or original.note,
    )
    history = tuple(updated if p.id == payment_id else p for p in order.payment_history)
    logger.info("Order %s: payment %s changed %s -> %s", order.id, payment_id, original.amount, value)
    return order.evolve(payment_history=history)


def delete_payment(order: Order, payment_id: str) -> Order:
    """
    Remove a payment from the history. Always allowed.

    Raises:
        PaymentNotFoundError: If payment_id is not in the history.
    """
    if order.find_payment(payment_id) is None:
        raise PaymentNotFoundError(order.id, payment_id)
    history = tuple(p for p in order.payment_history if p.id != payment_id)
    logger.info("Order %s: deleted payment %s", order.id, payment_id)
    return order.evolve(payment_history=history)


# --- Delivery commands ---


def _coerce_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool):
        raise InvalidDeliveryQuantityError(quantity)
    if isinstance(quantity, float):
        if not quantity.is_integer():
            raise InvalidDeliveryQuantityError(quantity)
        value = int(quantity)
    else:
        try:
            value = int(quantity)
        except (TypeError, ValueError):
            raise InvalidDeliveryQuantityError(quantity) from None
    if value <= 0:
        raise InvalidDeliveryQuantityError(quantity)
    return value


def add_delivery(
    order: Order,
    item_id: str,
    quantity: Any,
    date: str | None = None,
    note: str | None = None,
) -> Order:
    """
    Record a partial shipment against one line.

    Over-delivery is accepted. The order status is moved along by
    status_after_delivery.

    Raises:
        InvalidDeliveryQuantityError: If quantity is not a positive integer.
        OrderItemNotFoundError: If item_id is not in the order.
    """
    qty = _coerce_quantity(quantity)
    item = order.find_item(item_id)
    if item is None:
        raise OrderItemNotFoundError(order.id, item_id)

    delivery = Delivery.create(qty, date=date, note=note)
    updated_item = replace(item, deliveries=item.deliveries + (delivery,))
    if item_delivered_qty(updated_item) > updated_item.quantity:
        logger.warning(
            "Order %s item %s over-delivered: %d of %d",
            order.id,
            item_id,
            item_delivered_qty(updated_item),
            updated_item.quantity,
        )

    items = tuple(updated_item if i.id == item_id else i for i in order.items)
    new_status = status_after_delivery(order.status)
    if new_status != order.status:
        logger.info("Order %s status %s -> %s", order.id, order.status.value, new_status.value)
    logger.info("Order %s: delivered %d of item %s", order.id, qty, item_id)
    return order.evolve(items=items, status=new_status)


# --- Summaries ---


@dataclass(frozen=True)
class LedgerSummary:
    """Every derived figure for one order."""

    order_id: str
    currency: str
    total: float
    paid: float
    balance: float
    total_qty: int
    delivered_qty: int
    remaining_qty: int
    progress: float


def summarize(order: Order) -> LedgerSummary:
    return LedgerSummary(
        order_id=order.id,
        currency=order.currency.value,
        total=order_total(order),
        paid=total_paid(order),
        balance=balance(order),
        total_qty=order_total_qty(order),
        delivered_qty=order_delivered_qty(order),
        remaining_qty=order_remaining_qty(order),
        progress=delivery_progress(order),
    )


@dataclass(frozen=True)
class CustomerFinancials:
    """A customer's position across all of their orders."""

    orders: list[Order]
    total_debt: float
    total_paid: float
    balance: float


def customer_orders(customer_id: str, orders: Iterable[Order]) -> list[Order]:
    return [o for o in orders if o.customer_id == customer_id]


def customer_financials(customer_id: str, orders: Iterable[Order]) -> CustomerFinancials:
    """Sum each of the customer's orders' own totals and payments."""
    own = customer_orders(customer_id, orders)
    debt = math.fsum(order_total(o) for o in own)
    paid = math.fsum(total_paid(o) for o in own)
    return CustomerFinancials(orders=own, total_debt=debt, total_paid=paid, balance=debt - paid)
