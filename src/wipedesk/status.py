"""Order status transitions."""

import logging

from .models import Order, OrderStatus

logger = logging.getLogger(__name__)

# Statuses that flip to PARTIAL as soon as any delivery is recorded.
AUTO_PARTIAL_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.IN_PRODUCTION, OrderStatus.IN_TRANSIT}
)

# Dashboard tabs. SHIPPED also covers partially delivered orders.
STATUS_FILTERS: dict[str, frozenset[OrderStatus]] = {
    "PENDING": frozenset({OrderStatus.PENDING}),
    "IN_PRODUCTION": frozenset({OrderStatus.IN_PRODUCTION}),
    "IN_TRANSIT": frozenset({OrderStatus.IN_TRANSIT}),
    "SHIPPED": frozenset({OrderStatus.SHIPPED, OrderStatus.PARTIAL}),
    "DELIVERED": frozenset({OrderStatus.DELIVERED}),
}


def status_after_delivery(status: OrderStatus) -> OrderStatus:
    """Status an order moves to when a delivery is recorded against it."""
    if status in AUTO_PARTIAL_STATUSES:
        return OrderStatus.PARTIAL
    return status


def set_status(order: Order, status: "OrderStatus | str") -> Order:
    """
    Set an order's status.

    Any status may be set from any other; status is informational and does not
    gate other operations.

    Raises:
        InvalidStatusError: If status is not a known status name or label.
    """
    new_status = OrderStatus.parse(status)
    if new_status == order.status:
        return order
    logger.info("Order %s status %s -> %s", order.id, order.status.value, new_status.value)
    return order.evolve(status=new_status)


def matches_status_filter(order: Order, status_filter: str | None) -> bool:
    """Check an order against a dashboard tab ("ALL" or None matches all)."""
    if not status_filter or status_filter.upper() == "ALL":
        return True
    allowed = STATUS_FILTERS.get(status_filter.upper())
    if allowed is None:
        allowed = frozenset({OrderStatus.parse(status_filter)})
    return order.status in allowed
