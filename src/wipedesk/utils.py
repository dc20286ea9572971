"""Utility functions for wipedesk."""

import re
from datetime import date, datetime

from .ledger import balance, delivery_progress, total_paid
from .models import Order

_DOTTED_DATE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")


def parse_date(value: str | None) -> date | None:
    """
    Parse a stored date string.

    Accepts "YYYY-MM-DD", full ISO 8601 timestamps (with or without "Z") and
    "DD.MM.YYYY". Returns None for empty or unparsable values.
    """
    if not value:
        return None
    text = value.strip()
    match = _DOTTED_DATE.match(text)
    if match:
        day, month, year = match.groups()
        text = f"{year}-{month}-{day}"
    try:
        if "T" in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        return None


def normalize_date(value: str | None) -> str | None:
    """Return value as YYYY-MM-DD, or None if it can't be parsed."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def format_order(order: Order, verbose: bool = False) -> str:
    """Format an order for CLI display."""
    currency = order.currency.value
    lines = [
        f"  {order.id[:8]}  {order.client.company_name}",
        f"    Date: {order.order_date}  Status: {order.status.label}",
        f"    Total: {order.financials.total_amount:,.2f} {currency}  "
        f"Paid: {total_paid(order):,.2f}  Balance: {balance(order):,.2f}",
        f"    Delivered: {delivery_progress(order):.0f}%",
    ]
    if verbose:
        for item in order.items:
            delivered = sum(d.quantity for d in item.deliveries)
            lines.append(
                f"    - {item.id[:8]} {item.specs.essence_name}: "
                f"{delivered}/{item.quantity} @ {item.unit_price} = {item.total_price:,.2f}"
            )
        for payment in order.payment_history:
            lines.append(f"    $ {payment.id[:8]} {payment.date} {payment.amount:+,.2f} {payment.note}")
        if order.notes:
            lines.append(f"    Notes: {order.notes}")
    return "\n".join(lines)
