"""Read-only aggregates over the full order collection."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, Sequence

from .ledger import (
    balance,
    order_delivered_qty,
    order_remaining_qty,
    order_total,
    order_total_qty,
    total_paid,
)
from .models import CatalogItem, Customer, Order, OrderStatus
from .status import matches_status_filter
from .utils import parse_date

UNKNOWN_ESSENCE = "Belirsiz"

MONTH_LABELS = ("Oca", "Şub", "Mar", "Nis", "May", "Haz", "Tem", "Ağu", "Eyl", "Eki", "Kas", "Ara")

PRODUCTION_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.IN_PRODUCTION})
SHIPPING_STATUSES = frozenset({OrderStatus.IN_TRANSIT, OrderStatus.SHIPPED, OrderStatus.PARTIAL})


@dataclass
class DashboardStats:
    total_orders: int = 0
    total_items: int = 0
    delivered_items: int = 0
    remaining_items: int = 0
    # Remaining (undelivered) quantity per status
    pending: int = 0
    in_production: int = 0
    in_transit: int = 0


def dashboard_stats(orders: Iterable[Order]) -> DashboardStats:
    stats = DashboardStats()
    for order in orders:
        remaining = order_remaining_qty(order)
        stats.total_orders += 1
        stats.total_items += order_total_qty(order)
        stats.delivered_items += order_delivered_qty(order)
        stats.remaining_items += remaining
        if order.status == OrderStatus.PENDING:
            stats.pending += remaining
        elif order.status == OrderStatus.IN_PRODUCTION:
            stats.in_production += remaining
        elif order.status == OrderStatus.IN_TRANSIT:
            stats.in_transit += remaining
    return stats


def essence_totals(orders: Iterable[Order]) -> Counter[str]:
    """Ordered quantity per essence name."""
    totals: Counter[str] = Counter()
    for order in orders:
        for item in order.items:
            totals[item.specs.essence_name or UNKNOWN_ESSENCE] += item.quantity
    return totals


def essence_ranking(orders: Iterable[Order], limit: int = 5) -> list[tuple[str, int]]:
    """Top essences by ordered volume, largest first."""
    totals = essence_totals(orders)
    # Stable sort keeps first-seen order for ties
    return sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:limit]


@dataclass
class TrendBucket:
    year: int
    month: int
    label: str
    value: float = 0.0


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def revenue_trend(
    orders: Iterable[Order],
    today: date | None = None,
    months: int = 6,
) -> list[TrendBucket]:
    """
    Order totals per calendar month for the trailing months, oldest first.

    Amounts are summed as-is regardless of currency. Orders with a missing or
    unparsable order_date are skipped.
    """
    today = today or date.today()
    buckets: list[TrendBucket] = []
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(today.year, today.month, -offset)
        buckets.append(TrendBucket(year=year, month=month, label=MONTH_LABELS[month - 1]))

    index = {(b.year, b.month): b for b in buckets}
    for order in orders:
        parsed = parse_date(order.order_date)
        if parsed is None:
            continue
        bucket = index.get((parsed.year, parsed.month))
        if bucket is not None:
            bucket.value += order.financials.total_amount
    return buckets


def filter_orders(
    orders: Iterable[Order],
    search: str | None = None,
    essence: str | None = None,
    status_filter: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[Order]:
    """
    Filter orders the way the order list does, newest order_date first.

    search matches the company name (case-insensitive) or an id substring.
    The end date is inclusive.
    """
    result: list[Order] = []
    needle = (search or "").lower()
    start_at = datetime.combine(start, time.min) if start else None
    end_at = datetime.combine(end, time.max) if end else None

    for order in orders:
        if needle and needle not in order.client.company_name.lower() and needle not in order.id:
            continue
        if essence and not any(i.specs.essence_name == essence for i in order.items):
            continue
        if not matches_status_filter(order, status_filter):
            continue
        if start_at or end_at:
            parsed = parse_date(order.order_date)
            if parsed is None:
                continue
            moment = datetime.combine(parsed, time.min)
            if start_at and moment < start_at:
                continue
            if end_at and moment > end_at:
                continue
        result.append(order)

    result.sort(key=lambda o: parse_date(o.order_date) or date.min, reverse=True)
    return result


def search_customers(customers: Iterable[Customer], query: str | None) -> list[Customer]:
    """Match company name or contact person (case-insensitive) or phone."""
    if not query:
        return list(customers)
    needle = query.lower()
    return [
        c
        for c in customers
        if needle in c.info.company_name.lower()
        or needle in c.info.contact_person.lower()
        or query in c.info.phone
    ]


def search_catalog(items: Iterable[CatalogItem], query: str | None) -> list[CatalogItem]:
    """Match title or description, case-insensitive."""
    if not query:
        return list(items)
    needle = query.lower()
    return [i for i in items if needle in i.title.lower() or needle in i.description.lower()]


def production_report(orders: Iterable[Order]) -> list[Order]:
    """Orders still waiting on the factory."""
    return [o for o in orders if o.status in PRODUCTION_STATUSES]


def shipping_report(orders: Iterable[Order]) -> list[Order]:
    """Orders on the road or partly delivered."""
    return [o for o in orders if o.status in SHIPPING_STATUSES]


@dataclass(frozen=True)
class FinancialRow:
    order_id: str
    company_name: str
    currency: str
    total: float
    paid: float
    balance: float

    @property
    def settled(self) -> bool:
        return self.balance <= 0


@dataclass
class FinancialReport:
    rows: list[FinancialRow] = field(default_factory=list)
    total_receivable: float = 0.0


def financial_report(orders: Sequence[Order]) -> FinancialReport:
    """Per-order money position plus the total still to collect."""
    report = FinancialReport()
    for order in orders:
        row = FinancialRow(
            order_id=order.id,
            company_name=order.client.company_name,
            currency=order.currency.value,
            total=order_total(order),
            paid=total_paid(order),
            balance=balance(order),
        )
        report.rows.append(row)
        report.total_receivable += row.balance
    return report
