"""Tests for dashboard and report aggregates."""

from dataclasses import replace
from datetime import date

import pytest

from conftest import make_order
from wipedesk.models import CatalogItem, ClientInfo, Customer, Delivery, OrderStatus, PaymentTransaction
from wipedesk.reports import (
    dashboard_stats,
    essence_ranking,
    essence_totals,
    filter_orders,
    financial_report,
    production_report,
    revenue_trend,
    search_catalog,
    search_customers,
    shipping_report,
)


def delivered(order, quantity):
    item = replace(order.items[0], deliveries=(Delivery("d", "2026-10-10", quantity),))
    return replace(order, items=(item,))


class TestDashboard:
    def test_counts(self):
        orders = [
            make_order(order_id="a", quantity=1000, status=OrderStatus.PENDING),
            delivered(make_order(order_id="b", quantity=2000, status=OrderStatus.IN_PRODUCTION), 500),
            make_order(order_id="c", quantity=300, status=OrderStatus.IN_TRANSIT),
            delivered(make_order(order_id="d", quantity=400, status=OrderStatus.PARTIAL), 100),
        ]
        stats = dashboard_stats(orders)

        assert stats.total_orders == 4
        assert stats.total_items == 3700
        assert stats.delivered_items == 600
        assert stats.remaining_items == 3100
        assert stats.pending == 1000
        assert stats.in_production == 1500
        assert stats.in_transit == 300

    def test_empty(self):
        stats = dashboard_stats([])
        assert stats.total_orders == 0
        assert stats.remaining_items == 0


class TestEssences:
    def test_totals_and_blank_name(self):
        orders = [
            make_order(order_id="a", quantity=100, essence="Limon"),
            make_order(order_id="b", quantity=50, essence=""),
            make_order(order_id="c", quantity=25, essence="Limon"),
        ]
        totals = essence_totals(orders)
        assert totals["Limon"] == 125
        assert totals["Belirsiz"] == 50

    def test_ranking_limit_and_order(self):
        orders = [
            make_order(order_id=str(i), quantity=q, essence=name)
            for i, (name, q) in enumerate(
                [("A", 10), ("B", 60), ("C", 30), ("D", 40), ("E", 50), ("F", 20)]
            )
        ]
        ranking = essence_ranking(orders)
        assert ranking == [("B", 60), ("E", 50), ("D", 40), ("C", 30), ("F", 20)]

    def test_ties_keep_first_seen(self):
        orders = [
            make_order(order_id="a", quantity=10, essence="Nane"),
            make_order(order_id="b", quantity=10, essence="Gül"),
        ]
        assert [name for name, _ in essence_ranking(orders)] == ["Nane", "Gül"]


class TestRevenueTrend:
    def test_six_months_oldest_first(self):
        orders = [
            make_order(order_id="a", total=100, order_date="2026-10-02"),
            make_order(order_id="b", total=50, order_date="2026-10-18T09:30:00Z"),
            make_order(order_id="c", total=70, order_date="2026-07-15"),
            make_order(order_id="d", total=999, order_date="2026-04-30"),
            make_order(order_id="e", total=5, order_date="not a date"),
        ]
        trend = revenue_trend(orders, today=date(2026, 10, 19))

        assert [b.label for b in trend] == ["May", "Haz", "Tem", "Ağu", "Eyl", "Eki"]
        assert [b.value for b in trend] == [0, 0, 70, 0, 0, 150]

    def test_wraps_year(self):
        trend = revenue_trend([], today=date(2026, 2, 10), months=6)
        assert [(b.year, b.month) for b in trend] == [
            (2025, 9),
            (2025, 10),
            (2025, 11),
            (2025, 12),
            (2026, 1),
            (2026, 2),
        ]


class TestFilterOrders:
    @pytest.fixture
    def orders(self):
        return [
            make_order(order_id="abc123", order_date="2026-09-01", company_name="Acme Gıda"),
            make_order(
                order_id="def456",
                order_date="2026-10-15",
                company_name="Lezzet Kebap",
                essence="Lavanta",
                status=OrderStatus.PARTIAL,
            ),
            make_order(
                order_id="ghi789",
                order_date="2026-10-01",
                company_name="Deniz Otel",
                status=OrderStatus.DELIVERED,
            ),
        ]

    def test_sorted_newest_first(self, orders):
        assert [o.id for o in filter_orders(orders)] == ["def456", "ghi789", "abc123"]

    def test_search_company_case_insensitive(self, orders):
        assert [o.id for o in filter_orders(orders, search="acme")] == ["abc123"]

    def test_search_id(self, orders):
        assert [o.id for o in filter_orders(orders, search="f45")] == ["def456"]

    def test_essence(self, orders):
        assert [o.id for o in filter_orders(orders, essence="Lavanta")] == ["def456"]

    def test_status_tab(self, orders):
        assert [o.id for o in filter_orders(orders, status_filter="SHIPPED")] == ["def456"]

    def test_date_range_end_inclusive(self, orders):
        result = filter_orders(orders, start=date(2026, 10, 1), end=date(2026, 10, 15))
        assert [o.id for o in result] == ["def456", "ghi789"]

    def test_start_only(self, orders):
        result = filter_orders(orders, start=date(2026, 10, 2))
        assert [o.id for o in result] == ["def456"]


class TestStatusReports:
    def test_production_and_shipping(self):
        orders = [make_order(order_id=s.value, status=s) for s in OrderStatus]
        assert {o.status for o in production_report(orders)} == {
            OrderStatus.PENDING,
            OrderStatus.IN_PRODUCTION,
        }
        assert {o.status for o in shipping_report(orders)} == {
            OrderStatus.IN_TRANSIT,
            OrderStatus.SHIPPED,
            OrderStatus.PARTIAL,
        }


class TestFinancialReport:
    def test_rows_and_receivable(self):
        paid = replace(
            make_order(order_id="a", total=540),
            payment_history=(PaymentTransaction("p", "2026-10-02", 540),),
        )
        open_order = make_order(order_id="b", total=300, down_payment=100)
        report = financial_report([paid, open_order])

        assert [r.order_id for r in report.rows] == ["a", "b"]
        assert report.rows[0].settled
        assert not report.rows[1].settled
        assert report.rows[1].balance == pytest.approx(200)
        assert report.total_receivable == pytest.approx(200)


class TestSearch:
    @pytest.fixture
    def customers(self):
        return [
            Customer(id="c1", info=ClientInfo("Lezzet Kebap", "Ahmet Yılmaz", "0532 100 0001")),
            Customer(id="c2", info=ClientInfo("Deniz Otel", "Ayşe Kaya", "0212 555 0002")),
        ]

    def test_customers_by_company(self, customers):
        assert [c.id for c in search_customers(customers, "OTEL")] == ["c2"]

    def test_customers_by_contact(self, customers):
        assert [c.id for c in search_customers(customers, "ahmet")] == ["c1"]

    def test_customers_by_phone(self, customers):
        assert [c.id for c in search_customers(customers, "555")] == ["c2"]

    def test_customers_empty_query(self, customers):
        assert search_customers(customers, None) == customers

    def test_catalog_by_title_or_description(self):
        items = [
            CatalogItem.create("Limon 40gsm", description="Restoran tipi"),
            CatalogItem.create("Lavanta", description="Otel serisi"),
        ]
        assert [i.title for i in search_catalog(items, "restoran")] == ["Limon 40gsm"]
        assert [i.title for i in search_catalog(items, "lavanta")] == ["Lavanta"]
        assert search_catalog(items, "") == items
