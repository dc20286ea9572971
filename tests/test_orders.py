"""Tests for order creation and catalog templating."""

import pytest

from wipedesk.errors import (
    EmptyOrderError,
    InvalidCurrencyError,
    InvalidOrderItemError,
    MissingContactFieldError,
)
from wipedesk.models import CatalogItem, ClientInfo, Currency, Customer, OrderStatus, ProductSpec
from wipedesk.orders import (
    analysis_summary,
    build_order_item,
    client_from_customer,
    compute_financials,
    create_order,
    default_delivery_date,
    item_from_catalog,
    validate_client,
)

from conftest import make_item


class TestBuildOrderItem:
    def test_total_is_quantity_times_price(self):
        item = build_order_item(None, 2000, 0.5)
        assert item.total_price == pytest.approx(1000)
        assert item.specs == ProductSpec.default()
        assert item.deliveries == ()

    @pytest.mark.parametrize("quantity", [0, -1, 2.5, True])
    def test_bad_quantity(self, quantity):
        with pytest.raises(InvalidOrderItemError):
            build_order_item(None, quantity, 1.0)

    def test_negative_price(self):
        with pytest.raises(InvalidOrderItemError):
            build_order_item(None, 10, -0.01)

    def test_free_item_allowed(self):
        assert build_order_item(None, 10, 0).total_price == 0

    def test_ids_unique(self):
        assert build_order_item(None, 1, 1).id != build_order_item(None, 1, 1).id


class TestCatalogTemplates:
    def test_prefills_specs_and_price(self):
        specs = ProductSpec.from_dict({"essence_name": "Lavanta", "towel_gsm": 45})
        template = CatalogItem.create("Lavanta 45gsm", specs=specs, base_price=0.05, image_url="x.png")

        item = item_from_catalog(template, 1000)

        assert item.specs.essence_name == "Lavanta"
        assert item.unit_price == 0.05
        assert item.total_price == pytest.approx(50)
        assert item.image_url == "x.png"

    def test_explicit_price_wins(self):
        template = CatalogItem.create("Limon", base_price=0.05)
        assert item_from_catalog(template, 100, unit_price=0.1).unit_price == 0.1

    def test_missing_base_price_is_zero(self):
        template = CatalogItem.create("Limon")
        assert item_from_catalog(template, 100).total_price == 0


class TestClient:
    def test_required_fields(self, client_info):
        assert validate_client(client_info) is client_info

    @pytest.mark.parametrize("field_name", ["company_name", "contact_person", "phone"])
    def test_blank_field_rejected(self, client_info, field_name):
        data = client_info.to_dict()
        data[field_name] = "   "
        with pytest.raises(MissingContactFieldError) as exc_info:
            validate_client(ClientInfo.from_dict(data))
        assert exc_info.value.field_name == field_name

    def test_client_from_customer(self, client_info):
        customer = Customer.create(client_info)
        assert client_from_customer(customer) == client_info


class TestFinancials:
    def test_with_vat(self):
        fin = compute_financials([make_item(1000, 1.0)], currency="eur", vat_rate=18)
        assert fin.currency == Currency.EUR
        assert fin.sub_total == pytest.approx(1000)
        assert fin.total_amount == pytest.approx(1180)

    def test_without_vat(self):
        fin = compute_financials([make_item(1000, 1.0)], apply_vat=False)
        assert fin.vat_rate == 0
        assert fin.total_amount == pytest.approx(1000)

    def test_unknown_currency(self):
        with pytest.raises(InvalidCurrencyError):
            compute_financials([make_item()], currency="XYZ")


class TestCreateOrder:
    def test_creates_pending_order(self, example_order, client_info):
        assert example_order.status == OrderStatus.PENDING
        assert example_order.client == client_info
        assert example_order.financials.total_amount == pytest.approx(540)
        assert example_order.payment_history == ()

    def test_default_delivery_date(self, client_info):
        order = create_order(client_info, [make_item()], order_date="2026-10-19")
        assert order.estimated_delivery_date == "2026-11-03"

    def test_explicit_delivery_date(self, client_info):
        order = create_order(
            client_info,
            [make_item()],
            order_date="2026-10-19",
            estimated_delivery_date="2026-12-01",
        )
        assert order.estimated_delivery_date == "2026-12-01"

    def test_empty_order(self, client_info):
        with pytest.raises(EmptyOrderError):
            create_order(client_info, [])

    def test_missing_contact(self):
        with pytest.raises(MissingContactFieldError):
            create_order(ClientInfo("Firma", "", "123"), [make_item()])

    def test_down_payment_counts(self, client_info):
        order = create_order(client_info, [make_item()], down_payment=40)
        assert order.financials.down_payment == 40

    def test_default_delivery_date_bad_input(self):
        # Falls back to today
        assert len(default_delivery_date("garbage")) == 10


class TestAnalysisSummary:
    def test_shape(self, example_order):
        summary = analysis_summary(example_order)
        assert summary["client"] == "Lezzet Kebap Dünyası"
        assert summary["currency"] == "GBP"
        assert summary["totalAmount"] == pytest.approx(540)
        assert summary["items"] == [
            {
                "qty": 10000,
                "price": 0.045,
                "material": "Triplex (PET/ALU/PE)",
                "essence": "Limon",
            }
        ]
