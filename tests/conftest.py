"""Pytest fixtures for wipedesk tests."""

import tempfile
from pathlib import Path

import pytest

from wipedesk.models import ClientInfo, Currency, Financials, Order, OrderItem, OrderStatus, ProductSpec
from wipedesk.orders import build_order_item, create_order
from wipedesk.store import DataStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """Empty data store in a temporary directory."""
    return DataStore(temp_dir / "data")


@pytest.fixture
def client_info():
    return ClientInfo(
        company_name="Lezzet Kebap Dünyası",
        contact_person="Ahmet Yılmaz",
        phone="0532 100 0001",
        email="ahmet@lezzetkebap.com",
        address_street="Bağdat Caddesi",
        address_city="İstanbul",
    )


def make_item(quantity: int = 10000, unit_price: float = 0.045, essence: str = "Limon") -> OrderItem:
    specs = ProductSpec.from_dict({"essence_name": essence})
    return build_order_item(specs, quantity, unit_price)


def make_order(
    total: float = 540.0,
    quantity: int = 10000,
    status: OrderStatus = OrderStatus.PENDING,
    customer_id: str | None = None,
    order_date: str = "2026-10-01",
    currency: Currency = Currency.GBP,
    essence: str = "Limon",
    down_payment: float = 0.0,
    order_id: str = "order-1",
    company_name: str = "Lezzet Kebap Dünyası",
) -> Order:
    """Order with exact financials (no float drift from the VAT multiply)."""
    item = OrderItem(
        id=f"{order_id}-item-1",
        specs=ProductSpec.from_dict({"essence_name": essence}),
        quantity=quantity,
        unit_price=total / quantity if quantity else 0.0,
        total_price=total,
    )
    return Order(
        id=order_id,
        customer_id=customer_id,
        client=ClientInfo(company_name=company_name, contact_person="Ahmet", phone="1"),
        items=(item,),
        financials=Financials(
            currency=currency,
            sub_total=total,
            vat_rate=0,
            total_amount=total,
            down_payment=down_payment,
        ),
        order_date=order_date,
        estimated_delivery_date=order_date,
        status=status,
    )


@pytest.fixture
def example_order(client_info):
    """10,000 units at 0.045 with 20% VAT: 450 + 90 = 540 GBP."""
    return create_order(client_info, [make_item()], currency="GBP", vat_rate=20)
