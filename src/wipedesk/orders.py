"""Order creation and catalog templating."""

import logging
import math
from datetime import date, timedelta
from typing import Any, Sequence

from .errors import EmptyOrderError, InvalidOrderItemError, MissingContactFieldError
from .models import (
    CatalogItem,
    ClientInfo,
    Currency,
    Customer,
    Financials,
    Order,
    OrderItem,
    OrderStatus,
    ProductSpec,
    _generate_id,
    _today,
)

logger = logging.getLogger(__name__)

DEFAULT_VAT_RATE = 20.0
DEFAULT_LEAD_TIME_DAYS = 15

REQUIRED_CONTACT_FIELDS = ("company_name", "contact_person", "phone")


def validate_client(info: ClientInfo) -> ClientInfo:
    """
    Check the required contact fields.

    Raises:
        MissingContactFieldError: If company name, contact person or phone is blank.
    """
    for name in REQUIRED_CONTACT_FIELDS:
        value = getattr(info, name)
        if not value or not str(value).strip():
            raise MissingContactFieldError(name)
    return info


def client_from_customer(customer: Customer) -> ClientInfo:
    """Billing snapshot for a new order. ClientInfo is immutable, so sharing is a copy."""
    return customer.info


def build_order_item(
    specs: ProductSpec | None,
    quantity: int,
    unit_price: float,
    image_url: str | None = None,
) -> OrderItem:
    """
    Create an order line with its total fixed at quantity * unit_price.

    Raises:
        InvalidOrderItemError: If quantity is not a positive integer or price is negative.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidOrderItemError(f"quantity must be a positive integer, got {quantity!r}")
    if not math.isfinite(unit_price) or unit_price < 0:
        raise InvalidOrderItemError(f"unit price must be zero or more, got {unit_price!r}")
    return OrderItem(
        id=_generate_id(),
        specs=specs or ProductSpec.default(),
        quantity=quantity,
        unit_price=unit_price,
        total_price=quantity * unit_price,
        image_url=image_url,
    )


def item_from_catalog(
    catalog_item: CatalogItem,
    quantity: int,
    unit_price: float | None = None,
) -> OrderItem:
    """Order line prefilled from a catalog template. Price defaults to the base price."""
    price = unit_price if unit_price is not None else (catalog_item.base_price or 0.0)
    return build_order_item(
        catalog_item.specs,
        quantity,
        price,
        image_url=catalog_item.image_url,
    )


def compute_financials(
    items: Sequence[OrderItem],
    currency: "Currency | str" = Currency.GBP,
    vat_rate: float = DEFAULT_VAT_RATE,
    apply_vat: bool = True,
    down_payment: float = 0.0,
) -> Financials:
    """Snapshot sub total, VAT and grand total from the items."""
    sub_total = math.fsum(i.total_price for i in items)
    rate = vat_rate if apply_vat else 0.0
    return Financials(
        currency=Currency.parse(currency),
        sub_total=sub_total,
        vat_rate=rate,
        total_amount=sub_total * (1 + rate / 100),
        down_payment=down_payment,
    )


def create_order(
    client: ClientInfo,
    items: Sequence[OrderItem],
    currency: "Currency | str" = Currency.GBP,
    vat_rate: float = DEFAULT_VAT_RATE,
    apply_vat: bool = True,
    down_payment: float = 0.0,
    customer_id: str | None = None,
    notes: str = "",
    order_date: str | None = None,
    estimated_delivery_date: str | None = None,
) -> Order:
    """
    Create a new PENDING order.

    Raises:
        EmptyOrderError: If items is empty.
        MissingContactFieldError: If a required client field is blank.
    """
    if not items:
        raise EmptyOrderError()
    validate_client(client)

    order_date = order_date or _today()
    if estimated_delivery_date is None:
        estimated_delivery_date = default_delivery_date(order_date)

    order = Order(
        id=_generate_id(),
        customer_id=customer_id,
        client=client,
        items=tuple(items),
        financials=compute_financials(items, currency, vat_rate, apply_vat, down_payment),
        order_date=order_date,
        estimated_delivery_date=estimated_delivery_date,
        notes=notes,
        status=OrderStatus.PENDING,
    )
    logger.info(
        "Created order %s for %s: %d item(s), total %s %s",
        order.id,
        client.company_name,
        len(order.items),
        order.financials.total_amount,
        order.currency.value,
    )
    return order


def default_delivery_date(order_date: str) -> str:
    """Order date plus the standard lead time."""
    try:
        start = date.fromisoformat(order_date[:10])
    except ValueError:
        start = date.today()
    return (start + timedelta(days=DEFAULT_LEAD_TIME_DAYS)).isoformat()


def analysis_summary(order: Order) -> dict[str, Any]:
    """Reduced view of an order for the profitability prompt."""
    return {
        "client": order.client.company_name,
        "totalAmount": order.financials.total_amount,
        "currency": order.currency.value,
        "items": [
            {
                "qty": i.quantity,
                "price": i.unit_price,
                "material": i.specs.outer_material,
                "essence": i.specs.essence_name,
            }
            for i in order.items
        ],
    }
