"""Plain-text customer account statements.

The rendered text is used verbatim for copy-to-clipboard and e-mail drafts, so
it must come out byte-for-byte identical for the same inputs. Numbers and
dates use Turkish formatting (1.234,5 and 19.10.2026).
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from urllib.parse import quote

from .errors import MissingContactFieldError
from .ledger import balance, customer_financials, total_paid
from .models import Currency, Customer, Order
from .utils import parse_date

RULE = "-" * 42
DOUBLE_RULE = "=" * 42
DEFAULT_SIGNATURE = "OnsWipes Pro"
DEFAULT_CURRENCY = Currency.GBP
GMAIL_COMPOSE_URL = "https://mail.google.com/mail/?view=cm&fs=1"


def format_number(value: float, max_fraction_digits: int = 3) -> str:
    """Format a number with "." thousands and "," decimals, dropping trailing zeros."""
    quantum = Decimal(1).scaleb(-max_fraction_digits)
    rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    negative = rounded < 0
    integer_part, _, fraction = f"{abs(rounded):f}".partition(".")
    fraction = fraction.rstrip("0")

    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)

    text = ".".join(groups)
    if fraction:
        text = f"{text},{fraction}"
    if negative:
        text = f"-{text}"
    return text


def format_date(value: "date | str") -> str:
    """DD.MM.YYYY; unparsable strings are returned unchanged."""
    if isinstance(value, date):
        parsed: date | None = value
    else:
        parsed = parse_date(value)
    if parsed is None:
        return str(value)
    return parsed.strftime("%d.%m.%Y")


def statement_currency(orders: Sequence[Order]) -> Currency:
    """Currency for the grand totals: the orders' shared currency, else the default."""
    currencies = {o.currency for o in orders}
    if len(currencies) == 1:
        return currencies.pop()
    return DEFAULT_CURRENCY


def _render_order(order: Order) -> list[str]:
    currency = order.currency.value
    fin = order.financials
    lines = [
        RULE,
        f"SİPARİŞ NO: #{order.id} ({format_date(order.order_date)})",
    ]
    for item in order.items:
        lines.append(
            f"- {item.specs.essence_name} ({format_number(item.quantity)} ad): "
            f"{format_number(item.total_price)} {currency}"
        )
    lines.append(f"Ara Toplam: {format_number(fin.sub_total)} | KDV: %{format_number(fin.vat_rate)}")
    lines.append(f"Genel Toplam: {format_number(fin.total_amount)} {currency}")
    lines.append(
        f"Durum: Ödenen {format_number(total_paid(order))} | "
        f"Kalan {format_number(balance(order))} {currency}"
    )
    return lines


def render_statement(
    customer: Customer,
    orders: Sequence[Order],
    statement_date: date | None = None,
    signature: str = DEFAULT_SIGNATURE,
) -> str:
    """
    Render the account statement for a customer.

    Only orders whose customer_id matches the customer are included. Grand
    totals are sums of each order's own total and payments.
    """
    statement_date = statement_date or date.today()
    fin = customer_financials(customer.id, orders)
    currency = statement_currency(fin.orders).value

    lines = [
        f"Sayın {customer.info.contact_person} ({customer.info.company_name}),",
        "",
        f"{format_date(statement_date)} tarihli güncel hesap ekstreniz ve sipariş detaylarınız aşağıdadır:",
        "",
    ]
    if not fin.orders:
        lines.append("Kayıtlı sipariş bulunmamaktadır.")
    else:
        for order in fin.orders:
            lines.extend(_render_order(order))

    lines.extend(
        [
            "",
            DOUBLE_RULE,
            f"GENEL TOPLAM BORÇ: {format_number(fin.total_debt)} {currency}",
            f"TOPLAM ÖDENEN: {format_number(fin.total_paid)} {currency}",
            f"GÜNCEL BAKİYE: {format_number(fin.balance)} {currency}",
            DOUBLE_RULE,
            "",
            "Saygılarımızla,",
            signature,
        ]
    )
    return "\n".join(lines)


def statement_subject(customer: Customer) -> str:
    return f"Hesap Ekstresi - {customer.info.company_name}"


def compose_email_url(customer: Customer, body: str) -> str:
    """
    Gmail compose link prefilled with the statement.

    Raises:
        MissingContactFieldError: If the customer has no e-mail address.
    """
    email = (customer.info.email or "").strip()
    if not email:
        raise MissingContactFieldError("email")
    return (
        f"{GMAIL_COMPOSE_URL}&to={email}"
        f"&su={quote(statement_subject(customer), safe='')}"
        f"&body={quote(body, safe='')}"
    )
