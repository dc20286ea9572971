"""Command-line interface for wipedesk."""

import argparse
import json
import logging
import sys
from dataclasses import asdict

from . import __version__
from .ai import AIClient
from .errors import OrderItemNotFoundError, PaymentNotFoundError, WipedeskError
from .ledger import add_delivery, add_payment, delete_payment, edit_payment, summarize
from .models import CatalogItem, ClientInfo, Customer, Order, ProductSpec
from .orders import build_order_item, client_from_customer, create_order, item_from_catalog, validate_client
from .reports import (
    dashboard_stats,
    essence_ranking,
    filter_orders,
    financial_report,
    production_report,
    revenue_trend,
    search_catalog,
    search_customers,
    shipping_report,
)
from .statement import compose_email_url, render_statement
from .status import set_status
from .store import DataStore
from .utils import format_order, parse_date

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "WARNING") -> None:
    """Send wipedesk logs to stderr at the given level."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)


def get_store() -> DataStore:
    return DataStore()


def _resolve_item_id(order: Order, prefix: str) -> str:
    matches = [i.id for i in order.items if i.id.startswith(prefix)]
    if len(matches) != 1:
        raise OrderItemNotFoundError(order.id, prefix)
    return matches[0]


def _resolve_payment_id(order: Order, prefix: str) -> str:
    matches = [p.id for p in order.payment_history if p.id.startswith(prefix)]
    if len(matches) != 1:
        raise PaymentNotFoundError(order.id, prefix)
    return matches[0]


def _print_ledger(order: Order) -> None:
    summary = summarize(order)
    print(f"  Total:   {summary.total:,.2f} {summary.currency}")
    print(f"  Paid:    {summary.paid:,.2f} {summary.currency}")
    print(f"  Balance: {summary.balance:,.2f} {summary.currency}")
    print(f"  Delivered: {summary.delivered_qty}/{summary.total_qty} ({summary.progress:.0f}%)")
    print(f"  Status: {order.status.label}")


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize an empty data store."""
    try:
        store = get_store()
        store.init(force=args.force)
        print(f"Initialized wipedesk data at {store.data_dir}")
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_customers_list(args: argparse.Namespace) -> int:
    try:
        customers = search_customers(get_store().list_customers(), args.search)

        if args.json:
            print(json.dumps([c.to_dict() for c in customers], indent=2, ensure_ascii=False))
            return 0

        if not customers:
            print("No customers found.")
            return 0

        print(f"Customers ({len(customers)}):")
        print()
        for c in customers:
            tags = f" [{', '.join(c.tags)}]" if c.tags else ""
            print(f"  {c.id[:8]}  {c.info.company_name}{tags}")
            print(f"           {c.info.contact_person}  {c.info.phone}")
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_customers_add(args: argparse.Namespace) -> int:
    try:
        info = validate_client(
            ClientInfo(
                company_name=args.company,
                contact_person=args.contact,
                phone=args.phone,
                email=args.email,
                tax_id=args.tax_id,
                address_street=args.street,
                address_city=args.city,
            )
        )
        customer = Customer.create(info=info, notes=args.notes or "", tags=args.tag or [])
        get_store().add_customer(customer)

        print(f"Added customer: {customer.id[:8]}")
        print(f"  Company: {info.company_name}")
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_catalog_list(args: argparse.Namespace) -> int:
    try:
        items = search_catalog(get_store().list_catalog(), args.search)

        if args.json:
            print(json.dumps([i.to_dict() for i in items], indent=2, ensure_ascii=False))
            return 0

        if not items:
            print("Catalog is empty.")
            return 0

        print(f"Catalog ({len(items)}):")
        print()
        for item in items:
            price = f"  {item.base_price}" if item.base_price is not None else ""
            print(f"  {item.id[:8]}  {item.title}{price}")
            print(f"           {item.specs.outer_material} / {item.specs.essence_name}")
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_catalog_add(args: argparse.Namespace) -> int:
    try:
        data = ProductSpec.default().to_dict()
        if args.material:
            data["outer_material"] = args.material
        if args.essence:
            data["essence_name"] = args.essence
        if args.gsm is not None:
            data["towel_gsm"] = args.gsm

        item = CatalogItem.create(
            title=args.title,
            specs=ProductSpec.from_dict(data),
            description=args.description or "",
            base_price=args.price,
        )
        get_store().add_catalog_item(item)
        print(f"Added catalog item: {item.id[:8]}")
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_list(args: argparse.Namespace) -> int:
    try:
        orders = filter_orders(
            get_store().list_orders(),
            search=args.search,
            essence=args.essence,
            status_filter=args.status,
        )

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2, ensure_ascii=False))
            return 0

        if not orders:
            print("No orders found.")
            return 0

        print(f"Orders ({len(orders)}):")
        print()
        for order in orders:
            print(format_order(order, verbose=args.verbose))
            print()
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_show(args: argparse.Namespace) -> int:
    try:
        order = get_store().get_order(args.order_id)

        if args.json:
            data = order.to_dict()
            data["ledger"] = asdict(summarize(order))
            print(json.dumps(data, indent=2, ensure_ascii=False))
        else:
            print(format_order(order, verbose=True))
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _parse_item_arg(value: str) -> tuple[int, float | None, str | None]:
    """QTY:PRICE, QTY::CATALOG_ID or QTY:PRICE:CATALOG_ID."""
    parts = value.split(":")
    try:
        quantity = int(parts[0])
        price = float(parts[1]) if len(parts) > 1 and parts[1] else None
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid item '{value}' (expected QTY:PRICE[:CATALOG_ID])")
    catalog_id = parts[2] if len(parts) > 2 and parts[2] else None
    return quantity, price, catalog_id


def cmd_orders_create(args: argparse.Namespace) -> int:
    try:
        store = get_store()

        if args.customer:
            customer = store.get_customer(args.customer)
            client = client_from_customer(customer)
            customer_id: str | None = customer.id
        else:
            client = ClientInfo(
                company_name=args.company or "",
                contact_person=args.contact or "",
                phone=args.phone or "",
            )
            customer_id = None

        items = []
        for quantity, price, catalog_id in args.item:
            if catalog_id:
                items.append(item_from_catalog(store.get_catalog_item(catalog_id), quantity, price))
            else:
                items.append(build_order_item(None, quantity, price or 0.0))

        order = create_order(
            client=client,
            items=items,
            currency=args.currency,
            vat_rate=args.vat,
            apply_vat=not args.no_vat,
            down_payment=args.down_payment,
            customer_id=customer_id,
            notes=args.notes or "",
            order_date=args.date,
        )
        store.add_order(order)

        print(f"Created order: {order.id[:8]}")
        _print_ledger(order)
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_status(args: argparse.Namespace) -> int:
    try:
        order = get_store().update_order(args.order_id, lambda o: set_status(o, args.status))
        print(f"Order {order.id[:8]} is now {order.status.label}")
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_payment(args: argparse.Namespace) -> int:
    """Add, edit or delete a payment."""
    try:
        store = get_store()

        if args.payment_command == "add":
            order = store.update_order(
                args.order_id, lambda o: add_payment(o, args.amount, args.date, args.note)
            )
            print(f"Recorded payment on order {order.id[:8]}")
        elif args.payment_command == "edit":
            order = store.update_order(
                args.order_id,
                lambda o: edit_payment(
                    o, _resolve_payment_id(o, args.payment_id), args.amount, args.date, args.note
                ),
            )
            print(f"Updated payment {args.payment_id[:8]}")
        else:
            order = store.update_order(
                args.order_id, lambda o: delete_payment(o, _resolve_payment_id(o, args.payment_id))
            )
            print(f"Deleted payment {args.payment_id[:8]}")

        _print_ledger(order)
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_deliver(args: argparse.Namespace) -> int:
    """Record a partial delivery."""
    try:
        order = get_store().update_order(
            args.order_id,
            lambda o: add_delivery(
                o, _resolve_item_id(o, args.item_id), args.quantity, args.date, args.note
            ),
        )
        print(f"Recorded delivery of {args.quantity} on order {order.id[:8]}")
        _print_ledger(order)
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_statement(args: argparse.Namespace) -> int:
    try:
        store = get_store()
        customer = store.get_customer(args.customer_id)
        text = render_statement(customer, store.list_orders(), statement_date=parse_date(args.date))
        print(text)
        if args.email_url:
            print()
            print(compose_email_url(customer, text))
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_report(args: argparse.Namespace) -> int:
    try:
        orders = get_store().list_orders()
        kind = args.kind

        if kind == "dashboard":
            data: object = asdict(dashboard_stats(orders))
        elif kind == "essences":
            data = [{"name": n, "quantity": q} for n, q in essence_ranking(orders)]
        elif kind == "trend":
            data = [asdict(b) for b in revenue_trend(orders, today=parse_date(args.date))]
        elif kind == "financial":
            report = financial_report(orders)
            data = {
                "rows": [dict(asdict(r), settled=r.settled) for r in report.rows],
                "total_receivable": report.total_receivable,
            }
        elif kind == "production":
            data = [o.to_dict() for o in production_report(orders)]
        else:
            data = [o.to_dict() for o in shipping_report(orders)]

        print(json.dumps(data, indent=2, ensure_ascii=False))
        return 0

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_suggest(args: argparse.Namespace) -> int:
    result = AIClient().suggest_specs(args.description)
    if not result.available:
        print(result.reason, file=sys.stderr)
        return 1
    print(json.dumps(result.specs.to_dict(), indent=2, ensure_ascii=False))
    if result.reason:
        print(f"\n{result.reason}")
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    try:
        order = get_store().get_order(args.order_id)
        result = AIClient().analyze_order(order)
        print(result.text)
        return 0 if result.available else 1

    except WipedeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        store = get_store()
        if not store.exists():
            print("Warning: no data yet. Run 'wipedesk init' first.", file=sys.stderr)
            print("Starting server anyway...", file=sys.stderr)

        print("Starting wipedesk API server...")
        print(f"Data: {store.data_dir}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "wipedesk.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Single worker: the store has one writer
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wipedesk",
        description="Orders, payments and deliveries for a private-label wet-wipe manufacturer.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_parser = subparsers.add_parser("init", help="Create an empty data store")
    init_parser.add_argument(
        "--force", "-f", action="store_true", help="Overwrite existing data"
    )

    # customers
    customers_parser = subparsers.add_parser("customers", help="Manage customers")
    customers_subparsers = customers_parser.add_subparsers(dest="customers_command")

    customers_list_parser = customers_subparsers.add_parser("list", help="List customers")
    customers_list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    customers_list_parser.add_argument(
        "--search", "-s", help="Company, contact person or phone"
    )

    customers_add_parser = customers_subparsers.add_parser("add", help="Add a customer")
    customers_add_parser.add_argument("--company", required=True, help="Company name")
    customers_add_parser.add_argument("--contact", required=True, help="Contact person")
    customers_add_parser.add_argument("--phone", required=True, help="Phone number")
    customers_add_parser.add_argument("--email", help="E-mail address")
    customers_add_parser.add_argument("--tax-id", help="Tax ID")
    customers_add_parser.add_argument("--street", help="Street address")
    customers_add_parser.add_argument("--city", help="City")
    customers_add_parser.add_argument("--notes", help="Free-text notes")
    customers_add_parser.add_argument("--tag", action="append", help="Tag (repeatable)")

    # catalog
    catalog_parser = subparsers.add_parser("catalog", help="Manage catalog templates")
    catalog_subparsers = catalog_parser.add_subparsers(dest="catalog_command")

    catalog_list_parser = catalog_subparsers.add_parser("list", help="List catalog items")
    catalog_list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    catalog_list_parser.add_argument("--search", "-s", help="Title or description")

    catalog_add_parser = catalog_subparsers.add_parser("add", help="Add a catalog item")
    catalog_add_parser.add_argument("--title", required=True, help="Title")
    catalog_add_parser.add_argument("--description", help="Description")
    catalog_add_parser.add_argument("--price", type=float, help="Base unit price")
    catalog_add_parser.add_argument("--material", help="Outer packaging material")
    catalog_add_parser.add_argument("--essence", help="Essence name")
    catalog_add_parser.add_argument("--gsm", type=float, help="Towel GSM")

    # orders
    orders_parser = subparsers.add_parser("orders", help="Manage orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument("--search", "-s", help="Company name or order id")
    orders_list_parser.add_argument("--essence", help="Only orders containing this essence")
    orders_list_parser.add_argument(
        "--status",
        help="ALL, PENDING, IN_PRODUCTION, IN_TRANSIT, SHIPPED (incl. partial), DELIVERED",
    )
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    orders_list_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show items and payments"
    )

    orders_show_parser = orders_subparsers.add_parser("show", help="Show one order")
    orders_show_parser.add_argument("order_id", help="Order ID (or prefix)")
    orders_show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    orders_create_parser = orders_subparsers.add_parser("create", help="Create an order")
    orders_create_parser.add_argument("--customer", help="Customer ID to bill")
    orders_create_parser.add_argument("--company", help="Company name (without --customer)")
    orders_create_parser.add_argument("--contact", help="Contact person (without --customer)")
    orders_create_parser.add_argument("--phone", help="Phone (without --customer)")
    orders_create_parser.add_argument(
        "--item",
        action="append",
        required=True,
        type=_parse_item_arg,
        help="QTY:PRICE or QTY:PRICE:CATALOG_ID (repeatable)",
    )
    orders_create_parser.add_argument(
        "--currency", default="GBP", help="TRY, USD, EUR or GBP (default: GBP)"
    )
    orders_create_parser.add_argument("--vat", type=float, default=20, help="VAT rate in percent")
    orders_create_parser.add_argument("--no-vat", action="store_true", help="Do not apply VAT")
    orders_create_parser.add_argument(
        "--down-payment", type=float, default=0, help="Legacy down payment amount"
    )
    orders_create_parser.add_argument("--notes", help="Order notes")
    orders_create_parser.add_argument("--date", help="Order date (YYYY-MM-DD, default: today)")

    orders_status_parser = orders_subparsers.add_parser("status", help="Set order status")
    orders_status_parser.add_argument("order_id", help="Order ID (or prefix)")
    orders_status_parser.add_argument("status", help="Status name or label")

    # payment
    payment_parser = subparsers.add_parser("payment", help="Record payments and refunds")
    payment_subparsers = payment_parser.add_subparsers(dest="payment_command")

    payment_add_parser = payment_subparsers.add_parser("add", help="Add a payment")
    payment_add_parser.add_argument("order_id", help="Order ID (or prefix)")
    payment_add_parser.add_argument(
        "amount", type=float, help="Amount (negative for refunds/corrections)"
    )
    payment_add_parser.add_argument("--date", help="Payment date (YYYY-MM-DD)")
    payment_add_parser.add_argument("--note", help="Note")

    payment_edit_parser = payment_subparsers.add_parser("edit", help="Edit a payment")
    payment_edit_parser.add_argument("order_id", help="Order ID (or prefix)")
    payment_edit_parser.add_argument("payment_id", help="Payment ID (or prefix)")
    payment_edit_parser.add_argument("amount", type=float, help="New amount")
    payment_edit_parser.add_argument("--date", help="Payment date (YYYY-MM-DD)")
    payment_edit_parser.add_argument("--note", help="Note")

    payment_delete_parser = payment_subparsers.add_parser("delete", help="Delete a payment")
    payment_delete_parser.add_argument("order_id", help="Order ID (or prefix)")
    payment_delete_parser.add_argument("payment_id", help="Payment ID (or prefix)")

    # deliver
    deliver_parser = subparsers.add_parser("deliver", help="Record a partial delivery")
    deliver_parser.add_argument("order_id", help="Order ID (or prefix)")
    deliver_parser.add_argument("item_id", help="Item ID (or prefix)")
    deliver_parser.add_argument("quantity", type=int, help="Quantity shipped")
    deliver_parser.add_argument("--date", help="Delivery date (YYYY-MM-DD)")
    deliver_parser.add_argument("--note", help="Note")

    # statement
    statement_parser = subparsers.add_parser("statement", help="Print a customer account statement")
    statement_parser.add_argument("customer_id", help="Customer ID")
    statement_parser.add_argument("--date", help="Statement date (YYYY-MM-DD, default: today)")
    statement_parser.add_argument(
        "--email-url", action="store_true", help="Also print a Gmail draft link"
    )

    # report
    report_parser = subparsers.add_parser("report", help="Print an aggregate report as JSON")
    report_parser.add_argument(
        "kind",
        choices=["dashboard", "essences", "trend", "financial", "production", "shipping"],
    )
    report_parser.add_argument("--date", help="Reference date for the trend (YYYY-MM-DD)")

    # suggest / analyze
    suggest_parser = subparsers.add_parser("suggest", help="AI spec suggestion for a description")
    suggest_parser.add_argument("description", help="Free-text product description")

    analyze_parser = subparsers.add_parser("analyze", help="AI profitability commentary for an order")
    analyze_parser.add_argument("order_id", help="Order ID (or prefix)")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()
    configure_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    # Command groups
    groups = {
        "customers": ("customers_command", {"list": cmd_customers_list, "add": cmd_customers_add}),
        "catalog": ("catalog_command", {"list": cmd_catalog_list, "add": cmd_catalog_add}),
        "orders": (
            "orders_command",
            {
                "list": cmd_orders_list,
                "show": cmd_orders_show,
                "create": cmd_orders_create,
                "status": cmd_orders_status,
            },
        ),
        "payment": ("payment_command", {"add": cmd_payment, "edit": cmd_payment, "delete": cmd_payment}),
    }
    if args.command in groups:
        dest, handlers = groups[args.command]
        sub = getattr(args, dest, None)
        if not sub:
            parser.parse_args([args.command, "--help"])
            return 0
        return handlers[sub](args)

    commands = {
        "init": cmd_init,
        "deliver": cmd_deliver,
        "statement": cmd_statement,
        "report": cmd_report,
        "suggest": cmd_suggest,
        "analyze": cmd_analyze,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
