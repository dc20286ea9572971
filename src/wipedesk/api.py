"""FastAPI REST API for wipedesk."""

from dataclasses import asdict
from datetime import date
from typing import Any, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .ai import AIClient
from .errors import (
    InvalidOrderItemError,
    InvalidSchemaVersionError,
    NotFoundError,
    StoreExistsError,
    ValidationError,
    WipedeskError,
)
from .ledger import add_delivery, add_payment, customer_financials, delete_payment, edit_payment, summarize
from .models import CatalogItem, ClientInfo, Customer, Lamination, OrderItem, ProductSpec
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
from .statement import compose_email_url, render_statement, statement_subject
from .status import set_status
from .store import DataStore


# --- Pydantic Schemas ---


class DimensionsSchema(BaseModel):
    width: float
    height: float


class ProductSpecSchema(BaseModel):
    """Product spec fields. Omitted fields take the factory default."""

    outer_material: Optional[str] = None
    outer_dimensions: Optional[DimensionsSchema] = None
    outer_layer_count: Optional[int] = None
    print_colors: Optional[int] = None
    lamination: Optional[Lamination] = None
    towel_material: Optional[str] = None
    towel_gsm: Optional[float] = None
    towel_dimensions_open: Optional[DimensionsSchema] = None
    essence_name: Optional[str] = None
    essence_amount: Optional[float] = None
    alcohol_free: Optional[bool] = None
    pieces_per_box: Optional[int] = None

    def to_spec(self, base: ProductSpec | None = None) -> ProductSpec:
        data = (base or ProductSpec.default()).to_dict()
        data.update(self.model_dump(exclude_none=True))
        return ProductSpec.from_dict(data)


class ClientInfoSchema(BaseModel):
    company_name: str
    contact_person: str
    phone: str
    tax_id: Optional[str] = None
    email: Optional[str] = None
    address_street: Optional[str] = None
    address_door_no: Optional[str] = None
    address_post_code: Optional[str] = None
    address_city: Optional[str] = None

    def to_info(self) -> ClientInfo:
        return ClientInfo(**self.model_dump())


class CustomerCreateRequest(BaseModel):
    info: ClientInfoSchema
    notes: str = ""
    tags: list[str] = Field(default_factory=list)


class CustomerUpdateRequest(BaseModel):
    info: Optional[ClientInfoSchema] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None


class CatalogItemCreateRequest(BaseModel):
    title: str
    description: str = ""
    specs: Optional[ProductSpecSchema] = None
    base_price: Optional[float] = None
    image_url: Optional[str] = None


class CatalogItemUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    specs: Optional[ProductSpecSchema] = None
    base_price: Optional[float] = None
    image_url: Optional[str] = None


class OrderItemRequest(BaseModel):
    quantity: int
    unit_price: Optional[float] = Field(
        None,
        description="Required without catalog_item_id; with a template it defaults "
        "to the template base price, or 0 if the template has none",
    )
    catalog_item_id: Optional[str] = Field(None, description="Prefill specs and price from a template")
    specs: Optional[ProductSpecSchema] = None
    image_url: Optional[str] = None


class OrderCreateRequest(BaseModel):
    customer_id: Optional[str] = Field(None, description="Copy billing details from this customer")
    client: Optional[ClientInfoSchema] = None
    items: list[OrderItemRequest]
    currency: str = "GBP"
    vat_rate: float = 20
    apply_vat: bool = True
    down_payment: float = 0
    notes: str = ""
    order_date: Optional[str] = None
    estimated_delivery_date: Optional[str] = None


class OrderUpdateRequest(BaseModel):
    notes: Optional[str] = None
    estimated_delivery_date: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., description="Status name (e.g. IN_PRODUCTION) or label")


class PaymentRequest(BaseModel):
    amount: float = Field(..., description="Positive for payments, negative for refunds")
    date: Optional[str] = None
    note: Optional[str] = None


class DeliveryRequest(BaseModel):
    item_id: str
    quantity: int
    date: Optional[str] = None
    note: Optional[str] = None


class SpecSuggestionRequest(BaseModel):
    description: str
    current: Optional[ProductSpecSchema] = None


class LedgerSchema(BaseModel):
    order_id: str
    currency: str
    total: float
    paid: float
    balance: float
    total_qty: int
    delivered_qty: int
    remaining_qty: int
    progress: float


class CustomerFinancialsSchema(BaseModel):
    customer_id: str
    order_count: int
    total_debt: float
    total_paid: float
    balance: float


class StatementResponse(BaseModel):
    customer_id: str
    subject: str
    text: str
    email_url: Optional[str] = None


class SpecSuggestionResponseSchema(BaseModel):
    specs: dict[str, Any]
    reason: str
    available: bool


class AnalysisResponse(BaseModel):
    text: str
    available: bool


# --- Helper Functions ---


def get_store() -> DataStore:
    """Get the global DataStore."""
    return DataStore()


def get_ai_client() -> AIClient:
    return AIClient()


def order_to_response(order) -> dict[str, Any]:
    """Order document plus its derived ledger figures."""
    data = order.to_dict()
    data["status_label"] = order.status.label
    data["ledger"] = asdict(summarize(order))
    return data


def _build_items(store: DataStore, requests: list[OrderItemRequest]) -> list[OrderItem]:
    items = []
    for req in requests:
        if req.catalog_item_id:
            template = store.get_catalog_item(req.catalog_item_id)
            if req.specs is not None:
                template.specs = req.specs.to_spec(template.specs)
            items.append(item_from_catalog(template, req.quantity, req.unit_price))
        else:
            if req.unit_price is None:
                raise InvalidOrderItemError("unit price is required without a catalog item")
            specs = req.specs.to_spec() if req.specs else None
            items.append(
                build_order_item(specs, req.quantity, req.unit_price, image_url=req.image_url)
            )
    return items


# --- FastAPI App ---


app = FastAPI(
    title="wipedesk API",
    description="Orders, payments and deliveries for a private-label wet-wipe manufacturer",
    version=__version__,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types (and their subclasses) to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    NotFoundError: 404,
    StoreExistsError: 409,
    InvalidSchemaVersionError: 500,
}


def status_code_for(exc: Exception) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


@app.exception_handler(WipedeskError)
async def wipedesk_error_handler(request: Request, exc: WipedeskError) -> JSONResponse:
    """Map WipedeskError subclasses to appropriate HTTP responses."""
    return JSONResponse(
        status_code=status_code_for(exc),
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    store = get_store()
    try:
        state = store.load_state()
        return {
            "status": "ok",
            "customer_count": len(state.customers),
            "order_count": len(state.orders),
            "catalog_count": len(state.catalog),
            "ai_enabled": get_ai_client().enabled,
        }
    except Exception as e:
        return {
            "status": "error",
            "detail": str(e),
        }


# --- Customer Endpoints ---


@app.get("/api/customers")
def list_customers(
    search: Optional[str] = Query(None, description="Company, contact person or phone"),
):
    customers = search_customers(get_store().list_customers(), search)
    return {"customers": [c.to_dict() for c in customers], "count": len(customers)}


@app.post("/api/customers", status_code=201)
def create_customer(request: CustomerCreateRequest):
    info = validate_client(request.info.to_info())
    customer = Customer.create(info=info, notes=request.notes, tags=request.tags)
    get_store().add_customer(customer)
    return customer.to_dict()


@app.get("/api/customers/{customer_id}")
def get_customer(customer_id: str):
    return get_store().get_customer(customer_id).to_dict()


@app.patch("/api/customers/{customer_id}")
def update_customer(customer_id: str, request: CustomerUpdateRequest):
    """Edit a customer. Existing orders keep their billing snapshot."""
    store = get_store()
    customer = store.get_customer(customer_id)
    update_data = request.model_dump(exclude_unset=True)

    if "info" in update_data and request.info is not None:
        customer.info = validate_client(request.info.to_info())
    if "notes" in update_data:
        customer.notes = request.notes or ""
    if "tags" in update_data:
        customer.tags = list(request.tags or [])

    store.update_customer(customer)
    return customer.to_dict()


@app.get("/api/customers/{customer_id}/financials", response_model=CustomerFinancialsSchema)
def get_customer_financials(customer_id: str):
    store = get_store()
    customer = store.get_customer(customer_id)
    fin = customer_financials(customer.id, store.list_orders())
    return CustomerFinancialsSchema(
        customer_id=customer.id,
        order_count=len(fin.orders),
        total_debt=fin.total_debt,
        total_paid=fin.total_paid,
        balance=fin.balance,
    )


@app.get("/api/customers/{customer_id}/statement", response_model=StatementResponse)
def get_customer_statement(
    customer_id: str,
    statement_date: Optional[date] = Query(None, alias="date"),
):
    """Plain-text account statement, with a Gmail draft link when an e-mail is on file."""
    store = get_store()
    customer = store.get_customer(customer_id)
    text = render_statement(customer, store.list_orders(), statement_date=statement_date)
    email_url = compose_email_url(customer, text) if customer.info.email else None
    return StatementResponse(
        customer_id=customer.id,
        subject=statement_subject(customer),
        text=text,
        email_url=email_url,
    )


# --- Catalog Endpoints ---


@app.get("/api/catalog")
def list_catalog(search: Optional[str] = Query(None, description="Title or description")):
    items = search_catalog(get_store().list_catalog(), search)
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@app.post("/api/catalog", status_code=201)
def create_catalog_item(request: CatalogItemCreateRequest):
    item = CatalogItem.create(
        title=request.title,
        specs=request.specs.to_spec() if request.specs else None,
        description=request.description,
        base_price=request.base_price,
        image_url=request.image_url,
    )
    get_store().add_catalog_item(item)
    return item.to_dict()


@app.get("/api/catalog/{item_id}")
def get_catalog_item(item_id: str):
    return get_store().get_catalog_item(item_id).to_dict()


@app.patch("/api/catalog/{item_id}")
def update_catalog_item(item_id: str, request: CatalogItemUpdateRequest):
    store = get_store()
    item = store.get_catalog_item(item_id)
    update_data = request.model_dump(exclude_unset=True)

    if "title" in update_data and request.title:
        item.title = request.title
    if "description" in update_data:
        item.description = request.description or ""
    if "specs" in update_data and request.specs is not None:
        item.specs = request.specs.to_spec(item.specs)
    if "base_price" in update_data:
        item.base_price = request.base_price
    if "image_url" in update_data:
        item.image_url = request.image_url

    store.update_catalog_item(item)
    return item.to_dict()


# --- Order Endpoints ---


@app.get("/api/orders")
def list_orders(
    search: Optional[str] = Query(None, description="Company name or order id"),
    essence: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="ALL, PENDING, IN_PRODUCTION, IN_TRANSIT, SHIPPED, DELIVERED"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
):
    """List orders, newest order date first."""
    orders = filter_orders(get_store().list_orders(), search, essence, status, start, end)
    return {"orders": [order_to_response(o) for o in orders], "count": len(orders)}


@app.post("/api/orders", status_code=201)
def create_order_endpoint(request: OrderCreateRequest):
    """Create a PENDING order, copying client details from the customer if given."""
    store = get_store()
    if request.customer_id:
        client = client_from_customer(store.get_customer(request.customer_id))
    elif request.client is not None:
        client = request.client.to_info()
    else:
        client = ClientInfo(company_name="", contact_person="", phone="")

    order = create_order(
        client=client,
        items=_build_items(store, request.items),
        currency=request.currency,
        vat_rate=request.vat_rate,
        apply_vat=request.apply_vat,
        down_payment=request.down_payment,
        customer_id=request.customer_id,
        notes=request.notes,
        order_date=request.order_date,
        estimated_delivery_date=request.estimated_delivery_date,
    )
    store.add_order(order)
    return order_to_response(order)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str):
    return order_to_response(get_store().get_order(order_id))


@app.patch("/api/orders/{order_id}")
def update_order(order_id: str, request: OrderUpdateRequest):
    update_data = request.model_dump(exclude_unset=True)
    changes = {k: v for k, v in update_data.items() if v is not None}

    order = get_store().update_order(order_id, lambda o: o.evolve(**changes) if changes else o)
    return order_to_response(order)


@app.get("/api/orders/{order_id}/ledger", response_model=LedgerSchema)
def get_order_ledger(order_id: str):
    return LedgerSchema(**asdict(summarize(get_store().get_order(order_id))))


@app.put("/api/orders/{order_id}/status")
def update_order_status(order_id: str, request: StatusUpdateRequest):
    order = get_store().update_order(order_id, lambda o: set_status(o, request.status))
    return order_to_response(order)


@app.post("/api/orders/{order_id}/payments", status_code=201)
def create_payment(order_id: str, request: PaymentRequest):
    order = get_store().update_order(
        order_id, lambda o: add_payment(o, request.amount, request.date, request.note)
    )
    return order_to_response(order)


@app.patch("/api/orders/{order_id}/payments/{payment_id}")
def update_payment(order_id: str, payment_id: str, request: PaymentRequest):
    order = get_store().update_order(
        order_id,
        lambda o: edit_payment(o, payment_id, request.amount, request.date, request.note),
    )
    return order_to_response(order)


@app.delete("/api/orders/{order_id}/payments/{payment_id}")
def remove_payment(order_id: str, payment_id: str):
    order = get_store().update_order(order_id, lambda o: delete_payment(o, payment_id))
    return order_to_response(order)


@app.post("/api/orders/{order_id}/deliveries", status_code=201)
def create_delivery(order_id: str, request: DeliveryRequest):
    order = get_store().update_order(
        order_id,
        lambda o: add_delivery(o, request.item_id, request.quantity, request.date, request.note),
    )
    return order_to_response(order)


@app.post("/api/orders/{order_id}/analysis", response_model=AnalysisResponse)
def analyze_order(order_id: str):
    """AI profitability/risk commentary. Never fails the request on AI errors."""
    order = get_store().get_order(order_id)
    result = get_ai_client().analyze_order(order)
    return AnalysisResponse(text=result.text, available=result.available)


# --- AI Endpoints ---


@app.post("/api/ai/suggest-specs", response_model=SpecSuggestionResponseSchema)
def suggest_specs(request: SpecSuggestionRequest):
    current = request.current.to_spec() if request.current else None
    result = get_ai_client().suggest_specs(request.description, current)
    return SpecSuggestionResponseSchema(
        specs=result.specs.to_dict(),
        reason=result.reason,
        available=result.available,
    )


# --- Report Endpoints ---


@app.get("/api/reports/dashboard")
def report_dashboard():
    return asdict(dashboard_stats(get_store().list_orders()))


@app.get("/api/reports/essences")
def report_essences(limit: int = Query(default=5, ge=1, le=50)):
    ranking = essence_ranking(get_store().list_orders(), limit=limit)
    return {"essences": [{"name": name, "quantity": qty} for name, qty in ranking]}


@app.get("/api/reports/trend")
def report_trend(months: int = Query(default=6, ge=1, le=24), today: Optional[date] = Query(None)):
    buckets = revenue_trend(get_store().list_orders(), today=today, months=months)
    return {"months": [asdict(b) for b in buckets]}


@app.get("/api/reports/production")
def report_production():
    orders = production_report(get_store().list_orders())
    return {"orders": [order_to_response(o) for o in orders], "count": len(orders)}


@app.get("/api/reports/shipping")
def report_shipping():
    orders = shipping_report(get_store().list_orders())
    return {"orders": [order_to_response(o) for o in orders], "count": len(orders)}


@app.get("/api/reports/financial")
def report_financial():
    report = financial_report(get_store().list_orders())
    return {
        "rows": [dict(asdict(r), settled=r.settled) for r in report.rows],
        "total_receivable": report.total_receivable,
    }
