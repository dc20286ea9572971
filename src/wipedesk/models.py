"""Data models for wipedesk."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
import uuid

from .errors import InvalidCurrencyError, InvalidStatusError


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _today() -> str:
    """Return today's date as YYYY-MM-DD."""
    return date.today().isoformat()


def _generate_id() -> str:
    """Generate a new record ID."""
    return str(uuid.uuid4())


class Currency(str, Enum):
    TRY = "TRY"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"

    @classmethod
    def parse(cls, value: "str | Currency") -> "Currency":
        if isinstance(value, Currency):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidCurrencyError(str(value)) from None


class OrderStatus(str, Enum):
    """Order status. Values are stored by name; labels are for display."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    IN_PRODUCTION = "IN_PRODUCTION"
    IN_TRANSIT = "IN_TRANSIT"
    PARTIAL = "PARTIAL"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @classmethod
    def parse(cls, value: "str | OrderStatus") -> "OrderStatus":
        """Accept an OrderStatus, its name (any case) or its display label."""
        if isinstance(value, OrderStatus):
            return value
        text = str(value).strip()
        try:
            return cls(text.upper())
        except ValueError:
            pass
        for status, label in STATUS_LABELS.items():
            if label == text:
                return status
        raise InvalidStatusError(text)


STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.DRAFT: "Taslak",
    OrderStatus.PENDING: "Onay Bekliyor",
    OrderStatus.APPROVED: "Onaylandı",
    OrderStatus.IN_PRODUCTION: "Üretimde",
    OrderStatus.IN_TRANSIT: "Yolda",
    OrderStatus.PARTIAL: "Kısmi Teslim",
    OrderStatus.SHIPPED: "Kargoya Verildi",
    OrderStatus.DELIVERED: "Tamamlandı",
}


class Lamination(str, Enum):
    GLOSS = "Parlak"
    MATTE = "Mat"
    SPOT = "Kısmi Lak"


@dataclass(frozen=True)
class Dimensions:
    """Width and height in centimetres."""

    width: float
    height: float

    def to_dict(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Dimensions":
        return cls(width=data.get("width", 0), height=data.get("height", 0))


@dataclass(frozen=True)
class ProductSpec:
    """Manufactured item variant. Purely descriptive."""

    # Outer packaging
    outer_material: str
    outer_dimensions: Dimensions
    outer_layer_count: int
    print_colors: int
    lamination: Lamination
    # Towel
    towel_material: str
    towel_gsm: float
    towel_dimensions_open: Dimensions
    # Solution
    essence_name: str
    essence_amount: float  # ml
    alcohol_free: bool
    # Carton
    pieces_per_box: int

    @classmethod
    def default(cls) -> "ProductSpec":
        """Factory default used when a new order line has no template."""
        return cls(
            outer_material="Triplex (PET/ALU/PE)",
            outer_dimensions=Dimensions(6, 8),
            outer_layer_count=3,
            print_colors=4,
            lamination=Lamination.GLOSS,
            towel_material="Nonwoven Spunlace",
            towel_gsm=40,
            towel_dimensions_open=Dimensions(14, 18),
            essence_name="Limon",
            essence_amount=2.5,
            alcohol_free=True,
            pieces_per_box=1000,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "outer_material": self.outer_material,
            "outer_dimensions": self.outer_dimensions.to_dict(),
            "outer_layer_count": self.outer_layer_count,
            "print_colors": self.print_colors,
            "lamination": self.lamination.value,
            "towel_material": self.towel_material,
            "towel_gsm": self.towel_gsm,
            "towel_dimensions_open": self.towel_dimensions_open.to_dict(),
            "essence_name": self.essence_name,
            "essence_amount": self.essence_amount,
            "alcohol_free": self.alcohol_free,
            "pieces_per_box": self.pieces_per_box,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductSpec":
        base = cls.default()
        return cls(
            outer_material=data.get("outer_material", base.outer_material),
            outer_dimensions=Dimensions.from_dict(
                data.get("outer_dimensions", base.outer_dimensions.to_dict())
            ),
            outer_layer_count=data.get("outer_layer_count", base.outer_layer_count),
            print_colors=data.get("print_colors", base.print_colors),
            lamination=Lamination(data.get("lamination", base.lamination.value)),
            towel_material=data.get("towel_material", base.towel_material),
            towel_gsm=data.get("towel_gsm", base.towel_gsm),
            towel_dimensions_open=Dimensions.from_dict(
                data.get("towel_dimensions_open", base.towel_dimensions_open.to_dict())
            ),
            essence_name=data.get("essence_name", base.essence_name),
            essence_amount=data.get("essence_amount", base.essence_amount),
            alcohol_free=data.get("alcohol_free", base.alcohol_free),
            pieces_per_box=data.get("pieces_per_box", base.pieces_per_box),
        )


@dataclass(frozen=True)
class Delivery:
    """A partial shipment of one order line."""

    id: str
    date: str
    quantity: int
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "date": self.date, "quantity": self.quantity}
        if self.note is not None:
            result["note"] = self.note
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Delivery":
        return cls(
            id=data["id"],
            date=data.get("date", ""),
            quantity=data["quantity"],
            note=data.get("note"),
        )

    @classmethod
    def create(cls, quantity: int, date: str | None = None, note: str | None = None) -> "Delivery":
        return cls(id=_generate_id(), date=date or _today(), quantity=quantity, note=note)


@dataclass(frozen=True)
class OrderItem:
    """One ordered line. total_price is fixed at creation."""

    id: str
    specs: ProductSpec
    quantity: int
    unit_price: float
    total_price: float
    deliveries: tuple[Delivery, ...] = ()
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "specs": self.specs.to_dict(),
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "deliveries": [d.to_dict() for d in self.deliveries],
        }
        if self.image_url is not None:
            result["image_url"] = self.image_url
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            id=data["id"],
            specs=ProductSpec.from_dict(data.get("specs", {})),
            quantity=data["quantity"],
            unit_price=data["unit_price"],
            total_price=data.get("total_price", data["quantity"] * data["unit_price"]),
            deliveries=tuple(Delivery.from_dict(d) for d in data.get("deliveries", [])),
            image_url=data.get("image_url"),
        )


@dataclass(frozen=True)
class PaymentTransaction:
    """A signed ledger entry. Positive = received, negative = refund/correction."""

    id: str
    date: str
    amount: float
    note: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "date": self.date, "amount": self.amount, "note": self.note}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentTransaction":
        return cls(
            id=data["id"],
            date=data.get("date", ""),
            amount=data["amount"],
            note=data.get("note", ""),
        )

    @classmethod
    def create(cls, amount: float, date: str | None = None, note: str = "") -> "PaymentTransaction":
        return cls(id=_generate_id(), date=date or _today(), amount=amount, note=note)


@dataclass(frozen=True)
class Financials:
    """Money snapshot taken when the order is created or re-priced."""

    currency: Currency
    sub_total: float
    vat_rate: float  # percent
    total_amount: float
    down_payment: float = 0.0  # legacy single-value field, still counted as paid

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency": self.currency.value,
            "sub_total": self.sub_total,
            "vat_rate": self.vat_rate,
            "total_amount": self.total_amount,
            "down_payment": self.down_payment,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Financials":
        return cls(
            currency=Currency.parse(data.get("currency", "GBP")),
            sub_total=data["sub_total"],
            vat_rate=data.get("vat_rate", 0),
            total_amount=data["total_amount"],
            down_payment=data.get("down_payment", 0.0),
        )


@dataclass(frozen=True)
class ClientInfo:
    """Contact and address details."""

    company_name: str
    contact_person: str
    phone: str
    tax_id: str | None = None
    email: str | None = None
    address_street: str | None = None
    address_door_no: str | None = None
    address_post_code: str | None = None
    address_city: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "company_name": self.company_name,
            "contact_person": self.contact_person,
            "phone": self.phone,
        }
        for key in (
            "tax_id",
            "email",
            "address_street",
            "address_door_no",
            "address_post_code",
            "address_city",
        ):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientInfo":
        return cls(
            company_name=data.get("company_name", ""),
            contact_person=data.get("contact_person", ""),
            phone=data.get("phone", ""),
            tax_id=data.get("tax_id"),
            email=data.get("email"),
            address_street=data.get("address_street"),
            address_door_no=data.get("address_door_no"),
            address_post_code=data.get("address_post_code"),
            address_city=data.get("address_city"),
        )


@dataclass
class Customer:
    """A customer record. Orders keep their own ClientInfo copy."""

    id: str
    info: ClientInfo
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "info": self.info.to_dict(),
            "notes": self.notes,
            "tags": list(self.tags),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Customer":
        return cls(
            id=data["id"],
            info=ClientInfo.from_dict(data.get("info", {})),
            notes=data.get("notes", ""),
            tags=list(data.get("tags", [])),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(cls, info: ClientInfo, notes: str = "", tags: list[str] | None = None) -> "Customer":
        """Create a new customer with generated ID and timestamps."""
        now = _utc_now()
        return cls(
            id=_generate_id(),
            info=info,
            notes=notes,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )


@dataclass
class CatalogItem:
    """Reusable product template for prefilling new order lines."""

    id: str
    title: str
    specs: ProductSpec
    description: str = ""
    base_price: float | None = None
    image_url: str | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "specs": self.specs.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.base_price is not None:
            result["base_price"] = self.base_price
        if self.image_url is not None:
            result["image_url"] = self.image_url
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CatalogItem":
        return cls(
            id=data["id"],
            title=data["title"],
            specs=ProductSpec.from_dict(data.get("specs", {})),
            description=data.get("description", ""),
            base_price=data.get("base_price"),
            image_url=data.get("image_url"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(
        cls,
        title: str,
        specs: ProductSpec | None = None,
        description: str = "",
        base_price: float | None = None,
        image_url: str | None = None,
    ) -> "CatalogItem":
        """Create a new catalog item with generated ID and timestamps."""
        now = _utc_now()
        return cls(
            id=_generate_id(),
            title=title,
            specs=specs or ProductSpec.default(),
            description=description,
            base_price=base_price,
            image_url=image_url,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True)
class Order:
    """Aggregate root. Commands return a new Order instead of mutating."""

    id: str
    client: ClientInfo
    items: tuple[OrderItem, ...]
    financials: Financials
    order_date: str
    estimated_delivery_date: str
    status: OrderStatus = OrderStatus.PENDING
    notes: str = ""
    customer_id: str | None = None
    payment_history: tuple[PaymentTransaction, ...] = ()
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def currency(self) -> Currency:
        return self.financials.currency

    def evolve(self, **changes: Any) -> "Order":
        """Return a copy with the given fields replaced and updated_at bumped."""
        changes.setdefault("updated_at", _utc_now())
        return replace(self, **changes)

    def find_item(self, item_id: str) -> OrderItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_payment(self, payment_id: str) -> PaymentTransaction | None:
        for payment in self.payment_history:
            if payment.id == payment_id:
                return payment
        return None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "client": self.client.to_dict(),
            "items": [i.to_dict() for i in self.items],
            "financials": self.financials.to_dict(),
            "order_date": self.order_date,
            "estimated_delivery_date": self.estimated_delivery_date,
            "status": self.status.value,
            "notes": self.notes,
            "payment_history": [p.to_dict() for p in self.payment_history],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.customer_id is not None:
            result["customer_id"] = self.customer_id
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            id=data["id"],
            client=ClientInfo.from_dict(data.get("client", {})),
            items=tuple(OrderItem.from_dict(i) for i in data.get("items", [])),
            financials=Financials.from_dict(data["financials"]),
            order_date=data.get("order_date", ""),
            estimated_delivery_date=data.get("estimated_delivery_date", ""),
            status=OrderStatus.parse(data.get("status", OrderStatus.PENDING.value)),
            notes=data.get("notes", ""),
            customer_id=data.get("customer_id"),
            payment_history=tuple(
                PaymentTransaction.from_dict(p) for p in data.get("payment_history") or []
            ),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


@dataclass
class AppState:
    """The three independent top-level collections."""

    customers: list[Customer] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)  # newest first
    catalog: list[CatalogItem] = field(default_factory=list)
