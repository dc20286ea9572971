"""JSON document storage for wipedesk.

Customers, orders and catalog items are three independent documents. Every
mutation rewrites the whole affected document atomically under an exclusive
file lock, so the store has exactly one writer at a time.
"""

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, TypeVar

from .errors import (
    CatalogItemNotFoundError,
    CustomerNotFoundError,
    InvalidSchemaVersionError,
    OrderNotFoundError,
    StoreExistsError,
)
from .models import AppState, CatalogItem, Customer, Order, _utc_now

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Can be overridden via WIPEDESK_DATA_DIR environment variable
_default_data_dir = Path.cwd() / "data"
DATA_DIR = Path(os.environ.get("WIPEDESK_DATA_DIR", _default_data_dir))

CUSTOMERS_FILE = "customers.json"
ORDERS_FILE = "orders.json"
CATALOG_FILE = "catalog.json"
LOCK_FILE = ".wipedesk.lock"

T = TypeVar("T", Customer, CatalogItem, Order)


def _match_id(records: list[T], record_id: str, not_found: Callable[[str], Exception]) -> T:
    """
    Find a record by exact ID, then by unambiguous ID prefix.

    Raises:
        The exception built by not_found if no single record matches.
    """
    for record in records:
        if record.id == record_id:
            return record
    matches = [r for r in records if r.id.startswith(record_id)] if record_id else []
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise not_found(f"{record_id} (ambiguous, matches {len(matches)} records)")
    raise not_found(record_id)


class DataStore:
    """Manages reading and writing the three collections."""

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize DataStore.

        Args:
            data_dir: Override data directory (for testing).
        """
        self.data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        self.customers_path = self.data_dir / CUSTOMERS_FILE
        self.orders_path = self.data_dir / ORDERS_FILE
        self.catalog_path = self.data_dir / CATALOG_FILE

    # --- Low-level document I/O ---

    def _ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock for read-modify-write operations."""
        self._ensure_dir()
        lock_path = self.data_dir / LOCK_FILE
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _load_records(self, path: Path, key: str) -> list[dict[str, Any]]:
        """
        Load one collection document.

        Raises:
            InvalidSchemaVersionError: If the document's version is unsupported.
        """
        if not path.exists():
            return []

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise InvalidSchemaVersionError(version, SCHEMA_VERSION, str(path))

        return data.get(key, [])

    def _save_records(self, path: Path, key: str, records: list[dict[str, Any]]) -> None:
        """Save one collection document atomically (write temp, then rename)."""
        self._ensure_dir()

        data = {"schema_version": SCHEMA_VERSION, key: records}
        fd, temp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(temp_path, path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %d %s to %s", len(records), key, path)

    # --- Whole state ---

    def exists(self) -> bool:
        """Check if any collection has been written."""
        return any(
            p.exists() for p in (self.customers_path, self.orders_path, self.catalog_path)
        )

    def init(self, force: bool = False) -> AppState:
        """
        Create empty collections.

        Raises:
            StoreExistsError: If data exists and force=False.
        """
        if self.exists() and not force:
            raise StoreExistsError(str(self.data_dir))
        state = AppState()
        self.save_state(state)
        logger.info("Initialized data store at %s", self.data_dir)
        return state

    def load_state(self) -> AppState:
        return AppState(
            customers=self.list_customers(),
            orders=self.list_orders(),
            catalog=self.list_catalog(),
        )

    def save_state(self, state: AppState) -> None:
        with self._lock():
            self._save_records(
                self.customers_path, "customers", [c.to_dict() for c in state.customers]
            )
            self._save_records(self.orders_path, "orders", [o.to_dict() for o in state.orders])
            self._save_records(self.catalog_path, "catalog", [c.to_dict() for c in state.catalog])

    # --- Customers ---

    def list_customers(self) -> list[Customer]:
        return [Customer.from_dict(c) for c in self._load_records(self.customers_path, "customers")]

    def get_customer(self, customer_id: str) -> Customer:
        """
        Get a customer by ID (supports unambiguous prefix matching).

        Raises:
            CustomerNotFoundError: If no single customer matches.
        """
        return _match_id(self.list_customers(), customer_id, CustomerNotFoundError)

    def add_customer(self, customer: Customer) -> Customer:
        with self._lock():
            records = self._load_records(self.customers_path, "customers")
            records.append(customer.to_dict())
            self._save_records(self.customers_path, "customers", records)
        logger.info("Added customer %s (%s)", customer.id, customer.info.company_name)
        return customer

    def update_customer(self, customer: Customer) -> Customer:
        """
        Replace an existing customer. Past orders keep their own client copy.

        Raises:
            CustomerNotFoundError: If customer doesn't exist.
        """
        with self._lock():
            records = self._load_records(self.customers_path, "customers")
            for i, existing in enumerate(records):
                if existing["id"] == customer.id:
                    customer.updated_at = _utc_now()
                    records[i] = customer.to_dict()
                    self._save_records(self.customers_path, "customers", records)
                    return customer
        raise CustomerNotFoundError(customer.id)

    # --- Catalog ---

    def list_catalog(self) -> list[CatalogItem]:
        return [CatalogItem.from_dict(c) for c in self._load_records(self.catalog_path, "catalog")]

    def get_catalog_item(self, item_id: str) -> CatalogItem:
        """
        Get a catalog item by ID (supports unambiguous prefix matching).

        Raises:
            CatalogItemNotFoundError: If no single item matches.
        """
        return _match_id(self.list_catalog(), item_id, CatalogItemNotFoundError)

    def add_catalog_item(self, item: CatalogItem) -> CatalogItem:
        with self._lock():
            records = self._load_records(self.catalog_path, "catalog")
            records.append(item.to_dict())
            self._save_records(self.catalog_path, "catalog", records)
        logger.info("Added catalog item %s (%s)", item.id, item.title)
        return item

    def update_catalog_item(self, item: CatalogItem) -> CatalogItem:
        """
        Replace an existing catalog item.

        Raises:
            CatalogItemNotFoundError: If item doesn't exist.
        """
        with self._lock():
            records = self._load_records(self.catalog_path, "catalog")
            for i, existing in enumerate(records):
                if existing["id"] == item.id:
                    item.updated_at = _utc_now()
                    records[i] = item.to_dict()
                    self._save_records(self.catalog_path, "catalog", records)
                    return item
        raise CatalogItemNotFoundError(item.id)

    # --- Orders ---

    def list_orders(self) -> list[Order]:
        """All orders, newest inserted first."""
        return [Order.from_dict(o) for o in self._load_records(self.orders_path, "orders")]

    def get_order(self, order_id: str) -> Order:
        """
        Get an order by ID (supports unambiguous prefix matching).

        Raises:
            OrderNotFoundError: If no single order matches.
        """
        return _match_id(self.list_orders(), order_id, OrderNotFoundError)

    def add_order(self, order: Order) -> Order:
        """Insert a new order at the front of the collection."""
        with self._lock():
            records = self._load_records(self.orders_path, "orders")
            records.insert(0, order.to_dict())
            self._save_records(self.orders_path, "orders", records)
        return order

    def update_order(self, order_id: str, command: Callable[[Order], Order]) -> Order:
        """
        Apply a command to one order and persist the result.

        The command receives the current order and returns its replacement. If
        it raises, nothing is written.

        Raises:
            OrderNotFoundError: If order doesn't exist.
        """
        full_id = self.get_order(order_id).id
        with self._lock():
            records = self._load_records(self.orders_path, "orders")
            for i, existing in enumerate(records):
                if existing["id"] == full_id:
                    updated = command(Order.from_dict(existing))
                    records[i] = updated.to_dict()
                    self._save_records(self.orders_path, "orders", records)
                    return updated
        raise OrderNotFoundError(order_id)
