"""Custom exceptions for wipedesk."""


class WipedeskError(Exception):
    """Base exception for all wipedesk errors."""

    pass


class ValidationError(WipedeskError):
    """Base class for rejected mutations. State is left unchanged."""

    pass


class NotFoundError(WipedeskError):
    """Base class for lookups of records that don't exist."""

    pass


class InvalidPaymentAmountError(ValidationError):
    """Raised when a payment amount is zero or not a number."""

    def __init__(self, amount: object):
        self.amount = amount
        super().__init__(
            f"Invalid payment amount: {amount!r} (must be a non-zero number; "
            "negative values record refunds or corrections)"
        )


class PaymentExceedsBalanceError(ValidationError):
    """Raised when a positive payment would overpay the order."""

    def __init__(self, amount: float, allowable: float, currency: str):
        self.amount = amount
        self.allowable = allowable
        self.currency = currency
        super().__init__(
            f"Payment of {amount:g} {currency} exceeds the outstanding "
            f"balance of {allowable:g} {currency}"
        )


class InvalidDeliveryQuantityError(ValidationError):
    """Raised when a delivery quantity is not a positive integer."""

    def __init__(self, quantity: object):
        self.quantity = quantity
        super().__init__(f"Invalid delivery quantity: {quantity!r} (must be a positive integer)")


class InvalidOrderItemError(ValidationError):
    """Raised when an order line has a bad quantity or price."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid order item: {reason}")


class EmptyOrderError(ValidationError):
    """Raised when creating an order without any items."""

    def __init__(self):
        super().__init__("An order needs at least one item.")


class MissingContactFieldError(ValidationError):
    """Raised when a required contact field is empty."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing required contact field: {field_name}")


class InvalidStatusError(ValidationError):
    """Raised when a status value is not a known order status."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unknown order status: {value}")


class InvalidCurrencyError(ValidationError):
    """Raised when a currency code is not supported."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unsupported currency: {value}")


class OrderNotFoundError(NotFoundError):
    """Raised when an order ID doesn't exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class OrderItemNotFoundError(NotFoundError):
    """Raised when an item ID doesn't exist within an order."""

    def __init__(self, order_id: str, item_id: str):
        self.order_id = order_id
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found in order {order_id}")


class PaymentNotFoundError(NotFoundError):
    """Raised when a payment ID doesn't exist within an order."""

    def __init__(self, order_id: str, payment_id: str):
        self.order_id = order_id
        self.payment_id = payment_id
        super().__init__(f"Payment {payment_id} not found in order {order_id}")


class CustomerNotFoundError(NotFoundError):
    """Raised when a customer ID doesn't exist."""

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"Customer not found: {customer_id}")


class CatalogItemNotFoundError(NotFoundError):
    """Raised when a catalog item ID doesn't exist."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Catalog item not found: {item_id}")


class InvalidSchemaVersionError(WipedeskError):
    """Raised when a stored document has an unsupported schema version."""

    def __init__(self, found: int, supported: int, path: str | None = None):
        self.found = found
        self.supported = supported
        self.path = path
        location = f" in {path}" if path else ""
        super().__init__(
            f"Unsupported schema version {found}{location}. This tool supports version {supported}."
        )


class StoreExistsError(WipedeskError):
    """Raised when trying to init but data already exists."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Data already exists at {path}. Use --force to overwrite.")
