"""Error taxonomy for the storefront.

Rule violations subclass Protean's ``ValidationError`` and carry a
``messages`` dict keyed by the offending field, like every other field
error in the domain. Lookups subclass ``ObjectNotFoundError``. Infrastructure and
authorization failures derive from ``StorefrontError``.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class StorefrontError(Exception):
    """Base class for storefront errors outside Protean's taxonomy."""

    retryable = False


class ConfigurationError(StorefrontError):
    """Settings are missing or inconsistent at startup."""


class Forbidden(StorefrontError):
    """The acting principal may not perform the operation."""


class StoreUnavailable(StorefrontError):
    """The catalog store could not be reached. Safe to retry."""

    retryable = True


class StockRollbackIncomplete(StoreUnavailable):
    """Reserved stock could not be returned for some products.

    Every other line was returned. The listed products stay short until the
    store recovers and the stock is corrected.
    """

    def __init__(self, product_ids):
        self.product_ids = list(product_ids)
        super().__init__("Reserved stock could not be returned")


class StorageFailure(StorefrontError):
    """A ledger write failed after stock was reserved.

    The reservation has been released by the time this surfaces; the caller
    may resubmit.
    """

    retryable = True


class GatewayError(StorefrontError):
    """The payment gateway rejected or failed a request."""


class PaymentSignatureMismatch(StorefrontError):
    """A gateway callback could not be matched to a local order."""


# ---------------------------------------------------------------------------
# Order placement
# ---------------------------------------------------------------------------
class EmptyOrder(ValidationError):
    def __init__(self):
        super().__init__({"items": ["No items to order"]})


class MissingAddress(ValidationError):
    def __init__(self):
        super().__init__({"address": ["Address is required"]})


class ProductNotFound(ObjectNotFoundError):
    def __init__(self, product_id):
        self.product_id = str(product_id)
        self.messages = {"product_id": [f"Product not found: {self.product_id}"]}
        super().__init__(self.messages)


class InsufficientStock(ValidationError):
    """Requested quantity exceeds what the catalogue holds."""

    def __init__(self, product_id, product_name, available, requested):
        self.product_id = str(product_id)
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            {"quantity": [f"Insufficient stock for product: {product_name}. Available: {available}"]}
        )


# ---------------------------------------------------------------------------
# Order lifecycle
# ---------------------------------------------------------------------------
class OrderNotFound(ObjectNotFoundError):
    def __init__(self, order_id):
        self.order_id = str(order_id)
        self.messages = {"order_id": [f"Order not found: {self.order_id}"]}
        super().__init__(self.messages)


class InvalidTransition(ValidationError):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__({"status": [f"Cannot transition from {current} to {requested}"]})


class OrderClosed(ValidationError):
    """The order is cancelled and accepts no further changes."""

    def __init__(self, order_id, status):
        self.order_id = str(order_id)
        self.status = status
        super().__init__({"status": [f"Order {self.order_id} is {status} and cannot be modified"]})
