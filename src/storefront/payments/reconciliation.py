"""Payment reconciliation.

Matches a gateway payment callback to a local order. The gateway signs
``"{gateway_order_id}|{gateway_payment_id}"`` with HMAC-SHA256 using the
merchant key secret; a callback is trusted only when the hex digest we
compute matches the one presented.

A failed verification never reveals why it failed: bad signatures, unknown
orders and cancelled orders all produce the same ``False`` and the same
audit log line, and no signature material is ever logged.
"""

import hashlib
import hmac
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import structlog
from protean.exceptions import ValidationError

from storefront.exceptions import OrderClosed, OrderNotFound, PaymentSignatureMismatch
from storefront.ordering.ledger import OrderLedger
from storefront.payments.gateway.port import GatewayOrderRef, PaymentGateway

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentVerificationRecord:
    gateway_order_ref: str
    gateway_payment_ref: str
    signature: str
    local_order_id: str


def sign(secret: str, gateway_order_ref: str, gateway_payment_ref: str) -> str:
    """Hex HMAC-SHA256 of ``order_ref|payment_ref``, as the gateway computes it."""
    message = f"{gateway_order_ref}|{gateway_payment_ref}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def to_minor_units(amount) -> int:
    """Convert a major-unit amount (rupees) to minor units (paise)."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount):
        raise ValidationError({"amount": ["Amount must be a finite number"]})
    return int((Decimal(str(amount)) * 100).to_integral_value(rounding=ROUND_HALF_UP))


class PaymentReconciliation:
    def __init__(self, gateway: PaymentGateway, secret: str, ledger: OrderLedger, default_currency: str = "INR"):
        self.gateway = gateway
        self._secret = secret
        self.ledger = ledger
        self.default_currency = default_currency

    def create_gateway_order(self, amount_minor_units: int, currency: str | None = None, receipt_ref=None):
        if not isinstance(amount_minor_units, int) or amount_minor_units <= 0:
            raise ValidationError({"amount": ["Amount must be greater than zero"]})

        ref: GatewayOrderRef = self.gateway.create_order(
            amount_minor_units=amount_minor_units,
            currency=(currency or self.default_currency).upper(),
            receipt=receipt_ref,
        )
        logger.info("Gateway order created", gateway_order_id=ref.gateway_order_id, receipt=receipt_ref)
        return ref

    def verify(self, gateway_order_ref, gateway_payment_ref, signature, local_order_id) -> bool:
        expected = sign(self._secret, str(gateway_order_ref), str(gateway_payment_ref))
        try:
            if not hmac.compare_digest(expected.encode(), str(signature or "").encode()):
                raise PaymentSignatureMismatch()
            self.ledger.mark_paid(local_order_id)
        except (PaymentSignatureMismatch, OrderNotFound, OrderClosed):
            logger.warning("Payment verification failed", order_id=str(local_order_id))
            return False

        logger.info("Payment verified", order_id=str(local_order_id))
        return True

    def verify_record(self, record: PaymentVerificationRecord) -> bool:
        return self.verify(
            gateway_order_ref=record.gateway_order_ref,
            gateway_payment_ref=record.gateway_payment_ref,
            signature=record.signature,
            local_order_id=record.local_order_id,
        )
