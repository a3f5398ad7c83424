"""Configurable fake payment gateway for development and testing.

Opens fake payment orders without any network calls. ``configure`` makes
the next calls fail, and ``calls`` records what was sent.
"""

from uuid import uuid4

from storefront.exceptions import GatewayError
from storefront.payments.gateway.port import GatewayOrderRef, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []
        self.closed: bool = False

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(self, amount_minor_units: int, currency: str, receipt: str | None) -> GatewayOrderRef:
        self.calls.append(
            {
                "method": "create_order",
                "amount_minor_units": amount_minor_units,
                "currency": currency,
                "receipt": receipt,
            }
        )

        if not self.should_succeed:
            raise GatewayError(self.failure_reason)
        return GatewayOrderRef(
            gateway_order_id=f"order_{uuid4().hex[:14]}",
            amount_minor_units=amount_minor_units,
            currency=currency,
            receipt=receipt,
            status="created",
        )

    def close(self) -> None:
        self.closed = True
