"""Payment gateway port.

The storefront only ever asks the gateway to open a payment order; the
customer pays in the gateway checkout and the result comes back as a signed
callback handled by ``PaymentReconciliation``. Amounts cross this boundary
in minor units (paise).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GatewayOrderRef:
    """A payment order opened on the gateway, ready for the client checkout."""

    gateway_order_id: str
    amount_minor_units: int
    currency: str
    receipt: str | None = None
    status: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_order(self, amount_minor_units: int, currency: str, receipt: str | None) -> GatewayOrderRef:
        """Open a payment order on the gateway."""
        ...

    def close(self) -> None:  # noqa: B027
        """Release connections held by the adapter."""
