"""Razorpay payment gateway adapter.

Talks to the Orders API over a pooled ``httpx.Client`` authenticated with the
key id and secret. The client is owned by the adapter: call ``close()`` or
use the adapter as a context manager to release connections.
"""

import httpx
import structlog

from storefront.exceptions import GatewayError
from storefront.payments.gateway.port import GatewayOrderRef, PaymentGateway

logger = structlog.get_logger(__name__)


class RazorpayGateway(PaymentGateway):
    """Production Razorpay gateway adapter."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            auth=(key_id, key_secret),
            timeout=timeout,
            transport=transport,
        )

    def create_order(self, amount_minor_units: int, currency: str, receipt: str | None) -> GatewayOrderRef:
        payload = {"amount": amount_minor_units, "currency": currency}
        if receipt:
            payload["receipt"] = receipt

        try:
            response = self._client.post("/v1/orders", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("Gateway rejected order", status_code=exc.response.status_code)
            raise GatewayError(f"Gateway rejected order creation ({exc.response.status_code})") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Gateway request failed", error=str(exc))
            raise GatewayError("Gateway request failed") from exc

        if "id" not in data:
            raise GatewayError("Gateway response did not include an order id")

        return GatewayOrderRef(
            gateway_order_id=data["id"],
            amount_minor_units=data.get("amount", amount_minor_units),
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt),
            status=data.get("status"),
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RazorpayGateway":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
