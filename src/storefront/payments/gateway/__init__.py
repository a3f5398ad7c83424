"""Payment gateway factory.

build_gateway() picks the implementation from settings:
- FakeGateway for development and testing
- RazorpayGateway for production
"""

from storefront.config import Settings
from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.port import GatewayOrderRef, PaymentGateway
from storefront.payments.gateway.razorpay_adapter import RazorpayGateway

__all__ = ["FakeGateway", "GatewayOrderRef", "PaymentGateway", "RazorpayGateway", "build_gateway"]


def build_gateway(settings: Settings) -> PaymentGateway:
    """Construct the adapter named by ``settings.gateway_provider``."""
    if settings.gateway_provider == "razorpay":
        return RazorpayGateway(
            key_id=settings.gateway_key_id,
            key_secret=settings.gateway_key_secret,
            base_url=settings.gateway_base_url,
            timeout=settings.gateway_timeout,
        )
    return FakeGateway()
