"""Service settings loaded from the environment.

Protean's own configuration (databases, brokers, event processing) lives under
``[tool.protean]`` in ``pyproject.toml``. This module covers everything the
domain does not own: which catalog store and payment gateway to build, and
the credentials they need.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from storefront.exceptions import ConfigurationError

_DEV_GATEWAY_SECRET = "storefront-dev-gateway-secret"


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    gateway_provider: str = "fake"
    gateway_key_id: str | None = None
    gateway_key_secret: str = _DEV_GATEWAY_SECRET
    gateway_base_url: str = "https://api.razorpay.com"
    gateway_timeout: float = 10.0
    default_currency: str = "INR"
    catalog_database_url: str | None = None
    release_attempts: int = 3

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        environment = (env.get("PROTEAN_ENV") or "development").lower()
        provider = (env.get("GATEWAY_PROVIDER") or "fake").lower()
        secret = env.get("RAZORPAY_KEY_SECRET")

        if provider not in ("fake", "razorpay"):
            raise ConfigurationError(f"Unknown gateway provider: {provider}")
        if provider == "razorpay" and not (secret and env.get("RAZORPAY_KEY_ID")):
            raise ConfigurationError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required for the razorpay gateway")
        if environment == "production" and provider == "fake":
            raise ConfigurationError("The fake payment gateway cannot be used in production")

        return cls(
            environment=environment,
            gateway_provider=provider,
            gateway_key_id=env.get("RAZORPAY_KEY_ID"),
            gateway_key_secret=secret or _DEV_GATEWAY_SECRET,
            gateway_base_url=env.get("RAZORPAY_BASE_URL") or cls.gateway_base_url,
            gateway_timeout=float(env.get("GATEWAY_TIMEOUT") or cls.gateway_timeout),
            default_currency=(env.get("DEFAULT_CURRENCY") or cls.default_currency).upper(),
            catalog_database_url=env.get("CATALOG_DATABASE_URL") or None,
            release_attempts=int(env.get("RELEASE_ATTEMPTS") or cls.release_attempts),
        )
