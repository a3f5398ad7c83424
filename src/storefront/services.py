"""Service wiring.

``build_services`` constructs every collaborator from ``Settings`` once at
startup; ``Services.close`` releases the gateway's connection pool and the
catalog store's engine on shutdown.
"""

from dataclasses import dataclass

import structlog

from storefront.catalogue.store import set_catalog_store
from storefront.catalogue.store.memory_adapter import MemoryCatalogStore
from storefront.catalogue.store.port import CatalogStore
from storefront.catalogue.store.sql_adapter import SqlCatalogStore
from storefront.config import Settings
from storefront.inventory.reservation import InventoryReservation
from storefront.ordering.ledger import OrderLedger
from storefront.ordering.lifecycle import OrderLifecycleController
from storefront.payments.gateway import build_gateway
from storefront.payments.gateway.port import PaymentGateway
from storefront.payments.reconciliation import PaymentReconciliation

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    catalog: CatalogStore
    gateway: PaymentGateway
    inventory: InventoryReservation
    ledger: OrderLedger
    lifecycle: OrderLifecycleController
    reconciliation: PaymentReconciliation

    def close(self) -> None:
        self.gateway.close()
        self.catalog.close()
        logger.info("Services closed")


def build_services(
    settings: Settings | None = None,
    catalog: CatalogStore | None = None,
    gateway: PaymentGateway | None = None,
) -> Services:
    """Construct the service graph. ``catalog`` and ``gateway`` override settings."""
    settings = settings or Settings.from_env()

    if catalog is None:
        if settings.catalog_database_url:
            catalog = SqlCatalogStore.from_url(settings.catalog_database_url)
        else:
            catalog = MemoryCatalogStore()
    # Catalogue command handlers resolve the store through the factory
    set_catalog_store(catalog)

    gateway = gateway or build_gateway(settings)
    inventory = InventoryReservation(catalog, release_attempts=settings.release_attempts)
    ledger = OrderLedger()

    logger.info(
        "Services built",
        catalog_store=type(catalog).__name__,
        gateway=type(gateway).__name__,
        environment=settings.environment,
    )
    return Services(
        settings=settings,
        catalog=catalog,
        gateway=gateway,
        inventory=inventory,
        ledger=ledger,
        lifecycle=OrderLifecycleController(inventory, ledger, catalog),
        reconciliation=PaymentReconciliation(
            gateway=gateway,
            secret=settings.gateway_key_secret,
            ledger=ledger,
            default_currency=settings.default_currency,
        ),
    )
