"""Storefront bounded context — Catalogue, Inventory, Ordering and Payments.

Handles the product catalogue and its stock counters, all-or-nothing stock
reservation, the order ledger with its delivery lifecycle, and payment
reconciliation against a third-party gateway.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
