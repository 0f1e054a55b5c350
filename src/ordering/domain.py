"""Ordering bounded context: order payment and rejection lifecycle.

Reconciles payment gateway webhooks against orders, records the payment
ledger, and cancels orders with an optional refund payout.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
