"""Explicit wiring of the payment and rejection services.

Each builder assembles a service from settings and the registered
collaborators (gateway, queues). The services are plain classes that the
API routes and the worker call directly, not protean command handlers.
Tests swap collaborators through set_gateway() / set_queue() or build
services by hand.
"""

from ordering.gateway import get_gateway
from ordering.gateway.signature import WebhookSignatureVerifier
from ordering.notification import OrderEventPublisher
from ordering.order.rejection import OrderRejectionCoordinator
from ordering.payment.expiry import PaymentExpiryScheduler
from ordering.payment.paid import PaymentPaidProcessor
from ordering.payment.payout import PayoutOrchestrator
from ordering.payment.webhook import PaymentWebhookHandler
from ordering.store import OrderStore, ProteanOrderStore
from shared.config import Settings
from shared.queue import QueueName, RedisJobQueue, get_queue, set_queue


def configure_queues(settings: Settings) -> None:
    """Register Redis-backed queues when QUEUE_BACKEND=redis."""
    if settings.queue_backend == "redis":
        for name in QueueName:
            set_queue(name, RedisJobQueue.from_url(name.value, settings.redis_url))


def build_webhook_handler(settings: Settings | None = None, store: OrderStore | None = None) -> PaymentWebhookHandler:
    settings = settings or Settings.from_env()
    store = store or ProteanOrderStore()
    return PaymentWebhookHandler(
        verifier=WebhookSignatureVerifier(settings.payos_checksum_key),
        processor=PaymentPaidProcessor(store),
        store=store,
        scheduler=PaymentExpiryScheduler(get_queue(QueueName.ORDER)),
        publisher=OrderEventPublisher(get_queue(QueueName.NOTIFICATION)),
    )


def build_rejection_coordinator(store: OrderStore | None = None) -> OrderRejectionCoordinator:
    store = store or ProteanOrderStore()
    return OrderRejectionCoordinator(
        store=store,
        payouts=PayoutOrchestrator(store, get_gateway()),
    )
