"""Expiry of unpaid bank-transfer orders.

Checkout schedules an ``expire_unpaid_order`` job when a bank-transfer order
is placed. A confirmed payment clears that job; if it fires anyway, the order
is cancelled and its stock put back.
"""

import structlog

from ordering.order.order import PaymentStatus
from ordering.store import OrderStore
from shared.errors import ErrorCode, MessageKey, TypedError, to_typed_error
from shared.queue import Job, JobName, JobQueue, RetryPolicy, add_job_with_retry, handle_job_error

logger = structlog.get_logger(__name__)

EXPIRED_REASON = "Payment expired"


def expiry_job_id(order_id: int) -> str:
    return f"expire-order-{order_id}"


class PaymentExpiryScheduler:
    def __init__(self, queue: JobQueue) -> None:
        self.queue = queue

    def schedule(self, order_id: int, delay_ms: int) -> str:
        return add_job_with_retry(
            self.queue,
            JobName.EXPIRE_UNPAID_ORDER,
            {"orderId": order_id},
            RetryPolicy(attempts=1),
            job_id=expiry_job_id(order_id),
            delay_ms=delay_ms,
        )

    def clear(self, order_id: int) -> bool:
        removed = self.queue.remove(expiry_job_id(order_id))
        logger.debug("Expiry job cleared", order_id=order_id, removed=removed)
        return removed


def expire_unpaid_order(store: OrderStore, order_id: int) -> bool:
    """Cancel ``order_id`` if it is still unpaid. Returns True if it was cancelled."""
    order = store.find_by_id(order_id)
    if order is None:
        logger.error("Expired order not found", order_id=order_id)
        raise TypedError(ErrorCode.NOT_FOUND, MessageKey.ORDER_NOT_FOUND)
    if order.is_cancelled:
        logger.error("Expired order already cancelled", order_id=order_id)
        raise TypedError(ErrorCode.BAD_REQUEST, MessageKey.ORDER_CANCELLED)
    if order.payment_status != PaymentStatus.PENDING.value:
        logger.info("Order settled before expiry", order_id=order_id, payment_status=order.payment_status)
        return False

    try:
        with store.transaction():
            order.reject(rejected_by=None, reason=EXPIRED_REASON)
            store.save(order)
            store.restock(order.items)
    except Exception as exc:
        raise to_typed_error(exc, "PaymentExpiry", "expire_unpaid_order", logger) from exc

    logger.info("Unpaid order expired", order_id=order_id)
    return True


def process_order_job(store: OrderStore, job: Job) -> None:
    """Order queue processor. Missing or cancelled orders are discarded."""
    if job.name != JobName.EXPIRE_UNPAID_ORDER.value:
        logger.warning("No processor for job", job_id=job.id, job_name=job.name)
        return
    try:
        expire_unpaid_order(store, int(job.data["orderId"]))
    except Exception as exc:
        handle_job_error(exc, job, "Process expire_unpaid_order")
