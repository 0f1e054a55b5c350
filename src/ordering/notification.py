"""Order snapshots and the order-created notification job."""

from datetime import datetime

import structlog

from ordering.order.order import Order
from ordering.payment.payment import Payment
from shared.queue import DEFAULT_RETRY_POLICY, JobName, JobQueue, add_job_with_retry

logger = structlog.get_logger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def order_snapshot(order: Order) -> dict:
    return {
        "id": order.id,
        "userId": order.user_id,
        "status": order.status,
        "paymentStatus": order.payment_status,
        "paymentMethod": order.payment_method,
        "totalPrice": order.total_price,
        "deliveryAddress": order.delivery_address,
        "note": order.note,
        "createdAt": _iso(order.created_at),
        "items": [
            {
                "productVariantId": item.product_variant_id,
                "productName": item.product_name,
                "productSize": item.product_size,
                "quantity": item.quantity,
                "price": item.price,
                "note": item.note,
            }
            for item in order.items
        ],
    }


def payment_snapshot(payment: Payment) -> dict:
    return {
        "id": str(payment.id),
        "amount": payment.amount,
        "transactionCode": payment.transaction_code,
        "accountNumber": payment.account_number,
        "bankCode": payment.bank_code,
        "paymentType": payment.payment_type,
        "status": payment.status,
        "createdAt": _iso(payment.created_at),
    }


class OrderEventPublisher:
    """Emits ``order_created`` on the notification queue once an order is paid."""

    def __init__(self, queue: JobQueue) -> None:
        self.queue = queue

    def order_created(self, order: Order, payment: Payment) -> str:
        payload = {
            "order": order_snapshot(order),
            "payment": payment_snapshot(payment),
        }
        job_id = add_job_with_retry(self.queue, JobName.ORDER_CREATED, payload, DEFAULT_RETRY_POLICY)
        logger.info("Order created event queued", order_id=order.id, job_id=job_id)
        return job_id
