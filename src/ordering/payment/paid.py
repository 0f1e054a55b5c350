"""Recording a confirmed gateway payment.

The processor marks the order paid and appends the PAYIN row in one
transaction. It has no side effects beyond the store; notifying anyone is
the caller's job. PaymentWebhookHandler calls it directly.

Money that arrives for a cancelled order is still recorded as a PAYIN. The
order stays cancelled and the payment is logged for a manual refund.
"""

from dataclasses import dataclass

import structlog

from ordering.order.order import Order
from ordering.payment.payment import Payment
from ordering.store import OrderStore
from shared.errors import ErrorCode, MessageKey, TypedError, to_typed_error

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentPaidCommand:
    order_id: int
    amount: float
    reference: str
    counter_account_bank_id: str | None = None
    counter_account_number: str | None = None


@dataclass(frozen=True)
class PaymentPaidResult:
    order: Order
    payment: Payment

    @property
    def needs_manual_refund(self) -> bool:
        return self.order.is_cancelled


class PaymentPaidProcessor:
    def __init__(self, store: OrderStore) -> None:
        self.store = store

    def handle_payment_paid(self, command: PaymentPaidCommand) -> PaymentPaidResult:
        try:
            order = self.store.find_by_id(command.order_id)
            if order is None:
                raise TypedError(ErrorCode.NOT_FOUND, MessageKey.ORDER_NOT_FOUND)

            payment = Payment.payin(
                order_id=order.id,
                amount=command.amount,
                transaction_code=command.reference,
                account_number=command.counter_account_number,
                bank_code=command.counter_account_bank_id,
            )
            if not order.is_cancelled:
                order.mark_paid(transaction_code=command.reference, amount=command.amount)
            with self.store.transaction():
                # Duplicate deliveries fail here, before the order is saved
                payment = self.store.create_payment(payment)
                if not order.is_cancelled:
                    self.store.save(order)
        except TypedError:
            raise
        except Exception as exc:
            raise to_typed_error(exc, "PaymentPaidProcessor", "handle_payment_paid", logger) from exc

        if order.is_cancelled:
            logger.error(
                "Payment received for a cancelled order, refund it manually",
                order_id=order.id,
                payment_id=payment.id,
                amount=payment.amount,
                transaction_code=payment.transaction_code,
            )
        else:
            logger.info(
                "Payment recorded",
                order_id=order.id,
                payment_id=payment.id,
                amount=payment.amount,
                transaction_code=payment.transaction_code,
            )
        return PaymentPaidResult(order=order, payment=payment)
