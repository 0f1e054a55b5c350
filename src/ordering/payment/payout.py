"""Refund payouts for bank-transfer orders.

The orchestrator finds the PAYIN being refunded, makes sure it has not been
refunded already, checks the payout account can cover it, and asks the
gateway to send the money back to the account it came from. Recording the
PAYOUT row and cancelling the order is left to the caller, inside its own
transaction.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from ordering.gateway.port import PayoutGateway, PayoutRequest
from ordering.order.order import OrderItem
from ordering.payment.payment import PaymentType
from ordering.store import OrderStore
from shared.errors import ErrorCode, MessageKey, TypedError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PayoutReceipt:
    payout_id: str
    reference_id: str
    amount: float
    to_bin: str
    to_account_number: str


def refund_description(order_id: int) -> str:
    return f"REFUND ORDER{order_id}"


def payout_idempotency_key(order_id: int, transaction_code: str) -> str:
    """Stable per refunded transaction, so a retried rejection cannot pay twice."""
    return f"refund-{order_id}-{transaction_code}"


class PayoutOrchestrator:
    def __init__(self, store: OrderStore, gateway: PayoutGateway) -> None:
        self.store = store
        self.gateway = gateway

    def create_payout(self, order_id: int, items: Sequence[OrderItem]) -> PayoutReceipt:
        payin = self.store.find_paid_payin(order_id)
        if payin is None:
            raise TypedError(ErrorCode.NOT_FOUND, MessageKey.PAYMENT_NOT_FOUND)

        if self.store.find_payment(order_id, payin.transaction_code, PaymentType.PAYOUT) is not None:
            raise TypedError(ErrorCode.BAD_REQUEST, MessageKey.PAYMENT_REFUNDED)

        if not float(payin.amount).is_integer():
            # VND payouts are whole dong only
            logger.error("Refund amount is not a whole number", order_id=order_id, amount=payin.amount)
            raise TypedError(ErrorCode.BAD_REQUEST, MessageKey.INVALID_INPUT)
        amount = int(payin.amount)
        balance = self.gateway.get_balance()
        if balance < amount:
            logger.error(
                "Payout balance not enough",
                order_id=order_id,
                amount=amount,
                balance=balance,
            )
            raise TypedError(ErrorCode.BAD_REQUEST, MessageKey.BALANCE_NOT_ENOUGH)

        request = PayoutRequest(
            reference_id=payin.transaction_code,
            amount=amount,
            description=refund_description(order_id),
            to_bin=payin.bank_code,
            to_account_number=payin.account_number,
        )
        result = self.gateway.create_payout(request, payout_idempotency_key(order_id, payin.transaction_code))

        logger.info(
            "Payout created",
            order_id=order_id,
            payout_id=result.payout_id,
            reference_id=result.reference_id,
            amount=result.amount,
            item_count=len(items),
        )
        return PayoutReceipt(
            payout_id=result.payout_id,
            reference_id=result.reference_id,
            amount=result.amount,
            to_bin=result.to_bin,
            to_account_number=result.to_account_number,
        )
