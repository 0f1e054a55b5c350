"""Order rejection by an admin.

Rejecting a cancelled order is a no-op answered with UNCHANGED and a
completed order is a BAD_REQUEST. Otherwise the branch depends on how the
order was paid:

- CASH, or BANK_TRANSFER not yet paid: cancel and restock in one transaction.
- BANK_TRANSFER already paid: refund through the payout gateway first, then
  record the PAYOUT row, cancel (payment REFUNDED) and restock in one
  transaction.
- Any other method: BAD_REQUEST, nothing changes.

The coordinator is built by ordering.services and called directly by the
reject route.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog

from ordering.order.order import Order, PaymentMethod, PaymentStatus
from ordering.payment.payment import Payment
from ordering.payment.payout import PayoutOrchestrator, PayoutReceipt
from ordering.store import OrderStore
from shared.errors import ErrorCode, MessageKey, TypedError, to_typed_error
from shared.responses import StatusKey, build_base_response

logger = structlog.get_logger(__name__)

REJECTED_REASON = "Rejected by admin"
ALREADY_REJECTED = "Order has been rejected"


class RejectOrderStatus(Enum):
    SUCCESS = "SUCCESS"
    UNCHANGED = "UNCHANGED"


@dataclass(frozen=True)
class RejectOrderRequest:
    order_id: int
    user_id: int


@dataclass(frozen=True)
class PayoutInfo:
    bank_code: str
    to_account_number: str
    transaction_code: str
    amount_refunded: float
    user_id: int
    user_reject_id: int

    def to_dict(self) -> dict:
        return {
            "bankCode": self.bank_code,
            "toAccountNumber": self.to_account_number,
            "transactionCode": self.transaction_code,
            "amountRefunded": self.amount_refunded,
            "userId": self.user_id,
            "userRejectId": self.user_reject_id,
        }


@dataclass(frozen=True)
class RejectOrderResult:
    status_key: StatusKey
    status: RejectOrderStatus
    order_id: int
    payment_method: str | None = None
    rejected_at: datetime | None = None
    payout_info: PayoutInfo | None = None
    description: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"status": self.status.value, "orderId": self.order_id}
        if self.payment_method is not None:
            data["paymentMethod"] = self.payment_method
        if self.rejected_at is not None:
            data["rejectedAt"] = self.rejected_at.isoformat()
        if self.payout_info is not None:
            data["payoutInfo"] = self.payout_info.to_dict()
        if self.description is not None:
            data["description"] = self.description
        return build_base_response(self.status_key, data)


class OrderRejectionCoordinator:
    def __init__(self, store: OrderStore, payouts: PayoutOrchestrator) -> None:
        self.store = store
        self.payouts = payouts

    def reject_order(self, request: RejectOrderRequest) -> RejectOrderResult:
        try:
            order = self.store.find_by_id(request.order_id)
            if order is None:
                raise TypedError(ErrorCode.NOT_FOUND, MessageKey.ORDER_NOT_FOUND)

            if order.is_cancelled:
                return RejectOrderResult(
                    status_key=StatusKey.UNCHANGED,
                    status=RejectOrderStatus.UNCHANGED,
                    order_id=order.id,
                    description=ALREADY_REJECTED,
                )

            # Checked before any branch can move money
            order.ensure_rejectable()

            if order.payment_method == PaymentMethod.CASH.value:
                return self._cancel(order, request)
            if order.payment_method == PaymentMethod.BANK_TRANSFER.value:
                if order.payment_status == PaymentStatus.PAID.value:
                    return self._refund_and_cancel(order, request)
                return self._cancel(order, request)
        except TypedError:
            raise
        except Exception as exc:
            raise to_typed_error(exc, "OrderRejectionCoordinator", "reject_order", logger) from exc

        raise TypedError(ErrorCode.BAD_REQUEST, MessageKey.UNSUPPORTED_PAYMENT_METHOD)

    # -------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------
    def _cancel(self, order: Order, request: RejectOrderRequest) -> RejectOrderResult:
        with self.store.transaction():
            order.reject(rejected_by=request.user_id, reason=REJECTED_REASON)
            self.store.save(order)
            self.store.restock(order.items)

        logger.info(
            f"[Reject order({order.id}) successfully]",
            order_id=order.id,
            rejected_by=request.user_id,
            payment_method=order.payment_method,
        )
        return RejectOrderResult(
            status_key=StatusKey.SUCCESS,
            status=RejectOrderStatus.SUCCESS,
            order_id=order.id,
            payment_method=order.payment_method,
            rejected_at=order.cancelled_at or datetime.now(UTC),
        )

    def _refund_and_cancel(self, order: Order, request: RejectOrderRequest) -> RejectOrderResult:
        receipt = self.payouts.create_payout(order.id, list(order.items))

        try:
            with self.store.transaction():
                self.store.create_payment(self._payout_row(order.id, receipt))
                order.reject(
                    rejected_by=request.user_id,
                    reason=REJECTED_REASON,
                    payment_status=PaymentStatus.REFUNDED,
                )
                self.store.save(order)
                self.store.restock(order.items)
        except Exception:
            logger.error(
                "Payout sent but rejection was not recorded",
                order_id=order.id,
                payout_id=receipt.payout_id,
                reference_id=receipt.reference_id,
                amount=receipt.amount,
            )
            raise

        logger.info(
            f"[Reject order({order.id}) successfully]",
            order_id=order.id,
            rejected_by=request.user_id,
            payment_method=order.payment_method,
            payout_id=receipt.payout_id,
        )
        return RejectOrderResult(
            status_key=StatusKey.SUCCESS,
            status=RejectOrderStatus.SUCCESS,
            order_id=order.id,
            payment_method=order.payment_method,
            rejected_at=order.cancelled_at or datetime.now(UTC),
            payout_info=PayoutInfo(
                bank_code=receipt.to_bin,
                to_account_number=receipt.to_account_number,
                transaction_code=receipt.reference_id,
                amount_refunded=receipt.amount,
                user_id=request.user_id,
                user_reject_id=request.user_id,
            ),
        )

    @staticmethod
    def _payout_row(order_id: int, receipt: PayoutReceipt) -> Payment:
        return Payment.payout(
            order_id=order_id,
            amount=receipt.amount,
            transaction_code=receipt.reference_id,
            account_number=receipt.to_account_number,
            bank_code=receipt.to_bin,
        )
