"""PayOS payment webhook handling.

A delivery goes through three gates:
1. The signature over the data block must verify, or the request is a
   BAD_REQUEST and nothing is read or written.
2. A gateway failure (code != "00" or success false) is a FAILED answer,
   not an error.
3. A success is recorded by PaymentPaidProcessor. A redelivery of a payment
   that is already on the ledger is answered as PAID again without
   recording or notifying twice.

After a payment is recorded the pending expiry job is cleared and an
order-created notification is queued. Those side effects are best effort:
the payment is already committed when they run. A payment for a cancelled
order is recorded without them.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ordering.gateway.signature import WebhookSignatureVerifier
from ordering.notification import OrderEventPublisher
from ordering.order.order import PaymentStatus
from ordering.payment.expiry import PaymentExpiryScheduler
from ordering.payment.paid import PaymentPaidCommand, PaymentPaidProcessor
from ordering.payment.payment import Payment, PaymentType
from ordering.store import OrderStore
from shared.errors import ErrorCode, MessageKey, TypedError
from shared.responses import StatusKey, build_base_response

logger = structlog.get_logger(__name__)

SUCCESS_CODE = "00"


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------
class WebhookData(BaseModel):
    """The signed data block. Unknown fields are kept so they can be verified."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    order_code: int
    amount: float
    description: str | None = None
    account_number: str | None = None
    reference: str
    transaction_date_time: str | None = None
    currency: str | None = None
    payment_link_id: str | None = None
    code: str | None = None
    desc: str | None = None
    counter_account_bank_id: str | None = None
    counter_account_bank_name: str | None = None
    counter_account_name: str | None = None
    counter_account_number: str | None = None
    virtual_account_name: str | None = None
    virtual_account_number: str | None = None

    def signed_fields(self) -> dict:
        """The data block as the gateway sent it."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class WebhookPayload(BaseModel):
    code: str
    desc: str | None = None
    success: bool
    signature: str
    data: WebhookData


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PaidInfo:
    amount: float
    reference_code: str
    paid_at: datetime | None


@dataclass(frozen=True)
class WebhookResult:
    status_key: StatusKey
    status: PaymentStatus
    info: PaidInfo | None = None

    @classmethod
    def paid(cls, payment: Payment) -> "WebhookResult":
        return cls(
            status_key=StatusKey.SUCCESS,
            status=PaymentStatus.PAID,
            info=PaidInfo(
                amount=payment.amount,
                reference_code=payment.transaction_code,
                paid_at=payment.created_at,
            ),
        )

    def to_dict(self) -> dict:
        data: dict = {"status": self.status.value}
        if self.info is not None:
            data["info"] = {
                "amount": self.info.amount,
                "referenceCode": self.info.reference_code,
                "paidAt": self.info.paid_at.isoformat() if self.info.paid_at else None,
            }
        return build_base_response(self.status_key, data)


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------
class PaymentWebhookHandler:
    def __init__(
        self,
        verifier: WebhookSignatureVerifier,
        processor: PaymentPaidProcessor,
        store: OrderStore,
        scheduler: PaymentExpiryScheduler,
        publisher: OrderEventPublisher,
    ) -> None:
        self.verifier = verifier
        self.processor = processor
        self.store = store
        self.scheduler = scheduler
        self.publisher = publisher

    def handle(self, payload: WebhookPayload) -> WebhookResult:
        if not self.verifier.verify(payload.data.signed_fields(), payload.signature):
            logger.warning("Webhook rejected: invalid signature")
            raise TypedError(ErrorCode.BAD_REQUEST, MessageKey.INVALID_SIGNATURE)

        if payload.code != SUCCESS_CODE or not payload.success:
            logger.info(
                "Gateway reported a failed payment",
                order_id=payload.data.order_code,
                gateway_code=payload.code,
            )
            return WebhookResult(status_key=StatusKey.FAILED, status=PaymentStatus.FAILED)

        command = self._command_from(payload.data)
        try:
            result = self.processor.handle_payment_paid(command)
        except TypedError as exc:
            if exc.code is ErrorCode.CONFLICT:
                return self._redelivered(command, exc)
            raise

        if result.needs_manual_refund:
            return WebhookResult.paid(result.payment)

        self._clear_expiry(result.order.id)
        self._publish_order_created(result)
        return WebhookResult.paid(result.payment)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _command_from(data: WebhookData) -> PaymentPaidCommand:
        return PaymentPaidCommand(
            order_id=data.order_code,
            amount=data.amount,
            reference=data.reference,
            counter_account_bank_id=data.counter_account_bank_id,
            counter_account_number=data.counter_account_number,
        )

    def _redelivered(self, command: PaymentPaidCommand, error: TypedError) -> WebhookResult:
        existing = self.store.find_payment(command.order_id, command.reference, PaymentType.PAYIN)
        if existing is None:
            raise error
        logger.info(
            "Duplicate webhook delivery ignored",
            order_id=command.order_id,
            transaction_code=command.reference,
        )
        return WebhookResult.paid(existing)

    def _clear_expiry(self, order_id: int) -> None:
        try:
            self.scheduler.clear(order_id)
        except Exception as exc:
            logger.warning("Failed to clear payment expiry job", order_id=order_id, error=str(exc))

    def _publish_order_created(self, result) -> None:
        try:
            self.publisher.order_created(result.order, result.payment)
        except Exception as exc:
            logger.error(
                "Failed to queue order created notification",
                order_id=result.order.id,
                error=str(exc),
            )
