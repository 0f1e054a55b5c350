"""Payment ledger aggregate.

Payments are append-only: a PAYIN row is written when the gateway confirms a
customer transfer, a PAYOUT row when a refund is sent back. Rows are never
updated afterwards.

``ledger_key`` is unique across the table. It is derived from the payment
type, order and gateway transaction code, so the store itself refuses a
second PAYIN for a redelivered webhook and a second PAYOUT for the same
transaction.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Integer, String

from ordering.domain import ordering
from ordering.order.order import PaymentStatus


class PaymentType(Enum):
    PAYIN = "PAYIN"
    PAYOUT = "PAYOUT"


def ledger_key(payment_type: PaymentType, order_id: int, transaction_code: str) -> str:
    return f"{payment_type.value}:{order_id}:{transaction_code}"


@ordering.aggregate
class Payment:
    order_id = Integer(required=True)
    amount = Float(required=True, min_value=0.0)
    transaction_code = String(required=True, max_length=255)
    account_number = String(max_length=50)
    bank_code = String(max_length=50)
    payment_type = String(required=True, choices=PaymentType)
    status = String(required=True, choices=PaymentStatus)
    ledger_key = String(required=True, max_length=320, unique=True)
    created_at = DateTime()

    @classmethod
    def payin(cls, order_id, amount, transaction_code, account_number=None, bank_code=None):
        """A confirmed customer transfer into the merchant account."""
        return cls(
            order_id=order_id,
            amount=amount,
            transaction_code=transaction_code,
            account_number=account_number,
            bank_code=bank_code,
            payment_type=PaymentType.PAYIN.value,
            status=PaymentStatus.PAID.value,
            ledger_key=ledger_key(PaymentType.PAYIN, order_id, transaction_code),
            created_at=datetime.now(UTC),
        )

    @classmethod
    def payout(cls, order_id, amount, transaction_code, account_number=None, bank_code=None):
        """A refund sent back to the account the PAYIN came from."""
        return cls(
            order_id=order_id,
            amount=amount,
            transaction_code=transaction_code,
            account_number=account_number,
            bank_code=bank_code,
            payment_type=PaymentType.PAYOUT.value,
            status=PaymentStatus.REFUNDED.value,
            ledger_key=ledger_key(PaymentType.PAYOUT, order_id, transaction_code),
            created_at=datetime.now(UTC),
        )
