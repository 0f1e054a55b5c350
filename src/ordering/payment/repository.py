from protean.exceptions import ValidationError

from ordering.domain import ordering
from ordering.order.order import PaymentStatus
from ordering.payment.payment import Payment, PaymentType, ledger_key
from shared.errors import UniqueConstraintError


class DuplicatePaymentError(UniqueConstraintError):
    """A payment with the same type, order and transaction code already exists."""


@ordering.repository(part_of=Payment)
class PaymentRepository:
    def find_by_transaction(self, order_id: int, transaction_code: str, payment_type: PaymentType) -> Payment | None:
        key = ledger_key(payment_type, order_id, transaction_code)
        results = self._dao.query.filter(ledger_key=key).all().items
        return results[0] if results else None

    def find_paid_payin(self, order_id: int) -> Payment | None:
        """Most recent confirmed PAYIN for the order."""
        results = (
            self._dao.query.filter(
                order_id=order_id,
                payment_type=PaymentType.PAYIN.value,
                status=PaymentStatus.PAID.value,
            )
            .all()
            .items
        )
        if not results:
            return None
        return max(results, key=lambda p: p.created_at)

    def find_for_order(self, order_id: int) -> list[Payment]:
        return self._dao.query.filter(order_id=order_id).all().items

    def record(self, payment: Payment) -> Payment:
        """Append ``payment`` to the ledger, refusing duplicates."""
        if self._dao.query.filter(ledger_key=payment.ledger_key).all().items:
            raise DuplicatePaymentError(f"Payment {payment.ledger_key} already recorded")

        try:
            return self.add(payment)
        except ValidationError as exc:
            # Unique check raced with a concurrent writer
            if "ledger_key" in exc.messages:
                raise DuplicatePaymentError(f"Payment {payment.ledger_key} already recorded") from exc
            raise
