"""Order aggregate with OrderItem entity.

Orders are created by checkout (another service) and only change state
here in two ways: a confirmed gateway payment marks them paid, and a
rejection (by an admin or by payment expiry) cancels them.

Status:
    PENDING → CONFIRMED → COMPLETED
    PENDING / CONFIRMED / PAID → CANCELLED (terminal)

Payment status:
    PENDING → PAID → REFUNDED
    PENDING → CANCELLED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Integer, String

from ordering.domain import ordering
from ordering.order.events import OrderPaid, OrderRejected


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"


_REJECTABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PAID,
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    product_variant_id = Integer(required=True)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)
    product_name = String(max_length=255)
    product_size = String(max_length=50)
    note = String(max_length=500)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    id = Integer(identifier=True)
    user_id = Integer(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(required=True, max_length=50)
    total_price = Float(required=True, min_value=0.0)
    delivery_address = String(max_length=500)
    note = String(max_length=500)
    items = HasMany(OrderItem)
    rejected_by = Integer()
    cancellation_reason = String(max_length=255)
    paid_at = DateTime()
    cancelled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_id,
        user_id,
        payment_method,
        items,
        delivery_address=None,
        note=None,
    ):
        """Build a pending order. ``items`` is a list of dicts of OrderItem fields."""
        order_items = [OrderItem(**item) for item in items]
        now = datetime.now(UTC)
        return cls(
            id=order_id,
            user_id=user_id,
            payment_method=payment_method,
            total_price=sum(item.price * item.quantity for item in order_items),
            delivery_address=delivery_address,
            note=note,
            items=order_items,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED.value

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def ensure_rejectable(self) -> None:
        """Raise ValidationError unless the order can still be cancelled."""
        current = OrderStatus(self.status)
        if current not in _REJECTABLE_STATES:
            raise ValidationError({"status": [f"Cannot reject an order in {current.value} state"]})

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def mark_paid(self, transaction_code: str, amount: float) -> None:
        """Record a confirmed gateway payment against this order."""
        if self.is_cancelled:
            raise ValidationError({"status": ["Cannot record a payment for a cancelled order"]})

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.paid_at = now
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=self.id,
                transaction_code=transaction_code,
                amount=amount,
                paid_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Rejection
    # -------------------------------------------------------------------
    def reject(self, rejected_by: int | None, reason: str, payment_status: PaymentStatus | None = None) -> None:
        """Cancel the order.

        ``payment_status`` overrides the resulting payment status (REFUNDED
        after a payout). Without it an unpaid order's payment is cancelled and
        any other payment status is left alone.
        """
        self.ensure_rejectable()

        if payment_status is not None:
            self.payment_status = payment_status.value
        elif self.payment_status == PaymentStatus.PENDING.value:
            self.payment_status = PaymentStatus.CANCELLED.value

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.rejected_by = rejected_by
        self.cancellation_reason = reason
        self.cancelled_at = now
        self.updated_at = now

        self.raise_(
            OrderRejected(
                order_id=self.id,
                payment_method=self.payment_method,
                payment_status=self.payment_status,
                rejected_by=rejected_by,
                reason=reason,
                rejected_at=now,
            )
        )
