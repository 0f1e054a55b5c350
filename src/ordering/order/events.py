"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPaid:
    """The gateway confirmed a payment for the order."""

    __version__ = 1

    order_id = Integer(required=True)
    transaction_code = String(required=True, max_length=255)
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRejected:
    """The order was cancelled, with or without a refund."""

    __version__ = 1

    order_id = Integer(required=True)
    payment_method = String(max_length=50)
    payment_status = String(max_length=50)
    rejected_by = Integer()
    reason = String(max_length=255)
    rejected_at = DateTime(required=True)
