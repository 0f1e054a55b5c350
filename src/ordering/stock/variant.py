"""Sellable stock per product variant.

Only the quantity matters here: cancelling an order puts its items back.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String

from ordering.domain import ordering


@ordering.aggregate
class ProductVariant:
    id = Integer(identifier=True)
    product_name = String(max_length=255)
    size = String(max_length=50)
    quantity = Integer(default=0, min_value=0)
    updated_at = DateTime()

    def restock(self, quantity: int) -> None:
        if quantity < 1:
            raise ValidationError({"quantity": ["Restock quantity must be positive"]})
        self.quantity += quantity
        self.updated_at = datetime.now(UTC)
