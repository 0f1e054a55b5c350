from protean.exceptions import ObjectNotFoundError

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_id(self, order_id: int) -> Order | None:
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            return None
