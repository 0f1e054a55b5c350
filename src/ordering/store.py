"""Storage port used by the payment and rejection services.

The services see orders, the payment ledger and stock only through
``OrderStore``. ``ProteanOrderStore`` backs it with the domain's repositories
and a protean UnitOfWork, so whichever provider the domain is configured
with (memory in tests, a database in production) decides durability.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager, contextmanager

import structlog
from protean import UnitOfWork
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderItem
from ordering.payment.payment import Payment, PaymentType
from ordering.stock.variant import ProductVariant

logger = structlog.get_logger(__name__)


class OrderStore(ABC):
    @abstractmethod
    def find_by_id(self, order_id: int) -> Order | None: ...

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist status changes made on ``order``."""
        ...

    @abstractmethod
    def create_payment(self, payment: Payment) -> Payment:
        """Append to the ledger. Raises UniqueConstraintError on duplicates."""
        ...

    @abstractmethod
    def find_payment(self, order_id: int, transaction_code: str, payment_type: PaymentType) -> Payment | None: ...

    @abstractmethod
    def find_paid_payin(self, order_id: int) -> Payment | None: ...

    @abstractmethod
    def restock(self, items: Iterable[OrderItem]) -> None: ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Scope in which every write commits together or not at all."""
        ...


class ProteanOrderStore(OrderStore):
    def find_by_id(self, order_id: int) -> Order | None:
        return current_domain.repository_for(Order).find_by_id(order_id)

    def save(self, order: Order) -> None:
        current_domain.repository_for(Order).add(order)

    def create_payment(self, payment: Payment) -> Payment:
        return current_domain.repository_for(Payment).record(payment)

    def find_payment(self, order_id, transaction_code, payment_type):
        return current_domain.repository_for(Payment).find_by_transaction(order_id, transaction_code, payment_type)

    def find_paid_payin(self, order_id: int) -> Payment | None:
        return current_domain.repository_for(Payment).find_paid_payin(order_id)

    def restock(self, items: Iterable[OrderItem]) -> None:
        repo = current_domain.repository_for(ProductVariant)
        for item in items:
            try:
                variant = repo.get(item.product_variant_id)
            except ObjectNotFoundError:
                logger.warning(
                    "Variant missing, skipping restock",
                    product_variant_id=item.product_variant_id,
                    quantity=item.quantity,
                )
                continue
            variant.restock(item.quantity)
            repo.add(variant)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with UnitOfWork():
            yield
