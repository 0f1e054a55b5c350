import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------
CHECKSUM_KEY = "test-checksum-key"


@pytest.fixture
def seed_order():
    """Persist an order (and stock rows for its variants) and return it."""
    from ordering.order.order import Order
    from ordering.stock.variant import ProductVariant
    from protean import current_domain

    def _seed(order_id=1001, payment_method="BANK_TRANSFER", items=None, stock=10, **fields):
        items = items or [
            {"product_variant_id": 11, "quantity": 2, "price": 50000.0, "product_name": "Linen Shirt", "product_size": "M"},
            {"product_variant_id": 12, "quantity": 1, "price": 120000.0, "product_name": "Chino", "product_size": "32"},
        ]
        variant_repo = current_domain.repository_for(ProductVariant)
        for item in items:
            variant_repo.add(ProductVariant(id=item["product_variant_id"], product_name=item.get("product_name"), quantity=stock))

        order = Order.create(order_id=order_id, user_id=42, payment_method=payment_method, items=items)
        for name, value in fields.items():
            setattr(order, name, value)
        current_domain.repository_for(Order).add(order)
        return current_domain.repository_for(Order).get(order_id)

    return _seed


@pytest.fixture
def seed_payin():
    from ordering.payment.payment import Payment
    from protean import current_domain

    def _seed(order_id=1001, amount=220000.0, transaction_code="FT2401", account_number="0123456789", bank_code="970422"):
        payment = Payment.payin(
            order_id=order_id,
            amount=amount,
            transaction_code=transaction_code,
            account_number=account_number,
            bank_code=bank_code,
        )
        current_domain.repository_for(Payment).add(payment)
        return payment

    return _seed
