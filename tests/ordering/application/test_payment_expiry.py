"""Application tests for expiring unpaid bank-transfer orders."""

import pytest
from ordering.order.order import Order, OrderStatus, PaymentStatus
from ordering.payment.expiry import (
    EXPIRED_REASON,
    PaymentExpiryScheduler,
    expire_unpaid_order,
    expiry_job_id,
    process_order_job,
)
from ordering.stock.variant import ProductVariant
from ordering.store import ProteanOrderStore
from protean import current_domain
from shared.errors import ErrorCode, MessageKey, TypedError
from shared.queue import InMemoryJobQueue, JobName


class _Clock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestPaymentExpiryScheduler:
    def test_schedule_uses_deterministic_job_id(self):
        queue = InMemoryJobQueue("orderQueue")
        job_id = PaymentExpiryScheduler(queue).schedule(1001, delay_ms=900_000)

        assert job_id == expiry_job_id(1001) == "expire-order-1001"
        job = queue.jobs[job_id]
        assert job.name == JobName.EXPIRE_UNPAID_ORDER.value
        assert job.data == {"orderId": 1001}
        assert job.policy.attempts == 1

    def test_schedule_twice_keeps_one_job(self):
        queue = InMemoryJobQueue("orderQueue")
        scheduler = PaymentExpiryScheduler(queue)
        scheduler.schedule(1001, delay_ms=1000)
        scheduler.schedule(1001, delay_ms=1000)
        assert len(queue.waiting()) == 1

    def test_clear_removes_job(self):
        queue = InMemoryJobQueue("orderQueue")
        scheduler = PaymentExpiryScheduler(queue)
        scheduler.schedule(1001, delay_ms=1000)

        assert scheduler.clear(1001) is True
        assert scheduler.clear(1001) is False
        assert queue.waiting() == []


class TestExpireUnpaidOrder:
    def test_cancels_and_restocks(self, seed_order):
        seed_order(stock=5)
        assert expire_unpaid_order(ProteanOrderStore(), 1001) is True

        order = current_domain.repository_for(Order).get(1001)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.CANCELLED.value
        assert order.cancellation_reason == EXPIRED_REASON
        assert order.rejected_by is None
        assert current_domain.repository_for(ProductVariant).get(11).quantity == 7

    def test_paid_order_left_alone(self, seed_order):
        seed_order(payment_status=PaymentStatus.PAID.value)
        assert expire_unpaid_order(ProteanOrderStore(), 1001) is False
        assert current_domain.repository_for(Order).get(1001).status == OrderStatus.PENDING.value

    def test_missing_order_is_not_found(self):
        with pytest.raises(TypedError) as exc:
            expire_unpaid_order(ProteanOrderStore(), 4040)
        assert exc.value.code is ErrorCode.NOT_FOUND

    def test_cancelled_order_is_bad_request(self, seed_order):
        seed_order(status=OrderStatus.CANCELLED.value)
        with pytest.raises(TypedError) as exc:
            expire_unpaid_order(ProteanOrderStore(), 1001)
        assert exc.value.code is ErrorCode.BAD_REQUEST
        assert exc.value.message == MessageKey.ORDER_CANCELLED


class TestProcessOrderJob:
    def test_due_job_expires_order(self, seed_order):
        seed_order()
        clock = _Clock()
        queue = InMemoryJobQueue("orderQueue", clock=clock)
        PaymentExpiryScheduler(queue).schedule(1001, delay_ms=60_000)

        store = ProteanOrderStore()
        assert queue.process_due(lambda job: process_order_job(store, job)) == 0

        clock.now += 60
        assert queue.process_due(lambda job: process_order_job(store, job)) == 1
        assert current_domain.repository_for(Order).get(1001).is_cancelled
        assert queue.failed == []

    def test_missing_order_job_is_discarded(self):
        queue = InMemoryJobQueue("orderQueue")
        PaymentExpiryScheduler(queue).schedule(4040, delay_ms=0)

        store = ProteanOrderStore()
        queue.process_due(lambda job: process_order_job(store, job))
        assert queue.waiting() == []
        assert queue.failed == []
