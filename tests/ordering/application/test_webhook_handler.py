"""Application tests for the PayOS webhook handler."""

import pytest
from ordering.gateway.signature import WebhookSignatureVerifier
from ordering.order.order import Order, PaymentStatus
from ordering.payment.expiry import PaymentExpiryScheduler, expiry_job_id
from ordering.payment.payment import Payment
from ordering.payment.webhook import WebhookPayload
from ordering.services import build_webhook_handler
from ordering.store import ProteanOrderStore
from protean import current_domain
from shared.config import Settings
from shared.errors import ErrorCode, MessageKey, TypedError
from shared.queue import JobName, QueueName, get_queue
from shared.responses import StatusKey

CHECKSUM_KEY = "test-checksum-key"


def _payload(order_id=1001, reference="FT2401", amount=220000, code="00", success=True, signature=None, **extra):
    data = {
        "orderCode": order_id,
        "amount": amount,
        "description": f"ORDER{order_id}",
        "accountNumber": "12345678",
        "reference": reference,
        "transactionDateTime": "2024-01-15 10:30:00",
        "currency": "VND",
        "paymentLinkId": "plink-1",
        "code": code,
        "desc": "success",
        "counterAccountBankId": "970422",
        "counterAccountBankName": None,
        "counterAccountName": "NGUYEN VAN A",
        "counterAccountNumber": "0123456789",
        "virtualAccountName": None,
        "virtualAccountNumber": None,
        **extra,
    }
    if signature is None:
        signature = WebhookSignatureVerifier(CHECKSUM_KEY).sign(data)
    return WebhookPayload.model_validate(
        {"code": code, "desc": "success", "success": success, "signature": signature, "data": data}
    )


@pytest.fixture
def handler():
    return build_webhook_handler(Settings(payos_checksum_key=CHECKSUM_KEY), ProteanOrderStore())


class TestValidDelivery:
    def test_returns_paid_with_info(self, handler, seed_order):
        seed_order()
        result = handler.handle(_payload())

        assert result.status_key is StatusKey.SUCCESS
        assert result.status is PaymentStatus.PAID
        assert result.info.amount == 220000
        assert result.info.reference_code == "FT2401"
        assert result.info.paid_at is not None

    def test_order_marked_paid(self, handler, seed_order):
        seed_order()
        handler.handle(_payload())
        assert current_domain.repository_for(Order).get(1001).payment_status == PaymentStatus.PAID.value

    def test_queues_order_created_notification(self, handler, seed_order):
        seed_order()
        handler.handle(_payload())

        jobs = get_queue(QueueName.NOTIFICATION).waiting(JobName.ORDER_CREATED)
        assert len(jobs) == 1
        assert jobs[0].data["order"]["id"] == 1001
        assert jobs[0].data["order"]["paymentStatus"] == PaymentStatus.PAID.value
        assert jobs[0].data["payment"]["transactionCode"] == "FT2401"

    def test_clears_pending_expiry_job(self, handler, seed_order):
        seed_order()
        PaymentExpiryScheduler(get_queue(QueueName.ORDER)).schedule(1001, delay_ms=900_000)

        handler.handle(_payload())
        assert expiry_job_id(1001) not in get_queue(QueueName.ORDER).jobs

    def test_unknown_fields_are_part_of_signature(self, handler, seed_order):
        seed_order()
        result = handler.handle(_payload(extraField="kept"))
        assert result.status is PaymentStatus.PAID

    def test_to_dict_shape(self, handler, seed_order):
        seed_order()
        body = handler.handle(_payload()).to_dict()
        assert body["statusKey"] == "success"
        assert body["data"]["status"] == "PAID"
        assert body["data"]["info"]["referenceCode"] == "FT2401"


class TestRejectedDelivery:
    def test_invalid_signature_is_bad_request(self, handler, seed_order):
        seed_order()
        with pytest.raises(TypedError) as exc:
            handler.handle(_payload(signature="0" * 64))

        assert exc.value.code is ErrorCode.BAD_REQUEST
        assert exc.value.message == MessageKey.INVALID_SIGNATURE
        assert current_domain.repository_for(Payment).find_for_order(1001) == []
        assert get_queue(QueueName.NOTIFICATION).waiting() == []

    def test_gateway_failure_is_failed_result(self, handler, seed_order):
        seed_order()
        result = handler.handle(_payload(code="01", success=False))

        assert result.status_key is StatusKey.FAILED
        assert result.status is PaymentStatus.FAILED
        assert result.info is None
        assert current_domain.repository_for(Order).get(1001).payment_status == PaymentStatus.PENDING.value

    def test_unknown_order_is_not_found(self, handler):
        with pytest.raises(TypedError) as exc:
            handler.handle(_payload(order_id=4040))
        assert exc.value.code is ErrorCode.NOT_FOUND


class TestPaymentForCancelledOrder:
    def test_payment_is_recorded_and_answered_paid(self, handler, seed_order):
        seed_order(status="CANCELLED", payment_status=PaymentStatus.CANCELLED.value)
        result = handler.handle(_payload(reference="TXN9"))

        assert result.status is PaymentStatus.PAID
        payments = current_domain.repository_for(Payment).find_for_order(1001)
        assert [p.transaction_code for p in payments] == ["TXN9"]
        assert current_domain.repository_for(Order).get(1001).status == "CANCELLED"

    def test_no_order_created_notification(self, handler, seed_order):
        seed_order(status="CANCELLED", payment_status=PaymentStatus.CANCELLED.value)
        handler.handle(_payload(reference="TXN9"))
        assert get_queue(QueueName.NOTIFICATION).waiting() == []


class TestRedelivery:
    def test_replay_answers_paid_once_recorded(self, handler, seed_order):
        seed_order()
        first = handler.handle(_payload())
        second = handler.handle(_payload())

        assert second.status is PaymentStatus.PAID
        assert second.info.reference_code == first.info.reference_code
        assert len(current_domain.repository_for(Payment).find_for_order(1001)) == 1

    def test_replay_does_not_notify_twice(self, handler, seed_order):
        seed_order()
        handler.handle(_payload())
        handler.handle(_payload())
        assert len(get_queue(QueueName.NOTIFICATION).waiting(JobName.ORDER_CREATED)) == 1


class TestBestEffortSideEffects:
    def test_queue_failure_does_not_fail_the_webhook(self, handler, seed_order):
        class BrokenQueue:
            name = "notificationQueue"

            def enqueue(self, *args, **kwargs):
                raise ConnectionError("redis down")

        seed_order()
        handler.publisher.queue = BrokenQueue()

        result = handler.handle(_payload())
        assert result.status is PaymentStatus.PAID
        assert current_domain.repository_for(Order).get(1001).payment_status == PaymentStatus.PAID.value
