"""Application tests for refund payouts."""

import pytest
from ordering.gateway.fake_adapter import FakeGateway
from ordering.gateway.port import PayoutGatewayError
from ordering.payment.payment import Payment
from ordering.payment.payout import PayoutOrchestrator, payout_idempotency_key, refund_description
from ordering.store import ProteanOrderStore
from protean import current_domain
from shared.errors import ErrorCode, MessageKey, TypedError


@pytest.fixture
def gateway():
    return FakeGateway(balance=1_000_000.0)


@pytest.fixture
def orchestrator(gateway):
    return PayoutOrchestrator(ProteanOrderStore(), gateway)


class TestCreatePayout:
    def test_sends_refund_to_payin_account(self, orchestrator, gateway, seed_order, seed_payin):
        order = seed_order(payment_status="PAID")
        seed_payin()

        receipt = orchestrator.create_payout(order.id, list(order.items))

        call = gateway.payout_calls()[0]
        assert call["reference_id"] == "FT2401"
        assert call["amount"] == 220000
        assert call["to_bin"] == "970422"
        assert call["to_account_number"] == "0123456789"
        assert call["description"] == refund_description(1001) == "REFUND ORDER1001"
        assert call["idempotency_key"] == payout_idempotency_key(1001, "FT2401")
        assert receipt.reference_id == "FT2401"
        assert receipt.amount == 220000

    def test_checks_balance_before_paying(self, orchestrator, gateway, seed_order, seed_payin):
        order = seed_order(payment_status="PAID")
        seed_payin()
        orchestrator.create_payout(order.id, list(order.items))
        assert [c["method"] for c in gateway.calls] == ["get_balance", "create_payout"]

    def test_does_not_record_payout_row(self, orchestrator, seed_order, seed_payin):
        order = seed_order(payment_status="PAID")
        seed_payin()
        orchestrator.create_payout(order.id, list(order.items))
        assert len(current_domain.repository_for(Payment).find_for_order(1001)) == 1

    def test_missing_payin_is_not_found(self, orchestrator, gateway, seed_order):
        order = seed_order(payment_status="PAID")
        with pytest.raises(TypedError) as exc:
            orchestrator.create_payout(order.id, list(order.items))
        assert exc.value.code is ErrorCode.NOT_FOUND
        assert exc.value.message == MessageKey.PAYMENT_NOT_FOUND
        assert gateway.calls == []

    def test_already_refunded_is_bad_request(self, orchestrator, gateway, seed_order, seed_payin):
        order = seed_order(payment_status="PAID")
        seed_payin()
        current_domain.repository_for(Payment).add(Payment.payout(order_id=1001, amount=220000.0, transaction_code="FT2401"))

        with pytest.raises(TypedError) as exc:
            orchestrator.create_payout(order.id, list(order.items))
        assert exc.value.code is ErrorCode.BAD_REQUEST
        assert exc.value.message == MessageKey.PAYMENT_REFUNDED
        assert gateway.payout_calls() == []

    def test_insufficient_balance_is_bad_request(self, orchestrator, gateway, seed_order, seed_payin):
        order = seed_order(payment_status="PAID")
        seed_payin()
        gateway.configure(should_succeed=True, balance=1000.0)

        with pytest.raises(TypedError) as exc:
            orchestrator.create_payout(order.id, list(order.items))
        assert exc.value.code is ErrorCode.BAD_REQUEST
        assert exc.value.message == MessageKey.BALANCE_NOT_ENOUGH
        assert gateway.payout_calls() == []

    def test_fractional_amount_is_not_truncated(self, orchestrator, gateway, seed_order, seed_payin):
        order = seed_order(payment_status="PAID")
        seed_payin(amount=220000.5)

        with pytest.raises(TypedError) as exc:
            orchestrator.create_payout(order.id, list(order.items))
        assert exc.value.code is ErrorCode.BAD_REQUEST
        assert exc.value.message == MessageKey.INVALID_INPUT
        assert gateway.calls == []

    def test_gateway_refusal_propagates(self, orchestrator, gateway, seed_order, seed_payin):
        order = seed_order(payment_status="PAID")
        seed_payin()
        gateway.configure(should_succeed=False, failure_reason="Account locked")

        with pytest.raises(PayoutGatewayError, match="Account locked"):
            orchestrator.create_payout(order.id, list(order.items))

    def test_same_key_does_not_pay_twice(self, orchestrator, gateway, seed_order, seed_payin):
        order = seed_order(payment_status="PAID")
        seed_payin()

        first = orchestrator.create_payout(order.id, list(order.items))
        second = orchestrator.create_payout(order.id, list(order.items))

        assert first.payout_id == second.payout_id
        assert gateway.balance == 1_000_000.0 - 220000
