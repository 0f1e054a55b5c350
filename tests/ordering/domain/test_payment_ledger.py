"""Tests for the Payment aggregate and its repository."""

import pytest
from ordering.order.order import PaymentStatus
from ordering.payment.payment import Payment, PaymentType, ledger_key
from ordering.payment.repository import DuplicatePaymentError
from protean import current_domain
from shared.errors import UniqueConstraintError


def _payin(order_id=1001, code="FT2401", amount=220000.0):
    return Payment.payin(order_id=order_id, amount=amount, transaction_code=code, account_number="0123", bank_code="970422")


class TestPaymentFactories:
    def test_payin_is_paid(self):
        payment = _payin()
        assert payment.payment_type == PaymentType.PAYIN.value
        assert payment.status == PaymentStatus.PAID.value
        assert payment.ledger_key == "PAYIN:1001:FT2401"

    def test_payout_is_refunded(self):
        payment = Payment.payout(order_id=1001, amount=220000.0, transaction_code="FT2401")
        assert payment.payment_type == PaymentType.PAYOUT.value
        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.ledger_key == "PAYOUT:1001:FT2401"

    def test_ledger_key_separates_types(self):
        assert ledger_key(PaymentType.PAYIN, 1, "X") != ledger_key(PaymentType.PAYOUT, 1, "X")


class TestPaymentRepository:
    def test_record_and_find(self):
        repo = current_domain.repository_for(Payment)
        repo.record(_payin())

        found = repo.find_by_transaction(1001, "FT2401", PaymentType.PAYIN)
        assert found is not None
        assert found.amount == 220000.0

    def test_find_by_transaction_respects_type(self):
        repo = current_domain.repository_for(Payment)
        repo.record(_payin())
        assert repo.find_by_transaction(1001, "FT2401", PaymentType.PAYOUT) is None

    def test_duplicate_payin_refused(self):
        repo = current_domain.repository_for(Payment)
        repo.record(_payin())

        with pytest.raises(DuplicatePaymentError):
            repo.record(_payin())

    def test_duplicate_is_a_unique_constraint_error(self):
        assert issubclass(DuplicatePaymentError, UniqueConstraintError)

    def test_same_code_on_another_order_allowed(self):
        repo = current_domain.repository_for(Payment)
        repo.record(_payin(order_id=1001))
        repo.record(_payin(order_id=1002))
        assert len(repo.find_for_order(1002)) == 1

    def test_payout_alongside_payin_allowed(self):
        repo = current_domain.repository_for(Payment)
        repo.record(_payin())
        repo.record(Payment.payout(order_id=1001, amount=220000.0, transaction_code="FT2401"))
        assert len(repo.find_for_order(1001)) == 2

    def test_find_paid_payin_ignores_payouts(self):
        repo = current_domain.repository_for(Payment)
        repo.record(Payment.payout(order_id=1001, amount=1.0, transaction_code="OUT"))
        assert repo.find_paid_payin(1001) is None

        repo.record(_payin())
        assert repo.find_paid_payin(1001).transaction_code == "FT2401"
