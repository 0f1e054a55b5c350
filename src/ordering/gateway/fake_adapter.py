"""Configurable fake payout gateway for development and testing.

Simulates the payout API without external calls. Balance and failure
behaviour can be set at runtime, and every call is recorded so tests can
assert on how often the gateway was hit.
"""

from uuid import uuid4

from ordering.gateway.port import PayoutGateway, PayoutGatewayError, PayoutRequest, PayoutResult


class FakeGateway(PayoutGateway):
    def __init__(self, balance: float = 100_000_000.0) -> None:
        self.balance = balance
        self.should_succeed: bool = True
        self.failure_reason: str = "Payout rejected"
        self.calls: list[dict] = []
        self._payouts: dict[str, PayoutResult] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Payout rejected", balance: float | None = None) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        if balance is not None:
            self.balance = balance

    def payout_calls(self) -> list[dict]:
        return [c for c in self.calls if c["method"] == "create_payout"]

    def get_balance(self) -> float:
        self.calls.append({"method": "get_balance"})
        return self.balance

    def create_payout(self, request: PayoutRequest, idempotency_key: str) -> PayoutResult:
        self.calls.append(
            {
                "method": "create_payout",
                "reference_id": request.reference_id,
                "amount": request.amount,
                "description": request.description,
                "to_bin": request.to_bin,
                "to_account_number": request.to_account_number,
                "idempotency_key": idempotency_key,
            }
        )

        if idempotency_key in self._payouts:
            return self._payouts[idempotency_key]
        if not self.should_succeed:
            raise PayoutGatewayError(self.failure_reason)

        self.balance -= request.amount
        result = PayoutResult(
            payout_id=f"fake_payout_{uuid4().hex[:12]}",
            reference_id=request.reference_id,
            amount=request.amount,
            to_bin=request.to_bin,
            to_account_number=request.to_account_number,
            state="SUCCEEDED",
        )
        self._payouts[idempotency_key] = result
        return result
