"""Payout gateway port (abstract interface).

Defines what the refund flow needs from a bank payout provider. PayOSGateway
talks to the real API; FakeGateway stands in for development and tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from shared.errors import UnavailableError


@dataclass(frozen=True)
class PayoutRequest:
    reference_id: str
    amount: int
    description: str
    to_bin: str
    to_account_number: str

    def to_payload(self) -> dict:
        return {
            "referenceId": self.reference_id,
            "amount": self.amount,
            "description": self.description,
            "toBin": self.to_bin,
            "toAccountNumber": self.to_account_number,
        }


@dataclass(frozen=True)
class PayoutResult:
    """What the gateway reports back for an accepted payout."""

    payout_id: str
    reference_id: str
    amount: float
    to_bin: str
    to_account_number: str
    state: str | None = None


class PayoutGatewayError(Exception):
    """The gateway answered, but refused or could not process the request."""


class GatewayUnavailableError(UnavailableError):
    """The gateway timed out or could not be reached."""


class PayoutGateway(ABC):
    @abstractmethod
    def get_balance(self) -> float:
        """Available balance of the payout account."""
        ...

    @abstractmethod
    def create_payout(self, request: PayoutRequest, idempotency_key: str) -> PayoutResult:
        """Send money to the account in ``request``.

        Repeating a call with the same idempotency key must not pay twice.
        """
        ...
