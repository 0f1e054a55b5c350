"""PayOS payout adapter.

Talks to the PayOS merchant API over HTTPS:
- ``GET  /v1/payouts-account/balance`` for the payout account balance
- ``POST /v1/payouts`` to send a refund, signed with the payout checksum key

Every PayOS response is an envelope ``{"code", "desc", "data"}``; a code
other than "00" means the request was refused.
"""

import requests
import structlog
from requests import RequestException

from ordering.gateway.port import (
    GatewayUnavailableError,
    PayoutGateway,
    PayoutGatewayError,
    PayoutRequest,
    PayoutResult,
)
from ordering.gateway.signature import sign_payout

logger = structlog.get_logger(__name__)

SUCCESS_CODE = "00"


class PayOSGateway(PayoutGateway):
    def __init__(
        self,
        endpoint: str,
        client_id: str,
        api_key: str,
        checksum_key: str,
        timeout_ms: int = 10000,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.client_id = client_id
        self.api_key = api_key
        self.checksum_key = checksum_key
        self.timeout = timeout_ms / 1000
        self.session = session or requests.Session()

    def _headers(self) -> dict:
        return {
            "x-client-id": self.client_id,
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def _send(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.endpoint}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise GatewayUnavailableError(f"PayOS {method} {path} failed: {exc}") from exc
        except RequestException as exc:
            raise PayoutGatewayError(f"PayOS {method} {path} failed: {exc}") from exc

        if resp.status_code >= 500:
            raise GatewayUnavailableError(f"PayOS {method} {path} answered {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise PayoutGatewayError(f"PayOS {method} {path} returned a non-JSON body") from exc

        if body.get("code") != SUCCESS_CODE or not body.get("data"):
            logger.error(
                "PayOS request refused",
                path=path,
                status_code=resp.status_code,
                gateway_code=body.get("code"),
                desc=body.get("desc"),
            )
            raise PayoutGatewayError(body.get("desc") or "Payment payout creation failed")
        return body["data"]

    def get_balance(self) -> float:
        data = self._send("GET", "/v1/payouts-account/balance", headers=self._headers())
        return float(data["balance"])

    def create_payout(self, request: PayoutRequest, idempotency_key: str) -> PayoutResult:
        payload = request.to_payload()
        headers = {
            **self._headers(),
            "x-idempotency-key": idempotency_key,
            "x-signature": sign_payout(self.checksum_key, payload),
        }
        data = self._send("POST", "/v1/payouts", json=payload, headers=headers)

        transactions = data.get("transactions") or [{}]
        transaction = transactions[0]
        return PayoutResult(
            payout_id=str(data.get("id", "")),
            reference_id=data.get("referenceId", request.reference_id),
            amount=float(transaction.get("amount", request.amount)),
            to_bin=transaction.get("toBin", request.to_bin),
            to_account_number=transaction.get("toAccountNumber", request.to_account_number),
            state=data.get("approvalState") or transaction.get("state"),
        )
