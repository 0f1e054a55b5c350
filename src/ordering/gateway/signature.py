"""HMAC signatures for PayOS webhooks and payout requests.

The signed message is the data block flattened to ``key=value`` pairs,
sorted by key and joined with ``&``. Nulls (and the strings "null" and
"undefined") become empty values, booleans are lower-cased, and lists are
JSON-encoded with each element's keys sorted. The digest is a hex
HMAC-SHA256 keyed by the merchant checksum key.
"""

import hashlib
import hmac
import json
from typing import Any
from urllib.parse import quote

import structlog

logger = structlog.get_logger(__name__)

_EMPTY_MARKERS = (None, "null", "undefined")


def _stringify(value: Any) -> str:
    if isinstance(value, list):
        value = json.dumps(
            [dict(sorted(v.items())) if isinstance(v, dict) else v for v in value],
            separators=(",", ":"),
            ensure_ascii=False,
        )
    if value in _EMPTY_MARKERS:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def canonicalize(data: dict[str, Any]) -> str:
    """Serialize a webhook data block the way the gateway signs it."""
    return "&".join(f"{key}={_stringify(data[key])}" for key in sorted(data))


def hmac_sha256(key: str, message: str) -> str:
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


class WebhookSignatureVerifier:
    def __init__(self, checksum_key: str) -> None:
        self._checksum_key = checksum_key

    def sign(self, data: dict[str, Any]) -> str:
        return hmac_sha256(self._checksum_key, canonicalize(data))

    def verify(self, data: dict[str, Any], signature: str | None) -> bool:
        """True when ``signature`` matches the data block. Never raises."""
        if not self._checksum_key:
            logger.warning("Webhook checksum key is not configured, rejecting signature")
            return False
        if not signature:
            return False
        return hmac.compare_digest(self.sign(data), signature.lower())


def sign_payout(checksum_key: str, payload: dict[str, Any]) -> str:
    """Signature for ``POST /v1/payouts``.

    Same scheme as webhooks, except the description is percent-encoded the
    way JavaScript's encodeURIComponent does it.
    """
    fields = dict(payload)
    fields["description"] = quote(str(fields.get("description", "")), safe="!~*'()-_.")
    return hmac_sha256(checksum_key, canonicalize(fields))
