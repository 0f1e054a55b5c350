"""Payout gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- PayOSGateway for production, installed by configure_gateway()
"""

from ordering.gateway.fake_adapter import FakeGateway
from ordering.gateway.payos_adapter import PayOSGateway
from ordering.gateway.port import PayoutGateway
from shared.config import Settings

_current_gateway: PayoutGateway | None = None


def get_gateway() -> PayoutGateway:
    """Return the current payout gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PayoutGateway) -> None:
    """Override the active payout gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None


def configure_gateway(settings: Settings) -> PayoutGateway:
    """Install PayOSGateway when payout credentials are configured."""
    if settings.payout_configured:
        set_gateway(
            PayOSGateway(
                endpoint=settings.payos_endpoint,
                client_id=settings.payos_payout_client_id,
                api_key=settings.payos_payout_api_key,
                checksum_key=settings.payos_payout_checksum_key,
                timeout_ms=settings.payos_timeout_ms,
            )
        )
    return get_gateway()
