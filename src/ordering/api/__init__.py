"""HTTP surface of the ordering service."""

from ordering.api.routes import order_router, payment_router, rpc_router

__all__ = ["order_router", "payment_router", "rpc_router"]
