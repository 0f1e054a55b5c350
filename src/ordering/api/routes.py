"""FastAPI routes for the Ordering domain: payment webhooks, rejections, RPC."""

from fastapi import APIRouter

from ordering.api.schemas import (
    ErrorResponse,
    GetOrderByIdRequest,
    RejectOrderBody,
    RejectOrderResponse,
    WebhookResponse,
)
from ordering.notification import order_snapshot
from ordering.order.rejection import RejectOrderRequest
from ordering.payment.webhook import WebhookPayload
from ordering.services import build_rejection_coordinator, build_webhook_handler
from ordering.store import ProteanOrderStore
from shared.errors import ErrorCode, MessageKey, TypedError

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post(
    "/webhook",
    response_model=WebhookResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
)
async def payment_webhook(body: WebhookPayload) -> WebhookResponse:
    """Receive a PayOS payment callback."""
    result = build_webhook_handler().handle(body)
    return WebhookResponse.model_validate(result.to_dict())


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post(
    "/{order_id}/reject",
    response_model=RejectOrderResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
)
async def reject_order(order_id: int, body: RejectOrderBody) -> RejectOrderResponse:
    """Reject an order, refunding it first when it was paid by bank transfer."""
    result = build_rejection_coordinator().reject_order(RejectOrderRequest(order_id=order_id, user_id=body.user_id))
    return RejectOrderResponse.model_validate(result.to_dict())


# ---------------------------------------------------------------------------
# RPC Router
# ---------------------------------------------------------------------------
rpc_router = APIRouter(prefix="/rpc", tags=["rpc"])


@rpc_router.post("/get_order_by_id", responses=_ERROR_RESPONSES)
async def get_order_by_id(body: GetOrderByIdRequest) -> dict:
    order = ProteanOrderStore().find_by_id(body.order_id)
    if order is None:
        raise TypedError(ErrorCode.NOT_FOUND, MessageKey.ORDER_NOT_FOUND)
    return order_snapshot(order)
