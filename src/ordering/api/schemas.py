"""Pydantic request/response schemas for the Ordering API.

Field names are snake_case in Python and camelCase on the wire, matching
the payloads exchanged with the gateway and sibling services.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------
class PaidInfoSchema(CamelModel):
    amount: float
    reference_code: str
    paid_at: datetime | None = None


class WebhookResultData(CamelModel):
    status: str
    info: PaidInfoSchema | None = None


class WebhookResponse(CamelModel):
    status_key: str
    data: WebhookResultData


# ---------------------------------------------------------------------------
# Rejection
# ---------------------------------------------------------------------------
class RejectOrderBody(CamelModel):
    user_id: int = Field(gt=0)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{"userId": 7}]},
    )


class PayoutInfoSchema(CamelModel):
    bank_code: str
    to_account_number: str
    transaction_code: str
    amount_refunded: float
    user_id: int
    user_reject_id: int


class RejectOrderData(CamelModel):
    status: str
    order_id: int
    payment_method: str | None = None
    rejected_at: datetime | None = None
    payout_info: PayoutInfoSchema | None = None
    description: str | None = None


class RejectOrderResponse(CamelModel):
    status_key: str
    data: RejectOrderData


# ---------------------------------------------------------------------------
# RPC
# ---------------------------------------------------------------------------
class GetOrderByIdRequest(CamelModel):
    order_id: int


class ErrorResponse(BaseModel):
    code: str
    message: str
