"""Pydantic request/response schemas for the Support API.

The webhook body mirrors the gateway's snake_case callback; everything the
reader's browser sees is camelCase.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class InitiateSupportRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    author_id: str
    post_id: str | None = None
    amount: float = Field(gt=0)
    phone: str
    supporter_name: str | None = None
    is_anonymous: bool = False
    message: str | None = Field(default=None, max_length=500)


class InitiateSupportResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    transaction_id: str
    status: str
    amount: float
    platform_fee: float
    net_amount: float


class SupportWebhookRequest(BaseModel):
    invoice_id: str | None = None
    state: str
    api_ref: str | None = None
    mpesa_reference: str | None = None
    failed_reason: str | None = None
    failed_code: str | None = None


class WebhookAckResponse(BaseModel):
    received: bool = True
    processed: bool


class PaymentStatusResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str
    amount: float
    mpesa_reference: str | None = None
    failed_reason: str | None = None
    action_required: str | None = None
    can_retry: bool | None = None
