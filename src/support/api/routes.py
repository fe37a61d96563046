"""FastAPI routes for the Support domain — tip initiation, gateway webhook, status polling."""

from fastapi import APIRouter, HTTPException, Query
from protean.utils.globals import current_domain

from support.api.schemas import (
    InitiateSupportRequest,
    InitiateSupportResponse,
    PaymentStatusResponse,
    SupportWebhookRequest,
    WebhookAckResponse,
)
from support.transaction.initiation import InitiateSupport
from support.transaction.transaction import SupportStatus, SupportTransaction
from support.transaction.webhook import ProcessSupportWebhook, refresh_status

support_router = APIRouter(prefix="/support", tags=["support"])


@support_router.post("", status_code=201, response_model=InitiateSupportResponse)
async def initiate_support(body: InitiateSupportRequest) -> InitiateSupportResponse:
    command = InitiateSupport(
        author_id=body.author_id,
        post_id=body.post_id,
        amount=body.amount,
        phone=body.phone,
        supporter_name=body.supporter_name,
        is_anonymous=body.is_anonymous,
        message=body.message,
    )
    transaction_id = current_domain.process(command, asynchronous=False)
    tx = current_domain.repository_for(SupportTransaction).get(transaction_id)
    return InitiateSupportResponse(
        transaction_id=transaction_id,
        status=tx.status,
        amount=tx.amount,
        platform_fee=tx.platform_fee,
        net_amount=tx.net_amount,
    )


@support_router.post("/webhook", response_model=WebhookAckResponse)
async def support_webhook(body: SupportWebhookRequest) -> WebhookAckResponse:
    """Gateway callback. Always acknowledged; replays are not re-applied."""
    command = ProcessSupportWebhook(
        api_ref=body.api_ref,
        invoice_id=body.invoice_id,
        state=body.state,
        mpesa_reference=body.mpesa_reference,
        failed_reason=body.failed_reason,
        failed_code=body.failed_code,
    )
    outcome = current_domain.process(command, asynchronous=False)
    return WebhookAckResponse(processed=outcome == "processed")


@support_router.get("/webhook", response_model=PaymentStatusResponse, response_model_exclude_none=True)
async def payment_status(tx: str | None = Query(default=None)) -> PaymentStatusResponse:
    """Status polled by the reader's browser while the STK prompt is open."""
    if not tx:
        raise HTTPException(status_code=400, detail="Transaction ID required")

    transaction = refresh_status(tx)
    failed = transaction.status in (SupportStatus.FAILED.value, SupportStatus.CANCELLED.value)
    return PaymentStatusResponse(
        status=transaction.status,
        amount=transaction.amount,
        mpesa_reference=transaction.mpesa_reference,
        failed_reason=transaction.failed_reason if failed else None,
        action_required=transaction.action_required if failed else None,
        can_retry=transaction.can_retry if failed else None,
    )
